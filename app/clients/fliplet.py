"""Fliplet REST API client."""

from typing import Any

import httpx

from app.exceptions import FlipletApiError
from app.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://api.fliplet.com"
DEFAULT_TIMEOUT = 30.0


class FlipletClient:
    """Async HTTP wrapper around the Fliplet REST API.

    Each public method maps to one tool and issues exactly one request. No
    retries happen here; failures surface as FlipletApiError.
    """

    def __init__(
        self,
        api_token: str,
        app_id: str | int,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize Fliplet client.

        Args:
            api_token: Fliplet auth token sent with every request
            app_id: The Fliplet app whose resources are queried
            base_url: API base URL
            timeout: Seconds to wait for each request before giving up
            http_client: Optional preconfigured client (tests inject a MockTransport)
        """
        if not api_token:
            raise ValueError("FlipletClient requires an api_token")
        if app_id is None or app_id == "":
            raise ValueError("FlipletClient requires an app_id")

        self.base_url = base_url.rstrip("/")
        self.api_token = api_token
        self.app_id = app_id
        self.timeout = timeout

        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient()

    async def __aenter__(self) -> "FlipletClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def _request(
        self,
        path: str,
        method: str = "GET",
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make an authenticated request and return the parsed JSON object body."""
        url = f"{self.base_url}{path}"
        headers = {
            "Auth-token": self.api_token,
            "Content-Type": "application/json",
        }

        try:
            response = await self._client.request(
                method,
                url,
                params=params,
                json=body,
                headers=headers,
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            logger.warning(f"Fliplet request timed out: {method} {url}")
            raise FlipletApiError(
                f"Fliplet API request timed out after {self.timeout:g} seconds", 0, {}
            ) from e
        except httpx.HTTPError as e:
            logger.warning(f"Fliplet request failed: {method} {url}: {e}")
            raise FlipletApiError(f"Fliplet API request failed: {e}", 0, {}) from e

        try:
            data = response.json()
        except ValueError:
            data = None
            parsed = False
        else:
            parsed = True

        if not response.is_success:
            logger.warning(f"Fliplet API returned {response.status_code} for {method} {url}")
            raise FlipletApiError(
                f"Fliplet API error: {response.status_code} {response.reason_phrase} - {url}",
                response.status_code,
                data if parsed else {},
            )

        if not parsed:
            raise FlipletApiError(
                f"Fliplet API returned non-JSON response: {response.status_code} {response.reason_phrase} - {url}",
                response.status_code,
                {},
            )

        if not isinstance(data, dict):
            raise FlipletApiError(
                f"Fliplet API returned an unexpected response envelope: expected a JSON object, "
                f"got {type(data).__name__} - {url}",
                response.status_code,
                {},
            )

        return data

    # Data sources

    async def list_data_sources(self) -> list[dict[str, Any]]:
        """List all data sources belonging to the configured app."""
        data = await self._request("/v1/data-sources", params={"appId": self.app_id})
        return data.get("dataSources")

    async def get_data_source(self, data_source_id: int | None) -> dict[str, Any]:
        """Get a single data source by id."""
        if data_source_id is None:
            raise ValueError("get_data_source() requires a data_source_id")

        data = await self._request(f"/v1/data-sources/{data_source_id}")
        return data.get("dataSource")

    async def get_data_source_entries(
        self,
        data_source_id: int | None,
        where: dict[str, Any] | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[dict[str, Any]]:
        """Query entries of a data source.

        Args:
            data_source_id: The data source to query
            where: Optional filter (Fliplet supports MongoDB-style operators)
            limit: Maximum number of entries to return
            offset: Number of entries to skip

        Returns:
            List of entry objects
        """
        if data_source_id is None:
            raise ValueError("get_data_source_entries() requires a data_source_id")

        body: dict[str, Any] = {"type": "select"}
        if where:
            body["where"] = where
        if limit is not None:
            body["limit"] = limit
        if offset is not None:
            body["offset"] = offset

        data = await self._request(f"/v1/data-sources/{data_source_id}/data/query", method="POST", body=body)
        return data.get("entries")

    # Media

    async def list_media(self, folder_id: int | None = None) -> dict[str, Any]:
        """List media folders and files for the app, optionally inside one folder."""
        params: dict[str, Any] = {"appId": self.app_id}
        if folder_id is not None:
            params["folderId"] = folder_id

        data = await self._request("/v1/media", params=params)
        return {"folders": data.get("folders"), "files": data.get("files")}

    async def get_media_file(self, file_id: int | None) -> dict[str, Any]:
        """Get metadata and download URL for one media file."""
        if file_id is None:
            raise ValueError("get_media_file() requires a file_id")

        data = await self._request(f"/v1/media/files/{file_id}")
        return data.get("file")
