"""Tests for the Fliplet REST API client."""

import json

import httpx
import pytest

from app.clients.fliplet import FlipletClient
from app.exceptions import FlipletApiError


def make_client(handler, **kwargs) -> FlipletClient:
    """Create a FlipletClient whose HTTP traffic goes to handler."""
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return FlipletClient(
        api_token="test-token",
        app_id=123,
        base_url="https://api.example.com",
        http_client=http_client,
        **kwargs,
    )


class RecordingHandler:
    """Mock transport handler that records requests and returns a fixed response."""

    def __init__(self, status_code: int = 200, json_body=None, content: bytes | None = None):
        self.status_code = status_code
        self.json_body = json_body if json_body is not None else {}
        self.content = content
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.content is not None:
            return httpx.Response(self.status_code, content=self.content)
        return httpx.Response(self.status_code, json=self.json_body)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


class TestConstructor:
    """Tests for client construction."""

    def test_stores_configuration(self):
        """Test that base URL, token and app id are kept."""
        client = FlipletClient(api_token="abc", app_id="42", base_url="https://api.fliplet.com/")
        assert client.base_url == "https://api.fliplet.com"
        assert client.api_token == "abc"
        assert client.app_id == "42"
        assert client.timeout == 30.0

    def test_requires_token(self):
        """Test that a missing token is rejected."""
        with pytest.raises(ValueError, match="api_token"):
            FlipletClient(api_token="", app_id=1)

    def test_requires_app_id(self):
        """Test that a missing app id is rejected."""
        with pytest.raises(ValueError, match="app_id"):
            FlipletClient(api_token="abc", app_id=None)


class TestRequest:
    """Tests for the shared request behavior."""

    @pytest.mark.asyncio
    async def test_sends_auth_and_content_type_headers(self):
        """Test that every request carries the auth token and JSON content type."""
        handler = RecordingHandler(json_body={"dataSources": []})
        client = make_client(handler)

        await client.list_data_sources()

        assert handler.last.headers["Auth-token"] == "test-token"
        assert handler.last.headers["Content-Type"] == "application/json"

    @pytest.mark.asyncio
    async def test_non_success_status_raises_with_body(self):
        """Test that a 4xx response raises FlipletApiError carrying status and body."""
        handler = RecordingHandler(status_code=401, json_body={"message": "Token invalid"})
        client = make_client(handler)

        with pytest.raises(FlipletApiError) as exc_info:
            await client.list_data_sources()

        assert exc_info.value.status_code == 401
        assert exc_info.value.response_body == {"message": "Token invalid"}
        assert "401" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_non_success_status_with_unparseable_body(self):
        """Test that an error page that is not JSON yields an empty body."""
        handler = RecordingHandler(status_code=502, content=b"<html>Bad gateway</html>")
        client = make_client(handler)

        with pytest.raises(FlipletApiError) as exc_info:
            await client.get_data_source(5)

        assert exc_info.value.status_code == 502
        assert exc_info.value.response_body == {}

    @pytest.mark.asyncio
    async def test_success_with_non_json_body_raises(self):
        """Test that a 2xx response that is not JSON raises with status and URL."""
        handler = RecordingHandler(status_code=200, content=b"not json")
        client = make_client(handler)

        with pytest.raises(FlipletApiError) as exc_info:
            await client.get_media_file(9)

        assert exc_info.value.status_code == 200
        assert "non-JSON" in str(exc_info.value)
        assert "https://api.example.com/v1/media/files/9" in str(exc_info.value)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("json_body", [[{"id": 1}], "ok", 7])
    async def test_success_with_non_object_body_raises(self, json_body):
        """Test that a 2xx JSON body that is not an object raises instead of being indexed."""
        handler = RecordingHandler(status_code=200, json_body=json_body)
        client = make_client(handler)

        with pytest.raises(FlipletApiError) as exc_info:
            await client.list_data_sources()

        assert exc_info.value.status_code == 200
        assert "unexpected response envelope" in str(exc_info.value)
        assert "https://api.example.com/v1/data-sources" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_timeout_raises_timeout_error(self):
        """Test that a timeout becomes a FlipletApiError with status 0."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        client = make_client(handler)

        with pytest.raises(FlipletApiError, match="timed out after 30 seconds") as exc_info:
            await client.list_data_sources()

        assert exc_info.value.status_code == 0

    @pytest.mark.asyncio
    async def test_connection_error_raises_api_error(self):
        """Test that transport failures are normalized into FlipletApiError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler)

        with pytest.raises(FlipletApiError) as exc_info:
            await client.list_media()

        assert exc_info.value.status_code == 0

    @pytest.mark.asyncio
    async def test_aclose_leaves_injected_client_open(self):
        """Test that an injected HTTP client is owned by the caller."""
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(RecordingHandler()))
        client = FlipletClient(api_token="t", app_id=1, http_client=http_client)

        await client.aclose()

        assert not http_client.is_closed
        await http_client.aclose()


class TestDataSources:
    """Tests for data source methods."""

    @pytest.mark.asyncio
    async def test_list_data_sources(self):
        """Test GET /v1/data-sources with appId and unwrapping of dataSources."""
        data_sources = [{"id": 1, "name": "Users"}, {"id": 2, "name": "Products"}]
        handler = RecordingHandler(json_body={"dataSources": data_sources})
        client = make_client(handler)

        result = await client.list_data_sources()

        assert result == data_sources
        assert handler.last.method == "GET"
        assert handler.last.url.path == "/v1/data-sources"
        assert handler.last.url.params["appId"] == "123"

    @pytest.mark.asyncio
    async def test_get_data_source(self):
        """Test GET /v1/data-sources/:id and unwrapping of dataSource."""
        handler = RecordingHandler(json_body={"dataSource": {"id": 7, "name": "Users"}})
        client = make_client(handler)

        result = await client.get_data_source(7)

        assert result == {"id": 7, "name": "Users"}
        assert handler.last.url.path == "/v1/data-sources/7"

    @pytest.mark.asyncio
    async def test_get_data_source_requires_id(self):
        """Test that a missing id fails locally without any request."""
        handler = RecordingHandler()
        client = make_client(handler)

        with pytest.raises(ValueError, match="data_source_id"):
            await client.get_data_source(None)

        assert handler.requests == []

    @pytest.mark.asyncio
    async def test_get_entries_default_query(self):
        """Test POST /data/query with only the select type by default."""
        handler = RecordingHandler(json_body={"entries": [{"id": 1}]})
        client = make_client(handler)

        result = await client.get_data_source_entries(7)

        assert result == [{"id": 1}]
        assert handler.last.method == "POST"
        assert handler.last.url.path == "/v1/data-sources/7/data/query"
        assert json.loads(handler.last.content) == {"type": "select"}

    @pytest.mark.asyncio
    async def test_get_entries_with_filters(self):
        """Test that where, limit and offset are forwarded when provided."""
        handler = RecordingHandler(json_body={"entries": []})
        client = make_client(handler)

        await client.get_data_source_entries(7, where={"Status": "Active"}, limit=10, offset=0)

        assert json.loads(handler.last.content) == {
            "type": "select",
            "where": {"Status": "Active"},
            "limit": 10,
            "offset": 0,
        }

    @pytest.mark.asyncio
    async def test_get_entries_requires_id(self):
        """Test that a missing id fails locally without any request."""
        handler = RecordingHandler()
        client = make_client(handler)

        with pytest.raises(ValueError):
            await client.get_data_source_entries(None)

        assert handler.requests == []


class TestMedia:
    """Tests for media methods."""

    @pytest.mark.asyncio
    async def test_list_media(self):
        """Test GET /v1/media with appId and both folders and files returned."""
        handler = RecordingHandler(json_body={"folders": [{"id": 3}], "files": [{"id": 4}], "extra": True})
        client = make_client(handler)

        result = await client.list_media()

        assert result == {"folders": [{"id": 3}], "files": [{"id": 4}]}
        assert handler.last.url.path == "/v1/media"
        assert handler.last.url.params["appId"] == "123"
        assert "folderId" not in handler.last.url.params

    @pytest.mark.asyncio
    async def test_list_media_in_folder(self):
        """Test that folderId is added when provided."""
        handler = RecordingHandler(json_body={"folders": [], "files": []})
        client = make_client(handler)

        await client.list_media(folder_id=55)

        assert handler.last.url.params["folderId"] == "55"

    @pytest.mark.asyncio
    async def test_get_media_file(self):
        """Test GET /v1/media/files/:id and unwrapping of file."""
        handler = RecordingHandler(json_body={"file": {"id": 9, "name": "logo.png"}})
        client = make_client(handler)

        result = await client.get_media_file(9)

        assert result == {"id": 9, "name": "logo.png"}
        assert handler.last.url.path == "/v1/media/files/9"

    @pytest.mark.asyncio
    async def test_get_media_file_requires_id(self):
        """Test that a missing id fails locally without any request."""
        handler = RecordingHandler()
        client = make_client(handler)

        with pytest.raises(ValueError, match="file_id"):
            await client.get_media_file(None)

        assert handler.requests == []


class TestFlipletApiError:
    """Tests for the error type."""

    def test_stores_message_status_and_body(self):
        """Test that the error carries its details."""
        error = FlipletApiError("Not found", 404, {"message": "missing"})
        assert isinstance(error, Exception)
        assert error.message == "Not found"
        assert error.status_code == 404
        assert error.response_body == {"message": "missing"}

    def test_body_defaults_to_empty_dict(self):
        """Test that a missing body becomes an empty dict."""
        assert FlipletApiError("boom", 0).response_body == {}
