"""Media file tools."""

from pydantic import BaseModel, Field

from app.tools.base import ToolDefinition


class ListMediaInput(BaseModel):
    """Input schema for browsing media folders."""

    folder_id: int | None = Field(
        None,
        description=(
            "Optional folder ID to list contents of a specific folder. "
            "Omit to list root-level files and folders for the app."
        ),
    )


class MediaFileInput(BaseModel):
    """Input schema for looking up one media file."""

    file_id: int = Field(..., description="The unique ID of the media file to retrieve.")


LIST_MEDIA = ToolDefinition(
    name="list_media",
    description=(
        "List all media files and folders belonging to the current Fliplet app. "
        "Optionally filter by a specific folder ID to browse subfolder contents. "
        "Returns arrays of folders and files with names, URLs, and metadata."
    ),
    input_schema_class=ListMediaInput,
)

GET_MEDIA_FILE = ToolDefinition(
    name="get_media_file",
    description=(
        "Get metadata and the download URL for a specific media file by its ID. "
        "Returns file details including name, content type, size, URL, and timestamps."
    ),
    input_schema_class=MediaFileInput,
)
