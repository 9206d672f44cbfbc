"""
Export download endpoint.
"""

from fastapi import APIRouter
from fastapi.responses import FileResponse

from mvp_builder.api.dependencies import ExportServiceDep

router = APIRouter(prefix="/exports", tags=["exports"])

_MEDIA_TYPES = {".md": "text/markdown", ".json": "application/json"}


@router.get("/{filename}")
async def download_export(filename: str, exporter: ExportServiceDep):
    """Serve a previously exported document as an attachment.

    Raises:
        ExportError: unknown or invalid filename (404)
    """
    path = exporter.resolve_export(filename)
    return FileResponse(
        path,
        media_type=_MEDIA_TYPES.get(path.suffix, "application/octet-stream"),
        filename=filename,
    )
