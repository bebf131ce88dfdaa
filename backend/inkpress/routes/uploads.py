"""
Inkpress Backend — Uploaded Image Route
========================================

What:  Serves stored post images at GET /uploads/{file_path}.
How:   FileService.resolve() keeps the path inside UPLOAD_PATH (traversal →
       400) and raises NotFoundError (404) for missing files.
"""

from fastapi import APIRouter
from fastapi.responses import FileResponse

from inkpress.schemas.common import ErrorResponse
from inkpress.services.file_service import file_service

router = APIRouter(tags=["Uploads"])


@router.get(
    "/uploads/{file_path:path}",
    summary="Serve an uploaded image",
    responses={
        200: {"description": "Image file"},
        404: {"description": "File not found", "model": ErrorResponse},
    },
)
async def serve_upload(file_path: str) -> FileResponse:
    full_path = file_service.resolve(file_path)
    # Stored names are UUIDs, so a path always refers to the same bytes
    return FileResponse(
        path=str(full_path),
        headers={"Cache-Control": "public, max-age=86400"},
    )
