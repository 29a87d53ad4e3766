from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse

from portfolio.api.deps import get_upload_store
from portfolio.core.config import Settings, get_settings
from portfolio.core.security import require_admin
from portfolio.schemas.uploads import ProfilePictureOut, UploadOut
from portfolio.services.errors import UploadRejectedError
from portfolio.services.uploads import UploadStore

router = APIRouter()


@router.get("/profile-picture", response_model=ProfilePictureOut)
def get_profile_picture(
    settings: Settings = Depends(get_settings),
    uploads: UploadStore = Depends(get_upload_store),
) -> ProfilePictureOut:
    latest = uploads.latest_profile_picture()
    return ProfilePictureOut(
        current_picture=latest,
        url=f"/files/{latest}" if latest else None,
        default_url=settings.default_profile_picture_url,
    )


@router.post("/profile-picture", response_model=UploadOut, dependencies=[Depends(require_admin)])
async def upload_profile_picture(
    file: UploadFile | None = File(default=None),
    uploads: UploadStore = Depends(get_upload_store),
) -> UploadOut:
    if file is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file uploaded")
    # Read one byte past the limit so oversize files are detected without buffering them whole.
    data = await file.read(uploads.max_bytes + 1)
    try:
        stored = await run_in_threadpool(uploads.save_profile_picture, data, file.content_type)
    except UploadRejectedError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return UploadOut(
        filename=stored.filename,
        url=f"/files/{stored.filename}",
        size=stored.size,
        type=stored.content_type,
        uploaded_at=stored.uploaded_at,
    )


@router.get("/files/{filename}")
def get_file(filename: str, uploads: UploadStore = Depends(get_upload_store)) -> FileResponse:
    path = uploads.resolve(filename)
    if path is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="file not found")
    return FileResponse(path)
