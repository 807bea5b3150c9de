"""Upload API — image upload for post covers.

Learn: multipart form, field name `image`. The file is read with a
one-byte overshoot of the size limit so oversized uploads are
rejected without buffering all of them.
"""

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from starlette.concurrency import run_in_threadpool

from inkwell.auth.dependencies import get_current_user, require_admin_or_editor
from inkwell.auth.identity import Identity
from inkwell.services.upload_service import InvalidUpload, UploadService, UploadTooLarge

router = APIRouter(prefix="/upload")


@router.post("/")
async def upload_image(
    image: UploadFile = File(...),
    _identity: Identity = Depends(require_admin_or_editor),
):
    svc = UploadService()
    data = await image.read(svc.max_bytes + 1)
    try:
        stored = await run_in_threadpool(
            svc.save_image, data, image.filename or "", image.content_type
        )
    except UploadTooLarge:
        raise HTTPException(status_code=413, detail="Image exceeds the upload size limit")
    except InvalidUpload as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"message": "Image uploaded successfully", **stored}


@router.get("/check/{filename}")
async def check_upload(filename: str, _identity: Identity = Depends(get_current_user)):
    try:
        return UploadService().check(filename)
    except InvalidUpload as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/list")
async def list_uploads(_identity: Identity = Depends(get_current_user)):
    return UploadService().list_files()
