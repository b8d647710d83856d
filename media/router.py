from __future__ import annotations

from typing import Callable, Optional

from fastapi import APIRouter, File, HTTPException, Request, Response, UploadFile
from fastapi.routing import APIRoute

from auth.deps import CurrentUserDep
from core.deps import RegistryDep, SettingsDep, StorageDep, get_app_settings
from core.errors import MediaError
from media.models import MediaFileModel, MediaListResponse
from media.service import list_media, store_media


def _too_large(limit: int) -> HTTPException:
    return HTTPException(status_code=413, detail=f"Upload exceeds {limit} bytes")


class UploadLimitRoute(APIRoute):
    """
    Caps the raw request body before FastAPI parses the multipart form.

    FastAPI reads and spools the whole form before any dependency or handler runs,
    so the per-file check in store_media alone would only fire after the body is
    already on disk. Here a declared Content-Length over the cap is refused up front,
    and a body without one is counted while it streams in.
    """

    def get_route_handler(self) -> Callable:
        original_route_handler = super().get_route_handler()

        async def custom_route_handler(request: Request) -> Response:
            media = get_app_settings(request).media
            cap = media.max_upload_bytes + media.multipart_overhead_bytes

            declared = request.headers.get("content-length")
            if declared is not None and declared.isdigit() and int(declared) > cap:
                raise _too_large(media.max_upload_bytes)

            receive = request.receive
            received = 0

            async def limited_receive():
                nonlocal received
                message = await receive()
                if message["type"] == "http.request":
                    received += len(message.get("body", b""))
                    if received > cap:
                        raise _too_large(media.max_upload_bytes)
                return message

            return await original_route_handler(Request(request.scope, limited_receive))

        return custom_route_handler


router = APIRouter(prefix="/media", tags=["media"], route_class=UploadLimitRoute)


# ---------------------------------------------------------------------
# POST /media/upload
# ---------------------------------------------------------------------
# Plain `def`: FastAPI runs it in the threadpool, so the blocking object-store
# write never stalls the event loop.
@router.post("/upload", response_model=MediaFileModel)
def upload_media(
    user: CurrentUserDep,
    storage: StorageDep,
    registry: RegistryDep,
    settings: SettingsDep,
    file: Optional[UploadFile] = File(None),
):
    if file is None or not (file.filename or "").strip():
        raise HTTPException(status_code=400, detail="No file uploaded")

    try:
        record = store_media(
            storage=storage,
            registry=registry,
            identity=user,
            filename=file.filename,
            content_type=file.content_type,
            stream=file.file,
            size=file.size,
            max_bytes=settings.media.max_upload_bytes,
        )
    except MediaError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc))
    finally:
        file.file.close()

    return record.to_dict()


# ---------------------------------------------------------------------
# GET /media/list
# ---------------------------------------------------------------------
@router.get("/list", response_model=MediaListResponse)
async def list_files(user: CurrentUserDep, registry: RegistryDep, settings: SettingsDep):
    records = list_media(registry, user, owner_scoped=settings.media.owner_scoped)
    return {"files": [r.to_dict() for r in records], "count": len(records)}
