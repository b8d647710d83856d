# health/router.py
from fastapi import APIRouter
from fastapi.responses import JSONResponse

from core.deps import SettingsDep, StorageDep

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    # Keep this super simple and always unauthenticated
    return {"ok": True}


@router.get("/health/storage")
def health_storage(storage: StorageDep, settings: SettingsDep):
    """
    Verifies the object store is reachable and the bucket exists.
    """
    try:
        storage.ping()
    except Exception as e:
        return JSONResponse(
            status_code=503,
            content={
                "ok": False,
                "storageReachable": False,
                "provider": settings.storage.provider,
                "error": str(e),
            },
        )

    return {
        "ok": True,
        "storageReachable": True,
        "provider": settings.storage.provider,
    }
