# app/presentation/health.py
from fastapi import APIRouter, Depends

from app.application.snapshot import SnapshotHolder
from app.container import get_snapshot_holder

router = APIRouter()

@router.get("/healthz")
async def healthz():
    return {"ok": True}

@router.get("/readyz")
async def readyz(holder: SnapshotHolder = Depends(get_snapshot_holder)):
    snap = holder.current
    checks = {"catalog_initialized": snap is not None}
    if snap is not None:
        checks["catalog"] = snap.stats()
    if holder.last_error:
        checks["last_error"] = holder.last_error
    return {"ok": snap is not None, **checks}
