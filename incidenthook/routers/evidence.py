# incidenthook/routers/evidence.py
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import FileResponse

from incidenthook.deps import Services, get_services

router = APIRouter(prefix="/evidence", tags=["evidence"])


@router.get("/{bucket}/{key}", include_in_schema=False)
def evidence_open(
    bucket: str,
    key: str,
    token: Optional[str] = Query(default=None),
    services: Services = Depends(get_services),
):
    store = services.blob_store
    try:
        path = store.path_for(bucket, key)
    except ValueError:
        raise HTTPException(status_code=400, detail="invalid name")

    # modo signed: token obligatorio (AuthError -> 401)
    if services.settings.EVIDENCE_URL_MODE != "public":
        store.verify_token(token, bucket, key)

    if not store.exists(bucket, key):
        raise HTTPException(status_code=404, detail="not found")
    return FileResponse(str(path), media_type="text/plain")
