# incidenthook/routers/incidents.py
from fastapi import APIRouter, Depends, HTTPException
from starlette.concurrency import run_in_threadpool

from incidenthook.deps import Services, get_services, require_api_key
from incidenthook.schemas import IncidentOut, IncidentResponse

router = APIRouter(prefix="/api/incidents", tags=["incidents"], dependencies=[Depends(require_api_key)])


@router.get("/{incident_id}", response_model=IncidentResponse)
async def incident_get(incident_id: str, services: Services = Depends(get_services)):
    row = await run_in_threadpool(services.recorder.get, incident_id)
    if row is None:
        raise HTTPException(status_code=404, detail="not found")
    return IncidentResponse(incident=IncidentOut(**row.to_dict()))
