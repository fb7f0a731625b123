"""Operations endpoints: Prometheus exposition and readiness."""

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_storage
from ..domain.documents.ports.blob_storage_port import BlobStoragePort
from .health import run_health_checks

router = APIRouter(tags=["Observability"])


@router.get("/metrics", include_in_schema=False)
def metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@router.get(
    "/health",
    summary="Readiness of the database and blob storage",
    description="200 when every component is healthy, 503 otherwise",
)
async def health_check(
    db: Session = Depends(get_db),
    storage: BlobStoragePort = Depends(get_storage),
):
    report = await run_health_checks(db, storage)
    return JSONResponse(content=report.as_dict(), status_code=report.http_status)
