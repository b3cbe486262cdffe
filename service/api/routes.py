import logging

from dispatch.pipeline import AlertPipeline
from fastapi import APIRouter, Depends, Request
from models import (
    Alert,
    AttributeMessage,
    DispatchResponse,
    HealthResponse,
    HealthStatus,
    Report,
    ReportSection,
    ReportView,
)
from storage.record_store import SQLiteRecordStore

router = APIRouter()
logger = logging.getLogger(__name__)


def get_pipeline(request: Request) -> AlertPipeline:
    return request.app.state.pipeline


def get_store(request: Request) -> SQLiteRecordStore:
    return request.app.state.store


@router.post("/alerts", response_model=Report)
def receive_alert(alert: Alert, pipeline: AlertPipeline = Depends(get_pipeline)):
    """
    Correlates an alert to its report and dispatches its attributes.

    Re-delivering the same alert (same detector, rule_id and alert_key) is
    safe: the response carries the same report ID with status "more", and
    attributes already dispatched for that report are not dispatched again.
    """
    return pipeline.receive_alert(alert)


@router.post("/attributes", response_model=DispatchResponse)
def receive_attribute(message: AttributeMessage, pipeline: AlertPipeline = Depends(get_pipeline)):
    """
    Attribute-queue consumer.

    `scheduled` is false when the report already has this attribute. That is
    a successful, expected outcome, not an error.
    """
    return DispatchResponse(scheduled=pipeline.handle_attribute(message))


@router.post("/content", status_code=204)
def receive_content(section: ReportSection, pipeline: AlertPipeline = Depends(get_pipeline)):
    """Content-queue consumer. Appends the section to its report."""
    pipeline.handle_content(section)


@router.get("/reports/{report_id}", response_model=ReportView)
def get_report(report_id: str, pipeline: AlertPipeline = Depends(get_pipeline)):
    """
    Returns every alert snapshot, section and attribute staged for a report.

    Read-only: deciding when a report is complete is up to the caller.
    A single undecodable row fails the whole request rather than returning a
    silently partial report.
    """
    return pipeline.compile_report(report_id)


@router.get("/health", response_model=HealthResponse)
def health(
    store: SQLiteRecordStore = Depends(get_store),
    pipeline: AlertPipeline = Depends(get_pipeline),
):
    """
    Lightweight health check. Does NOT call any queue.

    Status semantics:
      ok   : DB reachable
      down : DB not reachable (our service is broken)
    """
    db_ok = store.is_healthy()
    return HealthResponse(
        status=HealthStatus.ok if db_ok else HealthStatus.down,
        db_connected=db_ok,
        record_ttl_seconds=int(pipeline.repository.ttl.total_seconds()),
    )
