"""
Correlation pipeline: alert → report → per-attribute tasks.

Orchestrates the repository and the task queue without knowing the HTTP
layer. This clean separation means the pipeline can be driven from:
  - The API routes (one request per queue message)
  - Tests (directly)

Three entry points, one per inbound queue:
  receive_alert     new or re-delivered alert
  handle_attribute  attribute discovered by an inspector
  handle_content    section produced by an inspector

Every entry point is safe to run again from the top after a failure: the
alert entry and the attribute cache absorb repeats, and staged snapshots and
sections are append-only.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from errors import QueueError
from messaging.task_queue import TaskQueue
from models import Alert, Attribute, AttributeMessage, Report, ReportSection, ReportView, Task
from storage.repository import RepositoryService

logger = logging.getLogger(__name__)


def _now(now: Optional[datetime]) -> datetime:
    return now if now is not None else datetime.now(timezone.utc)


class AlertPipeline:
    def __init__(self, repository: RepositoryService, queue: TaskQueue, task_queue_url: str):
        self.repository = repository
        self.queue = queue
        self.task_queue_url = task_queue_url

    def receive_alert(self, alert: Alert, now: Optional[datetime] = None) -> Report:
        """Correlate the alert to a report, stage it, and dispatch its attributes."""
        now = _now(now)

        report = self.repository.take_report(alert, now)
        self.repository.save_alert_cache(report.id, alert, now)

        dispatched = 0
        for attr in alert.attributes:
            if self.dispatch_attribute(report.id, attr, now):
                dispatched += 1

        logger.info(
            "Alert %s → report %s (%s): attributes=%d dispatched=%d",
            alert.alert_id(),
            report.id,
            report.status.value,
            len(alert.attributes),
            dispatched,
        )
        return report

    def dispatch_attribute(self, report_id: str, attr: Attribute, now: datetime) -> bool:
        """
        Publish an inspection task unless this attribute is already cached.

        Returns True if a task was published.
        """
        if not self.repository.put_attribute_cache(report_id, attr, now):
            return False

        task = Task(report_id=report_id, attribute=attr)
        try:
            self.queue.publish(self.task_queue_url, task.model_dump_json().encode("utf-8"))
        except QueueError as exc:
            exc.with_context(queue="task", report_id=report_id)
            raise
        return True

    def handle_attribute(self, message: AttributeMessage, now: Optional[datetime] = None) -> bool:
        scheduled = self.dispatch_attribute(message.report_id, message.attribute, _now(now))
        logger.debug(
            "Attribute from %s for report %s: scheduled=%s", message.author, message.report_id, scheduled
        )
        return scheduled

    def handle_content(self, section: ReportSection, now: Optional[datetime] = None) -> None:
        self.repository.save_report_section(section, _now(now))
        logger.debug(
            "Staged %s section from %s for report %s",
            section.content.type,
            section.author,
            section.report_id,
        )

    def compile_report(self, report_id: str) -> ReportView:
        """Read back everything staged for a report."""
        return ReportView(
            id=report_id,
            alerts=self.repository.fetch_alert_cache(report_id),
            sections=self.repository.fetch_report_section(report_id),
            attributes=self.repository.fetch_attribute_cache(report_id),
        )
