"""
Inspector runtime: one task in, content and attribute messages out.

Per task:  received → invoking → succeeded | failed

The inspector runs synchronously. Its output is fanned out as independent
messages, all contents first (in the order returned), then all new
attributes (in the order returned). A failed publish stops the fan-out;
messages already sent stay sent. Redelivery of the task re-sends them, and
the attribute dedup cache downstream absorbs the duplicates.
"""

import logging
import uuid
from enum import Enum
from typing import Optional

from errors import InspectorError, QueueError, SerializationError
from inspector.base import Inspector
from messaging.task_queue import TaskQueue
from models import Attribute, AttributeMessage, InspectionContext, ReportSection, Task, TaskResult
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class TaskState(str, Enum):
    received = "received"
    invoking = "invoking"
    succeeded = "succeeded"
    failed = "failed"


def _encode(message: BaseModel, queue_url: str) -> bytes:
    try:
        return message.model_dump_json().encode("utf-8")
    except ValueError as exc:
        raise SerializationError("Failed to marshal queue message", queue_url=queue_url) from exc


class InspectorRuntime:
    """
    Runs one inspector against tasks from the task queue.

    `author` identifies the inspector on every message it sends. It is for
    provenance only and plays no part in dedup.
    """

    def __init__(
        self,
        inspector: Inspector,
        author: str,
        queue: TaskQueue,
        content_queue_url: str,
        attribute_queue_url: str,
    ):
        self.inspector = inspector
        self.author = author
        self.queue = queue
        self.content_queue_url = content_queue_url
        self.attribute_queue_url = attribute_queue_url

    def _transition(self, task: Task, state: TaskState) -> None:
        logger.debug(
            "Task %s %s/%s: %s", task.report_id, task.attribute.type.value, task.attribute.key, state.value
        )

    def handle_task(self, task: Task) -> Optional[TaskResult]:
        self._transition(task, TaskState.received)
        ctx = InspectionContext(report_id=task.report_id)

        self._transition(task, TaskState.invoking)
        try:
            result = self.inspector.inspect(ctx, task.attribute)
        except Exception as exc:
            self._transition(task, TaskState.failed)
            raise InspectorError(
                "Inspector failed",
                author=self.author,
                report_id=task.report_id,
                attribute=task.attribute.model_dump(mode="json"),
            ) from exc

        if result is None:
            self._transition(task, TaskState.succeeded)
            return None

        try:
            self._publish(task, result)
        except (QueueError, SerializationError):
            self._transition(task, TaskState.failed)
            raise

        self._transition(task, TaskState.succeeded)
        logger.info(
            "Task %s done: %d contents, %d new attributes",
            task.report_id,
            len(result.contents),
            len(result.new_attributes),
        )
        return result

    def _publish(self, task: Task, result: TaskResult) -> None:
        for content in result.contents:
            section = ReportSection(
                report_id=task.report_id,
                author=self.author,
                attribute=task.attribute,
                content=content,
            )
            payload = _encode(section, self.content_queue_url)
            try:
                self.queue.publish(self.content_queue_url, payload)
            except QueueError as exc:
                exc.with_context(queue="content", report_id=task.report_id)
                raise

        for attr in result.new_attributes:
            message = AttributeMessage(report_id=task.report_id, author=self.author, attribute=attr)
            payload = _encode(message, self.attribute_queue_url)
            try:
                self.queue.publish(self.attribute_queue_url, payload)
            except QueueError as exc:
                exc.with_context(queue="attribute", report_id=task.report_id)
                raise


def dry_run(inspector: Inspector, attr: Attribute) -> Optional[TaskResult]:
    """Run an inspector once, outside any queue, under a throwaway report ID."""
    ctx = InspectionContext(report_id=str(uuid.uuid4()))
    return inspector.inspect(ctx, attr)
