"""
Tests for the correlation pipeline.

Focus: end-to-end behaviour across the alert, task, content and attribute
queues, driven directly without HTTP.
"""

from datetime import timedelta

import pytest
from conftest import ATTRIBUTE_QUEUE_URL, CONTENT_QUEUE_URL, TASK_QUEUE_URL
from dispatch.pipeline import AlertPipeline
from errors import QueueError
from inspector.base import Inspector
from inspector.runtime import InspectorRuntime
from models import (
    Alert,
    Attribute,
    AttributeMessage,
    AttrType,
    ReportHost,
    ReportSection,
    ReportStatus,
    Task,
    TaskResult,
)

DST_IP = Attribute(type=AttrType.ipaddr, key="dst", value="1.2.3.4")


class OneSectionInspector(Inspector):
    def inspect(self, ctx, attr):
        return TaskResult(contents=[ReportHost(ip_addr=[attr.value], host_name=["resolved.hostname"])])


@pytest.fixture
def pipeline(repository, queue) -> AlertPipeline:
    return AlertPipeline(repository, queue, task_queue_url=TASK_QUEUE_URL)


def _alert(**overrides) -> Alert:
    fields = {"detector": "ids", "rule_id": "ET-2001", "alert_key": "A1", "attributes": [DST_IP]}
    fields.update(overrides)
    return Alert(**fields)


class TestReceiveAlert:
    def test_redelivered_alert_reuses_report_and_dispatches_once(self, pipeline, queue, now):
        first = pipeline.receive_alert(_alert(), now)
        second = pipeline.receive_alert(_alert(), now + timedelta(seconds=5))

        assert (first.status, second.status) == (ReportStatus.new, ReportStatus.more)
        assert first.id == second.id

        (raw_task,) = queue.sent_to(TASK_QUEUE_URL)
        task = Task.model_validate_json(raw_task)
        assert task.report_id == first.id
        assert task.attribute == DST_IP

    def test_every_delivery_is_snapshotted(self, pipeline, now):
        report = pipeline.receive_alert(_alert(description="first"), now)
        pipeline.receive_alert(_alert(description="second"), now)

        view = pipeline.compile_report(report.id)
        assert sorted(a.description for a in view.alerts) == ["first", "second"]

    def test_duplicate_attributes_within_one_alert_dispatch_once(self, pipeline, queue, now):
        alert = _alert(attributes=[DST_IP, DST_IP.model_copy(update={"context": ["remote"]})])
        pipeline.receive_alert(alert, now)
        assert len(queue.sent_to(TASK_QUEUE_URL)) == 1

    def test_task_publish_failure_is_raised(self, pipeline, queue, now):
        queue.fail_on = 0
        with pytest.raises(QueueError) as exc_info:
            pipeline.receive_alert(_alert(), now)
        assert exc_info.value.context["queue"] == "task"

    def test_attribute_cached_before_failed_publish_is_not_retried(self, pipeline, queue, now):
        # At-most-once: the cache entry written before the failed publish
        # stays, so a redelivery treats the attribute as already scheduled.
        queue.fail_on = 0
        with pytest.raises(QueueError):
            pipeline.receive_alert(_alert(), now)

        report = pipeline.receive_alert(_alert(), now + timedelta(seconds=5))

        assert report.status == ReportStatus.more
        assert queue.sent_to(TASK_QUEUE_URL) == []


class TestFeedback:
    def test_known_attribute_is_not_rescheduled(self, pipeline, queue, now):
        report = pipeline.receive_alert(_alert(), now)
        message = AttributeMessage(report_id=report.id, author="hostname", attribute=DST_IP)

        assert pipeline.handle_attribute(message, now) is False
        assert len(queue.sent_to(TASK_QUEUE_URL)) == 1

    def test_new_attribute_is_scheduled(self, pipeline, queue, now):
        report = pipeline.receive_alert(_alert(), now)
        found = Attribute(type=AttrType.domain, key="hostname", value="resolved.hostname")
        message = AttributeMessage(report_id=report.id, author="hostname", attribute=found)

        assert pipeline.handle_attribute(message, now) is True
        assert pipeline.handle_attribute(message, now) is False
        assert len(queue.sent_to(TASK_QUEUE_URL)) == 2

    def test_content_is_staged(self, pipeline, now):
        report = pipeline.receive_alert(_alert(), now)
        section = ReportSection(
            report_id=report.id,
            author="hostname",
            attribute=DST_IP,
            content=ReportHost(host_name=["resolved.hostname"]),
        )
        pipeline.handle_content(section, now)

        assert pipeline.compile_report(report.id).sections == [section]


class TestScenario:
    def test_alert_to_inspector_to_report(self, pipeline, queue, now):
        """A1 delivered twice; its one attribute inspected once; one section staged."""
        first = pipeline.receive_alert(_alert(), now)
        second = pipeline.receive_alert(_alert(), now)
        assert second.id == first.id and second.status == ReportStatus.more

        assert pipeline.repository.put_attribute_cache(first.id, DST_IP, now) is False

        runtime = InspectorRuntime(
            OneSectionInspector(),
            author="hostname",
            queue=queue,
            content_queue_url=CONTENT_QUEUE_URL,
            attribute_queue_url=ATTRIBUTE_QUEUE_URL,
        )
        for raw_task in queue.sent_to(TASK_QUEUE_URL):
            runtime.handle_task(Task.model_validate_json(raw_task))

        contents = queue.sent_to(CONTENT_QUEUE_URL)
        assert len(contents) == 1
        assert queue.sent_to(ATTRIBUTE_QUEUE_URL) == []

        pipeline.handle_content(ReportSection.model_validate_json(contents[0]), now)
        view = pipeline.compile_report(first.id)
        assert len(view.alerts) == 2
        assert view.attributes[0].value == "1.2.3.4"
        assert view.sections[0].content.host_name == ["resolved.hostname"]
        assert view.sections[0].author == "hostname"
