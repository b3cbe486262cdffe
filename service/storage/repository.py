"""
Correlation repository.

Everything the service persists goes through here:
  - alertmap/<alert_id>     one AlertEntry per alert identity (report ID)
  - alert/<report_id>       alert snapshots, one per delivery
  - content/<report_id>     inspector output sections
  - attribute/<report_id>   one AttributeCache per distinct attribute

The two dedup anchors (AlertEntry, AttributeCache) are written with the
store's conditional create. An AlreadyExistsError there is the expected
"someone got here first" outcome and never reaches the caller. Every other
error is re-raised with identifying context attached. Nothing retries here;
callers redeliver, and redelivery is safe because both anchors absorb it.
"""

import logging
import uuid
from datetime import datetime, timedelta
from typing import List

from errors import AlreadyExistsError, SerializationError, ServiceError
from models import (
    Alert,
    AlertCache,
    AlertEntry,
    Attribute,
    AttributeCache,
    AttrType,
    Report,
    ReportSection,
    ReportSectionRecord,
    ReportStatus,
)
from pydantic import ValidationError
from storage.record_store import RecordStore

logger = logging.getLogger(__name__)

# AlertEntry sort key. Constant, so the partition key alone identifies the alert.
_FIXED_KEY = "Fixed"


def new_report_id() -> str:
    return str(uuid.uuid4())


def _alert_entry_key(alert_id: str) -> str:
    return f"alertmap/{alert_id}"


def _alert_cache_key(report_id: str) -> str:
    return f"alert/{report_id}"


def _report_section_key(report_id: str) -> str:
    return f"content/{report_id}"


def _attribute_cache_key(report_id: str) -> str:
    return f"attribute/{report_id}"


class RepositoryService:
    def __init__(self, store: RecordStore, ttl_seconds: int):
        self.store = store
        self.ttl = timedelta(seconds=ttl_seconds)

    def _expires_at(self, now: datetime) -> int:
        return int((now + self.ttl).timestamp())

    # ── Alert → report mapping ───────────────────────────────────────────────

    def take_report(self, alert: Alert, now: datetime) -> Report:
        """
        Return the report for this alert, creating it on first delivery.

        Concurrent callers with the same alert identity race on one
        conditional create: exactly one gets status=new, the others read the
        winner's entry back and get status=more with the same report ID.
        """
        alert_id = alert.alert_id()
        entry = AlertEntry(
            pk=_alert_entry_key(alert_id),
            sk=_FIXED_KEY,
            expires_at=self._expires_at(now),
            created_at=now,
            report_id=new_report_id(),
        )

        try:
            self.store.put(entry, if_absent=True, now=now)
        except AlreadyExistsError:
            try:
                existing = self.store.get(entry.pk, entry.sk, AlertEntry)
            except ServiceError as exc:
                exc.with_context(alert_id=alert_id)
                raise

            logger.info("Alert %s re-delivered, reusing report %s", alert_id, existing.report_id)
            return Report(id=existing.report_id, status=ReportStatus.more, created_at=existing.created_at)
        except ServiceError as exc:
            exc.with_context(alert_id=alert_id)
            raise

        logger.info("Alert %s assigned new report %s", alert_id, entry.report_id)
        return Report(id=entry.report_id, status=ReportStatus.new, created_at=now)

    # ── Alert snapshots ──────────────────────────────────────────────────────

    def save_alert_cache(self, report_id: str, alert: Alert, now: datetime) -> None:
        """Append one alert snapshot. Never overwrites an earlier one."""
        try:
            raw = alert.model_dump_json()
        except ValueError as exc:
            raise SerializationError("Failed to marshal alert", report_id=report_id) from exc

        cache = AlertCache(
            pk=_alert_cache_key(report_id),
            sk=f"cache/{uuid.uuid4()}",
            expires_at=self._expires_at(now),
            created_at=now,
            alert_data=raw,
        )
        try:
            self.store.put(cache)
        except ServiceError as exc:
            exc.with_context(report_id=report_id)
            raise

    def fetch_alert_cache(self, report_id: str) -> List[Alert]:
        try:
            caches = self.store.scan(_alert_cache_key(report_id), AlertCache)
        except ServiceError as exc:
            exc.with_context(report_id=report_id)
            raise

        alerts = []
        for cache in caches:
            try:
                alerts.append(Alert.model_validate_json(cache.alert_data))
            except ValidationError as exc:
                raise SerializationError(
                    "Failed to unmarshal alert", report_id=report_id, data=cache.alert_data
                ) from exc
        return alerts

    # ── Inspector output ─────────────────────────────────────────────────────

    def save_report_section(self, section: ReportSection, now: datetime) -> None:
        """
        Append one section under its report.

        Sort key is <attribute hash>/<uuid>: sections from different
        inspectors about the same attribute share a prefix and never collide.
        """
        try:
            raw = section.model_dump_json()
        except ValueError as exc:
            raise SerializationError("Failed to marshal report section", report_id=section.report_id) from exc

        record = ReportSectionRecord(
            pk=_report_section_key(section.report_id),
            sk=f"{section.attribute.hash()}/{uuid.uuid4()}",
            expires_at=self._expires_at(now),
            created_at=now,
            data=raw,
        )
        try:
            self.store.put(record)
        except ServiceError as exc:
            exc.with_context(report_id=section.report_id)
            raise

    def fetch_report_section(self, report_id: str) -> List[ReportSection]:
        try:
            records = self.store.scan(_report_section_key(report_id), ReportSectionRecord)
        except ServiceError as exc:
            exc.with_context(report_id=report_id)
            raise

        sections = []
        for record in records:
            try:
                sections.append(ReportSection.model_validate_json(record.data))
            except ValidationError as exc:
                raise SerializationError(
                    "Failed to unmarshal report section", report_id=report_id, data=record.data
                ) from exc
        return sections

    # ── Attribute dedup ──────────────────────────────────────────────────────

    def put_attribute_cache(self, report_id: str, attr: Attribute, now: datetime) -> bool:
        """
        Cache the attribute for this report.

        Returns True if this call created the cache entry, False if the same
        attribute (by hash) is already cached, meaning it was already scheduled.
        """
        cache = AttributeCache(
            pk=_attribute_cache_key(report_id),
            sk=attr.hash(),
            expires_at=self._expires_at(now),
            created_at=now,
            timestamp=attr.timestamp if attr.timestamp is not None else now,
            attr_type=attr.type.value,
            attr_key=attr.key,
            attr_value=attr.value,
            attr_context=attr.context,
        )

        try:
            self.store.put(cache, if_absent=True, now=now)
        except AlreadyExistsError:
            logger.debug("Attribute %s already cached for report %s", cache.sk, report_id)
            return False
        except ServiceError as exc:
            exc.with_context(report_id=report_id, attribute=attr.model_dump(mode="json"))
            raise

        return True

    def fetch_attribute_cache(self, report_id: str) -> List[Attribute]:
        try:
            caches = self.store.scan(_attribute_cache_key(report_id), AttributeCache)
        except ServiceError as exc:
            exc.with_context(report_id=report_id)
            raise

        attrs = []
        for cache in caches:
            try:
                attr_type = AttrType(cache.attr_type)
            except ValueError as exc:
                raise SerializationError(
                    "Unknown attribute type in cache", report_id=report_id, data=cache.attr_type
                ) from exc
            attrs.append(
                Attribute(
                    type=attr_type,
                    key=cache.attr_key,
                    value=cache.attr_value,
                    context=cache.attr_context,
                    timestamp=cache.timestamp,
                )
            )
        return attrs
