"""
Pydantic models: the data contracts for the service.

Separating models from routes lets us reuse schemas across the API,
the storage layer, the inspector runtime and tests without circular imports.
Every wire payload is produced with `model_dump_json()` and read back with
`model_validate_json()`, so field names here are the wire names.
"""

import hashlib
import json
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class AttrType(str, Enum):
    ipaddr = "ipaddr"
    domain = "domain"
    username = "username"
    filehashvalue = "filehashvalue"
    json = "json"
    url = "url"


class ReportStatus(str, Enum):
    new = "new"
    more = "more"


# ── Alerts and attributes ─────────────────────────────────────────────────────


class Attribute(BaseModel):
    """A typed key/value fact extracted from an alert or found by an inspector."""

    type: AttrType
    key: str
    value: str
    context: List[str] = []
    timestamp: Optional[datetime] = None

    def hash(self) -> str:
        """
        Deterministic identity of the attribute.

        Covers type, key and value only. Encoded as a JSON array so that
        ("ab", "c") and ("a", "bc") never collide.
        """
        raw = json.dumps([self.type.value, self.key, self.value])
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()


class Alert(BaseModel):
    """A security event as delivered by a detector."""

    detector: str = Field(min_length=1)
    rule_id: str = Field(min_length=1)
    rule_name: str = ""
    alert_key: str = ""
    description: str = ""
    timestamp: Optional[datetime] = None
    attributes: List[Attribute] = []
    body: Optional[Any] = None

    def alert_id(self) -> str:
        """Stable identity shared by every re-delivery of the same alert."""
        raw = json.dumps(["v1", self.detector, self.rule_id, self.alert_key])
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()


class Report(BaseModel):
    id: str
    status: ReportStatus
    created_at: datetime


# ── Report content (tagged union, discriminated by `type`) ───────────────────


class EntityActivity(BaseModel):
    service_name: str = ""
    remote_addr: str = ""
    principal: str = ""
    action: str = ""
    last_seen: Optional[datetime] = None


class MalwareScan(BaseModel):
    vendor: str
    name: str
    positive: bool
    source: str = ""


class MalwareRecord(BaseModel):
    sha256: str
    timestamp: Optional[datetime] = None
    scans: List[MalwareScan] = []
    relation: str = ""


class ReportHost(BaseModel):
    type: Literal["host"] = "host"
    ip_addr: List[str] = []
    country: List[str] = []
    as_owner: List[str] = []
    related_malware: List[MalwareRecord] = []
    related_domains: List[str] = []
    related_urls: List[str] = []
    activities: List[EntityActivity] = []
    user_name: List[str] = []
    owner: List[str] = []
    os: List[str] = []
    mac_addr: List[str] = []
    host_name: List[str] = []
    software: List[str] = []


class ReportUser(BaseModel):
    type: Literal["user"] = "user"
    activities: List[EntityActivity] = []


class ReportBinary(BaseModel):
    type: Literal["binary"] = "binary"
    related_malware: List[MalwareRecord] = []
    software: List[str] = []
    os: List[str] = []
    activities: List[EntityActivity] = []


ReportContent = Annotated[Union[ReportHost, ReportUser, ReportBinary], Field(discriminator="type")]


# ── Task protocol (task queue in, content/attribute queues out) ──────────────


class Task(BaseModel):
    report_id: str
    attribute: Attribute


class TaskResult(BaseModel):
    contents: List[ReportContent] = []
    new_attributes: List[Attribute] = []


class InspectionContext(BaseModel):
    """What an inspector knows about the task besides the attribute itself."""

    report_id: str


class ReportSection(BaseModel):
    """Content-queue message: one unit of inspector output."""

    report_id: str
    author: str
    attribute: Attribute
    content: ReportContent


class AttributeMessage(BaseModel):
    """Attribute-queue message: an attribute discovered by an inspector."""

    report_id: str
    author: str
    attribute: Attribute


class ReportView(BaseModel):
    """Everything staged for a report, as read back for aggregation."""

    id: str
    alerts: List[Alert]
    sections: List[ReportSection]
    attributes: List[Attribute]


# ── Stored records (what we persist in the record store) ─────────────────────


class RecordBase(BaseModel):
    pk: str
    sk: str
    expires_at: int
    created_at: datetime


class AlertEntry(RecordBase):
    """alertmap/<alert_id> → report ID. The dedup anchor for alerts."""

    report_id: str


class AlertCache(RecordBase):
    """One snapshot of a delivered alert, serialized."""

    alert_data: str


class ReportSectionRecord(RecordBase):
    data: str


class AttributeCache(RecordBase):
    """attribute/<report_id> + attribute hash. The dedup anchor for attributes."""

    timestamp: datetime
    attr_type: str
    attr_key: str
    attr_value: str
    attr_context: List[str] = []


# ── API response models ───────────────────────────────────────────────────────


class DispatchResponse(BaseModel):
    scheduled: bool


class HealthStatus(str, Enum):
    ok = "ok"
    down = "down"


class HealthResponse(BaseModel):
    status: HealthStatus
    db_connected: bool
    record_ttl_seconds: int
