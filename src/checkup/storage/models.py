"""
Pydantic models matching the PostgreSQL schema in schema.sql.

Table names and field names match the database columns so rows can be
loaded with Model(**dict(record)).

The monitor and update checker only ever write status fields on services
and applications; those rows are owned by the CRUD layer.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_json_blob(value: Any) -> Dict[str, Any]:
    if value is None or value == "":
        return {}
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError as e:
            logger.warning(f"Ignoring unparseable config blob: {e}")
            return {}
    return value if isinstance(value, dict) else {}


# =============================================================================
# VOCABULARIES
# =============================================================================


class TargetState(str, Enum):
    """Lifecycle state of a monitored target."""

    UNKNOWN = "unknown"
    ONLINE = "online"
    WARNING = "warning"
    OFFLINE = "offline"
    ERROR = "error"


class AlertSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AlertKind(str, Enum):
    SERVICE_DOWN = "service_down"
    UPDATE_AVAILABLE = "update_available"


class SourceKind(str, Enum):
    SERVICE = "service"
    APPLICATION = "application"


class ChannelKind(str, Enum):
    EMAIL = "email"
    PUSH = "push"
    WEBHOOK = "webhook"


# =============================================================================
# SERVICE MONITORING
# =============================================================================


class MonitoredTarget(BaseModel):
    """A registered service probed by the health monitor."""

    id: int
    name: str
    type: str  # adapter kind: 'http', 'docker', 'proxmox', 'ping'
    host: str
    port: Optional[int] = None
    username: Optional[str] = None
    password: Optional[str] = None
    token: Optional[str] = None
    config: Dict[str, Any] = Field(default_factory=dict)
    status: TargetState = TargetState.UNKNOWN
    last_check: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("config", mode="before")
    @classmethod
    def _load_config(cls, value: Any) -> Dict[str, Any]:
        return _parse_json_blob(value)

    @field_validator("status", mode="before")
    @classmethod
    def _load_status(cls, value: Any) -> Any:
        # Rewritten by every check
        if value is None:
            return TargetState.UNKNOWN
        try:
            return TargetState(value)
        except ValueError:
            logger.warning(f"Unrecognised service status {value!r}, treating as unknown")
            return TargetState.UNKNOWN


class Measurement(BaseModel):
    """A single numeric sample recorded for a service. Append-only."""

    id: Optional[int] = None
    service_id: int
    metric_name: str
    metric_value: float
    unit: str = ""
    timestamp: datetime = Field(default_factory=utc_now)


# =============================================================================
# UPDATE TRACKING
# =============================================================================


class TrackedArtifact(BaseModel):
    """An application whose upstream version is tracked."""

    id: int
    name: str
    provider: str  # 'github', 'dockerhub', 'api'
    repository: Optional[str] = None
    image: Optional[str] = None
    api_url: Optional[str] = None
    current_version: Optional[str] = None
    latest_version: Optional[str] = None
    update_available: bool = False
    last_check: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class VersionHistoryEntry(BaseModel):
    """One detected version transition. Written once per transition."""

    id: Optional[int] = None
    application_id: int
    old_version: Optional[str] = None
    new_version: str
    detected_at: datetime = Field(default_factory=utc_now)


# =============================================================================
# ALERTS & NOTIFICATIONS
# =============================================================================


class Alert(BaseModel):
    """
    Operator-facing alert.

    At most one unresolved alert may exist per (source_type, source_id, type).
    resolved=True is terminal for deduplication purposes.
    """

    id: Optional[int] = None
    type: str
    title: str
    message: str
    severity: AlertSeverity = AlertSeverity.INFO
    source_type: Optional[str] = None
    source_id: Optional[int] = None
    acknowledged: bool = False
    resolved: bool = False
    created_at: datetime = Field(default_factory=utc_now)
    acknowledged_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None


class NotificationChannelConfig(BaseModel):
    """An enabled notification channel. Owned by the settings layer."""

    id: Optional[int] = None
    user_id: Optional[int] = None
    type: ChannelKind
    config: Dict[str, Any] = Field(default_factory=dict)
    enabled: bool = True
    created_at: Optional[datetime] = None

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> Any:
        # Older rows used the push server's product name
        if value == "gotify":
            return ChannelKind.PUSH
        return value

    @field_validator("config", mode="before")
    @classmethod
    def _load_config(cls, value: Any) -> Dict[str, Any]:
        return _parse_json_blob(value)
