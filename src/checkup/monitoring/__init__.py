"""
Monitoring Layer - Scheduled checks, alerting, and retention.

This module provides:
    - HealthMonitor: Concurrent probing of every registered service
    - UpdateChecker: Sequential upstream version checks per application
    - AlertManager: Deduplicated alerts with notification fan-out
    - NotificationDispatcher: push / webhook / email channels
    - RetentionSweeper: Scheduled deletion of old metrics and history

Never-cascade rule:
    A failure while handling one service, application or channel is
    logged and turned into a result; siblings are always processed.

Alert Deduplication:
    - At most one unresolved alert per (source kind, source id, alert kind)
    - Enforced by a partial unique index, so concurrent raisers are safe
    - Resolving an alert re-arms it
"""

from .alerting import AlertingConfig, AlertManager
from .health_monitor import (
    DOWN_STATES,
    RESPONSE_TIME_METRIC,
    HealthMonitor,
    HealthMonitorConfig,
    TargetCheckResult,
    TargetNotFoundError,
)
from .notifications import (
    NotificationDispatcher,
    NotificationError,
    NotificationMessage,
    priority_for,
    sign_payload,
)
from .retention import RetentionConfig, RetentionSweeper, next_daily_run, next_weekly_run
from .update_checker import (
    ArtifactCheckResult,
    ArtifactNotFoundError,
    UpdateChecker,
    UpdateCheckerConfig,
)

__all__ = [
    # Health monitoring
    "HealthMonitor",
    "HealthMonitorConfig",
    "TargetCheckResult",
    "TargetNotFoundError",
    "DOWN_STATES",
    "RESPONSE_TIME_METRIC",
    # Update checking
    "UpdateChecker",
    "UpdateCheckerConfig",
    "ArtifactCheckResult",
    "ArtifactNotFoundError",
    # Alerting
    "AlertManager",
    "AlertingConfig",
    "NotificationDispatcher",
    "NotificationError",
    "NotificationMessage",
    "priority_for",
    "sign_payload",
    # Retention
    "RetentionSweeper",
    "RetentionConfig",
    "next_daily_run",
    "next_weekly_run",
]
