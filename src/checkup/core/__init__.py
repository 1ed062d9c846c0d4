"""
Core Layer - Process-wide orchestration.

This module provides:
    - MonitoringService: Owns the health monitor, update checker,
      retention sweeper and alert manager; start()/stop() lifecycle
      plus on-demand checks for the API layer
    - CheckInProgressError: A full update check is already running
"""

from .service import CheckInProgressError, MonitoringService

__all__ = [
    "MonitoringService",
    "CheckInProgressError",
]
