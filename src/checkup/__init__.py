"""
CheckUp monitoring core.

Background schedulers for a self-hosted infrastructure dashboard: periodic
health probes of registered services, upstream version checks of tracked
applications, deduplicated alerts with notification fan-out, and retention
sweeps. The CRUD/API layer shares the same PostgreSQL store.
"""

__version__ = "0.1.0"
