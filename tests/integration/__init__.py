"""
Integration tests for the CheckUp monitoring core.

These need a real PostgreSQL database (CHECKUP_TEST_DATABASE_URL).
"""
