"""Operational scripts (audit trail, migration CLI, seeding)."""
