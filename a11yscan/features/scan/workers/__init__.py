"""Celery workers module - imports all task modules for autodiscovery."""

from a11yscan.features.scan.workers import tasks  # noqa: F401
