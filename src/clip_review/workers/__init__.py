"""Celery application and scheduled maintenance tasks."""
