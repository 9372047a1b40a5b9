"""Scheduled jobs."""

from .expiry_sweep import register_scheduler

__all__ = ["register_scheduler"]
