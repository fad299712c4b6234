"""Scheduler-driven jobs."""
