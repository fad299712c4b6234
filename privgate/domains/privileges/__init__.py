"""Privileges domain: usage and quota enforcement for subscription plan privileges."""
