"""Privgate: subscription privilege usage and quota enforcement."""
