"""Audit feature: fire-and-forget recording of security and admin events."""
