"""Permissions feature: resolution, caching, gates and role administration."""
