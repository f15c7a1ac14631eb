from .datetime import ensure_utc, parse_duration, utc_now

__all__ = ["ensure_utc", "parse_duration", "utc_now"]
