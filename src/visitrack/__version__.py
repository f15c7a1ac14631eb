"""Version information for visitrack."""

__version__ = "0.3.0"
