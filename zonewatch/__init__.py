"""ZoneWatch: ADS-B zone monitoring with session-keyed external display control."""

__version__ = "1.0.0"
