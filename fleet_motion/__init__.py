"""Vehicle usage tracking from phone accelerometer data."""

__version__ = "0.1.0"
