"""Two-party loan agreements with QR confirmation and escalating reminders."""

__version__ = "0.1.0"
