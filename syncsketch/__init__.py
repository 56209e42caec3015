"""SyncSketch backend: accounts, OTP signup and connection requests."""

__version__ = "1.0.0"
