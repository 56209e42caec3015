"""
Core utilities shared across the SyncSketch API.

This package hosts configuration, logging setup, the error taxonomy,
password hashing, OTP helpers, the SMTP mailer and the in-process rate
limiter. Services and routers depend on these primitives instead of reading
os.environ or talking to smtplib directly.
"""
