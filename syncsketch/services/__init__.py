"""
High-level use cases for the SyncSketch API.

Each service module orchestrates repositories/adapters to implement business
rules (signup with OTP, signin, password reset, connection requests).

Routers (FastAPI endpoints) call these services instead of touching the
database or building tokens directly.
"""
