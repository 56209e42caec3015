"""
FastAPI routers grouped by domain (auth, connection).

Each module exposes an APIRouter included by syncsketch.app.create_app.
"""
