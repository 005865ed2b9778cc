"""
Vercel Serverless Function adapter.

Vercel's Python runtime looks for a variable named `app` (ASGI) or `handler` (WSGI).
FastAPI is ASGI, so we just re-export it as `app`.
"""
import sys
import os

# Ensure project root is on the Python path so `backend.*` imports resolve.
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

os.environ.setdefault("PROMETHEUS_ENABLED", "false")

# Use /tmp for SQLite on Vercel (filesystem is read-only except /tmp)
if not os.environ.get("DATABASE_URL"):
    os.environ["DATABASE_URL"] = "sqlite:////tmp/query_history.db"

from backend.app import app  # noqa: E402,F401  (Vercel uses this)
