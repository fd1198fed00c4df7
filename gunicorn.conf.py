"""
Gunicorn configuration for the vitalstudy analytics API.

Env vars that override defaults:
  PORT     TCP port to bind
  WORKERS  number of worker processes (default: 2)
"""
import os

wsgi_app = "vitalstudy.main:app"

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"

# Insight generation is CPU-light and DB-bound; 2 workers fit a 512 MB container.
workers = int(os.environ.get("WORKERS", "2"))

# Each worker runs Uvicorn's ASGI event loop inside Gunicorn's process manager.
worker_class = "uvicorn.workers.UvicornWorker"

keepalive = 5

# A request that recomputes a full year of analytics can take a while.
timeout = 120

# stdout only; application logs use the same stream (see core/logging_config.py)
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
accesslog = "-"
errorlog = "-"
access_log_format = '%(h)s "%(r)s" %(s)s %(b)sB %(D)sµs'

graceful_timeout = 30
