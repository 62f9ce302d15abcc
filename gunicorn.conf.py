"""
Gunicorn configuration for the baseline API.

Env vars that override defaults:
  PORT              — TCP port to bind
  WORKERS           — number of worker processes (default: 2)
  REQUEST_TIMEOUT   — seconds before a silent worker is killed (default: 300)

POST /baseline/recalculate runs the whole batch inside the request, so the
timeout bounds a batch run. Each process additionally fans users out to
BASELINE_MAX_WORKERS threads.
"""
import os

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"

workers = int(os.environ.get("WORKERS", "2"))

# Uvicorn's ASGI event loop inside Gunicorn's process manager.
worker_class = "uvicorn.workers.UvicornWorker"

keepalive = 5

timeout = int(os.environ.get("REQUEST_TIMEOUT", "300"))

# stdout only; application loggers share the same stream.
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
accesslog = "-"
errorlog = "-"
access_log_format = '%(h)s "%(r)s" %(s)s %(b)sB %(D)sµs'

graceful_timeout = 30
