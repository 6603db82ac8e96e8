"""Gunicorn production configuration."""
import os

bind = "0.0.0.0:8000"
# Each worker runs its own in-process reminder scheduler. Keep one worker,
# or set SCHEDULER_ENABLED=false and drive reminders from Celery beat.
workers = int(os.getenv("WEB_CONCURRENCY", "1"))
worker_class = "uvicorn.workers.UvicornWorker"
worker_connections = 1000
timeout = 120
keepalive = 5
max_requests = 1000
max_requests_jitter = 100
accesslog = "-"
errorlog = "-"
loglevel = "info"
