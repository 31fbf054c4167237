"""Gunicorn configuration for the refuel log API.

Run with: gunicorn --chdir src "app:create_app()"
"""

import multiprocessing
import os

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"

# Report requests are pure CPU over one user's year of records, sync is enough
workers = int(os.environ.get("GUNICORN_WORKERS", multiprocessing.cpu_count() * 2 + 1))
worker_class = "sync"
timeout = 30
graceful_timeout = 30
keepalive = 2

proc_name = "refuel-log"

# Logging
errorlog = "-"
accesslog = "-"
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
access_log_format = '%(h)s %(t)s "%(r)s" %(s)s %(b)s %(D)s'

max_requests = 1000
max_requests_jitter = 50

limit_request_line = 4094
limit_request_fields = 100
