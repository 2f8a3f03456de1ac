"""Gunicorn configuration for formdesk.

    gunicorn -c deploy/gunicorn.conf.py
"""

import os

# Application factory; builds the app after logging is configured
wsgi_app = "formdesk.serve_web:create_app()"
worker_class = "uvicorn.workers.UvicornWorker"

# Open dialogs live in worker memory; more than one worker needs sticky sessions
workers = int(os.environ.get("FORMDESK_WORKERS", "1"))

# Localhost only; nginx proxies from port 80
bind = f"127.0.0.1:{os.environ.get('FORMDESK_PORT', '8000')}"
forwarded_allow_ips = "127.0.0.1"

user = "formdesk"
group = "formdesk"

preload_app = False

# Backend requests time out after 10 s; leave room for a full submit
timeout = 60
graceful_timeout = 15

accesslog = "-"
errorlog = "-"
loglevel = os.environ.get("FORMDESK_LOG_LEVEL", "info")


def when_ready(server):
    server.log.info("formdesk ready: mode=%s backend=%s workers=%d",
                    os.environ.get("FORMDESK_MODE", "admin"),
                    os.environ.get("FORMDESK_BACKEND_URL", "http://localhost:8000/api"),
                    workers)
