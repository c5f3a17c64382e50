"""Gunicorn configuration file."""
import os

# Server socket
bind = f"0.0.0.0:{os.getenv('PORT', '5000')}"
backlog = 2048

# Worker processes
workers = int(os.getenv('WEB_CONCURRENCY', 2))
worker_class = "sync"
timeout = 300  # four generation calls at up to GEMINI_TIMEOUT each, partly in parallel
keepalive = 5

# Logging
accesslog = "-"
errorlog = "-"
loglevel = "info"
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s"'

# Process naming
proc_name = "facade-contest"

daemon = False


def worker_exit(server, worker):
    """Release pooled database connections when a worker stops."""
    from wsgi import app
    from models import db

    with app.app_context():
        db.engine.dispose()
    server.log.info(f"Worker {worker.pid} disposed database engine")
