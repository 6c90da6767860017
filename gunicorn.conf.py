import multiprocessing
import os

# Gunicorn configuration for the rewards API
wsgi_app = "cement_rewards:create_app()"
bind = os.environ.get("BIND", "0.0.0.0:8000")
workers = int(os.environ.get("WEB_CONCURRENCY", multiprocessing.cpu_count() * 2 + 1))
worker_class = "sync"
timeout = 30
keepalive = 2

# Logging
accesslog = "-"
errorlog = "-"
loglevel = "info"

# Process naming
proc_name = "cement_rewards"

# Server mechanics
daemon = False
pidfile = None
umask = 0
