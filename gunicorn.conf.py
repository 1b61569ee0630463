"""Gunicorn production configuration."""
import multiprocessing
import os

wsgi_app = "app.main:app"
chdir = os.path.join(os.path.dirname(os.path.abspath(__file__)), "backend")
bind = os.environ.get("BIND", "0.0.0.0:8000")
workers = int(os.environ.get("WEB_CONCURRENCY", multiprocessing.cpu_count() * 2 + 1))
worker_class = "uvicorn.workers.UvicornWorker"
# large CSV commits hold one transaction for the whole batch
timeout = 180
keepalive = 5
max_requests = 1000
max_requests_jitter = 100
accesslog = "-"
errorlog = "-"
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
