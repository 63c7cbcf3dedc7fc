"""
Gunicorn configuration for the marketplace returns API.

Run with: gunicorn core.wsgi:application -c deployment/gunicorn/gunicorn_config.py
"""
import multiprocessing
import os

bind = os.getenv('GUNICORN_BIND', 'unix:/run/marketplace/gunicorn.sock')
workers = int(os.getenv('GUNICORN_WORKERS', multiprocessing.cpu_count() * 2 + 1))
worker_class = "sync"
worker_tmp_dir = "/dev/shm"
max_requests = 1000
max_requests_jitter = 100
# Refund decisions hold a row lock for the duration of one transaction
timeout = int(os.getenv('GUNICORN_TIMEOUT', 60))
keepalive = 5

# Logging
accesslog = os.getenv('GUNICORN_ACCESS_LOG', '-')
errorlog = os.getenv('GUNICORN_ERROR_LOG', '-')
loglevel = os.getenv('LOG_LEVEL', 'info').lower()
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s %(D)s'

proc_name = "marketplace-returns"


def on_starting(server):
    server.log.info("Starting marketplace returns API")


def worker_abort(worker):
    worker.log.warning(f"Worker {worker.pid} aborted (timeout), in-flight transaction rolled back")
