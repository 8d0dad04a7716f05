import os

# gunicorn -c gunicorn.config.py
wsgi_app = "app:create_app()"

# gevent patches threading, so UserLockManager locks are per-greenlet.
# Per-user serialisation across workers comes from SELECT ... FOR UPDATE.
worker_class = "gevent"
workers = int(os.getenv("WEB_CONCURRENCY", "4"))
worker_connections = 1000
timeout = 120
bind = "0.0.0.0:{}".format(os.getenv("PORT", "10000"))

loglevel = os.getenv("LOG_LEVEL", "info")
accesslog = "-"
errorlog = "-"
