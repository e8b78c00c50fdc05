import os

# Bind to the port provided via the PORT environment variable, defaulting to
# 5000.
bind = f"0.0.0.0:{os.getenv('PORT', '5000')}"

# Requests are short form posts and page renders, so plain threaded workers
# are enough.
worker_class = "gthread"
threads = int(os.getenv("GUNICORN_THREADS", "4"))
timeout = 30

# The invoice list cache only invalidates across processes when it lives in
# Redis. Without VIEW_CACHE_REDIS_URL run a single worker so a write is
# always visible on the next render.
if os.getenv("VIEW_CACHE_REDIS_URL"):
    workers = int(os.getenv("WEB_CONCURRENCY", "2"))
else:
    workers = 1
