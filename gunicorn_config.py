import multiprocessing

# gunicorn -c gunicorn_config.py wsgi:app
# Pricing is CPU-only and cheap; the workers mostly wait on the database.
workers = min(multiprocessing.cpu_count() * 2 + 1, 9)
threads = 4
worker_class = 'gthread'

timeout = 60
max_requests = 2000
max_requests_jitter = 200
keepalive = 5

accesslog = '-'
errorlog = '-'
loglevel = 'info'
capture_output = True
