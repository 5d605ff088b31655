import os

# Server Socket
bind = os.getenv("GUNICORN_BIND", "0.0.0.0:5000")
backlog = 2048

# Worker Processes
# 요청당 DB 트랜잭션 1개 구조이므로 워커/스레드 수는 DB 커넥션 풀 크기에 맞춰 조절
workers = int(os.getenv("GUNICORN_WORKERS", "3"))
worker_class = 'gthread'
threads = 4

# Timeouts
timeout = 60
keepalive = 5

# Logging
accesslog = '-'
errorlog = '-'
loglevel = 'info'

# Process Naming
proc_name = 'storefront_api'

# Requests (메모리 누수 방지)
max_requests = 1000
max_requests_jitter = 50

wsgi_app = "run:app"
