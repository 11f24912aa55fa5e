import os

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./contractdesk.db")
MINIO_ENDPOINT = os.getenv("MINIO_ENDPOINT", "minio:9000")
MINIO_ACCESS_KEY = os.getenv("MINIO_ACCESS_KEY", "minioadmin")
MINIO_SECRET_KEY = os.getenv("MINIO_SECRET_KEY", "minioadmin")
MINIO_BUCKET = os.getenv("MINIO_BUCKET", "contracts")
SECRET_KEY = os.getenv("SECRET_KEY", "devsecret")
ADMIN_ACCESS_TOKEN = os.getenv("ADMIN_ACCESS_TOKEN")
REDIS_URL = os.getenv("REDIS_URL", "redis://redis:6379/0")
WORKER_QUEUE = os.getenv("WORKER_QUEUE", "sealing")
SEAL_MODE = os.getenv("SEAL_MODE", "inline")  # inline|celery
DEFAULT_EXPIRY_DAYS = int(os.getenv("DEFAULT_EXPIRY_DAYS", "30"))
TYPED_SIGNATURE_FONT = os.getenv("TYPED_SIGNATURE_FONT")
DATE_FORMAT = os.getenv("DATE_FORMAT", "%m/%d/%Y")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
