import os
from dotenv import load_dotenv

load_dotenv()

SQLALCHEMY_DATABASE_URL = os.getenv("SQLALCHEMY_DATABASE_URL", "sqlite:///./data/health_data.db")

REDIS_URL = os.getenv("REDIS_URL")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Change detection
CHECKSUM_CACHE_PATH = os.getenv("CHECKSUM_CACHE_PATH", ".cache/file-checksums.json")
PARTIAL_HASH_THRESHOLD_BYTES = int(os.getenv("PARTIAL_HASH_THRESHOLD_BYTES", str(256 * 1024 * 1024)))
PARTIAL_HASH_WINDOW_BYTES = int(os.getenv("PARTIAL_HASH_WINDOW_BYTES", str(1024 * 1024)))

# Relational mapper
INSERT_BATCH_SIZE = int(os.getenv("INSERT_BATCH_SIZE", "1000"))

# Streaming sampler
STREAM_MAX_ENTRIES = int(os.getenv("STREAM_MAX_ENTRIES", "10000"))
STREAM_SAMPLE_EVERY = int(os.getenv("STREAM_SAMPLE_EVERY", "1"))
STREAM_CHUNK_SIZE = int(os.getenv("STREAM_CHUNK_SIZE", str(1024 * 1024)))
STREAM_MAX_BUFFER_BYTES = int(os.getenv("STREAM_MAX_BUFFER_BYTES", str(8 * 1024 * 1024)))
LARGE_DOCUMENT_THRESHOLD_MB = float(os.getenv("LARGE_DOCUMENT_THRESHOLD_MB", "50"))

# HTTP
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:8080").split(",") if o.strip()]

# Background jobs
INGEST_QUEUE = os.getenv("INGEST_QUEUE", "ingest")
CELERY_RESULT_EXPIRES = int(os.getenv("CELERY_RESULT_EXPIRES", str(24 * 60 * 60)))
