from celery import Celery
from healthpipe.config import CELERY_RESULT_EXPIRES, INGEST_QUEUE, REDIS_URL

# rediss:// URLs need the cert policy spelled out for the redis transport
if REDIS_URL and REDIS_URL.startswith('rediss://'):
    redis_url = f"{REDIS_URL}?ssl_cert_reqs=CERT_NONE"
else:
    redis_url = REDIS_URL

celery_app = Celery(
    'healthpipe',
    broker=redis_url,
    backend=redis_url,
    broker_connection_retry_on_startup=True,
    include=['healthpipe.core.tasks']
)

# One ingestion run per worker process at a time; acked once it finishes.
celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    result_expires=CELERY_RESULT_EXPIRES,
    timezone='UTC',
    enable_utc=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_default_queue=INGEST_QUEUE,
    task_routes={
        'healthpipe.ingest_apple_health': {'queue': INGEST_QUEUE},
        'healthpipe.delete_source': {'queue': INGEST_QUEUE},
    },
)
