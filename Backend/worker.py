# worker.py
from healthpipe.config import INGEST_QUEUE, LOG_LEVEL
from healthpipe.core.celery_app import celery_app
import logging

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

if __name__ == '__main__':
    logger.info("Starting Celery worker...")
    celery_app.start(argv=['worker', f'--loglevel={LOG_LEVEL.lower()}', '--concurrency=2', f'--queues={INGEST_QUEUE}'])
