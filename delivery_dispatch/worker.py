"""Celery application for work that must not hold up an HTTP request.

Run a worker with ``celery -A delivery_dispatch.worker worker``. With
``DISPATCH_EAGER=1`` tasks run in the calling process instead and no
broker is needed.
"""

from celery import Celery

from delivery_dispatch.config import Settings

_settings = Settings.from_env()

celery = Celery("delivery_dispatch", broker=_settings.broker_url, include=["delivery_dispatch.tasks"])

celery.conf.task_acks_late = True
celery.conf.worker_prefetch_multiplier = 1
celery.conf.task_ignore_result = True
celery.conf.task_always_eager = _settings.dispatch_eager
