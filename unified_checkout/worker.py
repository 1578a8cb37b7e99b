# unified_checkout/worker.py
from celery import Celery

from unified_checkout import config

celery_app = Celery(
    "unified_checkout",
    broker=config.CELERY_BROKER_URL,
    backend=config.CELERY_RESULT_BACKEND,
)

# Import explicite des tâches pour que le worker les enregistre
celery_app.conf.imports = ("unified_checkout.tasks",)

celery_app.conf.update(
    timezone="UTC",
    task_acks_late=True,
    task_always_eager=config.CELERY_TASK_ALWAYS_EAGER,
    task_soft_time_limit=config.SIDE_EFFECT_SOFT_TIME_LIMIT,
    task_time_limit=config.SIDE_EFFECT_SOFT_TIME_LIMIT + 30,
)
