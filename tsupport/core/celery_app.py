from celery import Celery
from celery.signals import worker_process_init

from tsupport.configs import configs

celery_app = Celery(
    "tsupport_worker",
    broker=configs.Redis.REDIS_URL,
    backend=configs.Redis.REDIS_URL,
    include=["tsupport.tasks.notification"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    enable_utc=True,
)


@worker_process_init.connect
def init_worker_process(**kwargs: object) -> None:
    """Check the VAPID key pair once per worker process so a disabled push setup shows up in the logs."""
    from tsupport.core.notification import ensure_vapid_keys

    ensure_vapid_keys()
