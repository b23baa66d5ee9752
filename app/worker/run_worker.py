"""Run ARQ worker. Usage: python -m app.worker.run_worker"""

from arq import run_worker
from arq.cron import cron

from app.worker.tasks import (
    cleanup_push_logs,
    get_redis_settings,
    resume_stalled_notifications,
    shutdown,
    startup,
)


class WorkerSettings:
    redis_settings = get_redis_settings()
    functions = []
    cron_jobs = [
        cron(resume_stalled_notifications, minute=set(range(0, 60, 5)), second=0),  # every 5 minutes
        cron(cleanup_push_logs, minute=0, second=0),  # hourly; cleans at the configured hour
    ]
    on_startup = startup
    on_shutdown = shutdown


if __name__ == "__main__":
    run_worker(WorkerSettings)
