"""ARQ job definitions."""

import uuid
from typing import Any
from urllib.parse import urlparse

from arq.connections import RedisSettings

from app.core.config import get_settings
from app.core.logging import configure_logging, get_logger

log = get_logger(__name__)


async def _run_with_dlq(
    job_name: str,
    job_id: str | None,
    args: list[Any],
    kwargs: dict[str, Any],
    coro,
) -> Any:
    """Run coroutine; on exception persist to FailedJob then re-raise."""
    try:
        return await coro
    except Exception as e:
        from app.models.failed_job import FailedJob
        fid = job_id or str(uuid.uuid4())
        await FailedJob(
            job_name=job_name,
            job_id=fid,
            args=args,
            kwargs=kwargs,
            reason=str(e)[:2000],
        ).insert()
        log.exception("job_failed", job=job_name, job_id=fid, reason=str(e))
        raise


def _job_id(ctx: dict[str, Any]) -> str | None:
    return ctx.get("job_id") if isinstance(ctx.get("job_id"), str) else None


async def resume_stalled_notifications(ctx: dict[str, Any]) -> dict:
    """Cron job: requeue and resend notifications stuck mid-send."""
    from app.worker.cron import run_resume_stalled_notifications
    return await _run_with_dlq("resume_stalled_notifications", _job_id(ctx), [], {}, run_resume_stalled_notifications())


async def cleanup_push_logs(ctx: dict[str, Any]) -> dict:
    """Cron job: retention cleanup, effective once a day at the configured hour."""
    from app.worker.cron import run_cleanup_push_logs
    return await _run_with_dlq("cleanup_push_logs", _job_id(ctx), [], {}, run_cleanup_push_logs())


async def startup(ctx: dict) -> None:
    from app.db.init import init_db
    configure_logging(debug=get_settings().debug)
    await init_db()


async def shutdown(ctx: dict) -> None:
    pass


def get_redis_settings() -> RedisSettings:
    s = get_settings()
    u = urlparse(s.redis_url)
    return RedisSettings(
        host=u.hostname or "localhost",
        port=u.port or 6379,
        password=u.password,
        database=int(u.path.lstrip("/")) if u.path.lstrip("/") else 0,
    )
