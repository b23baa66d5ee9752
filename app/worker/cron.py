"""Cron bodies: resume stalled notification sends, prune push logs."""

from app.core.config import get_settings
from app.core.logging import get_logger
from app.services import push_logs as push_logs_service
from app.services.factory import build_sweeper

log = get_logger(__name__)


async def run_resume_stalled_notifications() -> dict:
    result = await build_sweeper().sweep()
    if result.resumed_ids:
        log.info("resume_stalled_notifications", resumed=result.resumed_ids, failed=result.failed_ids)
    return {"resumed": result.resumed_count, "ids": result.resumed_ids, "failed_ids": result.failed_ids}


async def run_cleanup_push_logs() -> dict:
    settings = get_settings()
    return await push_logs_service.cleanup_push_logs(
        settings.push_log_retention_days,
        settings.push_log_cleanup_hour,
    )
