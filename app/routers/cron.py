from fastapi import APIRouter, Depends

from app.core.config import get_settings
from app.deps import get_sweeper, require_cron_secret
from app.services import push_logs as push_logs_service
from app.services.sweep import StallSweeper

router = APIRouter(dependencies=[Depends(require_cron_secret)])


@router.api_route("/resume-notifications", methods=["GET", "POST"])
async def cron_resume_notifications(sweeper: StallSweeper = Depends(get_sweeper)):
    """Resume notifications stuck in queued/sending past the stall threshold."""
    result = await sweeper.sweep()
    if not result.resumed_ids:
        message = "No stalled notifications found"
    else:
        message = f"Resumed {result.resumed_count} stalled notification(s)"
    return {
        "success": True,
        "message": message,
        "resumed": result.resumed_count,
        "ids": result.resumed_ids,
        "failed_ids": result.failed_ids,
    }


@router.api_route("/cleanup-push-logs", methods=["GET", "POST"])
async def cron_cleanup_push_logs():
    settings = get_settings()
    out = await push_logs_service.cleanup_push_logs(
        settings.push_log_retention_days,
        settings.push_log_cleanup_hour,
    )
    return {"success": True, **out}
