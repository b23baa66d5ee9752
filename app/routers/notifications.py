from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from pydantic import BaseModel

from app.core.audit import log_event
from app.core.logging import get_logger
from app.deps import get_dispatcher, require_admin, require_api_key
from app.services import notifications as notifications_service
from app.services.dispatcher import NotificationDispatcher

router = APIRouter()
log = get_logger(__name__)


class NotificationCreate(BaseModel):
    title: str
    body: str
    image_url: str | None = None
    deep_link_url: str | None = None
    is_active: bool = True


class NotificationUpdate(BaseModel):
    title: str | None = None
    body: str | None = None
    image_url: str | None = None
    deep_link_url: str | None = None
    is_active: bool | None = None


async def dispatch_in_background(dispatcher: NotificationDispatcher, notification_id: str) -> None:
    """Runs after the response is sent; a crash leaves the campaign for the stall sweep."""
    try:
        await dispatcher.dispatch(notification_id)
    except Exception:
        log.exception("background_dispatch_failed", notification_id=notification_id)


@router.get("")
async def notifications_list(_: dict = Depends(require_admin)):
    items = await notifications_service.list_notifications()
    return {"notifications": [notifications_service.serialize_notification(n) for n in items]}


@router.post("", status_code=status.HTTP_201_CREATED)
async def notification_create(
    body: NotificationCreate,
    background_tasks: BackgroundTasks,
    _: dict = Depends(require_admin),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """Create a notification; active ones are queued and sent after the response."""
    n = await notifications_service.create_notification(
        body.title,
        body.body,
        image_url=body.image_url,
        deep_link_url=body.deep_link_url,
        is_active=body.is_active,
    )
    if n.is_active:
        background_tasks.add_task(dispatch_in_background, dispatcher, str(n.id))
    await log_event("admin", "notification_created", "notification", str(n.id), {"queued": n.is_active})
    return {
        "success": True,
        "notification": notifications_service.serialize_notification(n),
        "queued": n.is_active,
    }


@router.get("/public", dependencies=[Depends(require_api_key)])
async def notifications_public(limit: int = Query(50, ge=1, le=100)):
    """Active notifications for the mobile app feed."""
    items = await notifications_service.list_public_notifications(limit=limit)
    return {
        "notifications": [
            {
                "id": str(n.id),
                "title": n.title,
                "body": n.body,
                "image_url": n.image_url,
                "deep_link_url": n.deep_link_url,
                "created_at": n.created_at.isoformat() if n.created_at else None,
            }
            for n in items
        ]
    }


@router.get("/{notification_id}")
async def notification_get(notification_id: str, _: dict = Depends(require_admin)):
    n = await notifications_service.get_notification(notification_id)
    return notifications_service.serialize_notification(n)


@router.patch("/{notification_id}")
async def notification_update(notification_id: str, body: NotificationUpdate, _: dict = Depends(require_admin)):
    """Partial update: only fields sent in the body are applied."""
    changes = {k: getattr(body, k) for k in body.model_fields_set}
    n = await notifications_service.update_notification(notification_id, changes)
    await log_event("admin", "notification_updated", "notification", notification_id, {"fields": sorted(changes)})
    return notifications_service.serialize_notification(n)


@router.delete("/{notification_id}")
async def notification_delete(notification_id: str, _: dict = Depends(require_admin)):
    await notifications_service.delete_notification(notification_id)
    await log_event("admin", "notification_deleted", "notification", notification_id)
    return {"success": True}


@router.post("/{notification_id}/send", status_code=status.HTTP_202_ACCEPTED)
async def notification_send(
    notification_id: str,
    background_tasks: BackgroundTasks,
    _: dict = Depends(require_admin),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """Broadcast an existing notification again from scratch."""
    n = await notifications_service.queue_resend(notification_id)
    background_tasks.add_task(dispatch_in_background, dispatcher, str(n.id))
    await log_event("admin", "notification_send_requested", "notification", notification_id)
    return {"success": True, "queued": True, "progress": notifications_service.progress_payload(n)}


@router.get("/{notification_id}/progress")
async def notification_progress(notification_id: str, _: dict = Depends(require_admin)):
    n = await notifications_service.get_notification(notification_id)
    return notifications_service.progress_payload(n)
