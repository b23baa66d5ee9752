"""Wire the dispatcher and sweep to MongoDB, Firebase, and settings."""

from datetime import timedelta

from app.core.config import Settings, get_settings
from app.core.firebase import initialize_firebase
from app.services.dispatcher import NotificationDispatcher
from app.services.fcm import FcmPushTransport
from app.services.notification_store import BeanieNotificationStore
from app.services.recipients import BeanieRecipientDirectory
from app.services.sweep import StallSweeper


def build_dispatcher(settings: Settings | None = None) -> NotificationDispatcher:
    settings = settings or get_settings()
    return NotificationDispatcher(
        BeanieNotificationStore(),
        BeanieRecipientDirectory(),
        FcmPushTransport(resolver=initialize_firebase),
        batch_size=settings.notification_batch_size,
        max_errors=settings.notification_max_errors,
        send_timeout_seconds=settings.push_send_timeout_seconds,
        directory_timeout_seconds=settings.recipient_directory_timeout_seconds,
        public_base_url=settings.public_base_url,
    )


def build_sweeper(dispatcher: NotificationDispatcher | None = None, settings: Settings | None = None) -> StallSweeper:
    settings = settings or get_settings()
    dispatcher = dispatcher or build_dispatcher(settings)
    return StallSweeper(
        dispatcher.store,
        dispatcher,
        stale_after=timedelta(minutes=settings.stall_threshold_minutes),
    )
