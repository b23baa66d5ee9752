from app.models.app_user import AppUser
from app.models.audit_log import AuditLog
from app.models.failed_job import FailedJob
from app.models.notification import Notification, SendStatus
from app.models.notification_delivery import NotificationDelivery
from app.models.push_log import PushNotificationLog
from app.models.user_device import UserDevice

__all__ = [
    "AppUser",
    "AuditLog",
    "FailedJob",
    "Notification",
    "NotificationDelivery",
    "PushNotificationLog",
    "SendStatus",
    "UserDevice",
]
