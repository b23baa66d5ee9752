import certifi
from beanie import init_beanie
from motor.motor_asyncio import AsyncIOMotorClient

from app.core.config import get_settings
from app.models.app_user import AppUser
from app.models.audit_log import AuditLog
from app.models.failed_job import FailedJob
from app.models.notification import Notification
from app.models.notification_delivery import NotificationDelivery
from app.models.push_log import PushNotificationLog
from app.models.user_device import UserDevice

DOCUMENT_MODELS = [
    Notification,
    NotificationDelivery,
    AppUser,
    UserDevice,
    PushNotificationLog,
    AuditLog,
    FailedJob,
]


def _use_tls(uri: str) -> bool:
    """True if URI uses TLS (Atlas or explicit tls=true)."""
    return "mongodb+srv://" in uri or "tls=true" in uri.lower()


async def init_db() -> None:
    settings = get_settings()
    kwargs = {}
    if _use_tls(settings.mongodb_uri):
        kwargs["tlsCAFile"] = certifi.where()
    client = AsyncIOMotorClient(settings.mongodb_uri, **kwargs)
    database = client[settings.mongodb_db_name]
    await init_beanie(database=database, document_models=DOCUMENT_MODELS)
