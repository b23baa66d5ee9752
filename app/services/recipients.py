"""Push recipients: device token registration and the active-token directory."""

from datetime import datetime

from beanie.operators import In

from app.core.exceptions import BadRequestError, NotFoundError
from app.models.app_user import AppUser
from app.models.user_device import UserDevice


def normalize_email(s: str) -> str:
    return s.strip().lower() if s else ""


class BeanieRecipientDirectory:
    async def list_active_tokens(self) -> list[str]:
        """Device tokens of active users first, then legacy per-user tokens; duplicates dropped."""
        users = await AppUser.find(AppUser.status == "Active").to_list()
        if not users:
            return []
        active_ids = [str(u.id) for u in users]
        devices = await UserDevice.find(In(UserDevice.app_user_id, active_ids)).sort("+created_at").to_list()
        tokens = [d.fcm_token for d in devices]
        tokens.extend(u.fcm_token for u in users if u.fcm_token)
        return list(dict.fromkeys(tokens))

    async def remove_tokens(self, tokens: list[str]) -> int:
        if not tokens:
            return 0
        deleted = await UserDevice.get_motor_collection().delete_many({"fcm_token": {"$in": tokens}})
        cleared = await AppUser.get_motor_collection().update_many(
            {"fcm_token": {"$in": tokens}},
            {"$set": {"fcm_token": None, "updated_at": datetime.utcnow()}},
        )
        return deleted.deleted_count + cleared.modified_count


async def register_device_token(email: str, fcm_token: str, name: str = "", platform: str | None = None) -> tuple[AppUser, UserDevice]:
    """Attach a device token to the app user with this email, creating the user on first sight."""
    email = normalize_email(email)
    fcm_token = (fcm_token or "").strip()
    if not email or not fcm_token:
        raise BadRequestError("email and fcm_token are required")
    user = await AppUser.find_one(AppUser.email == email)
    if not user:
        user = AppUser(email=email, name=name)
        await user.insert()
    elif name and name != user.name:
        user.name = name
        user.updated_at = datetime.utcnow()
        await user.save()

    now = datetime.utcnow()
    device = await UserDevice.find_one(UserDevice.fcm_token == fcm_token)
    if device:
        # token moved to another account or was refreshed
        device.app_user_id = str(user.id)
        device.platform = platform or device.platform
        device.last_seen_at = now
        await device.save()
    else:
        device = UserDevice(app_user_id=str(user.id), fcm_token=fcm_token, platform=platform)
        await device.insert()
    return user, device


async def unregister_device_token(fcm_token: str) -> None:
    device = await UserDevice.find_one(UserDevice.fcm_token == fcm_token)
    if not device:
        raise NotFoundError("Device token not registered")
    await device.delete()
