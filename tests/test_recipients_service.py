"""Recipient directory and device token registration on MongoDB."""

import pytest

from app.core.exceptions import BadRequestError
from app.models.app_user import AppUser
from app.models.user_device import UserDevice
from app.services import recipients as recipients_service
from app.services.recipients import BeanieRecipientDirectory

pytestmark = pytest.mark.asyncio


async def test_active_tokens_skip_inactive_users_and_duplicates(mongo_db):
    active, _ = await recipients_service.register_device_token("Ana@Example.com", "tok-a1", platform="ios")
    await recipients_service.register_device_token("ana@example.com", "tok-a2")
    active.fcm_token = "tok-a1"  # legacy copy of a device token
    await active.save()
    legacy = AppUser(email="legacy@example.com", fcm_token="tok-legacy")
    await legacy.insert()
    inactive, _ = await recipients_service.register_device_token("gone@example.com", "tok-gone")
    inactive.status = "Inactive"
    await inactive.save()

    tokens = await BeanieRecipientDirectory().list_active_tokens()

    assert len(tokens) == 3
    assert set(tokens[:2]) == {"tok-a1", "tok-a2"}
    assert tokens[2] == "tok-legacy"


async def test_register_moves_existing_token_to_new_user(mongo_db):
    await recipients_service.register_device_token("first@example.com", "shared-token")
    second, device = await recipients_service.register_device_token("second@example.com", "shared-token", platform="android")

    assert device.app_user_id == str(second.id)
    assert await UserDevice.find(UserDevice.fcm_token == "shared-token").count() == 1


async def test_register_rejects_blank_input(mongo_db):
    with pytest.raises(BadRequestError):
        await recipients_service.register_device_token("  ", "tok")


async def test_remove_tokens_clears_devices_and_legacy_tokens(mongo_db):
    user, _ = await recipients_service.register_device_token("bo@example.com", "tok-dead")
    user.fcm_token = "tok-dead"
    await user.save()
    await recipients_service.register_device_token("cy@example.com", "tok-live")

    removed = await BeanieRecipientDirectory().remove_tokens(["tok-dead"])

    assert removed == 2
    assert await BeanieRecipientDirectory().list_active_tokens() == ["tok-live"]
    assert (await AppUser.get(user.id)).fcm_token is None
