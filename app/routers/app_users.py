from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from app.deps import require_api_key
from app.services import recipients as recipients_service

router = APIRouter(dependencies=[Depends(require_api_key)])


class DeviceTokenRegister(BaseModel):
    email: str
    fcm_token: str
    name: str = ""
    platform: str | None = None


@router.post("/fcm-token")
async def fcm_token_register(body: DeviceTokenRegister):
    """Register or refresh the push token of an app install."""
    user, device = await recipients_service.register_device_token(
        body.email,
        body.fcm_token,
        name=body.name,
        platform=body.platform,
    )
    return {
        "success": True,
        "user": {"id": str(user.id), "email": user.email},
        "device": {"id": str(device.id), "platform": device.platform},
    }


@router.delete("/fcm-token")
async def fcm_token_unregister(fcm_token: str = Query(..., min_length=1)):
    """Drop a push token, e.g. on logout."""
    await recipients_service.unregister_device_token(fcm_token)
    return {"success": True}
