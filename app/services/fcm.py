"""Firebase Cloud Messaging push transport."""

import asyncio
from typing import Callable

import firebase_admin
from firebase_admin import exceptions as firebase_exceptions
from firebase_admin import messaging

from app.core.logging import get_logger
from app.services.contracts import PushMessage, SendResult

log = get_logger(__name__)


def build_fcm_message(message: PushMessage) -> messaging.Message:
    """Android and APNs config share one collapse key so repeats replace each other on the device."""
    collapse_key = message.collapse_key
    data = dict(message.data)
    if collapse_key:
        data["_dedupKey"] = collapse_key
    aps_kwargs = {"sound": "default", "content_available": True}
    if collapse_key:
        aps_kwargs["thread_id"] = collapse_key
    if message.image_url:
        aps_kwargs["mutable_content"] = True
    apns_headers = {"apns-priority": "10", "apns-push-type": "alert"}
    if collapse_key:
        apns_headers["apns-collapse-id"] = collapse_key

    return messaging.Message(
        token=message.token,
        notification=messaging.Notification(
            title=message.title,
            body=message.body,
            image=message.image_url,
        ),
        data=data,
        android=messaging.AndroidConfig(
            priority="high",
            collapse_key=collapse_key,
            notification=messaging.AndroidNotification(
                channel_id="default",
                sound="default",
                tag=collapse_key,
                image=message.image_url,
            ),
        ),
        apns=messaging.APNSConfig(
            headers=apns_headers,
            payload=messaging.APNSPayload(aps=messaging.Aps(**aps_kwargs)),
            fcm_options=messaging.APNSFCMOptions(image=message.image_url) if message.image_url else None,
        ),
    )


class FcmPushTransport:
    """Sends through a Firebase app; with a resolver, the app is looked up until one is available."""

    def __init__(
        self,
        app: firebase_admin.App | None = None,
        resolver: Callable[[], firebase_admin.App | None] | None = None,
    ):
        self._app = app
        self._resolver = resolver

    def _get_app(self) -> firebase_admin.App | None:
        if self._app is None and self._resolver is not None:
            self._app = self._resolver()
        return self._app

    def is_ready(self) -> bool:
        return self._get_app() is not None

    async def send(self, message: PushMessage) -> SendResult:
        """Send one message; every failure is returned as a result rather than raised."""
        app = self._get_app()
        if app is None:
            return SendResult(success=False, error="Firebase app not available", code="not_configured")
        try:
            fcm_message = build_fcm_message(message)
            message_id = await asyncio.to_thread(messaging.send, fcm_message, app=app)
        except messaging.UnregisteredError as e:
            return SendResult(success=False, error=str(e), code=e.code, invalid_token=True)
        except firebase_exceptions.FirebaseError as e:
            return SendResult(success=False, error=str(e), code=e.code)
        except (ValueError, TypeError) as e:
            # malformed token or payload rejected client-side
            return SendResult(success=False, error=str(e), code="invalid_message")
        except Exception as e:
            log.warning("fcm_send_error", error=str(e))
            return SendResult(success=False, error=str(e) or type(e).__name__, code="unknown")
        return SendResult(success=True, message_id=message_id)
