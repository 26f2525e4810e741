"""Push delivery through Firebase Cloud Messaging."""

from __future__ import annotations

import logging
from typing import Dict, Optional, Protocol

import firebase_admin
from firebase_admin import credentials, exceptions, messaging

logger = logging.getLogger(__name__)


class PushDeliveryError(Exception):
    """Delivery to one device failed; the token may still be valid."""


class InvalidPushToken(PushDeliveryError):
    """The provider no longer accepts this token."""


class PushGateway(Protocol):
    def send(self, *, token: str, title: str, body: str, data: Optional[Dict[str, str]] = None) -> str:
        """Send one message; return the provider message id."""
        raise NotImplementedError


class FirebasePushGateway(PushGateway):
    def __init__(self, app: "firebase_admin.App"):
        self._app = app

    @classmethod
    def from_credentials_file(cls, path: str, *, app_name: str = "aakb-workforce") -> "FirebasePushGateway":
        try:
            app = firebase_admin.get_app(app_name)
        except ValueError:
            app = firebase_admin.initialize_app(credentials.Certificate(path), name=app_name)
        logger.info("Firebase push gateway initialised")
        return cls(app)

    def send(self, *, token: str, title: str, body: str, data: Optional[Dict[str, str]] = None) -> str:
        message = messaging.Message(
            notification=messaging.Notification(title=title, body=body),
            data={str(k): str(v) for k, v in (data or {}).items()},
            token=token,
        )
        try:
            return messaging.send(message, app=self._app)
        except (messaging.UnregisteredError, exceptions.InvalidArgumentError) as e:
            raise InvalidPushToken(str(e)) from e
        except exceptions.FirebaseError as e:
            raise PushDeliveryError(str(e)) from e
