"""
clients/fcm.py

Firebase Cloud Messaging client for the legacy HTTP API (POST /fcm/send).

    client = FCMClient()
    client.notify_device(token, {"orderId": "42"}, "Your order shipped")

Configuration comes from FCM_URL / FCM_API_KEY (see core/config.py).
Failures raise FCMError, or a WrappedError around the transport error.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests
from pydantic import BaseModel, ConfigDict, Field

from ..core.config import get_settings
from ..core.errors import WrappedError, wrap

SEND_PATH = "fcm/send"

logger = logging.getLogger(__name__)


class FCMConfig(BaseModel):
    api_key: str = Field("", alias="apiKey")
    base_url: str = Field("https://fcm.googleapis.com", alias="baseURL")

    model_config = ConfigDict(populate_by_name=True)


def config_from_env() -> FCMConfig:
    s = get_settings()
    return FCMConfig(api_key=s.FCM_API_KEY, base_url=s.FCM_URL or "https://fcm.googleapis.com")


# ---------- Payloads ----------

class Notification(BaseModel):
    """User-visible notification keys. Unset keys are not sent."""
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    body: Optional[str] = None
    channel_id: Optional[str] = Field(None, alias="android_channel_id")
    icon: Optional[str] = None
    image: Optional[str] = None
    sound: Optional[str] = None
    badge: Optional[str] = None
    tag: Optional[str] = None
    color: Optional[str] = None
    click_action: Optional[str] = None
    body_loc_key: Optional[str] = None
    body_loc_args: Optional[str] = None
    title_loc_key: Optional[str] = None
    title_loc_args: Optional[str] = None


class Message(BaseModel):
    """Targets, options and payload of one send. Unset fields are not sent."""
    model_config = ConfigDict(populate_by_name=True)

    to: Optional[str] = None
    registration_ids: Optional[List[str]] = None
    condition: Optional[str] = None
    collapse_key: Optional[str] = None
    priority: Optional[str] = None
    content_available: bool = False
    mutable_content: bool = False
    delay_while_idle: bool = False
    time_to_live: Optional[int] = Field(None, ge=0)
    delivery_receipt_requested: bool = False
    dry_run: bool = False
    restricted_package_name: Optional[str] = None
    notification: Optional[Notification] = None
    data: Optional[Dict[str, Any]] = None
    apns: Optional[Dict[str, Any]] = None
    webpush: Optional[Dict[str, Any]] = None

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_defaults=True)


class Result(BaseModel):
    """Status of one processed message."""
    model_config = ConfigDict(extra="ignore")

    message_id: Optional[str] = None
    registration_id: Optional[str] = None
    error: Optional[str] = None


class FCMResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    multicast_id: int = 0
    success: int = 0
    failure: int = 0
    canonical_ids: int = 0
    results: List[Result] = Field(default_factory=list)

    # Device group response
    failed_registration_ids: List[str] = Field(default_factory=list)

    # Topic response
    message_id: int = 0
    error: Optional[str] = None


class FCMError(Exception):
    """FCM rejected the request or reported an error in its response body."""

    def __init__(self, message: str, response: Optional[FCMResponse] = None):
        super().__init__(message)
        self.response = response


# ---------- Client ----------

class FCMClient:
    def __init__(self, config: Optional[FCMConfig] = None, session: Optional[requests.Session] = None):
        self.config = config or config_from_env()
        self.session = session or requests.Session()
        self.timeout = get_settings().HTTP_CLIENT_TIMEOUT_SEC

    def _make_request(self, method: str, path: str, payload: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        url = f"{self.config.base_url}/{path}"
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"key={self.config.api_key}",
        }
        try:
            resp = self.session.request(method, url, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            raise wrap(exc, "client - failed to execute request")

        if resp.status_code not in (200, 204):
            raise FCMError(f"invalid status code received, expected 200/204, got {resp.status_code}")
        if not resp.content:
            return {}

        try:
            return resp.json()
        except ValueError as exc:
            raise wrap(exc, "unable to unmarshal request body")

    def _send(self, msg: Message, context: str) -> FCMResponse:
        try:
            body = self._make_request("POST", SEND_PATH, msg.to_payload())
        except (FCMError, WrappedError) as exc:
            raise wrap(exc, context)

        resp = FCMResponse.model_validate(body)
        if resp.error:
            logger.warning("fcm send reported an error: %s", resp.error)
            raise FCMError(resp.error, response=resp)
        return resp

    def notify_device(self, device_id: str, optional_data: Optional[Dict[str, Any]], message_title: str) -> FCMResponse:
        msg = Message(to=device_id, notification=Notification(title=message_title), data=optional_data)
        return self._send(msg, "error making fcm request to notify single device")

    def notify_devices(self, device_ids: List[str], optional_data: Optional[Dict[str, Any]], message_title: str) -> FCMResponse:
        msg = Message(registration_ids=device_ids, notification=Notification(title=message_title), data=optional_data)
        return self._send(msg, "error making fcm request to notify multiple devices")

    def send_custom_message(self, msg: Message) -> FCMResponse:
        return self._send(msg, "error making fcm request to send custom message")
