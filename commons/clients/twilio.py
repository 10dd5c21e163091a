"""
clients/twilio.py

Minimal Twilio REST client for sending SMS.

    TwilioClient().send_sms("+15550100", "Your code is 123456")

Credentials: an API key pair (TWILIO_API_KEY_SID / TWILIO_API_KEY_SECRET) is
preferred when set, otherwise the account SID and auth token are used.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple, Union

import requests
from pydantic import BaseModel, ConfigDict, Field

from ..core.config import get_settings
from ..core.errors import wrap

BASE_URL = "https://api.twilio.com/2010-04-01"

logger = logging.getLogger(__name__)


class TwilioConfig(BaseModel):
    account_sid: str = ""
    auth_token: str = ""
    base_url: str = BASE_URL
    phone_number: str = ""
    api_key_sid: str = ""
    api_key_secret: str = ""

    def basic_auth_credentials(self) -> Tuple[str, str]:
        if self.api_key_sid:
            return self.api_key_sid, self.api_key_secret
        return self.account_sid, self.auth_token


def config_from_env() -> TwilioConfig:
    s = get_settings()
    return TwilioConfig(
        account_sid=s.TWILIO_ACCOUNT_SID,
        auth_token=s.TWILIO_AUTH_TOKEN,
        base_url=s.TWILIO_BASE_URL or BASE_URL,
        phone_number=s.TWILIO_PHONE_NUMBER,
        api_key_sid=s.TWILIO_API_KEY_SID,
        api_key_secret=s.TWILIO_API_KEY_SECRET,
    )


class SmsResponse(BaseModel):
    """Twilio's record of a posted message."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    sid: Optional[str] = None
    date_created: Optional[str] = None
    date_updated: Optional[str] = None
    date_sent: Optional[str] = None
    account_sid: Optional[str] = None
    to: Optional[str] = None
    from_: Optional[str] = Field(None, alias="from")
    num_media: Optional[str] = None
    body: Optional[str] = None
    status: Optional[str] = None
    direction: Optional[str] = None
    api_version: Optional[str] = None
    price: Optional[str] = None
    url: Optional[str] = Field(None, alias="uri")


class TwilioError(Exception):
    """Twilio could not be reached or answered with something unexpected."""


class TwilioException(TwilioError):
    """Error document returned by the Twilio REST API."""

    def __init__(self, message: str, *, status: str = "", code: int = 0, more_info: str = ""):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.more_info = more_info

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "TwilioException":
        status: Union[int, str, None] = payload.get("status")
        return cls(
            str(payload.get("message") or ""),
            status="" if status is None else str(status),
            code=int(payload.get("code") or 0),
            more_info=str(payload.get("more_info") or ""),
        )

    def __str__(self) -> str:
        if self.code:
            return f"Code {self.code}: {self.message}"
        if self.status:
            return f"Status {self.status}: {self.message}"
        return self.message


class TwilioClient:
    def __init__(self, config: Optional[TwilioConfig] = None, session: Optional[requests.Session] = None):
        self.config = config or config_from_env()
        self.session = session or requests.Session()
        self.timeout = get_settings().HTTP_CLIENT_TIMEOUT_SEC

    def _messages_url(self) -> str:
        return f"{self.config.base_url}/Accounts/{self.config.account_sid}/Messages.json"

    def _make_request(self, form_values: Dict[str, str]) -> SmsResponse:
        try:
            resp = self.session.post(
                self._messages_url(),
                data=form_values,
                auth=self.config.basic_auth_credentials(),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise wrap(exc, "unable to do request")

        if resp.status_code not in (200, 201):
            try:
                payload = resp.json()
            except ValueError:
                raise TwilioError(f"unexpected response code {resp.status_code}, body {resp.text}")
            if not isinstance(payload, dict):
                raise TwilioError(f"unexpected response code {resp.status_code}, body {resp.text}")
            exc = TwilioException.from_payload(payload)
            logger.warning("twilio rejected message: %s", exc)
            raise exc

        try:
            return SmsResponse.model_validate(resp.json())
        except ValueError as exc:
            raise wrap(exc, "unable to unmarshal response")

    def send_sms(self, to: str, body: str) -> SmsResponse:
        form_values = {
            "From": self.config.phone_number,
            "To": to,
            "Body": body,
        }
        return self._make_request(form_values)
