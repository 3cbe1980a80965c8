"""
notifications/sms.py

SMS delivery through the BulkSMSBD HTTP API (GET with query parameters).

send() never raises: transport and API failures come back as
SmsResult(success=False, message=...). Ledger data never depends on delivery.
"""
from __future__ import annotations

from dataclasses import dataclass
import json
import logging
from typing import Optional, Protocol
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from ...constants import SMS_API_URL

__all__ = ["SmsResult", "SmsSender", "BulkSmsClient"]

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SmsResult:
    success: bool
    message: str


class SmsSender(Protocol):
    def send(self, phone: str, message: str) -> SmsResult: ...


def _pipe_message(text: str) -> str:
    parts = text.split("|")
    return parts[1].strip() if len(parts) > 1 else ""


class BulkSmsClient:
    def __init__(
        self,
        api_key: str,
        sender_id: str,
        *,
        base_url: str = SMS_API_URL,
        timeout: int = 20,
    ) -> None:
        self.api_key = api_key
        self.sender_id = sender_id
        self.base_url = base_url
        self.timeout = timeout

    def _url(self, phone: str, message: str) -> str:
        query = urlencode(
            {
                "api_key": self.api_key,
                "senderid": self.sender_id,
                "number": phone,
                "message": message,
            }
        )
        return f"{self.base_url}?{query}"

    def send(self, phone: str, message: str) -> SmsResult:
        if not self.api_key or not self.sender_id:
            return SmsResult(False, "SMS API key or sender id is not configured.")
        if not (phone or "").strip():
            return SmsResult(False, "No phone number.")

        req = Request(self._url(phone.strip(), message), method="GET")
        status: Optional[int] = None
        try:
            with urlopen(req, timeout=self.timeout) as resp:
                status = getattr(resp, "status", 200)
                raw = resp.read().decode("utf-8", errors="replace")
        except HTTPError as e:
            status = e.code
            try:
                raw = e.read().decode("utf-8", errors="replace")
            except OSError:
                raw = ""
        except (URLError, OSError) as e:
            _log.warning("SMS to %s failed: %s", phone, e)
            return SmsResult(False, str(getattr(e, "reason", e)) or "Network error.")

        return self._parse(raw, status)

    @staticmethod
    def _parse(raw: str, status: Optional[int]) -> SmsResult:
        try:
            payload = json.loads(raw)
        except ValueError:
            payload = None

        if isinstance(payload, dict):
            if payload.get("response_code") == 202:
                return SmsResult(True, payload.get("success_message") or "SMS Submitted Successfully.")
            return SmsResult(
                False,
                payload.get("error_message") or f"API Error: {payload.get('response_code') or 'Unknown'}",
            )

        # Older pipe-separated replies: "1000|SMS sent"
        ok = status is not None and 200 <= status < 300
        if ok and "1000" in raw:
            return SmsResult(True, _pipe_message(raw) or "SMS sent successfully.")
        return SmsResult(False, _pipe_message(raw) or raw or f"Failed to send SMS. Status: {status}")
