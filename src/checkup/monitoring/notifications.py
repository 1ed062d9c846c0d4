"""
Notification channels for alert fan-out.

Channels:
    - push: Gotify-style POST {url}/message with X-Gotify-Key
    - webhook: JSON POST, optionally signed with HMAC-SHA256
    - email: SMTP (blocking smtplib, run in a worker thread)

Every sender raises NotificationError on misconfiguration or delivery
failure. The AlertManager decides what to do with it.
"""
from __future__ import annotations

import asyncio
import hashlib
import hmac
import json
import logging
import smtplib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.mime.text import MIMEText
from typing import Any, Callable, Dict, Optional

import httpx

from checkup.storage.models import AlertSeverity, ChannelKind

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-CheckUp-Signature"

PRIORITY_BY_SEVERITY = {
    AlertSeverity.CRITICAL: "high",
    AlertSeverity.ERROR: "medium",
    AlertSeverity.WARNING: "medium",
    AlertSeverity.INFO: "low",
}

PUSH_PRIORITY = {"low": 2, "medium": 5, "high": 8}

PRIORITY_MARKERS = {"high": "🚨", "medium": "⚠️", "low": "ℹ️"}


class NotificationError(Exception):
    """Raised when a channel cannot deliver a notification."""

    pass


def priority_for(severity: AlertSeverity | str) -> str:
    """Map alert severity onto the low/medium/high channel priority scale."""
    try:
        return PRIORITY_BY_SEVERITY[AlertSeverity(severity)]
    except ValueError:
        return "medium"


@dataclass
class NotificationMessage:
    """What the core hands to a channel."""

    title: str
    message: str
    priority: str = "medium"
    alert_type: str = "alert"
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def sign_payload(secret: str, body: bytes) -> str:
    """HMAC-SHA256 hex digest of body, formatted for the signature header."""
    digest = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


class PushNotifier:
    """Gotify-compatible push server."""

    kind = ChannelKind.PUSH

    async def send(
        self, config: Dict[str, Any], note: NotificationMessage, client: httpx.AsyncClient
    ) -> None:
        url = config.get("url")
        token = config.get("token")
        if not url or not token:
            raise NotificationError("Push channel requires 'url' and 'token'")

        payload = {
            "title": f"CheckUp - {note.title}",
            "message": note.message,
            "priority": PUSH_PRIORITY.get(note.priority, 5),
        }
        try:
            response = await client.post(
                f"{url.rstrip('/')}/message",
                json=payload,
                headers={"X-Gotify-Key": token},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise NotificationError(f"Push delivery failed: {e}") from e


class WebhookNotifier:
    """Generic JSON webhook with optional HMAC signature."""

    kind = ChannelKind.WEBHOOK

    def build_payload(self, note: NotificationMessage) -> Dict[str, Any]:
        return {
            "title": f"CheckUp - {note.title}",
            "message": note.message,
            "priority": note.priority,
            "type": note.alert_type,
            "timestamp": note.timestamp.isoformat(),
            "source": "CheckUp",
        }

    async def send(
        self, config: Dict[str, Any], note: NotificationMessage, client: httpx.AsyncClient
    ) -> None:
        url = config.get("url")
        if not url:
            raise NotificationError("Webhook channel requires 'url'")

        # Sign exactly the bytes that go on the wire
        body = json.dumps(self.build_payload(note)).encode()
        headers = {"Content-Type": "application/json", "User-Agent": "CheckUp/1.0"}
        secret = config.get("secret")
        if secret:
            headers[SIGNATURE_HEADER] = sign_payload(secret, body)

        try:
            response = await client.post(url, content=body, headers=headers)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise NotificationError(f"Webhook delivery failed: {e}") from e


class EmailNotifier:
    """Plain SMTP email."""

    kind = ChannelKind.EMAIL

    def build_message(self, config: Dict[str, Any], note: NotificationMessage) -> MIMEText:
        marker = PRIORITY_MARKERS.get(note.priority, "")
        body = (
            f"{note.message}\n\n"
            f"Type: {note.alert_type}\n"
            f"Sent: {note.timestamp.isoformat()} by CheckUp"
        )
        msg = MIMEText(body, "plain", "utf-8")
        msg["Subject"] = f"{marker} CheckUp - {note.title}".strip()
        msg["From"] = config["from_address"]
        msg["To"] = config["to_address"]
        return msg

    def _send_blocking(self, config: Dict[str, Any], msg: MIMEText) -> None:
        port = int(config.get("port", 587))
        if port == 465:
            server = smtplib.SMTP_SSL(config["host"], port, timeout=30)
        else:
            server = smtplib.SMTP(config["host"], port, timeout=30)
        try:
            if port != 465 and config.get("starttls", True):
                server.starttls()
            if config.get("username"):
                server.login(config["username"], config.get("password", ""))
            server.send_message(msg)
        finally:
            server.quit()

    async def send(
        self, config: Dict[str, Any], note: NotificationMessage, client: httpx.AsyncClient
    ) -> None:
        missing = [k for k in ("host", "from_address", "to_address") if not config.get(k)]
        if missing:
            raise NotificationError(f"Email channel missing {', '.join(missing)}")

        msg = self.build_message(config, note)
        try:
            await asyncio.to_thread(self._send_blocking, config, msg)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(f"Email delivery failed: {e}") from e


class NotificationDispatcher:
    """
    Routes a message to the sender for a channel kind.

    Owns the HTTP client factory so tests can swap in a mock transport.
    """

    def __init__(
        self,
        client_factory: Optional[Callable[[], httpx.AsyncClient]] = None,
        timeout: float = 10.0,
    ) -> None:
        self._client_factory = client_factory or (lambda: httpx.AsyncClient(timeout=timeout))
        self._senders = {
            ChannelKind.PUSH: PushNotifier(),
            ChannelKind.WEBHOOK: WebhookNotifier(),
            ChannelKind.EMAIL: EmailNotifier(),
        }

    def client(self) -> httpx.AsyncClient:
        return self._client_factory()

    async def send(
        self,
        kind: ChannelKind | str,
        config: Dict[str, Any],
        note: NotificationMessage,
        client: httpx.AsyncClient,
    ) -> None:
        try:
            sender = self._senders[ChannelKind(kind)]
        except (KeyError, ValueError):
            raise NotificationError(f"Unsupported notification type: {kind}")
        await sender.send(config, note, client)
