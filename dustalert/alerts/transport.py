"""
Notification transports.

A transport delivers a finished alert text. Delivery is best-effort: failures
are raised as AlertTransportError for the caller to log, never retried.
"""

import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

SEND_TIMEOUT = 10  # seconds


class AlertTransportError(Exception):
    """Raised when a transport could not deliver an alert."""


class AlertTransport:
    """Base class for alert transports."""

    name = "base"

    def send(self, text: str) -> None:
        raise NotImplementedError


class LogTransport(AlertTransport):
    """Writes alerts to the log instead of publishing them."""

    name = "log"

    def send(self, text: str) -> None:
        logger.info("ALERT\n%s", text)


class WebhookTransport(AlertTransport):
    """Posts alerts to an incoming webhook as {"text": ...} JSON."""

    name = "webhook"

    def __init__(self, url: str, timeout: float = SEND_TIMEOUT):
        self.url = url
        self.timeout = timeout

    def send(self, text: str) -> None:
        try:
            resp = httpx.post(self.url, json={"text": text}, timeout=self.timeout)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise AlertTransportError(
                f"Webhook rejected alert with HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise AlertTransportError(f"Webhook delivery failed: {e}") from e
        logger.debug("Webhook accepted alert (HTTP %s)", resp.status_code)


def build_transport(settings) -> AlertTransport:
    """Pick the transport for the given settings."""
    webhook_url: Optional[str] = settings.webhook_url
    if settings.debug:
        return LogTransport()
    if webhook_url:
        return WebhookTransport(webhook_url)
    logger.warning("No ALERT_WEBHOOK_URL configured — alerts will only be logged")
    return LogTransport()
