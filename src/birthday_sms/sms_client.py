from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import httpx

from birthday_sms.models import DeliveryOutcome

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_TIMEOUT_SECONDS = 10.0
UNKNOWN_MESSAGE_ID = "unknown"


class DeliveryError(Exception):
    pass


@dataclass(frozen=True)
class SmsGatewayConfig:
    api_url: str
    api_key: str = field(repr=False)
    sender_id: str
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS


def backoff_seconds(attempt: int) -> float:
    """Delay before the retry that follows failed attempt number ``attempt``."""
    return float(2**attempt)


def _error_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return "Unknown error"
    if isinstance(payload, dict):
        detail = payload.get("message") or payload.get("error")
        if detail:
            return str(detail)
    return "Unknown error"


def _classify_failure(response: httpx.Response) -> DeliveryError:
    status = response.status_code
    detail = _error_detail(response)
    if status in (401, 403):
        return DeliveryError(f"Authentication failed: {detail}")
    if status == 400:
        return DeliveryError(f"Invalid request: {detail}")
    return DeliveryError(f"API error ({status}): {detail}")


def _message_id(response: httpx.Response) -> str:
    try:
        payload: Any = response.json()
    except ValueError:
        return UNKNOWN_MESSAGE_ID
    if not isinstance(payload, dict):
        return UNKNOWN_MESSAGE_ID
    message_id = payload.get("messageId") or payload.get("id")
    return str(message_id) if message_id else UNKNOWN_MESSAGE_ID


class SmsClient:
    def __init__(
        self,
        config: SmsGatewayConfig,
        *,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        transport: httpx.AsyncBaseTransport | None = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._config = config
        self._sleep = sleep
        self._transport = transport
        self._max_attempts = max_attempts

    async def deliver(self, message: str, recipient: str) -> DeliveryOutcome:
        async with httpx.AsyncClient(
            timeout=self._config.timeout_seconds,
            transport=self._transport,
        ) as client:
            attempt = 1
            while True:
                try:
                    message_id = await self._send_once(client, message, recipient)
                except DeliveryError as exc:
                    if attempt >= self._max_attempts:
                        LOGGER.error("SMS delivery failed after %s attempt(s): %s", attempt, exc)
                        return DeliveryOutcome(
                            success=False,
                            attempt_count=attempt,
                            timestamp=datetime.now().astimezone(),
                            error_description=str(exc),
                        )
                    delay = backoff_seconds(attempt)
                    LOGGER.warning(
                        "SMS attempt %s/%s failed: %s; retrying in %.0fs",
                        attempt,
                        self._max_attempts,
                        exc,
                        delay,
                    )
                    await self._sleep(delay)
                    attempt += 1
                    continue

                return DeliveryOutcome(
                    success=True,
                    attempt_count=attempt,
                    timestamp=datetime.now().astimezone(),
                    message_id=message_id,
                )

    async def _send_once(self, client: httpx.AsyncClient, message: str, recipient: str) -> str:
        # httpx timeouts apply per phase; this bounds the whole attempt.
        try:
            async with asyncio.timeout(self._config.timeout_seconds):
                response = await client.post(
                    self._config.api_url,
                    json={
                        "to": recipient,
                        "from": self._config.sender_id,
                        "message": message,
                    },
                    headers={
                        "Authorization": f"Bearer {self._config.api_key}",
                        "Content-Type": "application/json",
                    },
                )
        except (httpx.RequestError, TimeoutError) as exc:
            raise DeliveryError("Network error: Unable to reach SMS API") from exc

        if not response.is_success:
            raise _classify_failure(response)
        return _message_id(response)
