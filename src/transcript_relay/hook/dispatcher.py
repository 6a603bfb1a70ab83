"""Best-effort delivery of upload payloads to the ingestion endpoint.

Delivery happens at most once and is never retried. The hook runs under
the host tool's hook timeout, so the POST is started as a detached task
and the hook only waits a short grace period for it before moving on.
Anything still in flight at that point is cancelled and dropped.
"""

import asyncio
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx

from transcript_relay.logging import get_logger
from transcript_relay.models import UploadPayload

logger = get_logger("hook")


class DispatchStatus(Enum):
    DELIVERED = "delivered"
    REJECTED = "rejected"
    ABORTED = "aborted"
    FAILED = "failed"
    NOT_CONFIGURED = "not_configured"
    DETACHED = "detached"


@dataclass
class DispatchResult:
    """Outcome of one delivery attempt."""

    status: DispatchStatus
    status_code: int | None = None
    identifier: str | None = None
    error: str | None = None


class Dispatcher:
    """Posts upload payloads to the configured endpoint."""

    def __init__(
        self,
        url: str,
        api_key: str = "",
        timeout: float = 4.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            url: Ingestion endpoint URL (empty disables delivery)
            api_key: Shared secret sent as x-api-key, if set
            timeout: Overall deadline in seconds after which the request is aborted
            transport: Optional httpx transport (used by tests)
        """
        self.url = url
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    def build_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["x-api-key"] = self.api_key
        return headers

    async def send(self, payload: UploadPayload) -> DispatchResult:
        """POST the payload once and report what happened.

        Never raises for delivery problems; every outcome is logged and
        returned as a DispatchResult.
        """
        if not self.url:
            logger.error("CLAUDE_TRANSCRIPT_API_URL not configured, skipping upload")
            return DispatchResult(DispatchStatus.NOT_CONFIGURED)

        body = json.dumps(payload.to_dict())

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                response = await asyncio.wait_for(
                    client.post(self.url, content=body, headers=self.build_headers()),
                    timeout=self.timeout,
                )
        except (TimeoutError, httpx.TimeoutException):
            logger.warning("Upload aborted after %.1fs: session=%s", self.timeout, payload.session_id)
            return DispatchResult(DispatchStatus.ABORTED, error="timeout")
        except httpx.HTTPError as e:
            logger.error("Upload failed: session=%s error=%s", payload.session_id, e)
            return DispatchResult(DispatchStatus.FAILED, error=str(e))

        if not response.is_success:
            logger.error("API error: status=%d session=%s", response.status_code, payload.session_id)
            return DispatchResult(DispatchStatus.REJECTED, status_code=response.status_code)

        identifier = _response_identifier(response)
        logger.info(
            "Upload delivered: session=%s status=%d id=%s",
            payload.session_id,
            response.status_code,
            identifier,
        )
        return DispatchResult(DispatchStatus.DELIVERED, status_code=response.status_code, identifier=identifier)


def _response_identifier(response: httpx.Response) -> str | None:
    """Pull the stored record id (or object key) out of a success response."""
    try:
        data: Any = response.json()
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    identifier = data.get("id") or data.get("key")
    return str(identifier) if identifier is not None else None


async def dispatch_detached(
    dispatcher: Dispatcher,
    payload: UploadPayload,
    grace: float = 0.05,
) -> DispatchResult:
    """Start delivery as a detached task and wait at most `grace` seconds.

    If the send has not finished by the deadline it is cancelled, which
    drops the upload. The returned result is whatever was known at the
    deadline.
    """
    task = asyncio.create_task(dispatcher.send(payload))
    done, _ = await asyncio.wait({task}, timeout=grace)

    if task in done:
        return task.result()

    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
    logger.info("Upload still in flight after %.0fms grace, dropped: session=%s", grace * 1000, payload.session_id)
    return DispatchResult(DispatchStatus.DETACHED)
