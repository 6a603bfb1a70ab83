"""Hook entry point: stdin JSON -> gate -> transcript -> detached upload."""

import asyncio
import json
import os
from typing import Any

import httpx

from transcript_relay.config import Config
from transcript_relay.hook.dispatcher import DispatchResult, Dispatcher, dispatch_detached
from transcript_relay.hook.gate import gate_applies, is_upload_enabled
from transcript_relay.hook.loader import load_transcript
from transcript_relay.logging import get_logger, phase_timer
from transcript_relay.models import HookTrigger, UploadPayload

logger = get_logger("hook")


def parse_hook_input(raw: str) -> dict[str, Any]:
    """Parse the hook's stdin into a dict.

    Raises:
        ValueError: If stdin is not a JSON object with a session_id
    """
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("Hook input is not a JSON object")
    if not data.get("session_id"):
        raise ValueError("Hook input has no session_id")
    return data


async def run_hook(
    hook_input: dict[str, Any],
    config: Config,
    trigger: HookTrigger | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> DispatchResult | None:
    """Run one hook invocation.

    Args:
        hook_input: Parsed stdin object from the host tool
        config: Application configuration
        trigger: Hook point; resolved from hook_input when None
        transport: Optional httpx transport (used by tests)

    Returns:
        The dispatch result, or None if the enable gate skipped the upload
    """
    if trigger is None:
        trigger = HookTrigger.from_hook_input(hook_input)

    hook_config = config.hook
    session_id = hook_input["session_id"]

    if gate_applies(hook_config.gate_policy, trigger):
        cwd = hook_input.get("cwd") or os.getcwd()
        if not is_upload_enabled(cwd, hook_config.marker_dir, hook_config.marker_name):
            logger.info("Uploads not enabled for project, skipping: session=%s cwd=%s", session_id, cwd)
            return None

    with phase_timer(logger, "Load transcript", session_id):
        transcript = load_transcript(hook_input.get("transcript_path"))

    payload = UploadPayload.from_hook_input(hook_input, transcript, trigger)
    logger.info(
        "Dispatching upload: session=%s trigger=%s entries=%d",
        session_id,
        trigger.value,
        len(transcript),
    )

    dispatcher = Dispatcher(
        hook_config.api_url,
        api_key=hook_config.api_key,
        timeout=hook_config.timeout_seconds,
        transport=transport,
    )
    with phase_timer(logger, "Dispatch", session_id):
        result = await dispatch_detached(dispatcher, payload, grace=hook_config.grace_seconds)

    logger.info("Hook finished: session=%s outcome=%s", session_id, result.status.value)
    return result


def handle_hook(
    raw_input: str,
    config: Config,
    trigger: HookTrigger | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> DispatchResult | None:
    """Parse stdin and run the hook, never letting an error escape.

    The host tool must never see a failure from an upload problem, so
    every exception is logged and swallowed here.
    """
    try:
        hook_input = parse_hook_input(raw_input)
        return asyncio.run(run_hook(hook_input, config, trigger=trigger, transport=transport))
    except Exception:
        logger.exception("Hook error")
        return None
