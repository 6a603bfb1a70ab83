"""Payload and document models shared by the hook and the ingestion endpoint."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

# One line of a session transcript: at least "type" and "timestamp",
# everything else is opaque.
TranscriptEntry = dict[str, Any]


class HookTrigger(Enum):
    """Which hook point invoked the CLI."""

    SESSION_END = "session-end"
    TOOL_USE = "tool-use"

    @classmethod
    def from_hook_input(cls, hook_input: dict[str, Any]) -> "HookTrigger":
        """Resolve the trigger from the hook's stdin object.

        Uses hook_event_name when present ("SessionEnd" means session end,
        any tool event means tool use). Without an event name, a "reason"
        field identifies the session-end hook.
        """
        event = hook_input.get("hook_event_name")
        if event:
            return cls.SESSION_END if event == "SessionEnd" else cls.TOOL_USE
        return cls.SESSION_END if "reason" in hook_input else cls.TOOL_USE


@dataclass
class UploadPayload:
    """The unit of transfer from hook to ingestion endpoint."""

    session_id: str
    transcript: list[TranscriptEntry] = field(default_factory=list)
    tool_use_id: str | None = None
    tool_name: str | None = None
    tool_input: dict[str, Any] | None = None
    cwd: str | None = None
    hook_event: str | None = None
    reason: str | None = None

    @classmethod
    def from_hook_input(
        cls,
        hook_input: dict[str, Any],
        transcript: list[TranscriptEntry],
        trigger: HookTrigger,
    ) -> "UploadPayload":
        """Build the payload the given trigger sends.

        The session-end hook only reports why the session ended; the
        tool-use hook carries the tool call that fired it.
        """
        if trigger is HookTrigger.SESSION_END:
            return cls(
                session_id=hook_input.get("session_id", ""),
                transcript=transcript,
                reason=hook_input.get("reason"),
            )
        return cls(
            session_id=hook_input.get("session_id", ""),
            transcript=transcript,
            tool_use_id=hook_input.get("tool_use_id"),
            tool_name=hook_input.get("tool_name"),
            tool_input=hook_input.get("tool_input"),
            cwd=hook_input.get("cwd"),
            hook_event=hook_input.get("hook_event_name"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON wire body, omitting unset optional fields."""
        body: dict[str, Any] = {"session_id": self.session_id, "transcript": self.transcript}
        for name in ("tool_use_id", "tool_name", "tool_input", "cwd", "hook_event", "reason"):
            value = getattr(self, name)
            if value is not None:
                body[name] = value
        return body


def build_stored_document(
    body: dict[str, Any],
    client_ip: str,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Return the record to persist for an accepted upload.

    uploaded_at and client_ip are always server-assigned; client-supplied
    values for either are replaced. The input body is not modified.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    document = dict(body)
    document["uploaded_at"] = now.isoformat()
    document["client_ip"] = client_ip
    return document


def is_valid_session_id(value: Any) -> bool:
    """Return True if value can name a stored session.

    Session ids end up in storage keys, so they must be non-empty strings
    without path separators or dot segments.
    """
    if not isinstance(value, str) or not value.strip():
        return False
    if "/" in value or "\\" in value:
        return False
    return value not in (".", "..")
