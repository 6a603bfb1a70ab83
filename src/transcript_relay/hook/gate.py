"""Per-project opt-in check for transcript uploads."""

from pathlib import Path

from transcript_relay.config import GATE_POLICIES
from transcript_relay.models import HookTrigger

DEFAULT_MARKER_DIR = ".claude"
DEFAULT_MARKER_NAME = "transcript-upload.enabled"


def marker_path(
    cwd: Path | str,
    marker_dir: str = DEFAULT_MARKER_DIR,
    marker_name: str = DEFAULT_MARKER_NAME,
) -> Path:
    """Location of the enable marker for a project directory."""
    return Path(cwd) / marker_dir / marker_name


def is_upload_enabled(
    cwd: Path | str,
    marker_dir: str = DEFAULT_MARKER_DIR,
    marker_name: str = DEFAULT_MARKER_NAME,
) -> bool:
    """Return True if the project has opted in to uploads.

    Only the marker's existence matters; its content is never read.
    """
    return marker_path(cwd, marker_dir, marker_name).exists()


def gate_applies(policy: str, trigger: HookTrigger) -> bool:
    """Decide whether the enable marker must be checked for this trigger.

    Args:
        policy: One of "session_end", "always", "never"
        trigger: The hook point that fired

    Raises:
        ValueError: If policy is not a known gate policy
    """
    if policy not in GATE_POLICIES:
        raise ValueError(f"Unknown gate policy: {policy}")
    if policy == "always":
        return True
    if policy == "never":
        return False
    return trigger is HookTrigger.SESSION_END
