"""Loader for JSONL session transcripts written by the host tool.

Claude Code stores each session as a JSONL file at:
    ~/.claude/projects/<encoded-project-path>/<session-id>.jsonl

Each line is a JSON object with at least a "type" and a "timestamp";
the hook forwards entries as-is without interpreting them.
"""

import json
from pathlib import Path

from transcript_relay.logging import get_logger
from transcript_relay.models import TranscriptEntry

logger = get_logger("hook")


def load_transcript(path: Path | str | None) -> list[TranscriptEntry]:
    """Read a transcript file into a list of entries in file order.

    A missing file is a normal case (very short sessions never write one)
    and yields an empty list.

    Loading is all-or-nothing: if any non-blank line is not a JSON object,
    or the file cannot be read, the whole transcript is discarded and an
    empty list is returned.

    Args:
        path: Path to the JSONL transcript, or None when the hook input had none

    Returns:
        List of transcript entries (possibly empty)
    """
    if not path:
        return []

    path = Path(path)
    if not path.is_file():
        logger.info("No transcript at %s", path)
        return []

    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Could not read transcript: path=%s error=%s", path, e)
        return []

    entries: list[TranscriptEntry] = []
    for line_no, line in enumerate(content.split("\n"), start=1):
        line = line.strip()
        if not line:
            continue

        try:
            entry = json.loads(line)
        except json.JSONDecodeError as e:
            logger.warning("Malformed transcript line, discarding transcript: path=%s line=%d error=%s", path, line_no, e)
            return []

        if not isinstance(entry, dict):
            logger.warning("Transcript line is not an object, discarding transcript: path=%s line=%d", path, line_no)
            return []

        entries.append(entry)

    return entries
