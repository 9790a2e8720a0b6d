"""
Parsing of Deepgram callback payloads.

Deepgram posts the full pre-recorded transcription response to the callback
URL. Only a few fields matter here: ``metadata.request_id`` to find the job,
``error`` for failed requests, and the paragraph transcript plus a few
metadata fields for successful ones.
"""

from typing import Any, Optional, Tuple

from app.models import CallbackOutcome, TranscriptResult


class CallbackParseError(ValueError):
    """Raised when a callback body cannot be interpreted at all."""


def _dig(data: Any, *path: Any) -> Any:
    """Follow a path of dict keys / list indexes, returning None on any miss."""
    current = data
    for key in path:
        if isinstance(key, int):
            if not isinstance(current, list) or len(current) <= key:
                return None
        elif not isinstance(current, dict):
            return None
        current = current[key] if isinstance(key, int) else current.get(key)
        if current is None:
            return None
    return current


def extract_request_id(payload: Any) -> Optional[str]:
    """Get the provider request id from a callback body, if present."""
    request_id = _dig(payload, "metadata", "request_id")
    if request_id is None:
        # Some error callbacks carry the id at the top level
        request_id = _dig(payload, "request_id")
    if request_id is None:
        return None
    request_id = str(request_id).strip()
    return request_id or None


def extract_transcript(payload: Any) -> TranscriptResult:
    """
    Build a TranscriptResult from a successful callback body.

    The paragraph-formatted transcript of the first channel's first
    alternative is used; a missing transcript yields an empty string.
    """
    transcript = _dig(
        payload, "results", "channels", 0, "alternatives", 0, "paragraphs", "transcript"
    )
    metadata = _dig(payload, "metadata")
    if not isinstance(metadata, dict):
        metadata = {}

    duration = metadata.get("duration")
    channels = metadata.get("channels")
    created = metadata.get("created")

    return TranscriptResult(
        transcript=transcript if isinstance(transcript, str) else "",
        duration=float(duration) if isinstance(duration, (int, float)) else None,
        channels=int(channels) if isinstance(channels, int) else None,
        created=str(created) if created is not None else None,
    )


def parse_callback(payload: Any) -> Tuple[Optional[str], CallbackOutcome]:
    """
    Interpret a Deepgram callback body.

    Args:
        payload: Decoded JSON body of the callback request

    Returns:
        Tuple of (request_id or None, CallbackOutcome)

    Raises:
        CallbackParseError: If the payload is not a JSON object
    """
    if not isinstance(payload, dict):
        raise CallbackParseError(
            f"Callback body must be a JSON object, got {type(payload).__name__}"
        )

    request_id = extract_request_id(payload)

    error = payload.get("error")
    if error:
        return request_id, CallbackOutcome.failed(error)

    return request_id, CallbackOutcome.succeeded(extract_transcript(payload))
