import json
from typing import Any


def encode_sse_event(*, data: Any, event_type: str | None = None) -> bytes:
    """
    Encode a single SSE event frame.

    Plain frames carry only ``data: <json>``; error frames also name the
    event so standard SSE clients can dispatch on it.
    """
    lines: list[str] = []
    event = str(event_type or "").strip()
    if event:
        lines.append(f"event: {event}")

    if isinstance(data, (bytes, bytearray)):
        lines.append(f"data: {data.decode('utf-8', errors='ignore')}")
    elif isinstance(data, str):
        lines.append(f"data: {data}")
    else:
        lines.append(f"data: {json.dumps(data, ensure_ascii=False)}")

    return ("\n".join(lines) + "\n\n").encode("utf-8")


SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}

__all__ = ["SSE_HEADERS", "encode_sse_event"]
