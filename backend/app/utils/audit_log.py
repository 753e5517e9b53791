from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Literal, Optional

from .request_id import get_request_id

AuditAction = Literal[
    "booking.created",
    "booking.updated",
    "booking.cancelled",
    "booking.rejected",
]

_audit_logger = logging.getLogger("audit")
_audit_logger.setLevel(logging.INFO)
if not _audit_logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    _audit_logger.addHandler(handler)
_audit_logger.propagate = False


def _plain(value: Any) -> Any:
    if value is None:
        return None
    if hasattr(value, "value"):
        return str(value.value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def emit_audit_log(
    *,
    action: AuditAction,
    actor_id: Optional[int],
    booking_id: Optional[int],
    venue_id: Optional[int],
    day: Optional[Any] = None,
    slot: Optional[Any] = None,
    status_from: Optional[Any] = None,
    status_to: Optional[Any] = None,
    version: Optional[int] = None,
    reason: Optional[Any] = None,
    extra: Optional[dict[str, Any]] = None,
) -> None:
    """Emit one structured JSON audit record. Raises RuntimeError if logging fails."""
    payload: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": "info",
        "action": action,
        "request_id": get_request_id(),
        "actor_id": actor_id,
        "booking_id": booking_id,
        "venue_id": venue_id,
        "day": str(day) if day is not None else None,
        "slot": _plain(slot),
        "status_from": _plain(status_from),
        "status_to": _plain(status_to),
        "version": version,
        "reason": _plain(reason),
    }
    if extra:
        payload.update({k: _plain(v) for k, v in extra.items()})

    compact_payload = {k: v for k, v in payload.items() if v is not None}
    try:
        _audit_logger.info(json.dumps(compact_payload, ensure_ascii=True))
    except Exception as exc:
        raise RuntimeError("failed to emit audit log") from exc
