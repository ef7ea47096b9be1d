"""
Signed, client-carried OAuth bridge state.

The bridge keeps no session store. Everything the callback needs travels in
the ``state`` parameter as base64 of a JSON object with an HMAC-SHA256 ``sig``
computed over the canonical JSON of the remaining fields.
"""

import base64
import binascii
import hashlib
import hmac
import json
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from services.common.http_errors import StateExpiredError, StateInvalidError

SIGNATURE_FIELD = "sig"
DEFAULT_STATE_TTL_SECONDS = 600


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


def canonical_json(data: Dict[str, Any]) -> bytes:
    """Deterministic JSON encoding used as the HMAC input."""
    return json.dumps(data, sort_keys=True, separators=(",", ":")).encode("utf-8")


def compute_signature(data: Dict[str, Any], secret: str) -> str:
    """Hex HMAC-SHA256 of the canonical form of ``data`` without its signature."""
    unsigned = {k: v for k, v in data.items() if k != SIGNATURE_FIELD}
    return hmac.new(
        secret.encode("utf-8"), canonical_json(unsigned), hashlib.sha256
    ).hexdigest()


def b64encode_text(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii")


def b64decode_text(text: str) -> bytes:
    """
    Strict URL-safe base64 decode.

    Stray characters are an error, and so is any text that is not exactly
    what b64encode_text produces for the decoded bytes: the unused low bits
    of the last character must be zero, so each payload has one encoding.
    """
    raw = base64.b64decode(text.encode("ascii"), altchars=b"-_", validate=True)
    if b64encode_text(raw) != text:
        raise binascii.Error("Non-canonical base64")
    return raw


def sign_state(state: Dict[str, Any], secret: str) -> str:
    """
    Sign a state object and encode it for transport.

    Args:
        state: JSON-serializable fields; an existing ``sig`` is replaced
        secret: Server-held signing secret

    Returns:
        URL-safe base64 text of the signed JSON object
    """
    unsigned = {k: v for k, v in state.items() if k != SIGNATURE_FIELD}
    signed = {**unsigned, SIGNATURE_FIELD: compute_signature(unsigned, secret)}
    return b64encode_text(canonical_json(signed))


def verify_state(
    token: str,
    secret: str,
    now: Optional[int] = None,
    ttl_seconds: int = DEFAULT_STATE_TTL_SECONDS,
    timestamp_field: str = "ts",
) -> Dict[str, Any]:
    """
    Decode a signed state, check its signature, then its age.

    Args:
        token: Text produced by sign_state
        secret: Server-held signing secret
        now: Current epoch milliseconds (defaults to the clock)
        ttl_seconds: Maximum age in seconds
        timestamp_field: Field holding the issue time in epoch milliseconds

    Returns:
        The state fields without the signature

    Raises:
        StateInvalidError: Undecodable payload or signature mismatch
        StateExpiredError: Older than ``ttl_seconds``
    """
    try:
        payload = json.loads(b64decode_text(token).decode("utf-8"))
    except (binascii.Error, UnicodeError, ValueError):
        raise StateInvalidError("Malformed state")

    if not isinstance(payload, dict) or not isinstance(
        payload.get(SIGNATURE_FIELD), str
    ):
        raise StateInvalidError("Malformed state")

    carried = payload.pop(SIGNATURE_FIELD)
    expected = compute_signature(payload, secret)
    if not hmac.compare_digest(expected.encode("ascii"), carried.encode("utf-8")):
        raise StateInvalidError()

    issued_at = payload.get(timestamp_field)
    if not isinstance(issued_at, int) or isinstance(issued_at, bool):
        raise StateInvalidError("Malformed state")

    current = now_ms() if now is None else now
    if current - issued_at > ttl_seconds * 1000:
        raise StateExpiredError()

    return payload


@dataclass(frozen=True)
class BridgeState:
    """In-flight OAuth context between the authorize and callback steps."""

    client_redirect_uri: str
    issued_at: int
    client_state: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "redirect_uri": self.client_redirect_uri,
            "ts": self.issued_at,
        }
        if self.client_state is not None:
            data["client_state"] = self.client_state
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BridgeState":
        redirect_uri = data.get("redirect_uri")
        client_state = data.get("client_state")
        if not isinstance(redirect_uri, str) or not redirect_uri:
            raise StateInvalidError("Malformed state")
        if client_state is not None and not isinstance(client_state, str):
            raise StateInvalidError("Malformed state")
        return cls(
            client_redirect_uri=redirect_uri,
            issued_at=data["ts"],
            client_state=client_state,
        )

    def sign(self, secret: str) -> str:
        return sign_state(self.to_dict(), secret)

    @classmethod
    def verify(
        cls,
        token: str,
        secret: str,
        now: Optional[int] = None,
        ttl_seconds: int = DEFAULT_STATE_TTL_SECONDS,
    ) -> "BridgeState":
        return cls.from_dict(verify_state(token, secret, now, ttl_seconds))
