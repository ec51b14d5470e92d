"""
Token Codec: JWT structure without verification
===============================================
Read the header and claims of a three-segment JWT, derive expiry
information from the claims, and build unsigned mock tokens.

NOTHING here verifies a signature. Decoded claims are for display and
client-side housekeeping only; never make a trust decision on them.
Mock tokens carry a fixed placeholder instead of a signature.

Segment encoding: base64url (RFC 4648 §5), '=' padding stripped.
Times: ``iat`` / ``exp`` are seconds since the epoch. Every accessor
takes an optional ``now`` (seconds) so callers and tests can pin the
clock.

decode_token() and decode_token_header() fail open: they return None
for anything that is not a decodable JWT. parse_token() is the raising
form when the reason matters.
"""

import base64
import binascii
import copy
import json
import logging
import math
import secrets
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Tuple

from ..exceptions import TokenDecodeError, TokenError, TokenFormatError

logger = logging.getLogger(__name__)

ALGORITHM              = "HS256"
HEADER_TYPE            = "JWT"
ISSUER                 = "HealthPro ERP Backend"
DEFAULT_SUBJECT        = "test-user"
DEFAULT_USER_ID        = "test-user@example.com"
DEFAULT_ROLE_PROFILE   = "Healthcare Provider"
ACCESS_TOKEN_TYPE      = "access"
REFRESH_TOKEN_TYPE     = "refresh"
ACCESS_TOKEN_TTL       = 30 * 60         # seconds
REFRESH_TOKEN_TTL      = 24 * 60 * 60    # seconds
DEFAULT_BUFFER_MINUTES = 5
UNSIGNED_SIGNATURE     = "UNSIGNED_TOKEN_FOR_TESTING_ONLY"
MAX_REMAINING_MS       = 2 ** 63 - 1

# Copied on every use; never mutate in place.
DEFAULT_ACCESS_SCOPE = {
    "level": "facility",
    "organization": "ORG-001",
    "region": None,
    "facilities": ["FAC-001"],
    "supplier_id": None,
    "practitioner_id": None,
    "org_company_id": None,
    "region_company_id": None,
}


@dataclass(frozen=True)
class TokenUser:
    user_id: Optional[str]
    session_id: Optional[str]
    role_profile: Optional[str]
    access_scope: Optional[Dict[str, Any]]
    token_type: str
    expires_at: Optional[datetime]
    issued_at: Optional[datetime]


@dataclass(frozen=True)
class TokenSummary:
    """Debug view of a token. ``expires_at`` is ISO-8601 UTC."""

    valid: bool
    expired: bool
    token_type: str
    user_id: Optional[str]
    expires_in: str
    role_profile: Optional[str]
    expires_at: Optional[str]


# ── base64url ────────────────────────────────────────────────────────────────
def base64url_encode(data) -> str:
    """URL-safe base64 without '=' padding. str input is UTF-8 encoded."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def base64url_decode(text: str) -> bytes:
    """Re-add padding and decode. Raises TokenDecodeError on bad input."""
    if not isinstance(text, str):
        raise TokenDecodeError("Token segment must be a string.")
    padded = text + "=" * (-len(text) % 4)
    try:
        return base64.b64decode(padded, altchars=b"-_", validate=True)
    except (binascii.Error, ValueError) as exc:
        raise TokenDecodeError("Token segment is not valid base64url.") from exc


def generate_random_id() -> str:
    return secrets.token_hex(12)


def _json_compact(value) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


# ── decoding ─────────────────────────────────────────────────────────────────
def _decode_segment(segment: str, what: str) -> Dict[str, Any]:
    raw = base64url_decode(segment)
    try:
        value = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise TokenDecodeError(f"Token {what} is not valid JSON.") from exc
    if not isinstance(value, dict):
        raise TokenDecodeError(f"Token {what} is not a JSON object.")
    return value


def parse_token(token: str) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """
    Split and decode a JWT into (header, claims).

    Raises TokenFormatError when the token is not three '.'-separated
    segments (``looks_encrypted`` is set when there is no '.' at all),
    and TokenDecodeError when a segment is not base64url JSON.
    """
    if not isinstance(token, str):
        raise TokenFormatError("Token must be a string.")
    token = token.strip()
    if "." not in token:
        raise TokenFormatError(
            "Token appears to be encrypted, not a JWT.", looks_encrypted=True
        )
    parts = token.split(".")
    if len(parts) != 3:
        raise TokenFormatError(f"Expected 3 '.'-separated segments, found {len(parts)}.")
    return _decode_segment(parts[0], "header"), _decode_segment(parts[1], "claims")


def _log_failure(exc: TokenError):
    if getattr(exc, "looks_encrypted", False):
        logger.warning("Token appears to be encrypted. Decryption is not supported here.")
    else:
        logger.debug(f"Token not decodable: {exc.message}")


def decode_token(token: str) -> Optional[Dict[str, Any]]:
    """Claims of ``token``, or None if it is not a decodable JWT."""
    try:
        return parse_token(token)[1]
    except TokenError as exc:
        _log_failure(exc)
        return None


def decode_token_header(token: str) -> Optional[Dict[str, Any]]:
    try:
        return parse_token(token)[0]
    except TokenError as exc:
        _log_failure(exc)
        return None


# ── derived accessors ────────────────────────────────────────────────────────
def _now(now: Optional[float]) -> float:
    return time.time() if now is None else now


def _seconds(claims: Optional[Mapping], name: str) -> Optional[float]:
    """Numeric claim, or None when absent, zero, not a number or not finite."""
    if not claims:
        return None
    value = claims.get(name)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not value:
        return None
    if not math.isfinite(value):
        return None
    return value


def _instant(seconds: Optional[float]) -> Optional[datetime]:
    if seconds is None:
        return None
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def _iso(instant: Optional[datetime]) -> Optional[str]:
    if instant is None:
        return None
    return instant.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _remaining_ms(exp: Optional[float], now: float) -> int:
    if exp is None:
        return 0
    try:
        return max(0, int(exp * 1000) - int(now * 1000))
    except (OverflowError, ValueError):
        # exp * 1000 overflows a float; treat as far future
        return 0 if exp < 0 else MAX_REMAINING_MS


def get_token_expiry_date(token: str) -> Optional[datetime]:
    return _instant(_seconds(decode_token(token), "exp"))


def is_token_expired(token: str, buffer_minutes: float = DEFAULT_BUFFER_MINUTES,
                     now: Optional[float] = None) -> bool:
    """
    True when ``exp <= now + buffer``. A token that cannot be decoded or
    has no ``exp`` counts as expired.
    """
    exp = _seconds(decode_token(token), "exp")
    if exp is None:
        return True
    return exp <= math.floor(_now(now)) + buffer_minutes * 60


def get_token_time_remaining(token: str, now: Optional[float] = None) -> int:
    """Milliseconds until expiry; 0 when expired, missing or undecodable."""
    return _remaining_ms(_seconds(decode_token(token), "exp"), _now(now))


def get_token_expiration(token: str, now: Optional[float] = None) -> Optional[int]:
    """Whole seconds until expiry, or None when already expired."""
    remaining = get_token_time_remaining(token, now)
    if remaining == 0:
        return None
    return remaining // 1000


def describe_expiration(token: str, now: Optional[float] = None) -> Optional[str]:
    claims = decode_token(token)
    if claims is None or _seconds(claims, "exp") is None:
        return None
    remaining = get_token_expiration(token, now)
    if not remaining:
        return "Token has expired"
    minutes, seconds = divmod(remaining, 60)
    return f"Token expires in {minutes}m {seconds}s"


def get_user_from_token(token: str) -> Optional[TokenUser]:
    claims = decode_token(token)
    if claims is None:
        return None
    return TokenUser(
        user_id=claims.get("user_id"),
        session_id=claims.get("session_id"),
        role_profile=claims.get("role_profile"),
        access_scope=claims.get("access_scope"),
        token_type=claims.get("token_type") or ACCESS_TOKEN_TYPE,
        expires_at=_instant(_seconds(claims, "exp")),
        issued_at=_instant(_seconds(claims, "iat")),
    )


def get_token_summary(token: str, now: Optional[float] = None) -> Optional[TokenSummary]:
    """
    Validity here ignores the refresh buffer: a token is valid until
    ``exp`` itself. Use is_token_expired() to decide when to refresh.
    """
    claims = decode_token(token)
    if claims is None:
        return None

    current   = _now(now)
    exp       = _seconds(claims, "exp")
    expired   = exp is None or exp <= math.floor(current)
    remaining = _remaining_ms(exp, current)
    expires_in = f"{remaining // 60000} minutes" if remaining > 0 else "expired"

    return TokenSummary(
        valid=not expired,
        expired=expired,
        token_type=claims.get("token_type") or ACCESS_TOKEN_TYPE,
        user_id=claims.get("user_id"),
        expires_in=expires_in,
        role_profile=claims.get("role_profile"),
        expires_at=_iso(_instant(exp)),
    )


def has_compliance_user_role(login_response: Mapping) -> bool:
    """True when a login response carries ``data.user.regulator``."""
    data = login_response.get("data") if isinstance(login_response, Mapping) else None
    user = data.get("user") if isinstance(data, Mapping) else None
    return isinstance(user, Mapping) and "regulator" in user


# ── encoding (mock, unsigned) ────────────────────────────────────────────────
def encode_token(claims: Optional[Mapping[str, Any]] = None,
                 now: Optional[float] = None) -> str:
    """
    Build an UNSIGNED three-segment token. Missing recognized claims get
    defaults; ``access_scope`` keys are merged over DEFAULT_ACCESS_SCOPE;
    every other caller key overrides its default.
    """
    claims = dict(claims or {})
    issued_at  = _seconds(claims, "iat") or math.floor(_now(now))
    token_type = claims.get("token_type") or ACCESS_TOKEN_TYPE
    ttl = REFRESH_TOKEN_TTL if token_type == REFRESH_TOKEN_TYPE else ACCESS_TOKEN_TTL

    full = {
        "iss": ISSUER,
        "sub": claims.get("user_id") or DEFAULT_SUBJECT,
        "iat": issued_at,
        "exp": issued_at + ttl,
        "jti": generate_random_id(),
        "session_id": claims.get("session_id") or generate_random_id(),
        "user_id": DEFAULT_USER_ID,
        "role_profile": DEFAULT_ROLE_PROFILE,
        "access_scope": copy.deepcopy(DEFAULT_ACCESS_SCOPE),
        "token_type": ACCESS_TOKEN_TYPE,
    }
    scope = claims.pop("access_scope", None)
    full.update(claims)
    if isinstance(scope, Mapping):
        full["access_scope"].update(scope)
    elif scope is not None:
        full["access_scope"] = scope

    try:
        body = _json_compact(full)
    except (TypeError, ValueError) as exc:
        raise TokenError("Claims cannot be serialized to JSON.") from exc
    header = _json_compact({"alg": ALGORITHM, "typ": HEADER_TYPE})
    return f"{base64url_encode(header)}.{base64url_encode(body)}.{UNSIGNED_SIGNATURE}"


def create_mock_access_token(user_id: str, role_profile: str = None,
                             access_scope: Mapping = None,
                             now: Optional[float] = None) -> str:
    return encode_token({
        "user_id": user_id,
        "role_profile": role_profile or DEFAULT_ROLE_PROFILE,
        "access_scope": dict(access_scope or {}),
        "token_type": ACCESS_TOKEN_TYPE,
    }, now=now)


def create_mock_refresh_token(user_id: str, role_profile: str = None,
                              session_id: str = None,
                              now: Optional[float] = None) -> str:
    return encode_token({
        "user_id": user_id,
        "role_profile": role_profile or DEFAULT_ROLE_PROFILE,
        "session_id": session_id or generate_random_id(),
        "token_type": REFRESH_TOKEN_TYPE,
    }, now=now)


# Legacy names, kept for existing callers.
decode_jwt = decode_token
encode_jwt = encode_token
