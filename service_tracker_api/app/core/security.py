"""
Identity verification and caller resolution.

Authentication is delegated to an external identity provider.  The
provider issues JSON Web Tokens signed with HMAC‑SHA256 using a secret
shared with this API (``settings.identity_secret``).  Tokens embed the
user id (``sub``), display names and an opaque ``role`` claim, plus an
expiration timestamp (``exp``).  This module only reads those claims;
it never changes identity state.

Each request resolves the token once into a caller variant,
:class:`RegularUser` or :class:`AdminUser`.  The caller object is then
passed explicitly into every admin‑gated service operation instead of
re‑reading the role claim ad hoc.
"""

import base64
import enum
import hashlib
import hmac
import json
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import settings


class AuthState(str, enum.Enum):
    """Tri‑state reported by the identity provider."""

    LOADING = "loading"
    SIGNED_IN = "signed_in"
    SIGNED_OUT = "signed_out"


@dataclass(frozen=True)
class Identity:
    """Claims read from a verified identity token."""

    user_id: str
    username: Optional[str] = None
    first_name: Optional[str] = None
    full_name: Optional[str] = None
    role: Optional[str] = None

    @property
    def display_name(self) -> str:
        """Name used in the dashboard greeting."""
        return self.full_name or self.username or "User"

    @property
    def record_username(self) -> str:
        """Name stamped on records this user creates."""
        return self.username or self.first_name or "Unknown"


@dataclass(frozen=True)
class RegularUser:
    identity: Identity
    is_admin = False

    @property
    def user_id(self) -> str:
        return self.identity.user_id


@dataclass(frozen=True)
class AdminUser:
    identity: Identity
    is_admin = True

    @property
    def user_id(self) -> str:
        return self.identity.user_id


Caller = Union[RegularUser, AdminUser]


def is_admin_role(role: Optional[str]) -> bool:
    """Return True when the role claim equals the admin sentinel."""
    return role is not None and role == settings.admin_role


def resolve_caller(identity: Identity) -> Caller:
    """Resolve an identity into its caller variant exactly once."""
    if is_admin_role(identity.role):
        return AdminUser(identity)
    return RegularUser(identity)


def _b64_url_encode(data: bytes) -> str:
    """Base64‑url encode bytes without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("utf-8")


def _b64_url_decode(data: str) -> bytes:
    """Decode base64‑url encoded string, adding padding if necessary."""
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _sign(message: bytes, secret: str) -> bytes:
    """Compute HMAC‑SHA256 signature of a message using the given secret."""
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).digest()


def create_identity_token(claims: Dict[str, Any], expires_delta: Optional[int] = None) -> str:
    """Create a signed token with the given claims.

    Used by development tooling and tests to stand in for the identity
    provider.  The payload is extended with an ``exp`` field holding
    the expiration time as a UNIX timestamp.

    Parameters
    ----------
    claims : dict
        Claims to embed, e.g. ``{"sub": "user_123", "role": "admin"}``.
    expires_delta : Optional[int]
        Lifetime of the token in seconds.  Defaults to
        ``settings.token_expire_minutes * 60``.

    Returns
    -------
    str
        A token of the form ``header.payload.signature``.
    """
    to_encode = dict(claims)
    exp_seconds = expires_delta or settings.token_expire_minutes * 60
    to_encode["exp"] = int(time.time()) + exp_seconds
    header = {"alg": "HS256", "typ": "JWT"}
    header_b64 = _b64_url_encode(json.dumps(header, separators=(",", ":")).encode("utf-8"))
    payload_b64 = _b64_url_encode(json.dumps(to_encode, separators=(",", ":")).encode("utf-8"))
    signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
    signature_b64 = _b64_url_encode(_sign(signing_input, settings.identity_secret))
    return f"{header_b64}.{payload_b64}.{signature_b64}"


def decode_identity_token(token: str) -> Optional[Dict[str, Any]]:
    """Verify and decode a token.

    Checks the HMAC signature with a constant‑time comparison and the
    ``exp`` field.  Returns the payload dictionary when valid, otherwise
    ``None``.
    """
    parts = token.split(".")
    if len(parts) != 3:
        return None
    header_b64, payload_b64, signature_b64 = parts
    signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
    expected_sig = _sign(signing_input, settings.identity_secret)
    try:
        actual_sig = _b64_url_decode(signature_b64)
        if not hmac.compare_digest(expected_sig, actual_sig):
            return None
        data = json.loads(_b64_url_decode(payload_b64).decode("utf-8"))
        if not isinstance(data, dict) or not data.get("sub"):
            return None
        if data.get("exp") is None or int(data["exp"]) < int(time.time()):
            return None
    except (ValueError, TypeError, UnicodeDecodeError):
        return None
    return data


def identity_from_claims(claims: Dict[str, Any]) -> Identity:
    return Identity(
        user_id=str(claims["sub"]),
        username=claims.get("username"),
        first_name=claims.get("first_name"),
        full_name=claims.get("full_name"),
        role=claims.get("role"),
    )


security = HTTPBearer(auto_error=False)


def get_optional_identity(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Optional[Identity]:
    """Dependency returning the verified identity, or ``None`` when signed out."""
    if credentials is None:
        return None
    claims = decode_identity_token(credentials.credentials)
    if not claims:
        return None
    return identity_from_claims(claims)


def get_current_identity(
    identity: Optional[Identity] = Depends(get_optional_identity),
) -> Identity:
    """Dependency that requires a signed‑in identity.

    Raises HTTP 401 when the request carries no token or the token is
    invalid or expired.
    """
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity


def get_caller(identity: Identity = Depends(get_current_identity)) -> Caller:
    """Dependency resolving the signed‑in identity into a caller variant."""
    return resolve_caller(identity)
