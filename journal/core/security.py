"""Credential handling: Basic ``email:password`` pairs and signed bearer tokens."""

from __future__ import annotations

import base64
import binascii
import hmac
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi.security.utils import get_authorization_scheme_param
from jose import JWTError, jwt
from pydantic import BaseModel, ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.session import fits_row_id
from ..models.user import User
from .config import settings

NO_SUCH_IDENTITY = "NoSuchIdentity"
WRONG_SECRET = "WrongSecret"
MALFORMED_CREDENTIALS = "MalformedCredentials"
INVALID_TOKEN = "InvalidToken"

ALGORITHM = "HS256"
AUDIENCE = "journal-clients"
ISSUER = "journal"


class MalformedCredentialsError(ValueError):
    """A Basic header was sent but does not decode to ``email:password``."""


@dataclass(frozen=True)
class VerificationResult:
    ok: bool
    user: User | None = None
    reason: str | None = None


def decode_basic_credentials(authorization: str | None) -> tuple[str, str] | None:
    """Split ``Authorization: Basic base64(email:password)`` into its parts.

    Returns ``None`` when no Basic credentials were sent at all. Neither part
    is trimmed; the password is everything after the first colon.
    """
    if not authorization:
        return None
    scheme, param = get_authorization_scheme_param(authorization)
    if scheme.lower() != "basic":
        return None
    try:
        decoded = base64.b64decode(param, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise MalformedCredentialsError("Basic credentials are not valid base64") from exc
    email, sep, password = decoded.partition(":")
    if not sep:
        raise MalformedCredentialsError("Basic credentials lack a ':' separator")
    return email, password


def encode_basic_credentials(email: str, password: str) -> str:
    token = base64.b64encode(f"{email}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


def verify(db: Session, email: str, password: str) -> VerificationResult:
    user = db.execute(select(User).where(User.email == email)).scalars().first()
    if user is None:
        return VerificationResult(ok=False, reason=NO_SUCH_IDENTITY)
    if not hmac.compare_digest(user.password.encode("utf-8"), password.encode("utf-8")):
        return VerificationResult(ok=False, reason=WRONG_SECRET)
    return VerificationResult(ok=True, user=user)


class TokenPayload(BaseModel):
    sub: str
    exp: datetime
    iat: datetime
    typ: str
    aud: str
    iss: str

    @property
    def user_id(self) -> int:
        return int(self.sub)


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def issue_token(user: User) -> str:
    """Sign an access token naming ``user`` as its subject."""
    now = _now()
    payload: dict[str, Any] = {
        "sub": str(user.id),
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=settings.JWT_ACCESS_TTL_MIN)).timestamp()),
        "typ": "access",
        "aud": AUDIENCE,
        "iss": ISSUER,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=ALGORITHM)


def decode_token(token: str) -> TokenPayload:
    try:
        decoded = jwt.decode(token, settings.JWT_SECRET, algorithms=[ALGORITHM], audience=AUDIENCE, issuer=ISSUER)
    except JWTError as exc:
        raise ValueError("Invalid token") from exc
    try:
        payload = TokenPayload.model_validate(decoded)
    except ValidationError as exc:
        raise ValueError("Invalid token payload") from exc
    if payload.typ != "access" or not payload.sub.isdigit():
        raise ValueError("Invalid token subject")
    return payload


def verify_token(db: Session, token: str) -> VerificationResult:
    """Resolve a bearer token to its user. A token whose user is gone fails like a forged one."""
    try:
        payload = decode_token(token)
    except ValueError:
        return VerificationResult(ok=False, reason=INVALID_TOKEN)
    user = db.get(User, payload.user_id) if fits_row_id(payload.user_id) else None
    if user is None:
        return VerificationResult(ok=False, reason=NO_SUCH_IDENTITY)
    return VerificationResult(ok=True, user=user)
