"""Access control for every endpoint that needs a signed-in user.

Requests move through three gates before a resource manager runs: the
credentials are decoded and verified, the acting user is compared with the
resource being touched, and only then does the route see the payload.

User resources are only ever managed with Basic credentials. Entries and the
profile also accept a bearer token obtained from ``POST /api/tokens``.
"""

from __future__ import annotations

import logging
from typing import Callable

from fastapi import Depends, Header, Request
from fastapi.security.utils import get_authorization_scheme_param
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.errors import AuthenticationRequired, Forbidden
from ..core.security import (
    MALFORMED_CREDENTIALS,
    MalformedCredentialsError,
    decode_basic_credentials,
    verify,
    verify_token,
)
from ..crud.entries import get_entry
from ..db.session import get_db
from ..middlewares import principal_ctx_var
from ..models.entry import Entry
from ..models.user import User

logger = logging.getLogger(__name__)


def _challenge(scheme: str = "Basic") -> dict[str, str]:
    return {"WWW-Authenticate": f'{scheme} realm="{settings.BASIC_AUTH_REALM}"'}


def _log_failure(request: Request, reason: str) -> None:
    logger.warning(
        "auth.failed",
        extra={"extra_data": {"reason": reason, "path": request.url.path, "method": request.method}},
    )


def _rejected(request: Request, reason: str) -> AuthenticationRequired:
    _log_failure(request, reason)
    return AuthenticationRequired("authentication required - incorrect email and/or password", headers=_challenge())


def _set_principal(request: Request, principal: str) -> None:
    principal_ctx_var.set(principal)
    request.state.principal = principal


def _basic_user(request: Request, authorization: str | None, db: Session) -> User:
    try:
        credentials = decode_basic_credentials(authorization)
    except MalformedCredentialsError as exc:
        raise _rejected(request, MALFORMED_CREDENTIALS) from exc
    if credentials is None:
        raise AuthenticationRequired("authentication required - via Basic authentication", headers=_challenge())

    email, password = credentials
    result = verify(db, email, password)
    if not result.ok:
        raise _rejected(request, result.reason or "unknown")
    _set_principal(request, f"user:{result.user.id}")
    return result.user


# Both gates are coroutines so the principal they record stays visible in the
# context the endpoint, and therefore every log line it writes, runs in.
async def require_basic_user(
    request: Request,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db),
) -> User:
    return _basic_user(request, authorization, db)


async def require_user(
    request: Request,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db),
) -> User:
    """Basic credentials, or ``Authorization: Bearer <token>``."""
    scheme, token = get_authorization_scheme_param(authorization)
    if scheme.lower() != "bearer" or not token:
        return _basic_user(request, authorization, db)

    result = verify_token(db, token)
    if not result.ok:
        _log_failure(request, result.reason or "unknown")
        raise AuthenticationRequired(
            "authentication required - invalid or expired token", headers=_challenge("Bearer")
        )
    _set_principal(request, f"user:{result.user.id}")
    return result.user


def require_user_owner(action: str) -> Callable[..., User]:
    """Gate for User mutations: the path's ``user_id`` must be the caller's own."""

    def dependency(user_id: int, actor: User = Depends(require_basic_user)) -> User:
        if actor.id != user_id:
            raise Forbidden(f"You are not allowed to {action} any User resource different from your own")
        return actor

    return dependency


def owned_entry(
    entry_id: int,
    owner: User = Depends(require_user),
    db: Session = Depends(get_db),
) -> Entry:
    return get_entry(db, owner, entry_id)
