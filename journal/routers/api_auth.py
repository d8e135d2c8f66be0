from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from ..core.security import issue_token
from ..deps.auth import require_basic_user
from ..models.user import User
from ..schemas.auth import TokenResponse

router = APIRouter(prefix="/api", tags=["auth"])
logger = logging.getLogger(__name__)


@router.post("/tokens", response_model=TokenResponse, summary="Exchange Basic credentials for a bearer token")
async def api_issue_token(user: User = Depends(require_basic_user)):
    token = issue_token(user)
    logger.info("token.issued", extra={"extra_data": {"user_id": user.id}})
    return TokenResponse(token=token)
