from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ..crud.users import create_user, delete_user, get_user, list_users, update_user
from ..db.session import get_db
from ..deps.auth import require_user, require_user_owner
from ..deps.payload import json_payload
from ..models.user import User
from ..schemas.user import UserList, UserOut

router = APIRouter(prefix="/api", tags=["users"])


@router.post("/users", response_model=UserOut, status_code=201)
def api_create_user(
    response: Response,
    payload: dict[str, Any] = Depends(json_payload),
    db: Session = Depends(get_db),
):
    user = create_user(db, payload)
    response.headers["Location"] = f"/api/users/{user.id}"
    return user


@router.get("/users", response_model=UserList)
def api_list_users(db: Session = Depends(get_db)):
    return UserList(users=[UserOut.model_validate(user) for user in list_users(db)])


@router.get("/users/{user_id}", response_model=UserOut)
def api_get_user(user_id: int, db: Session = Depends(get_db)):
    return get_user(db, user_id)


@router.put("/users/{user_id}", response_model=UserOut)
def api_update_user(
    user_id: int,
    actor: User = Depends(require_user_owner("edit")),
    payload: dict[str, Any] = Depends(json_payload),
    db: Session = Depends(get_db),
):
    return update_user(db, actor, payload)


@router.delete("/users/{user_id}", status_code=204, response_class=Response)
def api_delete_user(
    user_id: int,
    actor: User = Depends(require_user_owner("delete")),
    db: Session = Depends(get_db),
):
    delete_user(db, actor)
    return Response(status_code=204)


@router.get("/user-profile", response_model=UserOut, summary="Public profile of the authenticated user")
def api_user_profile(actor: User = Depends(require_user)):
    return actor
