"""Tests for the User resource manager and the credential verifier."""

import os
import sys
import time
from pathlib import Path

import pytest
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from journal.core.config import settings
from journal.core.errors import DuplicateEmail, DuplicateUsername, InvalidField, MissingField, NotFound
from journal.core.security import (
    ALGORITHM,
    AUDIENCE,
    INVALID_TOKEN,
    ISSUER,
    NO_SUCH_IDENTITY,
    WRONG_SECRET,
    MalformedCredentialsError,
    decode_basic_credentials,
    decode_token,
    encode_basic_credentials,
    issue_token,
    verify,
    verify_token,
)
from journal.crud import users as users_crud
from journal.crud.users import create_user, delete_user, get_user, list_users, update_user
from journal.db.session import Base

# Ensure models are registered so metadata tables are created
from journal.models import entry as entry_model  # noqa: F401
from journal.models import user as user_model  # noqa: F401

JD = {"username": "jd", "name": "John Doe", "email": "john.doe@protonmail.com", "password": "123"}
MS = {"username": "ms", "name": "Mary Smith", "email": "mary.smith@protonmail.com", "password": "456"}


@pytest.fixture()
def db_session():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False})
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


def test_create_user_assigns_sequential_ids(db_session):
    first = create_user(db_session, JD)
    second = create_user(db_session, MS)
    assert (first.id, second.id) == (1, 2)
    assert [u.username for u in list_users(db_session)] == ["jd", "ms"]


def test_create_user_trims_everything_but_the_password(db_session):
    user = create_user(
        db_session,
        {"username": " jd ", "name": " John Doe ", "email": " john.doe@protonmail.com ", "password": " 123 "},
    )
    assert (user.username, user.name, user.email, user.password) == (
        "jd",
        "John Doe",
        "john.doe@protonmail.com",
        " 123 ",
    )


@pytest.mark.parametrize("field", ["username", "name", "email", "password"])
def test_create_user_names_the_missing_field(db_session, field):
    payload = dict(JD)
    del payload[field]
    with pytest.raises(MissingField) as excinfo:
        create_user(db_session, payload)
    assert excinfo.value.message == f"Your request body did not specify a '{field}'"


def test_create_user_reports_the_first_missing_field_in_declaration_order(db_session):
    with pytest.raises(MissingField) as excinfo:
        create_user(db_session, {"password": "x", "email": "a@b.c"})
    assert excinfo.value.field == "username"


def test_blank_and_non_string_values(db_session):
    with pytest.raises(MissingField):
        create_user(db_session, {**JD, "name": "   "})
    with pytest.raises(InvalidField):
        create_user(db_session, {**JD, "username": 17})


def test_duplicate_trimmed_username_is_rejected(db_session):
    create_user(db_session, JD)
    with pytest.raises(DuplicateUsername) as excinfo:
        create_user(db_session, {**MS, "username": "  jd\t"})
    assert excinfo.value.message == "There already exists a User resource with the username that you provided"
    assert len(list_users(db_session)) == 1


def test_duplicate_email_is_rejected(db_session):
    create_user(db_session, JD)
    with pytest.raises(DuplicateEmail) as excinfo:
        create_user(db_session, {**MS, "email": JD["email"]})
    assert excinfo.value.message == "There already exists a User resource with the email that you provided"


def test_unique_constraint_race_maps_to_duplicate_errors(db_session, monkeypatch):
    create_user(db_session, JD)
    # Simulate a concurrent registration that passed the lookup before the insert.
    monkeypatch.setattr(users_crud, "_find_by", lambda *args, **kwargs: None)
    with pytest.raises(DuplicateEmail):
        create_user(db_session, {**MS, "email": JD["email"]})
    with pytest.raises(DuplicateUsername):
        create_user(db_session, {**MS, "username": JD["username"]})
    assert [u.username for u in list_users(db_session)] == ["jd"]


def test_get_user_missing(db_session):
    with pytest.raises(NotFound) as excinfo:
        get_user(db_session, 3)
    assert excinfo.value.message == "There doesn't exist a User resource with an ID of 3"


def test_get_user_with_an_id_beyond_the_integer_column(db_session):
    create_user(db_session, JD)
    with pytest.raises(NotFound) as excinfo:
        get_user(db_session, 2**64)
    assert excinfo.value.message == f"There doesn't exist a User resource with an ID of {2**64}"


def test_update_user_merges_a_subset_of_fields(db_session):
    user = create_user(db_session, JD)
    update_user(db_session, user, {"username": " jdoe ", "password": " secret "})
    refreshed = get_user(db_session, user.id)
    assert refreshed.username == "jdoe"
    assert refreshed.password == " secret "
    assert refreshed.email == JD["email"]


def test_update_user_uniqueness_only_against_other_users(db_session):
    jd = create_user(db_session, JD)
    create_user(db_session, MS)
    update_user(db_session, jd, {"username": "jd", "email": JD["email"]})

    with pytest.raises(DuplicateUsername) as excinfo:
        update_user(db_session, jd, {"username": "ms"})
    assert excinfo.value.message == "There already exists a User resource with a username of 'ms'"
    with pytest.raises(DuplicateEmail) as excinfo:
        update_user(db_session, jd, {"email": MS["email"]})
    assert excinfo.value.message == "There already exists a User resource with an email of 'mary.smith@protonmail.com'"


def test_delete_user(db_session):
    user = create_user(db_session, JD)
    delete_user(db_session, user)
    assert list_users(db_session) == []
    assert create_user(db_session, MS).id == 2


def test_verify_credentials(db_session):
    create_user(db_session, {**JD, "password": " 123 "})
    assert verify(db_session, JD["email"], " 123 ").ok
    assert verify(db_session, JD["email"], "123").reason == WRONG_SECRET
    assert verify(db_session, JD["email"].upper(), " 123 ").reason == NO_SUCH_IDENTITY
    assert verify(db_session, "nobody@example.com", "123").reason == NO_SUCH_IDENTITY


def test_decode_basic_credentials():
    assert decode_basic_credentials(None) is None
    assert decode_basic_credentials("Bearer abc") is None
    assert decode_basic_credentials(encode_basic_credentials("a@b.c", " p:w ")) == ("a@b.c", " p:w ")
    with pytest.raises(MalformedCredentialsError):
        decode_basic_credentials("Basic not-base64!")
    with pytest.raises(MalformedCredentialsError):
        decode_basic_credentials("Basic bm9jb2xvbg==")  # "nocolon"


def test_verify_token(db_session):
    user = create_user(db_session, JD)
    token = issue_token(user)
    assert decode_token(token).user_id == user.id
    assert verify_token(db_session, token).user is user
    assert verify_token(db_session, token + "x").reason == INVALID_TOKEN

    now = int(time.time())
    claims = {"iat": now, "exp": now + 60, "typ": "access", "aud": AUDIENCE, "iss": ISSUER}
    for sub in ("2", "99999999999999999999"):
        orphan = jwt.encode({**claims, "sub": sub}, settings.JWT_SECRET, algorithm=ALGORITHM)
        assert verify_token(db_session, orphan).reason == NO_SUCH_IDENTITY
    refresh = jwt.encode({**claims, "sub": "1", "typ": "refresh"}, settings.JWT_SECRET, algorithm=ALGORITHM)
    assert verify_token(db_session, refresh).reason == INVALID_TOKEN


@pytest.mark.parametrize(
    "detail, expected",
    [
        ("UNIQUE constraint failed: users.email", "email"),
        ("UNIQUE constraint failed: users.username", "username"),
        ("UNIQUE constraint failed: index 'ux_users_email'", "email"),
        (
            'duplicate key value violates unique constraint "users_username_key"\n'
            "DETAIL:  Key (username)=(my-email) already exists.",
            "username",
        ),
        ("NOT NULL constraint failed: users.name", None),
    ],
)
def test_unique_violation_column(detail, expected):
    assert users_crud._violated_column(detail) == expected


def test_duplicate_is_classified_by_column_not_by_the_echoed_value(db_session, monkeypatch):
    create_user(db_session, JD)
    orig = Exception(
        'duplicate key value violates unique constraint "users_username_key"\n'
        "DETAIL:  Key (username)=(email) already exists."
    )

    def commit():
        raise IntegrityError("INSERT INTO users ...", {}, orig)

    monkeypatch.setattr(users_crud, "_find_by", lambda *args, **kwargs: None)
    monkeypatch.setattr(db_session, "commit", commit)
    with pytest.raises(DuplicateUsername):
        create_user(db_session, {**MS, "username": "email"})
