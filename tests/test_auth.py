import pytest
from fastapi import HTTPException
from jose import jwt

from services.auth import create_access_token, decode_identity
from shared.enums import UserRole
from shared.utils import config


def test_token_round_trip_yields_identity():
    token = create_access_token({"sub": "faculty-1", "role": "faculty", "email": "ada@university.edu", "name": "Ada"})
    identity = decode_identity(token)
    assert identity.id == "faculty-1"
    assert identity.role == UserRole.FACULTY
    assert identity.email == "ada@university.edu"
    assert identity.name == "Ada"


def test_user_id_claim_is_accepted_and_role_defaults_to_student():
    identity = decode_identity(create_access_token({"userId": "student-9"}))
    assert identity.id == "student-9"
    assert identity.role == UserRole.STUDENT


def test_unknown_role_is_rejected():
    with pytest.raises(HTTPException) as excinfo:
        decode_identity(create_access_token({"sub": "x", "role": "janitor"}))
    assert excinfo.value.status_code == 401


def test_token_signed_with_other_key_is_rejected():
    token = jwt.encode({"sub": "x", "role": "admin"}, "not-the-secret", algorithm=config.get("jwt_algorithm"))
    with pytest.raises(HTTPException) as excinfo:
        decode_identity(token)
    assert excinfo.value.status_code == 401


def test_token_without_subject_is_rejected():
    with pytest.raises(HTTPException):
        decode_identity(create_access_token({"role": "faculty"}))
