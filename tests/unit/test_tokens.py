from types import SimpleNamespace

import jwt
import pytest

from petlov.security import _bearer_token, decode_token, issue_token

SECRET = "unit-test-secret-0123456789-abcdefghij"


def _user():
    return SimpleNamespace(id=7, email="admin@example.com")


def test_issue_and_decode():
    payload = decode_token(issue_token(_user(), SECRET), SECRET)
    assert payload["sub"] == "7"
    assert payload["email"] == "admin@example.com"
    assert payload["exp"] > payload["iat"]

def test_expired_token_rejected():
    token = issue_token(_user(), SECRET, expires_hours=-1)
    with pytest.raises(jwt.ExpiredSignatureError):
        decode_token(token, SECRET)

def test_wrong_secret_rejected():
    token = issue_token(_user(), SECRET)
    with pytest.raises(jwt.InvalidSignatureError):
        decode_token(token, "another-secret-0123456789-abcdefghij")

def test_token_without_sub_rejected():
    token = jwt.encode({"exp": 9999999999}, SECRET, algorithm="HS256")
    with pytest.raises(jwt.MissingRequiredClaimError):
        decode_token(token, SECRET)

def test_bearer_header_parsing():
    assert _bearer_token("Bearer abc.def") == "abc.def"
    assert _bearer_token("bearer  abc ") == "abc"
    assert _bearer_token("Basic dXNlcg==") is None
    assert _bearer_token("Bearer ") is None
    assert _bearer_token(None) is None
