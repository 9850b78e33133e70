"""
Tests for password hashing and bearer tokens.
"""
from datetime import timedelta

import pytest
from jose import jwt

from core.exceptions import InvalidTokenError
from core.permissions import TokenKind
from core.security import TokenService, hash_password, verify_password

SECRET = "unit-test-secret-0123456789abcdef0123"


@pytest.fixture
def tokens():
    return TokenService(secret=SECRET)


def test_hash_is_salted_and_verifies():
    first = hash_password("s3cret-pass")
    second = hash_password("s3cret-pass")
    assert first != second
    assert verify_password(first, "s3cret-pass")
    assert not verify_password(first, "wrong-pass")


def test_missing_hash_never_matches():
    assert not verify_password(None, "anything")
    assert not verify_password("", "anything")


def test_token_round_trip(tokens):
    token = tokens.issue("user-1", TokenKind.USER)
    claims = tokens.verify(token)
    assert claims.principal_id == "user-1"
    assert claims.kind is TokenKind.USER


def test_patient_token_lifetime_differs(tokens):
    assert tokens.ttl_for(TokenKind.PATIENT) != tokens.ttl_for(TokenKind.USER)
    assert tokens.ttl_for(TokenKind.DOCTOR) == tokens.ttl_for(TokenKind.USER)


def test_expired_token_rejected(tokens):
    token = tokens.issue("user-1", TokenKind.USER, ttl=timedelta(seconds=-10))
    with pytest.raises(InvalidTokenError):
        tokens.verify(token)


def test_forged_signature_rejected(tokens):
    forged = TokenService(secret="another-secret-0123456789abcdef0123").issue("user-1", TokenKind.USER)
    with pytest.raises(InvalidTokenError):
        tokens.verify(forged)


def test_wrong_audience_rejected(tokens):
    other = TokenService(secret=SECRET, audience="someone-else")
    with pytest.raises(InvalidTokenError):
        tokens.verify(other.issue("user-1", TokenKind.USER))


def test_unknown_kind_rejected(tokens):
    token = jwt.encode(
        {"sub": "user-1", "kind": "robot", "iss": "medical-records-api", "aud": "medical-records-clients"},
        SECRET,
        algorithm="HS256",
    )
    with pytest.raises(InvalidTokenError):
        tokens.verify(token)


def test_garbage_rejected(tokens):
    with pytest.raises(InvalidTokenError):
        tokens.verify("not-a-token")
