import logging

import pytest

from penpal.core.errors import Unauthenticated
from penpal.core.security import verify_access_token
from penpal.modules.auth.models.auth import AuthAccount, AuthSession, AuthVerificationCode
from penpal.modules.auth.services import auth as auth_service
from penpal.modules.auth.services.auth import (
    refresh_session, request_sign_in_code, sign_out, verify_sign_in_code,
)
from penpal.modules.user_management.models.user import User

EMAIL = "Ada@Example.com"


def test_sign_in_creates_user_and_session(db):
    code, verifier = request_sign_in_code(db, EMAIL)

    assert len(code) == 8 and code.isdigit()
    stored = db.query(AuthVerificationCode).one()
    assert stored.code_hash != code

    tokens = verify_sign_in_code(db, EMAIL, code, verifier)

    user = db.query(User).one()
    assert user.email == "ada@example.com"
    assert verify_access_token(tokens.access_token) == user.id
    assert db.query(AuthSession).filter(AuthSession.user_id == user.id).count() == 1
    # Codes are single use
    assert db.query(AuthVerificationCode).count() == 0
    with pytest.raises(Unauthenticated):
        verify_sign_in_code(db, EMAIL, code, verifier)


def test_sign_in_reuses_existing_user(db, alice):
    email = db.query(User).filter(User.id == alice).one().email
    code, verifier = request_sign_in_code(db, email)

    tokens = verify_sign_in_code(db, email, code, verifier)

    assert verify_access_token(tokens.access_token) == alice
    assert db.query(AuthAccount).filter(AuthAccount.user_id == alice).count() == 1


def test_new_code_replaces_old(db, monkeypatch):
    codes = iter(["11111111", "22222222"])
    monkeypatch.setattr(auth_service, "generate_sign_in_code", lambda: next(codes))

    request_sign_in_code(db, EMAIL)
    _, second_verifier = request_sign_in_code(db, EMAIL)

    with pytest.raises(Unauthenticated):
        verify_sign_in_code(db, EMAIL, "11111111", second_verifier)
    verify_sign_in_code(db, EMAIL, "22222222", second_verifier)


def test_wrong_code_and_bad_verifier(db):
    code, verifier = request_sign_in_code(db, EMAIL)
    wrong = "0" * 8 if code != "0" * 8 else "1" * 8

    with pytest.raises(Unauthenticated):
        verify_sign_in_code(db, EMAIL, wrong, verifier)
    with pytest.raises(Unauthenticated):
        verify_sign_in_code(db, EMAIL, code, "not-a-verifier")
    with pytest.raises(Unauthenticated):
        verify_sign_in_code(db, EMAIL, code, verifier.split(".")[0] + ".forged")
    with pytest.raises(Unauthenticated):
        verify_sign_in_code(db, "someone@example.com", code, verifier)

    # Failed attempts do not burn the code
    verify_sign_in_code(db, EMAIL, code, verifier)


def test_verifier_is_bound_to_its_email(db):
    _, ada_verifier = request_sign_in_code(db, EMAIL)
    bob_code, bob_verifier = request_sign_in_code(db, "bob@example.com")

    # A valid code for bob cannot be redeemed with the verifier issued to ada
    with pytest.raises(Unauthenticated):
        verify_sign_in_code(db, "bob@example.com", bob_code, ada_verifier)

    tokens = verify_sign_in_code(db, "bob@example.com", bob_code, bob_verifier)
    bob = db.query(User).filter(User.email == "bob@example.com").one()
    assert verify_access_token(tokens.access_token) == bob.id


def test_sign_in_code_is_not_logged(db, caplog, monkeypatch):
    monkeypatch.setattr(auth_service, "generate_sign_in_code", lambda: "73917351")
    caplog.set_level(logging.DEBUG)

    request_sign_in_code(db, EMAIL)

    assert "73917351" not in caplog.text


def test_disabled_account_cannot_sign_in(db):
    code, verifier = request_sign_in_code(db, EMAIL)
    db.query(User).update({User.is_active: False})
    db.commit()

    with pytest.raises(Unauthenticated):
        verify_sign_in_code(db, EMAIL, code, verifier)


def test_refresh_rotates_token(db):
    code, verifier = request_sign_in_code(db, EMAIL)
    tokens = verify_sign_in_code(db, EMAIL, code, verifier)

    refreshed = refresh_session(db, tokens.refresh_token)

    assert refreshed.refresh_token != tokens.refresh_token
    assert verify_access_token(refreshed.access_token) == verify_access_token(tokens.access_token)
    with pytest.raises(Unauthenticated):
        refresh_session(db, tokens.refresh_token)
    refresh_session(db, refreshed.refresh_token)


def test_sign_out_ends_session(db, alice):
    code, verifier = request_sign_in_code(db, EMAIL)
    tokens = verify_sign_in_code(db, EMAIL, code, verifier)
    user_id = verify_access_token(tokens.access_token)

    with pytest.raises(Unauthenticated):
        sign_out(db, alice, tokens.refresh_token)

    sign_out(db, user_id, tokens.refresh_token)

    assert db.query(AuthSession).count() == 0
    with pytest.raises(Unauthenticated):
        refresh_session(db, tokens.refresh_token)


def test_malformed_refresh_token(db):
    with pytest.raises(Unauthenticated):
        refresh_session(db, "no-separator")
