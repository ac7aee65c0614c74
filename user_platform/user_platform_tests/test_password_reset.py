from datetime import datetime, timedelta

import pytest

from user_platform.user_platform.user_service.auth import hash_password
from user_platform.user_platform.user_service.models import User, PasswordResetToken
from user_platform.user_platform.user_service.statuscodes import ValidationStatusCode as Code


def ensure_user(db, username="user", email="user@example.com", password="OldPass1!", verified=True):
    u = User(
        username=username,
        email=email,
        password=hash_password(password),
        password_identifier="0123456789",
        verified=verified,
    )
    db.add(u)
    db.commit()
    # return stable scalar values to avoid DetachedInstance
    return {"id": u.id, "username": username, "email": email, "password": password}


@pytest.fixture
def user_info(db_session):
    return ensure_user(db_session)


def request_token(client, mailer, **identifier):
    resp = client.post("/user/send-password-reset", json=identifier)
    assert resp.status_code == 200
    return mailer.last_token("password-reset")


def age_token(db, token, minutes):
    prt = db.query(PasswordResetToken).filter(PasswordResetToken.token == token).first()
    prt.created_at = datetime.utcnow() - timedelta(minutes=minutes)
    db.commit()


def reset(client, token, password="NewPass2!", password_again=None):
    return client.post(
        "/user/reset-password",
        data={
            "token": token,
            "password": password,
            "password_again": password if password_again is None else password_again,
        },
    )


def test_password_reset_request_creates_token(client, mailer, db_session, user_info):
    resp = client.post("/user/send-password-reset", json={"email": user_info["email"]})
    assert resp.status_code == 200
    assert resp.json() == {"message": "EMAIL_SENT"}

    mail = mailer.sent[-1]
    assert mail["template"] == "password-reset"
    assert mail["to"] == user_info["email"]
    assert mail["variables"]["expire_min"] == 10

    prt = db_session.query(PasswordResetToken).filter(PasswordResetToken.user_id == user_info["id"]).first()
    assert prt is not None
    assert prt.token == mail["variables"]["token"]
    assert len(prt.token) == 12


def test_password_reset_request_by_username(client, mailer, user_info):
    assert request_token(client, mailer, username=user_info["username"]) is not None


def test_password_reset_request_reuses_live_token(client, mailer, db_session, user_info):
    first = request_token(client, mailer, email=user_info["email"])
    second = request_token(client, mailer, email=user_info["email"])

    assert first == second
    assert db_session.query(PasswordResetToken).count() == 1


def test_password_reset_request_replaces_expired_token(client, mailer, db_session, user_info):
    first = request_token(client, mailer, email=user_info["email"])
    age_token(db_session, first, minutes=11)

    second = request_token(client, mailer, email=user_info["email"])
    assert second != first
    assert db_session.query(PasswordResetToken).count() == 1


def test_password_reset_request_unknown_user(client, mailer):
    resp = client.post("/user/send-password-reset", json={"email": "nobody@example.com"})
    assert resp.status_code == 400
    assert resp.json() == {"detail": "USER_NOT_FOUND"}


def test_password_reset_request_unverified_user(client, mailer, db_session):
    ensure_user(db_session, verified=False)
    resp = client.post("/user/send-password-reset", json={"username": "user"})
    assert resp.status_code == 400
    assert resp.json() == {"detail": "USER_NOT_VERIFIED"}
    assert mailer.sent == []


def test_password_reset_request_validation(client, mailer):
    resp = client.post("/user/send-password-reset", json={})
    assert resp.status_code == 400
    assert resp.json() == {"username": Code.MISSING, "email": Code.MISSING}


def test_password_reset_request_mail_failure(client, mailer, db_session, user_info):
    mailer.fail = True
    resp = client.post("/user/send-password-reset", json={"email": user_info["email"]})
    assert resp.status_code == 500
    assert db_session.query(PasswordResetToken).count() == 0


def test_password_form_page(client, mailer):
    resp = client.get("/user/reset-password/abcdef123456")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/html")
    assert 'value="abcdef123456"' in resp.text
    assert 'minlength="5"' in resp.text
    assert 'maxlength="60"' in resp.text


def test_password_reset_confirm_updates_password(client, mailer, db_session, user_info):
    token = request_token(client, mailer, email=user_info["email"])

    confirm = reset(client, token)
    assert confirm.status_code == 200
    assert confirm.text == "Password Changed"

    # Old password no longer works, new one does
    old = client.post("/user/login", json={"username": "user", "password": "OldPass1!"})
    assert old.status_code == 400
    new = client.post("/user/login", json={"username": "user", "password": "NewPass2!"})
    assert new.status_code == 200

    # Reuse should fail
    reuse = reset(client, token, password="Another!3")
    assert reuse.status_code == 400
    assert reuse.json() == {"detail": "TOKEN_NOT_FOUND"}


def test_password_reset_invalidates_refresh_tokens(client, mailer, user_info):
    refresh_token = client.post(
        "/user/login", json={"username": "user", "password": "OldPass1!"}
    ).json()["refresh_token"]
    headers = {"Authorization": f"Bearer {refresh_token}"}
    assert client.get("/user/refresh", headers=headers).status_code == 200

    token = request_token(client, mailer, email=user_info["email"])
    assert reset(client, token).status_code == 200

    resp = client.get("/user/refresh", headers=headers)
    assert resp.status_code == 401
    assert resp.json() == {"detail": "INVALID_TOKEN"}


def test_password_reset_confirm_rejects_invalid_token(client, mailer, user_info):
    bad = reset(client, "not-a-token")
    assert bad.status_code == 400
    assert bad.json() == {"detail": "TOKEN_NOT_FOUND"}


def test_password_reset_expired_token_is_removed(client, mailer, db_session, user_info):
    token = request_token(client, mailer, email=user_info["email"])
    age_token(db_session, token, minutes=11)

    expired = reset(client, token)
    assert expired.status_code == 400
    assert expired.json() == {"detail": "TOKEN_EXPIRED"}
    assert db_session.query(PasswordResetToken).count() == 0

    again = reset(client, token)
    assert again.status_code == 400
    assert again.json() == {"detail": "TOKEN_NOT_FOUND"}


def test_password_reset_token_within_ttl_still_works(client, mailer, db_session, user_info):
    token = request_token(client, mailer, email=user_info["email"])
    age_token(db_session, token, minutes=9)

    assert reset(client, token).status_code == 200


def test_password_reset_mismatch_renders_form(client, mailer, db_session, user_info):
    token = request_token(client, mailer, email=user_info["email"])

    resp = reset(client, token, password="NewPass2!", password_again="NewPass3!")
    assert resp.status_code == 400
    assert resp.headers["content-type"].startswith("text/html")
    assert "Password fields do not match" in resp.text
    assert f'value="{token}"' in resp.text
    # Token survives so the user can try again
    assert db_session.query(PasswordResetToken).count() == 1


def test_password_reset_rejects_short_password(client, mailer, db_session, user_info):
    token = request_token(client, mailer, email=user_info["email"])

    resp = reset(client, token, password="abc")
    assert resp.status_code == 400
    assert resp.json() == {"password": Code.TOO_SHORT}
    assert db_session.query(PasswordResetToken).count() == 1
