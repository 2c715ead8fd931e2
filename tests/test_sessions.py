from datetime import datetime, timedelta

from flask import session

from core.database_models import SessionRecord
from core.extensions import db
from core.sessions import purge_expired_sessions
from conftest import fetch_csrf_token, login, session_count


def test_session_data_round_trips_through_the_store(app, client):
    with client.session_transaction() as sess:
        sess["is_logged_in"] = False
        sess["visits"] = 3

    with client:
        client.get("/")
        assert session["visits"] == 3

    with app.app_context():
        record = SessionRecord.query.one()
        assert record.expires > datetime.utcnow()


def test_cookie_carries_only_signed_id(app, client):
    response = client.get("/")

    cookie = response.headers["Set-Cookie"]
    with app.app_context():
        record = SessionRecord.query.one()
    assert record.id in cookie
    assert "csrf_token" not in cookie


def test_tampered_cookie_starts_a_new_session(app, client):
    client.set_cookie("session", "forged-session-id.bad-signature")

    response = client.get("/")

    assert response.status_code == 200
    assert "session=" in response.headers["Set-Cookie"]
    assert session_count(app) == 1


def test_expired_record_is_not_reused(app, client):
    with client.session_transaction() as sess:
        sess["visits"] = 1

    with app.app_context():
        record = SessionRecord.query.one()
        old_id = record.id
        record.expires = datetime.utcnow() - timedelta(minutes=1)
        db.session.commit()

    with client:
        client.get("/")
        assert "visits" not in session

    with app.app_context():
        ids = {r.id for r in SessionRecord.query.all()}
    assert old_id in ids and len(ids) == 2


def test_logout_removes_stored_session(app, auth_client):
    assert session_count(app) == 1
    token = fetch_csrf_token(auth_client, "/")

    response = auth_client.post("/logout", data={"csrf_token": token})

    assert response.status_code == 302
    assert session_count(app) == 0
    assert "session=;" in response.headers["Set-Cookie"]


def test_login_keeps_a_single_session(app, client, user_id):
    login(client)

    assert session_count(app) == 1
    with client:
        client.get("/")
        assert session["is_logged_in"] is True
        assert session["user_id"] == user_id


def test_purge_expired_sessions(app):
    now = datetime.utcnow()
    with app.app_context():
        db.session.add_all([
            SessionRecord(id="stale", data="{}", expires=now - timedelta(days=1)),
            SessionRecord(id="fresh", data="{}", expires=now + timedelta(days=1)),
        ])
        db.session.commit()

        assert purge_expired_sessions() == 1
        assert [r.id for r in SessionRecord.query.all()] == ["fresh"]


def test_purge_sessions_cli(app):
    with app.app_context():
        db.session.add(SessionRecord(id="stale", data="{}", expires=datetime.utcnow() - timedelta(days=1)))
        db.session.commit()

    result = app.test_cli_runner().invoke(args=["purge-sessions"])

    assert "Removed 1 expired sessions" in result.output


def test_failing_session_store_renders_error_page(app, client):
    client.get("/login")
    with app.app_context():
        SessionRecord.__table__.drop(db.engine)
    app.config["PROPAGATE_EXCEPTIONS"] = False

    response = client.get("/")

    assert response.status_code == 500
    assert b"Some error occurred!" in response.data
    assert "Set-Cookie" not in response.headers


def test_login_moves_session_to_a_new_id(app, client, user_id):
    client.get("/login")
    with app.app_context():
        anonymous_id = SessionRecord.query.one().id

    login(client)

    with app.app_context():
        ids = [r.id for r in SessionRecord.query.all()]
    assert len(ids) == 1
    assert ids[0] != anonymous_id
    with client:
        client.get("/")
        assert session["user_id"] == user_id
