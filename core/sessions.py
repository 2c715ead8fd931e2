# core/sessions.py
"""
Server-side sessions stored in the application database.

The cookie only carries the signed session id; the payload lives in the
``sessions`` table. Empty sessions that were never written are not stored
and set no cookie, and clearing a session removes its record.
"""

import logging
import secrets
from datetime import datetime

from flask.json.tag import TaggedJSONSerializer
from flask.sessions import SessionInterface, SessionMixin
from itsdangerous import BadSignature, Signer
from werkzeug.datastructures import CallbackDict

from core.database_models import SessionRecord
from core.extensions import db

logger = logging.getLogger(__name__)


def generate_sid():
    return secrets.token_urlsafe(32)


class StoredSession(CallbackDict, SessionMixin):
    """Session dict that remembers its id and whether it changed"""

    def __init__(self, initial=None, sid=None, new=False):
        def on_update(self):
            self.modified = True
            self.accessed = True

        super().__init__(initial, on_update)
        self.sid = sid
        self.new = new
        self.previous_sid = None
        self.modified = False
        self.accessed = False

    def __getitem__(self, key):
        self.accessed = True
        return super().__getitem__(key)

    def get(self, key, default=None):
        self.accessed = True
        return super().get(key, default)

    def regenerate(self):
        """Move the data to a fresh id; the old record is dropped on save"""
        if not self.new and self.previous_sid is None:
            self.previous_sid = self.sid
        self.sid = generate_sid()
        self.modified = True
        self.accessed = True


class DatabaseSessionInterface(SessionInterface):
    session_class = StoredSession
    serializer = TaggedJSONSerializer()
    salt = 'shop-session'

    def _get_signer(self, app):
        if not app.secret_key:
            return None
        return Signer(app.secret_key, salt=self.salt)

    def _fresh(self):
        return self.session_class(sid=generate_sid(), new=True)

    def open_session(self, app, request):
        signer = self._get_signer(app)
        if signer is None:
            return None

        cookie = request.cookies.get(self.get_cookie_name(app))
        if not cookie:
            return self._fresh()

        try:
            sid = signer.unsign(cookie).decode('utf-8')
        except BadSignature:
            logger.warning(f"Rejected session cookie with bad signature from {request.remote_addr}")
            return self._fresh()

        record = db.session.get(SessionRecord, sid)
        if record is None or record.expires <= datetime.utcnow():
            return self._fresh()

        try:
            data = self.serializer.loads(record.data)
        except ValueError:
            logger.warning(f"Discarding unreadable session {sid[:8]}...")
            return self._fresh()

        return self.session_class(data, sid=sid)

    def save_session(self, app, session, response):
        name = self.get_cookie_name(app)
        domain = self.get_cookie_domain(app)
        path = self.get_cookie_path(app)
        secure = self.get_cookie_secure(app)
        samesite = self.get_cookie_samesite(app)
        httponly = self.get_cookie_httponly(app)

        if session.accessed:
            response.vary.add('Cookie')

        if session.previous_sid is not None:
            self._delete(session.previous_sid)
            session.previous_sid = None

        if not session:
            # emptied after being stored: drop the record and the cookie
            if session.modified and not session.new:
                self._delete(session.sid)
                response.delete_cookie(
                    name, domain=domain, path=path,
                    secure=secure, samesite=samesite, httponly=httponly
                )
                response.vary.add('Cookie')
            return

        if session.modified:
            self._store(app, session)

        if not self.should_set_cookie(app, session):
            return

        value = self._get_signer(app).sign(session.sid.encode('utf-8')).decode('utf-8')
        response.set_cookie(
            name,
            value,
            expires=self.get_expiration_time(app, session),
            httponly=httponly,
            domain=domain,
            path=path,
            secure=secure,
            samesite=samesite,
        )
        response.vary.add('Cookie')

    def _store(self, app, session):
        record = db.session.get(SessionRecord, session.sid)
        if record is None:
            record = SessionRecord(id=session.sid)
            db.session.add(record)
        record.data = self.serializer.dumps(dict(session))
        record.expires = datetime.utcnow() + app.permanent_session_lifetime
        db.session.commit()

    def _delete(self, sid):
        record = db.session.get(SessionRecord, sid)
        if record is not None:
            db.session.delete(record)
            db.session.commit()


def purge_expired_sessions(now=None) -> int:
    """Delete expired session records, returning how many were removed"""
    now = now or datetime.utcnow()
    removed = SessionRecord.query.filter(SessionRecord.expires <= now).delete()
    db.session.commit()
    logger.info(f"Purged {removed} expired sessions")
    return removed
