# middleware/pipeline.py
"""
Per-request stages that run between the session and the route handlers.

Registration order is execution order:
    upload handler -> CSRF guard -> view locals -> user hydrator
"""

import logging

from flask import Flask, current_app, g, request, session
from flask_wtf.csrf import generate_csrf

from core.extensions import csrf
from core.uploads import handle_image_upload
from core.users import LookupStatus, UserLookupError, lookup_user

logger = logging.getLogger(__name__)

STATIC_ENDPOINTS = frozenset({'static', 'images.serve_image'})


def _is_static():
    return request.endpoint in STATIC_ENDPOINTS


def store_upload():
    """Keep an allowed image from the upload field; drop anything else quietly"""
    if request.endpoint is None or _is_static():
        return None
    result = handle_image_upload(
        request.files,
        current_app.config['UPLOAD_FOLDER'],
        field=current_app.config['UPLOAD_FIELD'],
        allowed=current_app.config['UPLOAD_MIMETYPES'],
    )
    g.upload = result
    g.image = result.filename if result.accepted else None
    return None


def inject_view_locals():
    """Authentication flag and CSRF token for every rendered view"""
    if _is_static():
        return None
    g.is_authenticated = bool(session.get('is_logged_in', False))
    g.csrf_token = generate_csrf()
    return None


def hydrate_user():
    user_id = session.get('user_id')
    if not user_id or _is_static():
        return None

    result = lookup_user(user_id)
    if result.status is LookupStatus.LOOKUP_FAILED:
        raise UserLookupError(f"Could not load session user {user_id}") from result.error
    if result.status is LookupStatus.FOUND:
        g.user = result.user
    else:
        logger.info(f"Session references unknown user {user_id}, continuing anonymously")
    return None


def view_locals():
    return {
        'is_authenticated': g.get('is_authenticated', bool(session.get('is_logged_in', False))),
        'csrf_token': g.get('csrf_token', ''),
        'current_user': g.get('user'),
    }


def init_pipeline(app: Flask) -> None:
    """Register the stages in pipeline order"""
    app.before_request(store_upload)

    # the token lives in the session, so the guard is bound after it
    csrf.init_app(app)

    app.before_request(inject_view_locals)
    app.before_request(hydrate_user)
    app.context_processor(view_locals)
