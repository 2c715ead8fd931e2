from flask import Blueprint, current_app, render_template, session
from flask.globals import request_ctx

errors_bp = Blueprint('errors', __name__)


def render_not_found():
    return render_template('404.html', page_title='Page Not Found', path='/404'), 404


def render_server_error():
    if request_ctx.session is None:
        # opening the session failed; render against a null session that is never saved
        request_ctx.session = current_app.session_interface.make_null_session(current_app)
    return render_template(
        '500.html',
        page_title='Error',
        path='/500',
        is_authenticated=bool(session.get('is_logged_in', False))
    ), 500


@errors_bp.route('/500')
def get_500():
    return render_server_error()
