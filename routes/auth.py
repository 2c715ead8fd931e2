import logging

from email_validator import EmailNotValidError, validate_email
from flask import Blueprint, current_app, flash, redirect, render_template, request, session, url_for

from core.database_models import User
from core.extensions import db, limiter

auth_bp = Blueprint('auth', __name__)
logger = logging.getLogger(__name__)


def _normalize_email(value):
    """Return the normalized address or None when it is not valid"""
    try:
        return validate_email(value.strip(), check_deliverability=False).normalized
    except EmailNotValidError:
        return None


def _render_login(error_message=None, old_input=None, status=200):
    return render_template(
        'auth/login.html',
        page_title='Login',
        path='/login',
        error_message=error_message,
        old_input=old_input or {'email': '', 'password': ''}
    ), status


def _render_signup(error_message=None, old_input=None, status=200):
    return render_template(
        'auth/signup.html',
        page_title='Signup',
        path='/signup',
        error_message=error_message,
        old_input=old_input or {'email': '', 'password': '', 'confirm_password': ''}
    ), status


@auth_bp.route('/login', methods=['GET', 'POST'])
@limiter.limit(lambda: current_app.config['LOGIN_RATE_LIMIT'], methods=['POST'])
def login():
    if request.method == 'GET':
        return _render_login()

    email = request.form.get('email', '')
    password = request.form.get('password', '')
    old_input = {'email': email, 'password': password}

    normalized = _normalize_email(email)
    if normalized is None:
        return _render_login('Please enter a valid email.', old_input, 422)

    user = User.query.filter_by(email=normalized).first()
    if user is None or not user.check_password(password):
        logger.info(f"Failed login for {normalized} from {request.remote_addr}")
        return _render_login('Invalid email or password.', old_input, 422)

    # a fresh id for the authenticated session
    session.regenerate()
    session['is_logged_in'] = True
    session['user_id'] = user.id
    logger.info(f"User {user.email} logged in")
    return redirect(url_for('shop.index'))


@auth_bp.route('/signup', methods=['GET', 'POST'])
def signup():
    if request.method == 'GET':
        return _render_signup()

    email = request.form.get('email', '')
    password = request.form.get('password', '')
    confirm_password = request.form.get('confirm_password', '')
    old_input = {'email': email, 'password': password, 'confirm_password': confirm_password}

    normalized = _normalize_email(email)
    if normalized is None:
        return _render_signup('Please enter a valid email.', old_input, 422)

    if len(password) < 5 or not password.isalnum():
        return _render_signup(
            'Please enter a password with only numbers and text and at least 5 characters.',
            old_input, 422
        )

    if password != confirm_password:
        return _render_signup('Passwords have to match!', old_input, 422)

    if User.query.filter_by(email=normalized).first() is not None:
        return _render_signup('E-Mail exists already, please pick a different one.', old_input, 422)

    user = User(email=normalized, cart=[])
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    logger.info(f"New account {normalized}")

    flash('Account created, please log in.', 'success')
    return redirect(url_for('auth.login'))


@auth_bp.route('/logout', methods=['POST'])
def logout():
    session.clear()
    return redirect(url_for('shop.index'))
