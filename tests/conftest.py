import re
from decimal import Decimal

import pytest

from app import create_app
from core.database_models import Product, SessionRecord, User
from core.extensions import db

CSRF_META = re.compile(r'<meta name="csrf-token" content="([^"]*)">')

PASSWORD = "secret123"


@pytest.fixture
def app(tmp_path):
    app = create_app("testing", overrides={
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'shop.db'}",
        "UPLOAD_FOLDER": str(tmp_path / "images"),
        "ACCESS_LOG_PATH": str(tmp_path / "access.log"),
    })
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


def csrf_token_from(response):
    match = CSRF_META.search(response.get_data(as_text=True))
    assert match and match.group(1), "page carries no csrf token"
    return match.group(1)


def fetch_csrf_token(client, path="/login"):
    return csrf_token_from(client.get(path))


def create_user(app, email="alice@mailbox.org", password=PASSWORD):
    with app.app_context():
        user = User(email=email, cart=[])
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        return user.id


def create_product(app, user_id, title="Red Book", price="12.99",
                   description="A very red book", image_filename="cover.png"):
    with app.app_context():
        product = Product(
            title=title,
            price=Decimal(price),
            description=description,
            image_filename=image_filename,
            user_id=user_id,
        )
        db.session.add(product)
        db.session.commit()
        return product.id


def login(client, email="alice@mailbox.org", password=PASSWORD):
    token = fetch_csrf_token(client)
    return client.post("/login", data={
        "email": email,
        "password": password,
        "csrf_token": token,
    })


def session_count(app):
    with app.app_context():
        return SessionRecord.query.count()


@pytest.fixture
def user_id(app):
    return create_user(app)


@pytest.fixture
def auth_client(client, user_id):
    response = login(client)
    assert response.status_code == 302
    return client
