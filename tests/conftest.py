import time

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa

from app import create_app
from config import TestingConfig
from middleware.auth import auth_middleware
from models import db, User, Snack


@pytest.fixture(scope='session')
def signing_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def app(signing_key, monkeypatch):
    app = create_app(TestingConfig)
    monkeypatch.setattr(auth_middleware, 'get_signing_key', lambda token: signing_key.public_key())

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_token(signing_key):
    def _make(user_id, expires_in=3600, key=None, **claims):
        now = int(time.time())
        payload = {'sub': user_id, 'iat': now, 'exp': now + expires_in, **claims}
        return jwt.encode(payload, key or signing_key, algorithm='RS256')
    return _make


@pytest.fixture
def auth(make_token):
    """Authorization headers for a user id."""
    def _headers(user_id, **claims):
        return {'Authorization': f'Bearer {make_token(user_id, **claims)}'}
    return _headers


@pytest.fixture
def make_user(app):
    def _make(user_id, name=None):
        user = db.session.get(User, user_id)
        if user is None:
            user = User(id=user_id, name=name or user_id.title())
            db.session.add(user)
            db.session.commit()
        return user_id
    return _make


@pytest.fixture
def make_snack(app, make_user):
    def _make(user_id, name='Mochi', image_url=None):
        make_user(user_id)
        snack = Snack(
            user_id=user_id,
            name=name,
            description=f'A fresh {name}',
            location='Tokyo',
            image_url=image_url or f'https://pub-test.r2.dev/uploads/{name.lower()}.png'
        )
        db.session.add(snack)
        db.session.commit()
        return snack.id
    return _make
