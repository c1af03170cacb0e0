import pytest
from flask_jwt_extended import create_access_token

from skillswap import bcrypt, create_app, db
from skillswap.models import User


@pytest.fixture
def app():
    app = create_app('skillswap.config.TestingConfig')
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    """Insert a user directly, bypassing registration."""
    counter = {'n': 0}

    def _make_user(name=None, teach=(), learn=(), rating=None, total_sessions=0, is_active=True,
                   password='password123'):
        counter['n'] += 1
        name = name or f'User {counter["n"]}'
        user = User(
            name=name,
            email=f'user{counter["n"]}@example.com',
            password_hash=bcrypt.generate_password_hash(password).decode('utf-8'),
            skills_to_teach=list(teach),
            skills_to_learn=list(learn),
            rating=rating,
            total_sessions=total_sessions,
            is_active=is_active,
        )
        db.session.add(user)
        db.session.commit()
        return user

    return _make_user


@pytest.fixture
def auth_headers(app):
    def _auth_headers(user):
        token = create_access_token(identity=str(user.id))
        return {'Authorization': f'Bearer {token}'}

    return _auth_headers
