import io

import pytest

from app import create_app
from config import TestingConfig
from models import db, User, Role, SubscriptionPlan, Post, Product, seed_reference_data

PNG_BYTES = b'\x89PNG\r\n\x1a\n' + b'\x00' * 64


@pytest.fixture
def app(tmp_path):
    class Config(TestingConfig):
        UPLOAD_FOLDER = str(tmp_path / 'uploads')

    app = create_app(Config)
    with app.app_context():
        db.create_all()
        seed_reference_data()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def image_upload(name='photo.png', data=PNG_BYTES, content_type='image/png'):
    return (io.BytesIO(data), name, content_type)


def make_user(app, username='ayse', password='secret123', plan='free', role='user', is_active=True):
    with app.app_context():
        user = User(
            username=username,
            email=f'{username}@example.com',
            role=Role.query.filter_by(name=role).first() if role else None,
            plan=SubscriptionPlan.query.filter_by(name=plan).first() if plan else None,
            is_active=is_active,
        )
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        return user.id


def make_post(app, user_id, caption='Kombin', is_published=True):
    with app.app_context():
        post = Post(user_id=user_id, image_url='/uploads/x.png', caption=caption, is_published=is_published)
        db.session.add(post)
        db.session.commit()
        return post.id


def make_product(app, post_id, name='Ceket', x=50, y=50, is_active=True):
    with app.app_context():
        product = Product(post_id=post_id, name=name, affiliate_url='https://shop.example.com/ceket',
                          x_coordinate=x, y_coordinate=y, is_active=is_active)
        db.session.add(product)
        db.session.commit()
        return product.id


def login(client, username='ayse', password='secret123'):
    return client.post('/login', data={'username': username, 'password': password})


@pytest.fixture
def user_id(app):
    return make_user(app)


@pytest.fixture
def logged_in(client, user_id):
    login(client)
    return client


@pytest.fixture
def admin_client(app, client):
    make_user(app, username='yonetici', role='admin', plan='pro')
    login(client, username='yonetici')
    return client
