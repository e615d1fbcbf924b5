import os

from models import db, Post, Product, Click
from conftest import make_user, make_post, make_product, login, image_upload


def upload(client, **data):
    payload = {'image': image_upload(), 'caption': 'Yaz kombini', 'is_published': 'y'}
    payload.update(data)
    return client.post('/dashboard/posts/new', data=payload, content_type='multipart/form-data')


def test_create_post_stores_image(app, logged_in, user_id):
    response = upload(logged_in)
    assert response.status_code == 302

    with app.app_context():
        post = Post.query.filter_by(user_id=user_id).one()
        assert response.headers['Location'].endswith(f'/dashboard/posts/{post.id}/edit')
        assert post.caption == 'Yaz kombini'
        assert post.is_published is True
        assert post.image_path.startswith(f'{user_id}/')
        assert post.image_path.endswith('.png')
        assert post.image_url == f'/uploads/{post.image_path}'
        stored = os.path.join(app.config['UPLOAD_FOLDER'], post.image_path)
    assert os.path.exists(stored)
    assert logged_in.get(f'/uploads/{post.image_path}').status_code == 200


def test_create_post_rejects_non_image(app, logged_in, user_id):
    response = upload(logged_in, image=image_upload(name='notes.txt', content_type='text/plain'))
    assert response.status_code == 200
    with app.app_context():
        assert Post.query.count() == 0


def test_create_post_rejects_oversized_image(app, logged_in):
    big = b'\x89PNG' + b'\x00' * (10 * 1024 * 1024 + 1)
    response = upload(logged_in, image=image_upload(data=big))
    assert 'Dosya boyutu 10MB' in response.get_data(as_text=True)
    with app.app_context():
        assert Post.query.count() == 0


def test_api_create_and_list_posts(app, logged_in):
    response = logged_in.post('/api/posts', data={'image': image_upload(), 'caption': 'API'},
                              content_type='multipart/form-data')
    assert response.status_code == 201
    body = response.get_json()
    assert body['caption'] == 'API'
    assert body['username'] == 'ayse'
    assert body['product_count'] == 0

    listed = logged_in.get('/api/posts').get_json()
    assert [p['id'] for p in listed] == [body['id']]


def test_api_create_post_without_image(logged_in):
    response = logged_in.post('/api/posts', data={'caption': 'bos'}, content_type='multipart/form-data')
    assert response.status_code == 400
    assert 'error' in response.get_json()


def test_toggle_publish_twice_restores_state(app, logged_in, user_id):
    post_id = make_post(app, user_id, is_published=True)
    logged_in.post(f'/dashboard/posts/{post_id}/publish')
    with app.app_context():
        assert db.session.get(Post, post_id).is_published is False
    logged_in.post(f'/dashboard/posts/{post_id}/publish')
    with app.app_context():
        assert db.session.get(Post, post_id).is_published is True


def test_update_caption(app, logged_in, user_id):
    post_id = make_post(app, user_id)
    logged_in.post(f'/dashboard/posts/{post_id}/caption', data={'caption': '  Yeni açıklama  '})
    with app.app_context():
        assert db.session.get(Post, post_id).caption == 'Yeni açıklama'
    logged_in.post(f'/dashboard/posts/{post_id}/caption', data={'caption': ''})
    with app.app_context():
        assert db.session.get(Post, post_id).caption is None


def test_delete_post_removes_products_clicks_and_image(app, logged_in, user_id):
    upload(logged_in)
    with app.app_context():
        post = Post.query.one()
        post_id, path = post.id, os.path.join(app.config['UPLOAD_FOLDER'], post.image_path)
    product_id = make_product(app, post_id)
    with app.app_context():
        db.session.add(Click(product_id=product_id))
        db.session.commit()

    response = logged_in.post(f'/dashboard/posts/{post_id}/delete')
    assert response.status_code == 302
    with app.app_context():
        assert Post.query.count() == 0
        assert Product.query.count() == 0
        assert Click.query.count() == 0
    assert not os.path.exists(path)


def test_other_users_post_is_not_found(app, logged_in):
    other_id = make_user(app, username='baska')
    post_id = make_post(app, other_id)
    assert logged_in.get(f'/dashboard/posts/{post_id}/edit').status_code == 404
    assert logged_in.post(f'/dashboard/posts/{post_id}/publish').status_code == 404
    assert logged_in.post(f'/dashboard/posts/{post_id}/delete').status_code == 404
    assert logged_in.get(f'/api/posts/{post_id}/products').status_code == 404


def test_add_product_clamps_coordinates(app, logged_in, user_id):
    post_id = make_post(app, user_id)
    response = logged_in.post(f'/dashboard/posts/{post_id}/products', data={
        'name': 'Deri Ceket',
        'description': 'Siyah',
        'affiliate_url': 'https://shop.example.com/ceket',
        'x_coordinate': '135.5',
        'y_coordinate': '-20',
    })
    assert response.status_code == 302
    with app.app_context():
        product = Product.query.filter_by(post_id=post_id).one()
        assert (product.x_coordinate, product.y_coordinate) == (100.0, 0.0)
        assert product.name == 'Deri Ceket'

    products = logged_in.get(f'/api/posts/{post_id}/products').get_json()
    assert products[0]['x_coordinate'] == 100.0


def test_model_clamps_coordinates_on_update(app, user_id):
    post_id = make_post(app, user_id)
    product_id = make_product(app, post_id, x=30, y=60)
    with app.app_context():
        product = db.session.get(Product, product_id)
        product.x_coordinate = 1000
        product.y_coordinate = -1
        db.session.commit()
        assert (product.x_coordinate, product.y_coordinate) == (100.0, 0.0)


def test_add_product_requires_position(app, logged_in, user_id):
    post_id = make_post(app, user_id)
    logged_in.post(f'/dashboard/posts/{post_id}/products', data={
        'name': 'Ceket', 'affiliate_url': 'https://shop.example.com/ceket',
        'x_coordinate': 'abc', 'y_coordinate': '10',
    })
    with app.app_context():
        assert Product.query.count() == 0


def test_product_limit_per_post(app, logged_in, user_id):
    post_id = make_post(app, user_id)
    for _ in range(3):
        make_product(app, post_id)
    response = logged_in.post(f'/dashboard/posts/{post_id}/products', data={
        'name': 'Fazla', 'affiliate_url': 'https://shop.example.com/fazla',
        'x_coordinate': '10', 'y_coordinate': '10',
    }, follow_redirects=True)
    assert 'Maksimum ürün sayısına ulaştınız.' in response.get_data(as_text=True)
    with app.app_context():
        assert Product.query.filter_by(post_id=post_id).count() == 3


def test_update_and_soft_delete_product(app, logged_in, user_id):
    post_id = make_post(app, user_id)
    product_id = make_product(app, post_id)
    logged_in.post(f'/dashboard/products/{product_id}', data={
        'name': 'Yeni Ad', 'description': '', 'affiliate_url': 'https://shop.example.com/yeni',
    })
    logged_in.post(f'/dashboard/products/{product_id}/delete')
    with app.app_context():
        product = db.session.get(Product, product_id)
        assert product.name == 'Yeni Ad'
        assert product.affiliate_url == 'https://shop.example.com/yeni'
        assert product.is_active is False
    assert logged_in.get(f'/api/posts/{post_id}/products').get_json() == []
    assert logged_in.post(f'/dashboard/products/{product_id}/delete').status_code == 404


def test_edit_page_renders_tags(app, logged_in, user_id):
    post_id = make_post(app, user_id)
    make_product(app, post_id, name='Çanta', x=12.5, y=80)
    html = logged_in.get(f'/dashboard/posts/{post_id}/edit').get_data(as_text=True)
    assert 'left: 12.5%; top: 80.0%;' in html
    assert '1/3 ürün etiketlendi' in html


def test_api_create_post_rejects_html_disguised_as_image(app, logged_in):
    html = image_upload(name='evil.html', data=b'<script>alert(document.domain)</script>')
    response = logged_in.post('/api/posts', data={'image': html}, content_type='multipart/form-data')
    assert response.status_code == 400
    assert 'error' in response.get_json()
    with app.app_context():
        assert Post.query.count() == 0


def test_uploads_serve_only_image_files(app, client):
    folder = os.path.join(app.config['UPLOAD_FOLDER'], '1')
    os.makedirs(folder, exist_ok=True)
    with open(os.path.join(folder, 'page.html'), 'wb') as f:
        f.write(b'<script>alert(1)</script>')
    assert client.get('/uploads/1/page.html').status_code == 404
