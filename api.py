from flask import Blueprint, jsonify, request, abort
from flask_login import current_user
from sqlalchemy.exc import SQLAlchemyError

import posts as post_service
from auth import get_current_user
from extensions import csrf, limiter
from models import db, Post, Product
from storage import StorageError
from tracking import record_request_click

api = Blueprint('api', __name__, url_prefix='/api')


@api.route('/posts', methods=['GET'])
def list_posts():
    return jsonify([post.to_dict() for post in current_user.posts.all()])


@api.route('/posts', methods=['POST'])
def create_post():
    is_published = request.form.get('is_published', 'true').lower() not in ('0', 'false', 'off')
    try:
        post = post_service.create_post(current_user, request.files.get('image'),
                                        caption=request.form.get('caption'),
                                        is_published=is_published)
    except post_service.QuotaExceeded:
        return jsonify({'error': 'Post limit reached for your plan'}), 403
    except StorageError as e:
        return jsonify({'error': str(e)}), 400
    except SQLAlchemyError:
        return jsonify({'error': 'Post could not be created'}), 500
    return jsonify(post.to_dict()), 201


@api.route('/posts/<int:post_id>/products')
def list_products(post_id):
    post = db.get_or_404(Post, post_id)
    if post.user_id != current_user.id:
        abort(404)
    return jsonify([product.to_dict() for product in post.active_products])


@api.route('/products/<int:product_id>/click', methods=['POST'])
@csrf.exempt
@limiter.limit("60 per minute")
def track_click(product_id):
    product = db.get_or_404(Product, product_id)
    if not product.is_active or not product.post.is_published or not product.post.user.is_active:
        abort(404)
    record_request_click(product, user=get_current_user())
    return jsonify({'ok': True, 'affiliate_url': product.affiliate_url})
