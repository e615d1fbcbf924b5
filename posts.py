import logging

from sqlalchemy.exc import SQLAlchemyError

from auth import check_subscription_limits, lock_user_row
from models import db, Post, Product
from storage import storage, StorageError
from tagging import clamp_percentage


class QuotaExceeded(Exception):
    def __init__(self, quota):
        super().__init__(f"Limit reached: {quota.current}/{quota.limit}")
        self.quota = quota


def create_post(user, image, caption=None, is_published=True):
    """Upload ``image`` and create a post for ``user`` within their plan limit.

    The quota check and the insert run under a lock on the user's row, so two
    concurrent uploads cannot both pass the check. If the insert fails the
    uploaded image is removed again.
    """
    user = lock_user_row(user)
    quota = check_subscription_limits(user, 'posts')
    if not quota.allowed:
        db.session.rollback()
        raise QuotaExceeded(quota)

    try:
        result = storage.upload_post_image(image, user.id)
    except StorageError:
        db.session.rollback()
        raise

    post = Post(
        user_id=user.id,
        image_url=result.public_url,
        image_path=result.path,
        caption=(caption or '').strip() or None,
        is_published=is_published,
    )
    try:
        db.session.add(post)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logging.error(f"Error creating post for user {user.id}: {e}")
        storage.delete_post_image(result.path)
        raise

    logging.info(f"Post {post.id} created by {user.username}")
    return post


def update_caption(post, caption):
    post.caption = (caption or '').strip() or None
    db.session.commit()
    return post


def toggle_publish(post):
    post.is_published = not post.is_published
    db.session.commit()
    return post.is_published


def delete_post(post):
    """Hard delete a post with its products, clicks and stored image."""
    path = post.image_path
    db.session.delete(post)
    db.session.commit()
    try:
        storage.delete_post_image(path)
    except (StorageError, OSError) as e:
        logging.error(f"Error deleting image {path}: {e}")


def add_product(post, name, affiliate_url, x_coordinate, y_coordinate, description=None):
    """Tag a product on ``post`` within the owner's per-post product limit."""
    x_coordinate = clamp_percentage(x_coordinate)
    y_coordinate = clamp_percentage(y_coordinate)

    owner = lock_user_row(post.user)
    quota = check_subscription_limits(owner, 'products', post=post)
    if not quota.allowed:
        db.session.rollback()
        raise QuotaExceeded(quota)

    product = Product(
        post_id=post.id,
        name=name.strip(),
        description=(description or '').strip() or None,
        affiliate_url=affiliate_url.strip(),
        x_coordinate=x_coordinate,
        y_coordinate=y_coordinate,
    )
    try:
        db.session.add(product)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
    return product


def update_product(product, name, affiliate_url, description=None):
    product.name = name.strip()
    product.affiliate_url = affiliate_url.strip()
    product.description = (description or '').strip() or None
    db.session.commit()
    return product


def deactivate_product(product):
    product.is_active = False
    db.session.commit()
    return product
