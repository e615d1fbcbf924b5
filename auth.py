import logging
from collections import namedtuple
from functools import wraps

from flask import abort, request, redirect, url_for, jsonify
from flask_login import current_user, login_required
from werkzeug.exceptions import Forbidden, Unauthorized

from extensions import login_manager
from models import db, User, Post, Product, UNLIMITED

LIMIT_TYPES = ('posts', 'products')


class Quota(namedtuple('Quota', 'allowed current limit plan_name')):
    """Result of a plan limit check. ``limit == -1`` means unlimited."""

    __slots__ = ()

    @property
    def unlimited(self):
        return self.limit == UNLIMITED


@login_manager.user_loader
def load_user(user_id):
    user = db.session.get(User, int(user_id))
    # Deactivated accounts lose their session on the next request
    if user is None or not user.is_active:
        return None
    return user


@login_manager.unauthorized_handler
def unauthorized():
    if request.path.startswith('/api/'):
        return jsonify({'error': 'Authentication required'}), 401
    return redirect(url_for('auth.login', redirectTo=request.path))


def get_current_user():
    if current_user.is_authenticated:
        return current_user._get_current_object()
    return None


def check_user_role(user, required_role=None):
    if user is None or user.role is None:
        return False
    if required_role:
        return user.role.name == required_role
    return user.role


def check_subscription_limits(user, kind, post=None):
    """Compare the user's current usage with their plan's limit.

    ``kind`` is ``'posts'`` (posts owned by the user) or ``'products'``
    (active products tagged on ``post``).
    """
    if kind not in LIMIT_TYPES:
        raise ValueError(f"Unknown limit type: {kind}")

    plan = user.plan if user is not None else None
    if plan is None:
        return Quota(False, 0, 0, None)

    if kind == 'posts':
        limit = plan.max_posts
        if limit == UNLIMITED:
            return Quota(True, 0, UNLIMITED, plan.name)
        current = Post.query.filter_by(user_id=user.id).count()
    else:
        limit = plan.max_products_per_post
        if limit == UNLIMITED:
            return Quota(True, 0, UNLIMITED, plan.name)
        if post is None:
            raise ValueError("A post is required to check the products limit")
        current = Product.query.filter_by(post_id=post.id, is_active=True).count()

    return Quota(current < limit, current, limit, plan.name)


def lock_user_row(user):
    """Re-select the user row FOR UPDATE.

    Serialises concurrent quota-check-then-insert sequences for one user on
    databases with row locks. Held until the surrounding commit or rollback.
    """
    return db.session.query(User).filter_by(id=user.id).with_for_update().one()


def require_auth():
    user = get_current_user()
    if user is None:
        raise Unauthorized('Authentication required')
    return user


def require_admin():
    user = require_auth()
    if not check_user_role(user, 'admin'):
        logging.warning(f"Admin access denied for user: {user.username}")
        raise Forbidden('Admin access required')
    return user


def admin_required(view):
    @wraps(view)
    @login_required
    def wrapped(*args, **kwargs):
        if not check_user_role(current_user, 'admin'):
            abort(403)
        return view(*args, **kwargs)
    return wrapped
