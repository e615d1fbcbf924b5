import logging

from flask import request, redirect, url_for, jsonify

from auth import get_current_user, check_user_role, check_subscription_limits

PROTECTED_PREFIXES = ('/dashboard', '/admin')
API_PROTECTED_PREFIXES = ('/api/posts',)
ADMIN_PREFIXES = ('/admin',)
AUTH_PATHS = ('/login', '/register')
PASSTHROUGH_PREFIXES = ('/static/', '/uploads/', '/favicon.ico')


def _is_post_creation(path, method):
    if path.startswith('/dashboard/posts/new'):
        return True
    return path.rstrip('/') == '/api/posts' and method == 'POST'


def gate_request():
    """Redirect requests by authentication state, role and post quota."""
    path = request.path
    if path.startswith(PASSTHROUGH_PREFIXES):
        return None

    user = get_current_user()

    if user is None:
        if path.startswith(API_PROTECTED_PREFIXES):
            return jsonify({'error': 'Authentication required'}), 401
        if path.startswith(PROTECTED_PREFIXES):
            return redirect(url_for('auth.login', redirectTo=path))
        return None

    if path in AUTH_PATHS:
        return redirect(url_for('dashboard.index'))

    if path.startswith(ADMIN_PREFIXES) and not check_user_role(user, 'admin'):
        logging.warning(f"Non-admin user {user.username} redirected from {path}")
        return redirect(url_for('dashboard.index'))

    if _is_post_creation(path, request.method):
        quota = check_subscription_limits(user, 'posts')
        if not quota.allowed:
            logging.info(f"Post limit reached for user {user.username} ({quota.current}/{quota.limit})")
            if path.startswith('/api/'):
                return jsonify({'error': 'Post limit reached for your plan'}), 403
            return redirect(url_for('dashboard.upgrade', reason='post_limit'))

    return None


def init_app(app):
    app.before_request(gate_request)
