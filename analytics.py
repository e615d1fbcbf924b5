"""Click-through and usage statistics for the dashboard and admin pages."""
from datetime import datetime, timedelta

from sqlalchemy import func

from models import db, User, SubscriptionPlan, Post, Product, Click

TIME_RANGES = {
    '7d': timedelta(days=7),
    '30d': timedelta(days=30),
    '90d': timedelta(days=90),
    'all': None,
}


def _user_clicks(user):
    return (Click.query
            .join(Product, Click.product_id == Product.id)
            .join(Post, Product.post_id == Post.id)
            .filter(Post.user_id == user.id))


def _user_products(user):
    return (Product.query
            .join(Post, Product.post_id == Post.id)
            .filter(Post.user_id == user.id, Product.is_active.is_(True)))


def user_stats(user, now=None):
    now = now or datetime.utcnow()
    return {
        'total_posts': Post.query.filter_by(user_id=user.id).count(),
        'total_products': _user_products(user).count(),
        'total_clicks': _user_clicks(user).count(),
        'this_month_clicks': _user_clicks(user).filter(Click.clicked_at >= now - timedelta(days=30)).count(),
    }


def top_products(user, since=None, limit=5):
    """Active products of ``user`` ordered by clicks, zero-click products included."""
    join_on = Click.product_id == Product.id
    if since is not None:
        join_on = join_on & (Click.clicked_at >= since)
    total_clicks = func.count(Click.id).label('total_clicks')
    rows = (db.session.query(Product, total_clicks)
            .join(Post, Product.post_id == Post.id)
            .outerjoin(Click, join_on)
            .filter(Post.user_id == user.id, Product.is_active.is_(True))
            .group_by(Product.id)
            .order_by(total_clicks.desc(), Product.id)
            .limit(limit)
            .all())
    return [{
        'id': product.id,
        'name': product.name,
        'affiliate_url': product.affiliate_url,
        'total_clicks': clicks,
        'post_caption': product.post.caption or 'Açıklama yok',
    } for product, clicks in rows]


def recent_clicks(user, limit=10):
    clicks = _user_clicks(user).order_by(Click.clicked_at.desc(), Click.id.desc()).limit(limit).all()
    return [{
        'id': click.id,
        'product_name': click.product.name if click.product else 'Bilinmeyen ürün',
        'clicked_at': click.clicked_at,
        'ip_address': click.ip_address,
    } for click in clicks]


def user_analytics(user, time_range='30d', now=None):
    if time_range not in TIME_RANGES:
        raise ValueError(f"Unknown time range: {time_range}")
    now = now or datetime.utcnow()
    window = TIME_RANGES[time_range]
    since = now - window if window is not None else None

    data = user_stats(user, now=now)
    data['clicks_this_week'] = _user_clicks(user).filter(Click.clicked_at >= now - timedelta(days=7)).count()
    data['top_products'] = top_products(user, since=since)
    data['recent_clicks'] = recent_clicks(user)
    data['time_range'] = time_range
    return data


def platform_stats():
    revenue = (db.session.query(func.coalesce(func.sum(SubscriptionPlan.price), 0.0))
               .select_from(SubscriptionPlan)
               .join(User, User.plan_id == SubscriptionPlan.id)
               .filter(User.is_active.is_(True))
               .scalar())
    return {
        'total_users': User.query.count(),
        'total_posts': Post.query.count(),
        'total_products': Product.query.count(),
        'total_clicks': Click.query.count(),
        'revenue': float(revenue or 0),
    }


def admin_user_stats(user):
    return {
        'posts': Post.query.filter_by(user_id=user.id).count(),
        'products': _user_products(user).count(),
        'clicks': _user_clicks(user).count(),
    }


def plans_with_user_counts():
    user_count = func.count(User.id).label('user_count')
    rows = (db.session.query(SubscriptionPlan, user_count)
            .outerjoin(User, User.plan_id == SubscriptionPlan.id)
            .group_by(SubscriptionPlan.id)
            .order_by(SubscriptionPlan.price, SubscriptionPlan.id)
            .all())
    return [(plan, count) for plan, count in rows]
