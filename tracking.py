import logging

from flask import request
from sqlalchemy.exc import SQLAlchemyError

from models import db, Click


def client_ip():
    forwarded = request.headers.get('X-Forwarded-For', '')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.remote_addr


def record_click(product, user=None, ip=None, user_agent=None, referrer=None):
    """Insert a click for ``product``. Failures are logged, never raised."""
    click = Click(
        product_id=product.id,
        user_id=user.id if user is not None else None,
        ip_address=ip,
        user_agent=(user_agent or '')[:300] or None,
        referrer=(referrer or '')[:500] or None,
    )
    try:
        db.session.add(click)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logging.error(f"Error tracking click for product {product.id}: {e}")
        return None
    return click


def record_request_click(product, user=None):
    return record_click(
        product,
        user=user,
        ip=client_ip(),
        user_agent=request.headers.get('User-Agent'),
        referrer=request.referrer,
    )
