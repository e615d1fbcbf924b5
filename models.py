from flask_sqlalchemy import SQLAlchemy
from flask_login import UserMixin
from sqlalchemy.orm import validates
from datetime import datetime

from extensions import bcrypt
from tagging import clamp_percentage

db = SQLAlchemy()

UNLIMITED = -1


class Role(db.Model):
    __tablename__ = 'user_roles'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), unique=True, nullable=False) # 'admin', 'user'
    permissions = db.Column(db.JSON, nullable=False, default=list)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<Role {self.name}>'


class SubscriptionPlan(db.Model):
    __tablename__ = 'subscription_plans'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), unique=True, nullable=False) # free, premium, pro
    max_posts = db.Column(db.Integer, nullable=False, default=3) # -1 for unlimited
    max_products_per_post = db.Column(db.Integer, nullable=False, default=3) # -1 for unlimited
    price = db.Column(db.Float, nullable=False, default=0.0)
    features = db.Column(db.JSON, nullable=False, default=list)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    @property
    def unlimited_posts(self):
        return self.max_posts == UNLIMITED

    @property
    def unlimited_products(self):
        return self.max_products_per_post == UNLIMITED

    def __repr__(self):
        return f'<SubscriptionPlan {self.name}>'


class User(UserMixin, db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(20), unique=True, nullable=False)
    email = db.Column(db.String(150), unique=True, nullable=False)
    password = db.Column(db.String(150), nullable=False)
    bio = db.Column(db.Text, nullable=True)
    avatar_url = db.Column(db.String(500), nullable=True)
    role_id = db.Column(db.Integer, db.ForeignKey('user_roles.id'), nullable=True)
    plan_id = db.Column(db.Integer, db.ForeignKey('subscription_plans.id'), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    role = db.relationship('Role', backref=db.backref('users', lazy='dynamic'))
    plan = db.relationship('SubscriptionPlan', backref=db.backref('users', lazy='dynamic'))
    posts = db.relationship('Post', backref='user', lazy='dynamic',
                            cascade='all, delete-orphan', order_by='Post.created_at.desc()')

    def set_password(self, password):
        self.password = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password, password)

    @property
    def role_name(self):
        return self.role.name if self.role else None

    @property
    def is_admin(self):
        return self.role_name == 'admin'

    def __repr__(self):
        return f'<User {self.username}>'


class Post(db.Model):
    __tablename__ = 'posts'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    image_url = db.Column(db.String(500), nullable=False)
    image_path = db.Column(db.String(500), nullable=True) # storage key of the uploaded image
    caption = db.Column(db.Text, nullable=True)
    is_published = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    products = db.relationship('Product', backref='post', lazy='dynamic',
                               cascade='all, delete-orphan', order_by='Product.created_at')

    @property
    def active_products(self):
        return self.products.filter_by(is_active=True).all()

    @property
    def product_count(self):
        return self.products.filter_by(is_active=True).count()

    @property
    def username(self):
        return self.user.username

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'username': self.username,
            'image_url': self.image_url,
            'caption': self.caption,
            'is_published': self.is_published,
            'product_count': self.product_count,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<Post {self.id}>'


class Product(db.Model):
    __tablename__ = 'products'

    id = db.Column(db.Integer, primary_key=True)
    post_id = db.Column(db.Integer, db.ForeignKey('posts.id', ondelete='CASCADE'), nullable=False, index=True)
    name = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text, nullable=True)
    affiliate_url = db.Column(db.String(1000), nullable=False)
    x_coordinate = db.Column(db.Float, nullable=False) # percent of image width
    y_coordinate = db.Column(db.Float, nullable=False) # percent of image height
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    clicks = db.relationship('Click', backref='product', lazy='dynamic', cascade='all, delete-orphan')

    @validates('x_coordinate', 'y_coordinate')
    def validate_coordinate(self, key, value):
        return clamp_percentage(value)

    def to_dict(self):
        return {
            'id': self.id,
            'post_id': self.post_id,
            'name': self.name,
            'description': self.description,
            'affiliate_url': self.affiliate_url,
            'x_coordinate': self.x_coordinate,
            'y_coordinate': self.y_coordinate,
        }

    def __repr__(self):
        return f'<Product {self.name}>'


class Click(db.Model):
    __tablename__ = 'clicks'

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey('products.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    ip_address = db.Column(db.String(50), nullable=True)
    user_agent = db.Column(db.String(300), nullable=True)
    referrer = db.Column(db.String(500), nullable=True)
    clicked_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)


DEFAULT_ROLES = {
    'admin': ['manage_users', 'manage_posts', 'manage_plans'],
    'user': ['create_posts', 'tag_products'],
}

DEFAULT_PLANS = [
    dict(name='free', max_posts=3, max_products_per_post=3, price=0.0,
         features=['3 post', 'Post başına 3 ürün', 'Temel analitik']),
    dict(name='premium', max_posts=50, max_products_per_post=10, price=49.0,
         features=['50 post', 'Post başına 10 ürün', 'Detaylı analitik']),
    dict(name='pro', max_posts=UNLIMITED, max_products_per_post=UNLIMITED, price=99.0,
         features=['Sınırsız post', 'Sınırsız ürün', 'Detaylı analitik', 'Öncelikli destek']),
]


def seed_reference_data():
    """Insert the default roles and plans if they are missing."""
    for name, permissions in DEFAULT_ROLES.items():
        if not Role.query.filter_by(name=name).first():
            db.session.add(Role(name=name, permissions=permissions))
    for plan in DEFAULT_PLANS:
        if not SubscriptionPlan.query.filter_by(name=plan['name']).first():
            db.session.add(SubscriptionPlan(**plan))
    db.session.commit()
