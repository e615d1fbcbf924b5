import logging

from flask import (Blueprint, render_template, redirect, url_for, request, flash, abort,
                   send_from_directory)
from flask_login import login_user, logout_user, login_required, current_user
from sqlalchemy.exc import SQLAlchemyError

import posts as post_service
from analytics import user_stats, user_analytics, TIME_RANGES
from auth import check_subscription_limits, get_current_user
from extensions import limiter
from forms import LoginForm, RegisterForm, PostForm, CaptionForm, ProductForm, ProductEditForm
from models import db, User, Role, SubscriptionPlan, Post, Product
from storage import storage, StorageError, IMAGE_EXTENSIONS
from tracking import record_request_click
from utils import get_avatar_url

public = Blueprint('public', __name__)
auth = Blueprint('auth', __name__)
dashboard = Blueprint('dashboard', __name__, url_prefix='/dashboard')

GENERIC_ERROR = 'Bir hata oluştu. Lütfen tekrar deneyin.'


def _safe_redirect_target(target):
    if target and target.startswith('/') and not target.startswith('//') and '\\' not in target:
        return target
    return None


# --- Public ---

@public.route('/')
def index():
    return render_template('index.html')


@public.route('/uploads/<path:path>')
def uploaded_file(path):
    if path.rsplit('.', 1)[-1].lower() not in IMAGE_EXTENSIONS:
        abort(404)
    return send_from_directory(storage.root, path)


@public.route('/go/<int:product_id>')
@limiter.limit("60 per minute")
def go(product_id):
    product = db.get_or_404(Product, product_id)
    if not product.is_active or not product.post.is_published or not product.post.user.is_active:
        abort(404)
    record_request_click(product, user=get_current_user())
    return redirect(product.affiliate_url)


@public.route('/<username>')
def profile(username):
    user = User.query.filter_by(username=username, is_active=True).first_or_404()
    published = user.posts.filter_by(is_published=True).all()
    return render_template('profile.html', user=user, posts=published)


# --- Auth ---

@auth.route('/login', methods=['GET', 'POST'])
@limiter.limit("5 per minute")
def login():
    form = LoginForm()
    if request.method == 'POST' and form.honeypot.data:
        logging.warning(f"Bot detected via honeypot from {request.remote_addr}")
        return redirect(url_for('public.index')) # Silent fail for bots

    if form.validate_on_submit():
        user = User.query.filter_by(username=form.username.data).first()

        if user and user.check_password(form.password.data):
            if not user.is_active:
                logging.warning(f"Login attempt for deactivated user: {user.username} from {request.remote_addr}")
                flash('Hesabınız devre dışı bırakılmış.', 'danger')
            else:
                login_user(user)
                logging.info(f"Successful login for user: {user.username}")
                target = _safe_redirect_target(request.args.get('redirectTo'))
                return redirect(target or url_for('dashboard.index'))
        else:
            logging.warning(f"Failed login attempt for user: {form.username.data} from {request.remote_addr}")
            flash('Kullanıcı adı veya şifre hatalı.', 'danger')

    return render_template('login.html', form=form)


@auth.route('/register', methods=['GET', 'POST'])
@limiter.limit("3 per minute")
def register():
    form = RegisterForm()
    if request.method == 'POST' and form.honeypot.data:
        logging.warning(f"Bot detected via honeypot from {request.remote_addr}")
        return redirect(url_for('public.index'))

    if form.validate_on_submit():
        email = form.email.data.strip().lower()
        user = User(
            username=form.username.data,
            email=email,
            avatar_url=get_avatar_url(email),
            role=Role.query.filter_by(name='user').first(),
            plan=SubscriptionPlan.query.filter_by(name='free').first(),
        )
        user.set_password(form.password.data)
        try:
            db.session.add(user)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logging.error(f"Error registering user {form.username.data}: {e}")
            flash(GENERIC_ERROR, 'danger')
        else:
            logging.info(f"New user registered: {user.username}")
            login_user(user)
            return redirect(url_for('dashboard.index'))

    return render_template('register.html', form=form)


@auth.route('/logout')
@login_required
def logout():
    logout_user()
    return redirect(url_for('public.index'))


# --- Dashboard ---

def _own_post_or_404(post_id):
    post = db.get_or_404(Post, post_id)
    if post.user_id != current_user.id:
        abort(404)
    return post


def _own_product_or_404(product_id):
    product = db.get_or_404(Product, product_id)
    if product.post.user_id != current_user.id or not product.is_active:
        abort(404)
    return product


@dashboard.route('')
@login_required
def index():
    stats = user_stats(current_user)
    quota = check_subscription_limits(current_user, 'posts')
    recent = current_user.posts.limit(6).all()
    return render_template('dashboard/index.html', stats=stats, quota=quota, posts=recent)


@dashboard.route('/posts')
@login_required
def posts():
    return render_template('dashboard/posts.html', posts=current_user.posts.all())


@dashboard.route('/posts/new', methods=['GET', 'POST'])
@login_required
def new_post():
    form = PostForm()
    if form.validate_on_submit():
        try:
            post = post_service.create_post(current_user, form.image.data,
                                            caption=form.caption.data,
                                            is_published=form.is_published.data)
        except post_service.QuotaExceeded:
            flash('Post limitinize ulaştınız. Planınızı yükseltin.', 'warning')
            return redirect(url_for('dashboard.upgrade', reason='post_limit'))
        except StorageError as e:
            flash(str(e), 'danger')
        except SQLAlchemyError:
            flash(GENERIC_ERROR, 'danger')
        else:
            flash('Post oluşturuldu! Şimdi ürünlerini etiketleyebilirsin.', 'success')
            return redirect(url_for('dashboard.edit_post', post_id=post.id))

    return render_template('dashboard/new_post.html', form=form)


@dashboard.route('/posts/<int:post_id>/edit')
@login_required
def edit_post(post_id):
    post = _own_post_or_404(post_id)
    caption_form = CaptionForm(caption=post.caption)
    product_form = ProductForm()
    quota = check_subscription_limits(current_user, 'products', post=post)
    return render_template('dashboard/edit_post.html', post=post, products=post.active_products,
                           caption_form=caption_form, product_form=product_form, quota=quota)


@dashboard.route('/posts/<int:post_id>/caption', methods=['POST'])
@login_required
def update_caption(post_id):
    post = _own_post_or_404(post_id)
    form = CaptionForm()
    if form.validate_on_submit():
        post_service.update_caption(post, form.caption.data)
        flash('Açıklama güncellendi.', 'success')
    else:
        flash(GENERIC_ERROR, 'danger')
    return redirect(url_for('dashboard.edit_post', post_id=post.id))


@dashboard.route('/posts/<int:post_id>/publish', methods=['POST'])
@login_required
def toggle_publish(post_id):
    post = _own_post_or_404(post_id)
    published = post_service.toggle_publish(post)
    flash('Post yayınlandı.' if published else 'Post taslağa alındı.', 'success')
    return redirect(request.referrer or url_for('dashboard.posts'))


@dashboard.route('/posts/<int:post_id>/delete', methods=['POST'])
@login_required
def delete_post(post_id):
    post = _own_post_or_404(post_id)
    post_service.delete_post(post)
    flash('Post silindi.', 'success')
    return redirect(url_for('dashboard.posts'))


@dashboard.route('/posts/<int:post_id>/products', methods=['POST'])
@login_required
def add_product(post_id):
    post = _own_post_or_404(post_id)
    form = ProductForm()
    if not form.validate_on_submit():
        for errors in form.errors.values():
            flash(errors[0], 'danger')
        return redirect(url_for('dashboard.edit_post', post_id=post.id))

    try:
        post_service.add_product(post, form.name.data, form.affiliate_url.data,
                                 form.x_coordinate.data, form.y_coordinate.data,
                                 description=form.description.data)
    except post_service.QuotaExceeded:
        flash('Maksimum ürün sayısına ulaştınız.', 'warning')
    except ValueError:
        flash('Resim üzerinde bir nokta seçin.', 'danger')
    except SQLAlchemyError:
        flash('Ürün kaydedilirken bir hata oluştu.', 'danger')
    else:
        flash('Ürün etiketlendi.', 'success')
    return redirect(url_for('dashboard.edit_post', post_id=post.id))


@dashboard.route('/products/<int:product_id>', methods=['POST'])
@login_required
def update_product(product_id):
    product = _own_product_or_404(product_id)
    form = ProductEditForm()
    if form.validate_on_submit():
        post_service.update_product(product, form.name.data, form.affiliate_url.data,
                                    description=form.description.data)
        flash('Ürün güncellendi.', 'success')
    else:
        flash('Ürün adı ve affiliate URL zorunludur.', 'danger')
    return redirect(url_for('dashboard.edit_post', post_id=product.post_id))


@dashboard.route('/products/<int:product_id>/delete', methods=['POST'])
@login_required
def delete_product(product_id):
    product = _own_product_or_404(product_id)
    post_service.deactivate_product(product)
    flash('Ürün silindi.', 'success')
    return redirect(url_for('dashboard.edit_post', post_id=product.post_id))


@dashboard.route('/analytics')
@login_required
def analytics():
    time_range = request.args.get('range', '30d')
    if time_range not in TIME_RANGES:
        time_range = '30d'
    data = user_analytics(current_user, time_range=time_range)
    return render_template('dashboard/analytics.html', analytics=data, time_ranges=list(TIME_RANGES))


@dashboard.route('/upgrade')
@login_required
def upgrade():
    plans = (SubscriptionPlan.query.filter_by(is_active=True)
             .order_by(SubscriptionPlan.price).all())
    return render_template('dashboard/upgrade.html', plans=plans, reason=request.args.get('reason'))


@dashboard.route('/upgrade/<int:plan_id>', methods=['POST'])
@login_required
def request_upgrade(plan_id):
    plan = db.get_or_404(SubscriptionPlan, plan_id)
    if not plan.is_active:
        abort(404)
    # Payment processing is not part of this application
    flash(f'{plan.name} planına yükseltme işlemi yakında eklenecek!', 'info')
    return redirect(url_for('dashboard.upgrade'))
