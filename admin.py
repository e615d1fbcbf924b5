import logging

from flask import Blueprint, render_template, redirect, url_for, request, flash
from flask_login import current_user

import posts as post_service
from analytics import platform_stats, admin_user_stats, plans_with_user_counts
from auth import admin_required
from forms import PlanForm
from models import db, User, SubscriptionPlan, Post

admin = Blueprint('admin', __name__, url_prefix='/admin')

USER_FILTERS = {'all': None, 'active': True, 'inactive': False}
POST_FILTERS = {'all': None, 'published': True, 'draft': False}


@admin.route('')
@admin_required
def index():
    recent_users = User.query.order_by(User.created_at.desc(), User.id.desc()).limit(5).all()
    recent_posts = Post.query.order_by(Post.created_at.desc(), Post.id.desc()).limit(5).all()
    return render_template('admin/index.html', stats=platform_stats(),
                           recent_users=recent_users, recent_posts=recent_posts)


@admin.route('/users')
@admin_required
def users():
    current_filter = request.args.get('filter', 'all')
    if current_filter not in USER_FILTERS:
        current_filter = 'all'
    query = User.query.order_by(User.created_at.desc(), User.id.desc())
    if USER_FILTERS[current_filter] is not None:
        query = query.filter_by(is_active=USER_FILTERS[current_filter])
    return render_template('admin/users.html', users=query.all(), current_filter=current_filter)


@admin.route('/users/<int:user_id>')
@admin_required
def user_detail(user_id):
    user = db.get_or_404(User, user_id)
    return render_template('admin/user_detail.html', user=user, stats=admin_user_stats(user))


@admin.route('/users/<int:user_id>/toggle', methods=['POST'])
@admin_required
def toggle_user(user_id):
    user = db.get_or_404(User, user_id)
    if user.id == current_user.id:
        flash('Kendi hesabınızı devre dışı bırakamazsınız.', 'danger')
        return redirect(url_for('admin.users'))
    user.is_active = not user.is_active
    db.session.commit()
    logging.info(f"Admin {current_user.username} set user {user.username} active={user.is_active}")
    flash('Kullanıcı durumu güncellendi.', 'success')
    return redirect(request.referrer or url_for('admin.users'))


@admin.route('/posts')
@admin_required
def posts():
    current_filter = request.args.get('filter', 'all')
    if current_filter not in POST_FILTERS:
        current_filter = 'all'
    query = Post.query.order_by(Post.created_at.desc(), Post.id.desc())
    if POST_FILTERS[current_filter] is not None:
        query = query.filter_by(is_published=POST_FILTERS[current_filter])
    return render_template('admin/posts.html', posts=query.all(), current_filter=current_filter)


@admin.route('/posts/<int:post_id>/toggle', methods=['POST'])
@admin_required
def toggle_post(post_id):
    post = db.get_or_404(Post, post_id)
    published = post_service.toggle_publish(post)
    logging.info(f"Admin {current_user.username} set post {post.id} published={published}")
    flash('Post durumu güncellendi.', 'success')
    return redirect(request.referrer or url_for('admin.posts'))


@admin.route('/posts/<int:post_id>/delete', methods=['POST'])
@admin_required
def delete_post(post_id):
    post = db.get_or_404(Post, post_id)
    post_service.delete_post(post)
    logging.info(f"Admin {current_user.username} deleted post {post_id}")
    flash('Post silindi.', 'success')
    return redirect(url_for('admin.posts'))


@admin.route('/plans')
@admin_required
def plans():
    return render_template('admin/plans.html', plans=plans_with_user_counts())


@admin.route('/plans/<int:plan_id>/edit', methods=['GET', 'POST'])
@admin_required
def edit_plan(plan_id):
    plan = db.get_or_404(SubscriptionPlan, plan_id)
    form = PlanForm(obj=plan)
    if request.method == 'GET':
        form.features.data = '\n'.join(plan.features or [])

    if form.validate_on_submit():
        clash = SubscriptionPlan.query.filter(SubscriptionPlan.name == form.name.data,
                                              SubscriptionPlan.id != plan.id).first()
        if clash:
            flash('Bu isimde bir plan zaten var.', 'danger')
        else:
            plan.name = form.name.data
            plan.max_posts = form.max_posts.data
            plan.max_products_per_post = form.max_products_per_post.data
            plan.price = form.price.data
            plan.features = form.feature_list()
            plan.is_active = form.is_active.data
            db.session.commit()
            logging.info(f"Admin {current_user.username} updated plan {plan.name}")
            flash('Plan güncellendi.', 'success')
            return redirect(url_for('admin.plans'))

    return render_template('admin/plan_edit.html', form=form, plan=plan)


@admin.route('/plans/<int:plan_id>/toggle', methods=['POST'])
@admin_required
def toggle_plan(plan_id):
    plan = db.get_or_404(SubscriptionPlan, plan_id)
    plan.is_active = not plan.is_active
    db.session.commit()
    flash('Plan durumu güncellendi.', 'success')
    return redirect(url_for('admin.plans'))
