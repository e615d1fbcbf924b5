from flask import Flask, render_template, request, jsonify
import click
import logging

import gate
from admin import admin
from api import api
from routes import public, auth, dashboard
from config import Config
from extensions import bcrypt, csrf, login_manager, limiter, talisman, csp
from models import db, User, Role, SubscriptionPlan, seed_reference_data
from storage import storage
from utils import format_number, format_date


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Logging
    logging.basicConfig(filename=app.config.get('LOG_FILE'), level=logging.INFO)

    # Initialize Extensions
    db.init_app(app)
    bcrypt.init_app(app)
    csrf.init_app(app)
    login_manager.init_app(app)
    limiter.init_app(app)
    storage.init_app(app)

    # Talisman for HTTP Headers (HSTS, XSS, Frame Options)
    talisman.init_app(
        app,
        content_security_policy=csp,
        force_https=app.config['FORCE_HTTPS'],
        strict_transport_security=True,
        session_cookie_secure=app.config['SESSION_COOKIE_SECURE'],
        frame_options='DENY' # Prevent Clickjacking
    )

    app.register_blueprint(auth)
    app.register_blueprint(dashboard)
    app.register_blueprint(admin)
    app.register_blueprint(api)
    app.register_blueprint(public)

    gate.init_app(app)

    app.add_template_filter(format_number)
    app.add_template_filter(format_date)

    register_error_handlers(app)
    register_commands(app)
    return app


# --- Error Handlers ---
def register_error_handlers(app):
    @app.errorhandler(404)
    def page_not_found(e):
        if request.path.startswith('/api/'):
            return jsonify({'error': 'Not found'}), 404
        return render_template('404.html'), 404

    @app.errorhandler(403)
    def forbidden(e):
        if request.path.startswith('/api/'):
            return jsonify({'error': 'Forbidden'}), 403
        return "<h1>403 - Bu sayfaya erişim yetkiniz yok.</h1>", 403

    @app.errorhandler(500)
    def internal_server_error(e):
        db.session.rollback()
        if request.path.startswith('/api/'):
            return jsonify({'error': 'Internal server error'}), 500
        return "<h1>500 - Sunucu hatası</h1>", 500


# --- Database Setup ---
def create_db(app):
    with app.app_context():
        db.create_all()
        seed_reference_data()
        if not User.query.filter_by(username=app.config['ADMIN_USERNAME']).first():
            account = User(
                username=app.config['ADMIN_USERNAME'],
                email=app.config['ADMIN_EMAIL'],
                role=Role.query.filter_by(name='admin').first(),
                plan=SubscriptionPlan.query.filter_by(name='pro').first(),
            )
            account.set_password(app.config['ADMIN_PASSWORD'])
            db.session.add(account)
            db.session.commit()
            logging.info(f"Created admin account: {account.username}")


def register_commands(app):
    @app.cli.command('init-db')
    def init_db_command():
        """Create tables, default roles and plans, and the admin account."""
        create_db(app)
        click.echo('Database initialized.')


if __name__ == "__main__":
    app = create_app()
    create_db(app)
    # In production, debug must be False
    app.run(debug=False)
