import logging
import os

from flask import Flask, redirect, render_template, url_for
from flask_bcrypt import Bcrypt
from flask_mail import Mail

from gymportal.models.database import DocumentStore, init_db
from gymportal.models.identity import IdentityProvider
from gymportal.utils import helpers

from gymportal.routes.auth import auth_bp
from gymportal.routes.home import home_bp
from gymportal.routes.admin import admin_bp
from gymportal.routes.member_routes import member_routes_bp
from gymportal.routes.debug import debug_bp


def _env_flag(name, default='0'):
    return os.environ.get(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


def create_app(config=None):
    app = Flask(__name__)

    # Configuration
    app.config['SECRET_KEY'] = os.environ.get(
        'SECRET_KEY',
        'your-secret-key-change-in-production'
    )
    app.config['DATABASE_PATH'] = os.environ.get(
        'DATABASE_PATH',
        'gym_portal.db'
    )
    app.config['PAGE_SIZE'] = int(os.environ.get('PAGE_SIZE', '25'))
    app.config['AUTH_MAX_FAILED_ATTEMPTS'] = int(os.environ.get('AUTH_MAX_FAILED_ATTEMPTS', '5'))
    app.config['AUTH_LOCKOUT_SECONDS'] = int(os.environ.get('AUTH_LOCKOUT_SECONDS', '300'))
    app.config['ENABLE_DEBUG_CONSOLES'] = _env_flag('ENABLE_DEBUG_CONSOLES')
    app.config['NOTIFY_BY_EMAIL'] = _env_flag('NOTIFY_BY_EMAIL')
    app.config['LOG_LEVEL'] = os.environ.get('LOG_LEVEL', 'INFO')

    # Mail configuration
    app.config['MAIL_SERVER'] = os.environ.get('MAIL_SERVER', 'localhost')
    app.config['MAIL_PORT'] = int(os.environ.get('MAIL_PORT', '587'))
    app.config['MAIL_USE_TLS'] = _env_flag('MAIL_USE_TLS', '1')
    app.config['MAIL_USERNAME'] = os.environ.get('MAIL_USERNAME')
    app.config['MAIL_PASSWORD'] = os.environ.get('MAIL_PASSWORD')
    app.config['MAIL_DEFAULT_SENDER'] = os.environ.get(
        'MAIL_DEFAULT_SENDER',
        'Gym Portal <noreply@localhost>'
    )

    app.config.setdefault('SESSION_COOKIE_SAMESITE', 'Lax')
    app.config.setdefault('SESSION_COOKIE_HTTPONLY', True)

    if config:
        app.config.update(config)

    app.logger.setLevel(getattr(logging, str(app.config['LOG_LEVEL']).upper(), logging.INFO))

    # Initialize Mail
    app.mail = Mail(app)

    # Initialize Bcrypt and attach to app for convenience
    app.bcrypt = Bcrypt(app)

    # Gateway: document store + identity provider
    init_db(app.config['DATABASE_PATH'])
    app.store = DocumentStore(app.config['DATABASE_PATH'])
    app.identity = IdentityProvider(
        app.config['DATABASE_PATH'],
        app.bcrypt,
        max_failed_attempts=app.config['AUTH_MAX_FAILED_ATTEMPTS'],
        lockout_seconds=app.config['AUTH_LOCKOUT_SECONDS'],
    )
    app.identity.on_auth_state_changed(
        lambda account: app.logger.debug(
            "Auth state changed: %s", "User logged in" if account else "No user")
    )

    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(home_bp, url_prefix='/home')
    app.register_blueprint(admin_bp, url_prefix='/admin')
    app.register_blueprint(member_routes_bp, url_prefix='/member')
    if app.config['ENABLE_DEBUG_CONSOLES']:
        app.register_blueprint(debug_bp, url_prefix='/debug')

    @app.template_filter('currency')
    def currency(value):
        return helpers.format_currency(value)

    @app.template_filter('datetimeformat')
    def datetimeformat(value, with_time=False):
        return helpers.format_date(value, with_time=with_time)

    @app.template_filter('relative')
    def relative(value):
        return helpers.format_relative_time(value)

    @app.template_filter('truncate_text')
    def truncate_text(value, length=50):
        return helpers.truncate(value, length)

    @app.context_processor
    def inject_global_vars():
        return {'debug_consoles': app.config['ENABLE_DEBUG_CONSOLES']}

    @app.route('/')
    def root():
        return redirect(url_for('auth.index'))

    # Error handlers
    @app.errorhandler(404)
    def page_not_found(error):
        return render_template(
            'error.html',
            error_code=404,
            error_message="Page not found"
        ), 404

    @app.errorhandler(500)
    def internal_server_error(error):
        return render_template(
            'error.html',
            error_code=500,
            error_message="Internal server error"
        ), 500

    return app


if __name__ == '__main__':
    app = create_app()
    app.run(debug=True, host='0.0.0.0', port=5000)
