from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_wtf.csrf import CSRFProtect
from werkzeug.middleware.proxy_fix import ProxyFix
from .config import Config
import logging
from logging.handlers import RotatingFileHandler
import os
import click

# Initialize extensions
db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()
csrf = CSRFProtect()

def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Configure ProxyFix for handling proxy headers (mobile shells talk through a reverse proxy)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)

    # Initialize Flask extensions
    db.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Authentication required'}), 401

    with app.app_context():
        # Import models so they are registered on the metadata
        from . import models  # noqa: F401
        from .api.v1 import bp as api_v1_bp, ROUTE_BLUEPRINTS

        # The JSON API is called from the mobile shell, which cannot render CSRF tokens
        csrf.exempt(api_v1_bp)
        for route_bp in ROUTE_BLUEPRINTS:
            csrf.exempt(route_bp)
        app.register_blueprint(api_v1_bp)

        # Add CLI commands
        @app.cli.command('init-rewards')
        def init_rewards():
            """Seed the sample reward catalogue."""
            from .services.reward import RewardService

            print('Initializing rewards catalogue...')
            if RewardService.initialize_reward_system():
                print('Rewards catalogue initialized successfully')
            else:
                print('Error initializing rewards catalogue')

        @app.cli.command('create-admin')
        @click.argument('email')
        @click.argument('password')
        def create_admin(email, password):
            """Create an admin user, or promote an existing one."""
            from .services.user import UserService

            admin, created = UserService.ensure_admin(email, password)
            if created:
                print(f'Created new admin user {admin.email}')
            else:
                print(f'Updated existing user {admin.email} to admin')

        # Set up logging
        if not app.debug and not app.testing:
            log_dir = app.config['LOG_DIR']
            if not os.path.exists(log_dir):
                os.mkdir(log_dir)
            file_handler = RotatingFileHandler(os.path.join(log_dir, 'app.log'),
                                             maxBytes=10240, backupCount=10)
            file_handler.setFormatter(logging.Formatter(
                '%(asctime)s %(levelname)s: %(message)s '
                '[in %(pathname)s:%(lineno)d]'
            ))
            file_handler.setLevel(logging.INFO)
            app.logger.addHandler(file_handler)

            app.logger.setLevel(logging.INFO)
            app.logger.info('Application startup')

        return app
