import logging
import os

from flask import Flask
from app.extensions import db, login_manager
from config import Config


def configure_logging(app):
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
    )
    logging.getLogger('app').setLevel(level)
    app.logger.setLevel(level)


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    configure_logging(app)
    os.makedirs(app.instance_path, exist_ok=True)

    # Initialize extensions
    db.init_app(app)
    login_manager.init_app(app)

    # User loader for Flask-Login
    from app.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        from app.errors import error_response
        return error_response('Authentication required', 401)

    from app.errors import register_error_handlers
    register_error_handlers(app)

    from app.cli import register_commands
    register_commands(app)

    # Register blueprints
    from app.routes.auth import auth_bp
    from app.routes.committees import committees_bp
    from app.routes.draws import draws_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(committees_bp)
    app.register_blueprint(draws_bp)

    with app.app_context():
        db.create_all()
        app.logger.info("Database tables ready")

    return app
