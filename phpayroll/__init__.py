# phpayroll/__init__.py
import os
from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from config import config

db = SQLAlchemy()
migrate = Migrate()

def create_app(config_name='default'):
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name])

    # Initialize app-specific configuration (logging, etc.)
    config[config_name].init_app(app)

    os.makedirs(app.instance_path, exist_ok=True)

    db.init_app(app)
    migrate.init_app(app, db, directory=app.config.get('MIGRATION_DIR'))

    # Models must be imported so the ORM triggers are registered
    from phpayroll.models import payroll  # noqa: F401

    # --- Register Blueprints ---
    from .attendance import bp as attendance_bp
    app.register_blueprint(attendance_bp)

    from .payroll import bp as payroll_bp
    app.register_blueprint(payroll_bp)

    # --- Register Error Handlers ---
    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify(error='Not found'), 404

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return jsonify(error='Internal server error'), 500

    return app
