"""
Location Service - Flask Application Factory

Creates and configures the Flask application with database, CORS, request
logging, API key protected blueprints and JSON error handlers.

Usage:
    # Development
    python -m location_service

    # Production
    gunicorn -w 4 -b 0.0.0.0:3000 'location_service.app:create_app()'
"""

import logging
import os
from datetime import datetime, timezone
from typing import Optional

from flask import Flask, current_app, jsonify, request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from location_service.config import get_config
from location_service.extensions import cors, db, migrate
from location_service.services import ServiceError


def create_app(config_name: Optional[str] = None) -> Flask:
    """Create and configure the Flask application.

    Args:
        config_name: Configuration environment name ('development', 'testing', 'production').
                    If None, reads from FLASK_ENV environment variable.

    Returns:
        Configured Flask application instance.
    """
    app = Flask(__name__)

    # Load configuration
    config_class = get_config(config_name)
    app.config.from_object(config_class)
    config_class.init_app(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db, directory=os.path.join(os.path.dirname(__file__), 'migrations'))
    cors.init_app(app, resources={r'/api/*': {'origins': app.config['CORS_ORIGINS']}})

    # Import models to register them with SQLAlchemy, then create tables
    with app.app_context():
        from location_service import models  # noqa: F401
        try:
            db.create_all()
            app.logger.info('Database tables initialized')
        except SQLAlchemyError as e:
            # Service still starts; /api/health reports the database as down
            app.logger.error(f'Database initialization error: {e}')

    # Configure logging
    _configure_logging(app)

    # Register request logging
    _register_request_logging(app)

    # Register blueprints
    register_blueprints(app)

    # Register error handlers
    register_error_handlers(app)

    return app


def _configure_logging(app: Flask) -> None:
    """
    Configure application logging.

    Args:
        app: Flask application instance
    """
    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    # Service loggers share the app logger's handlers
    service_logger = logging.getLogger('location_service')
    service_logger.setLevel(logging.INFO)

    log_path = app.config.get('LOG_PATH')
    if log_path:
        try:
            os.makedirs(log_path, exist_ok=True)
            file_handler = logging.FileHandler(os.path.join(log_path, 'location_service.log'))
            file_handler.setLevel(logging.INFO)
            file_handler.setFormatter(formatter)
            app.logger.addHandler(file_handler)
            service_logger.addHandler(file_handler)
        except (OSError, PermissionError):
            # Log path not writable (dev environment), skip file logging
            pass

    # Set application log level
    app.logger.setLevel(logging.INFO)


def _register_request_logging(app: Flask) -> None:
    @app.before_request
    def log_request():
        current_app.logger.info(f'{request.method} {request.path}')


def register_blueprints(app):
    """Register all route blueprints with the Flask application.

    Args:
        app: Flask application instance.
    """
    from location_service.routes import data_bp, locations_bp

    # Routes: /api/locations, /api/locations/<id>, /api/locations/nearby/<lat>/<lng>
    app.register_blueprint(locations_bp)
    app.logger.info('Registered Locations blueprint at /api/locations')

    # Routes: /api/stats, /api/export, /api/import
    app.register_blueprint(data_bp)
    app.logger.info('Registered Data blueprint at /api')

    # Health check stays unauthenticated so clients can probe liveness
    @app.route('/api/health')
    def health_check():
        """Liveness probe including a database round trip."""
        version = app.config['VERSION']
        try:
            db.session.execute(text('SELECT 1'))
        except SQLAlchemyError as e:
            db.session.rollback()
            app.logger.error(f'Health check database error: {e}')
            return jsonify({
                'status': 'error',
                'database': 'disconnected',
                'version': version,
            }), 503

        return jsonify({
            'status': 'ok',
            'database': 'connected',
            'version': version,
            'timestamp': datetime.now(timezone.utc).isoformat(),
        })


def register_error_handlers(app):
    """Register JSON error handlers.

    Args:
        app: Flask application instance.
    """
    @app.errorhandler(ServiceError)
    def service_error(error):
        if error.status_code >= 500:
            db.session.rollback()
            app.logger.error(f'Server error: {error}')
        body = {'success': False, 'error': error.message}
        if error.details:
            body['details'] = error.details
        return jsonify(body), error.status_code

    @app.errorhandler(400)
    def bad_request(error):
        return jsonify({
            'success': False,
            'error': str(error.description) if hasattr(error, 'description') else 'Invalid request'
        }), 400

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({
            'success': False,
            'error': 'The requested resource was not found'
        }), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({
            'success': False,
            'error': 'Method not allowed'
        }), 405

    @app.errorhandler(Exception)
    def internal_server_error(error):
        if isinstance(error, HTTPException):
            return error
        db.session.rollback()
        app.logger.exception(f'Server error: {error}')
        return jsonify({
            'success': False,
            'error': 'Internal server error'
        }), 500
