"""
Application factory for the TrustCareConnect backend.

Builds the Flask app, wires configuration, logging, the database and the
care/drafting services, and registers the blueprints.
"""

import os
import logging
import secrets

from flask import Flask, request

from blueprints.ai_routes import ai_bp
from blueprints.api_routes import api_bp
from blueprints.main_routes import main_bp
from utils import database
from utils.ai_drafting import ClinicalDraftService
from utils.care_service import CareService
from utils.environment import EnvironmentConfig
from utils.error_handlers import register_error_handlers

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class Config:
    DEBUG = False
    TESTING = False
    LOG_LEVEL = logging.INFO


class DevelopmentConfig(Config):
    DEBUG = True
    LOG_LEVEL = logging.DEBUG


class ProductionConfig(Config):
    pass


class TestingConfig(Config):
    TESTING = True
    LOG_LEVEL = logging.WARNING
    AI_PROVIDER = 'mock'


config_by_name = {
    'default': Config,
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
}


def configure_logging(level=logging.INFO, log_file=None):
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)


def create_app(config_name='default', overrides=None):
    """
    Create and configure the Flask application.

    Args:
        config_name (str): One of default, development, production, testing
        overrides (dict): Extra config values (e.g. DB_PATH, AI_PROVIDER) applied last

    Returns:
        Flask: The configured application
    """
    env = EnvironmentConfig()

    app = Flask(__name__)
    app.config.from_object(config_by_name.get(config_name, Config))
    app.config.setdefault('DB_PATH', env.db_path)
    app.config.setdefault('AI_PROVIDER', env.ai_provider)
    app.config.setdefault('AI_DRAFTS_ENABLED', env.ai_drafts_enabled)
    if env.debug_mode:
        app.config['DEBUG'] = True
    if overrides:
        app.config.update(overrides)
    app.secret_key = os.environ.get('SECRET_KEY') or secrets.token_urlsafe(24)
    app.json.sort_keys = False

    configure_logging(app.config['LOG_LEVEL'], env.log_file)

    database.set_db_path(app.config['DB_PATH'])
    database.init_db()

    env.ai_provider = app.config['AI_PROVIDER']
    draft_service = ClinicalDraftService.from_environment(env)
    app.extensions['draft_service'] = draft_service
    app.extensions['care_service'] = CareService(draft_service, drafts_enabled=app.config['AI_DRAFTS_ENABLED'])

    @app.before_request
    def log_request_info():
        logger.debug('Request: %s %s', request.method, request.path)

    register_error_handlers(app)
    app.register_blueprint(main_bp)
    app.register_blueprint(api_bp, url_prefix='/api')
    app.register_blueprint(ai_bp, url_prefix='/api')

    logger.info(f"TrustCareConnect app created with '{config_name}' configuration")
    return app
