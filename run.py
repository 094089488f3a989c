#!/usr/bin/env python3
"""
TrustCareConnect Backend Entry Point
Uses application factory pattern for better modularity and testing
"""

import os
import sys
import argparse
import logging
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from app_factory import create_app
from utils.environment import EnvironmentConfig
from utils.seed import seed_demo_data

logger = logging.getLogger(__name__)

def parse_arguments(argv=None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        description='Run the TrustCareConnect backend service'
    )
    parser.add_argument(
        '--port',
        type=int,
        default=5000,
        help='Port to run the app on (default: 5000)'
    )
    parser.add_argument(
        '--host',
        type=str,
        default='0.0.0.0',
        help='Host to bind to (default: 0.0.0.0)'
    )
    parser.add_argument(
        '--config',
        type=str,
        default='default',
        choices=['default', 'production', 'development'],
        help='Configuration environment (default: default)'
    )
    parser.add_argument(
        '--db-path',
        type=str,
        help='SQLite database file (overrides TRUSTCARE_DB_PATH)'
    )
    parser.add_argument(
        '--seed',
        action='store_true',
        help='Register demo doctors and patients before starting'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug mode'
    )

    return parser.parse_args(argv)

def validate_environment():
    """Warn about missing AI provider keys; drafting falls back to mock responses"""
    env = EnvironmentConfig()
    is_valid, missing_vars = env.validate_environment()
    if not is_valid:
        logger.warning(f"Missing environment variables: {', '.join(missing_vars)}")
        logger.warning("AI drafts will use mock responses until the key is configured")
    logger.info(env.get_environment_summary())
    return is_valid

def main(argv=None):
    """Main application entry point"""
    try:
        args = parse_arguments(argv)

        config_name = 'development' if args.debug else args.config
        overrides = {'DB_PATH': args.db_path} if args.db_path else None
        app = create_app(config_name, overrides)

        validate_environment()

        if args.seed:
            created = seed_demo_data(app.extensions['care_service'])
            logger.info(f"Demo data: {created}")

        # Get port from environment variable (for Heroku) or use argument
        port = int(os.environ.get('PORT', args.port))

        logger.info(f'Starting TrustCareConnect backend on {args.host}:{port}')
        logger.info(f'Configuration: {config_name}')
        logger.info(f'Debug mode: {app.config.get("DEBUG", False)}')

        logger.debug("Registered URL Rules:")
        for rule in app.url_map.iter_rules():
            logger.debug(f"Route: {rule}, Endpoint: {rule.endpoint}")

        app.run(
            host=args.host,
            port=port,
            debug=app.config.get('DEBUG', False),
            threaded=True
        )

    except KeyboardInterrupt:
        logger.info("Application stopped by user")
    except Exception as e:
        logger.error(f"Failed to start application: {e}", exc_info=True)
        sys.exit(1)

if __name__ == '__main__':
    main()
