#!/usr/bin/env python3
"""
Run script for QuoteFlow
"""

import argparse
import os
import sys

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from quoteflow import create_app
from quoteflow.build import build_database
from quoteflow.utils.logger import get_logger

# Note: Default user credentials are configured via environment variables.
# Run 'python generate_env.py' to create .env file with secure passwords.

app = create_app()
logger = get_logger("quoteflow.run")


def parse_arguments():
    parser = argparse.ArgumentParser(description='QuoteFlow quote-to-order service')
    parser.add_argument('--build-only', action='store_true',
                        help='Create tables and seed counters and default users, then exit')
    parser.add_argument('--skip-build', action='store_true',
                        help='Start the server without touching the database schema')
    return parser.parse_args()


if __name__ == '__main__':
    args = parse_arguments()

    logger.debug("Starting QuoteFlow...")

    if not args.skip_build:
        build_database(app)

    if args.build_only:
        logger.debug("Build completed. Exiting without starting web server.")
        sys.exit(0)

    # FLASK_DEBUG: Enable/disable debug mode (default: False for security)
    debug_mode = os.environ.get('FLASK_DEBUG', 'False').lower() in ('true', '1', 'yes', 'on')

    # USE_RELOADER: Enable/disable auto-reloader (default: False in production)
    use_reloader = os.environ.get('USE_RELOADER', 'False').lower() in ('true', '1', 'yes', 'on')

    host = os.environ.get('FLASK_HOST', '127.0.0.1')
    port = int(os.environ.get('FLASK_PORT', '5000'))

    if debug_mode:
        logger.warning("DEBUG MODE ENABLED - Do not use in production!")

    logger.info(f"Starting server on {host}:{port} (debug={debug_mode}, reloader={use_reloader})")
    app.run(debug=debug_mode, host=host, port=port, use_reloader=use_reloader, threaded=True)
