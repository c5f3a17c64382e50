"""
WSGI entry point for production deployment.
Run with gunicorn: gunicorn -c gunicorn_config.py wsgi:app
"""
import logging
import os

logger = logging.getLogger(__name__)

from app import create_app

app = create_app()

logger.info("=" * 80)
logger.info("WSGI ENTRY POINT LOADED")
logger.info(f"App name: {app.name}")
logger.info(f"PORT environment variable: {os.getenv('PORT', 'Not set')}")
logger.info("=" * 80)

if __name__ == "__main__":
    logger.info("Running app directly (not via gunicorn)")
    app.run(host='0.0.0.0', port=app.config.get('PORT', 5000))
