from flask import Flask, jsonify, request, send_from_directory, abort
from flask_cors import CORS
from config import Config
from models import db
from errors import register_error_handlers
from asset_store import init_asset_store, LocalAssetStore, KIND_UPLOAD, KIND_GENERATED
from upload_routes import upload_bp
from generate_routes import generate_bp
from design_routes import design_bp
from contest_routes import contest_bp
from share_routes import share_bp
import os
import logging
from datetime import datetime

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

API_VERSION = '1.0.0'


def create_app(config_object=Config, **overrides):
    """Build the Flask app; keyword overrides win over the config object."""
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.config.update(overrides)

    # Log configuration on startup
    logger.info("=" * 80)
    logger.info("APPLICATION STARTING")
    logger.info("=" * 80)
    logger.info(f"Flask app name: {app.name}")
    logger.info(f"Debug mode: {app.config.get('DEBUG')}")
    logger.info(f"Storage backend: {app.config.get('STORAGE_BACKEND')}")
    logger.info(f"Upload folder: {app.config.get('UPLOAD_FOLDER')}")
    logger.info(f"Generated folder: {app.config.get('GENERATED_FOLDER')}")
    logger.info(f"Gemini API key configured: {bool(app.config.get('GEMINI_API_KEY'))}")
    logger.info(f"Database URI: {app.config.get('SQLALCHEMY_DATABASE_URI', 'Not set')}")
    logger.info("=" * 80)

    CORS(app, origins=[app.config['FRONTEND_URL']], supports_credentials=True)

    # Initialize database
    db.init_app(app)
    with app.app_context():
        db.create_all()
        logger.info("Database tables created/verified")

    init_asset_store(app)
    register_error_handlers(app)

    app.register_blueprint(upload_bp)
    app.register_blueprint(generate_bp)
    app.register_blueprint(design_bp)
    app.register_blueprint(contest_bp)
    app.register_blueprint(share_bp)

    register_request_logging(app)
    register_core_routes(app)
    register_cli(app)
    return app


def register_request_logging(app):
    @app.before_request
    def log_request_info():
        """Log all incoming requests."""
        logger.info(f"INCOMING REQUEST: {request.method} {request.path} from {request.remote_addr}")

    @app.after_request
    def log_response_info(response):
        """Log all outgoing responses."""
        logger.info(f"OUTGOING RESPONSE: {request.method} {request.path} -> {response.status_code}")
        return response


def _serve_local(app, kind, filename):
    asset_store = app.extensions['asset_store']
    if not isinstance(asset_store, LocalAssetStore):
        abort(404)
    directory, _ = asset_store.folders[kind]
    return send_from_directory(directory, filename)


def register_core_routes(app):
    @app.route('/uploads/<path:filename>')
    def serve_upload(filename):
        return _serve_local(app, KIND_UPLOAD, filename)

    @app.route('/generated/<path:filename>')
    def serve_generated(filename):
        return _serve_local(app, KIND_GENERATED, filename)

    @app.route('/api/health')
    def health():
        return jsonify({
            'status': 'OK',
            'timestamp': datetime.utcnow().isoformat(),
            'service': f"{app.config['BRAND_NAME']} Facade Backend",
            'version': API_VERSION,
        })

    @app.route('/')
    def index():
        return jsonify({
            'message': f"{app.config['BRAND_NAME']} Facade Design API",
            'version': API_VERSION,
            'endpoints': {
                'upload': '/api/upload',
                'generate': '/api/generate',
                'designs': '/api/designs',
                'contest': '/api/contest',
                'share': '/api/share',
                'health': '/api/health',
            },
        })


def register_cli(app):
    @app.cli.command('reset-db')
    def reset_db():
        """Drop and recreate every table."""
        logger.warning("Dropping all tables")
        db.drop_all()
        db.create_all()
        logger.info("Database schema recreated")


if __name__ == '__main__':
    app = create_app()
    debug_mode = app.config.get('DEBUG', False)
    port = int(os.getenv('PORT', app.config.get('PORT', 5000)))

    logger.info(f"Starting Flask app in {'DEBUG' if debug_mode else 'PRODUCTION'} mode on port {port}")
    app.run(debug=debug_mode, host='0.0.0.0', port=port)
