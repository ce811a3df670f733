from flask import Flask, jsonify
from flask_jwt_extended import JWTManager
from flask_cors import CORS
from pymongo import MongoClient
from werkzeug.exceptions import RequestEntityTooLarge
from config import config
import os
from datetime import datetime

# Initialize extensions
jwt = JWTManager()

# MongoDB client will be initialized in create_app
mongo_client = None
mongo_db = None


class MongoWrapper:
    """Simple wrapper to provide Flask-PyMongo-like interface"""
    @property
    def db(self):
        return mongo_db

    @property
    def cx(self):
        return mongo_client


# Create global mongo object for compatibility
mongo = MongoWrapper()


def _connect_mongo(app):
    """Connect to MongoDB and verify the connection with a ping"""
    global mongo_client, mongo_db
    try:
        mongo_uri = app.config.get('MONGO_URI') or os.environ.get('MONGO_URI', 'mongodb://localhost:27017')
        db_name = app.config.get('MONGO_DBNAME') or os.environ.get('MONGO_DBNAME', 'college_quiz_database')

        # Ensure database name is in URI
        if db_name not in mongo_uri:
            if '?' in mongo_uri:
                base_part, query_part = mongo_uri.split('?', 1)
                mongo_uri = f"{base_part.rstrip('/')}/{db_name}?{query_part}"
            else:
                mongo_uri = f"{mongo_uri.rstrip('/')}/{db_name}"

        mongo_client = MongoClient(mongo_uri, serverSelectionTimeoutMS=5000)
        # Test connection
        mongo_client.admin.command('ping')
        mongo_db = mongo_client[db_name]
        app.logger.info(f"[OK] MongoDB connected: {db_name}")
    except Exception as e:
        app.logger.error(f"[ERROR] MongoDB connection failed: {e}")
        mongo_client = None
        mongo_db = None


def create_app(config_name=None):
    """Application factory pattern"""
    app = Flask(__name__)

    # Load configuration
    config_name = config_name or os.environ.get('FLASK_ENV', 'default')
    app.config.from_object(config[config_name])

    # Initialize MongoDB
    if app.config.get('MONGO_CONNECT', True):
        _connect_mongo(app)
    else:
        app.logger.info('[OK] MongoDB connection disabled by configuration')

    # Initialize extensions
    jwt.init_app(app)

    # Register blueprints
    from app.quizzes import bp as quizzes_bp
    app.register_blueprint(quizzes_bp, url_prefix='/api/quizzes')

    # Apply CORS
    CORS(app, resources={r"/api/*": {
        "origins": app.config['CORS_ORIGINS'],
        "allow_headers": app.config['CORS_ALLOW_HEADERS'],
        "methods": app.config['CORS_METHODS'],
        "supports_credentials": app.config['CORS_SUPPORTS_CREDENTIALS']
    }})

    # Create collection indexes
    if mongo_db is not None:
        try:
            with app.app_context():
                from app.utils.init_db import initialize_database
                initialize_database()
        except Exception as e:
            app.logger.error(f'[ERROR] Database initialization failed: {e}')

    @app.errorhandler(RequestEntityTooLarge)
    def request_too_large(e):
        max_mb = app.config['MAX_UPLOAD_SIZE'] // (1024 * 1024)
        return jsonify({'error': f'Upload too large. Maximum size: {max_mb}MB per file'}), 413

    @app.route('/')
    def index():
        return {
            'message': 'College Quiz API',
            'status': 'active',
            'version': '1.0.0',
            'frontend_url': app.config['FRONTEND_URL']
        }

    @app.route('/api/health')
    def health_check():
        db_status = 'connected' if mongo_db is not None else 'disconnected'
        return {
            'status': 'healthy',
            'database': db_status,
            'timestamp': datetime.utcnow().isoformat()
        }

    app.logger.info('[OK] College Quiz API ready')
    return app
