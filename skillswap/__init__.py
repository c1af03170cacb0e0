import logging

from flask import Flask, jsonify
from flask_bcrypt import Bcrypt
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from flask_socketio import SocketIO
from flask_sqlalchemy import SQLAlchemy

# Initialize extensions
db = SQLAlchemy()
bcrypt = Bcrypt()
jwt = JWTManager()
socketio = SocketIO()

logger = logging.getLogger(__name__)


def create_app(config_object='skillswap.config.Config'):
    app = Flask(__name__)
    app.config.from_object(config_object)

    configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    bcrypt.init_app(app)
    jwt.init_app(app)
    origins = app.config.get('CORS_ORIGINS') or '*'
    socketio.init_app(app, cors_allowed_origins=origins)
    CORS(app, resources={
        r"/api/*": {
            "origins": origins,
            "methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            "allow_headers": ["Authorization", "Content-Type"],
            "expose_headers": ["Authorization"],
            "supports_credentials": True,
        }
    })

    register_error_handlers(app)

    @app.route('/api/health', methods=['GET'])
    def health():
        return jsonify({'status': 'ok'}), 200

    # Create tables if they don't exist
    with app.app_context():
        from skillswap import models  # noqa: F401
        db.create_all()

    # Import and register Blueprints
    from skillswap.auth_routes import auth_bp
    from skillswap.profile_routes import profile_bp
    from skillswap.match_routes import match_bp
    from skillswap.appointment_routes import appointment_bp
    from skillswap.chat_routes import chat_bp

    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(profile_bp, url_prefix='/api/users')
    app.register_blueprint(match_bp, url_prefix='/api/matches')
    app.register_blueprint(appointment_bp, url_prefix='/api/appointments')
    app.register_blueprint(chat_bp, url_prefix='/api/messages')

    from skillswap.seed import seed_users_command
    app.cli.add_command(seed_users_command)

    logger.info("SkillSwap app created (debug=%s)", app.config.get('DEBUG'))
    return app


def configure_logging(app):
    level = app.config.get('LOG_LEVEL', 'INFO')
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    )
    logging.getLogger('skillswap').setLevel(level)


def register_error_handlers(app):
    from sqlalchemy.exc import SQLAlchemyError

    from skillswap.errors import InfrastructureError, SkillSwapError

    @app.errorhandler(InfrastructureError)
    def handle_infrastructure_error(error):
        return jsonify({'success': False, 'message': 'Server error'}), 500

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(error):
        logger.exception("Unhandled database error: %s", error)
        db.session.rollback()
        return jsonify({'success': False, 'message': 'Server error'}), 500

    @app.errorhandler(SkillSwapError)
    def handle_business_error(error):
        logger.info("Request rejected (%s): %s", type(error).__name__, error.message)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def handle_not_found(error):
        return jsonify({'success': False, 'message': 'Resource not found'}), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(error):
        return jsonify({'success': False, 'message': 'Method not allowed'}), 405
