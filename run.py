import logging
import os

from skillswap import create_app, socketio
from skillswap.config import Config

# Create Flask app instance
app = create_app()

logger = logging.getLogger(__name__)

# Log the environment and allowed CORS origins
logger.info("Running in %s mode", 'production' if os.getenv('FLASK_ENV') == 'production' else 'development')
logger.info("Allowed CORS origins: %s", Config.CORS_ORIGINS or '*')

if __name__ == '__main__':
    debug_mode = Config.DEBUG
    logger.info("Debug mode is %s", 'on' if debug_mode else 'off')
    socketio.run(app, debug=debug_mode, host="0.0.0.0", port=int(os.getenv("PORT", "5000")))
