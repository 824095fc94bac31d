import argparse
import logging

from flask import Flask, jsonify
from flask_cors import CORS
from flask_socketio import SocketIO
from pymongo.errors import PyMongoError

from config import config
from jobnest_server.routes.messages import messages_bp
from jobnest_server.messaging.service import MessagingService
from jobnest_server.repository.mongo_helper import MongoRepositorySingleton
from jobnest_server.security.authentication import AuthSecurity
from jobnest_server.websocket.gateway import ConnectionGateway

logger = logging.getLogger(__name__)

GATEWAY_EXTENSION_KEY = 'messaging_gateway'


def configure_logging():
    """Configure root logging from config (LOG_LEVEL, LOG_FORMAT, LOG_DATE_FORMAT)."""
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL, logging.INFO),
        format=config.LOG_FORMAT,
        datefmt=config.LOG_DATE_FORMAT,
    )
    # engineio/socketio are chatty at INFO
    logging.getLogger('engineio').setLevel(logging.WARNING)
    logging.getLogger('socketio').setLevel(logging.WARNING)


def configure_auth_from_env():
    """Configure AuthSecurity from config / environment variables.

    JWT_SECRET (required): secret shared with the service that issues tokens.
    JWT_ALGORITHM (optional): default HS256.
    ACCESS_TOKEN_MINUTES (optional): default 10 hours.
    """
    secret = config.JWT_SECRET
    if not secret:
        raise RuntimeError('JWT_SECRET environment variable is required')
    AuthSecurity.configure(
        secret_key=secret,
        algorithm=config.JWT_ALGORITHM,
        access_token_expire_minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES,
    )


def create_app(messaging: MessagingService = None, db=None) -> Flask:
    """Application factory used by main() and tests.

    Builds one SocketIO server and one MessagingService per app, so several
    apps (tests) never share presence state. Auth/JWT is configured
    separately via configure_auth_from_env().
    """
    app = Flask(__name__)
    CORS(app, origins=config.CORS_ORIGINS_LIST)

    # async_handlers=False: events from one connection are handled in arrival order
    socketio = SocketIO(
        app,
        async_mode='threading',
        async_handlers=False,
        cors_allowed_origins=config.CORS_ORIGINS_LIST if config.CORS_ORIGINS != '*' else '*',
        ping_timeout=config.SOCKET_PING_TIMEOUT,
        ping_interval=config.SOCKET_PING_INTERVAL,
    )

    if messaging is None:
        if db is None:
            db = MongoRepositorySingleton.get_db()
        messaging = MessagingService.from_db(db, socketio)
    elif messaging.emitter.socketio is None:
        messaging.emitter.init_socketio(socketio)
    messaging.init_app(app)

    gateway = ConnectionGateway(messaging)
    gateway.init_app(app, socketio)
    app.extensions[GATEWAY_EXTENSION_KEY] = gateway

    app.register_blueprint(messages_bp)

    @app.route('/health')
    def health():
        return jsonify({
            'status': 'ok',
            'app': config.APP_NAME,
            'online': len(messaging.presence)
        })

    return app


def parse_args():
    """Parse simple CLI arguments for running the server."""
    parser = argparse.ArgumentParser(description='Run the Jobnest messaging server')
    parser.add_argument('--port', type=int, default=config.PORT, help='TCP port to bind (default: 5000 or PORT env)')
    parser.add_argument('--host', default='0.0.0.0', help='Interface to bind (default: 0.0.0.0)')
    return parser.parse_args()


def main():
    args = parse_args()
    configure_logging()
    config.validate_required()
    configure_auth_from_env()

    app = create_app()
    try:
        app.extensions['messaging'].store.ensure_indexes()
    except PyMongoError as e:
        logger.warning('Could not ensure Message indexes at startup: %s', e)

    socketio = app.extensions['socketio']
    logger.info('Starting %s with Socket.IO on port %s (env=%s)', config.APP_NAME, args.port, config.ENV)
    socketio.run(
        app,
        host=args.host,
        port=args.port,
        debug=config.DEBUG,
        allow_unsafe_werkzeug=not config.IS_PROD,
    )


if __name__ == "__main__":
    main()
