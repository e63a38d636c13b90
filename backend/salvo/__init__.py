import random

import click
from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO

from config import Config

socketio = SocketIO(async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # One registry per app; shutdown() ends every running game
    from salvo.registry import ConnectionRegistry
    from salvo.router import MessageRouter
    from salvo.socketio_events import SocketIOTransport, register_socketio_handlers

    namespace = flask_app.config.get('SOCKETIO_NAMESPACE', '/ws')
    seed = flask_app.config.get('PLACEMENT_SEED')
    registry = ConnectionRegistry(
        SocketIOTransport(socketio, namespace),
        fleet=flask_app.config.get('FLEET', Config.FLEET),
        rng=random.Random(seed),
    )
    flask_app.extensions['salvo'] = MessageRouter(registry)
    register_socketio_handlers(namespace)

    from salvo.main import main
    flask_app.register_blueprint(main)

    @click.command('preview-board')
    @click.option('--seed', type=int, default=None, help='Seed for a reproducible layout.')
    def preview_board_command(seed):
        """Places the configured fleet on an empty board and prints it."""
        from salvo.services.battle.board import Board
        board = Board()
        board.place(flask_app.config.get('FLEET', Config.FLEET), random.Random(seed))
        click.echo(board.render())

    flask_app.cli.add_command(preview_board_command)

    flask_app.logger.info(
        f"[init] namespace={namespace} fleet={registry.fleet} "
        f"turn_timeout={flask_app.config.get('TURN_TIMEOUT_SEC', 0)}"
    )
    return flask_app
