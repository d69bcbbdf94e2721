from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
import json
import click
from config import Config

socketio = SocketIO(async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    allowed_origins = flask_app.config.get('CORS_ORIGINS') or '*'
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # The duel service owns all live match state for this process
    from duel.services.games import DuelService, load_game_config
    from duel.socketio_events import SocketIOGateway
    game_config = load_game_config(flask_app.config.get('GAME_CONFIG_PATH'), flask_app.logger)
    flask_app.extensions['duel'] = DuelService(
        game_config,
        SocketIOGateway(socketio),
        logger=flask_app.logger,
        matchmaking_slack_ms=int(flask_app.config.get('MATCHMAKING_SLACK_MS', 1000)),
        game_over_grace_ms=int(flask_app.config.get('GAME_OVER_GRACE_MS', 1000)),
    )

    # Import and register blueprints here
    from duel.main import main
    flask_app.register_blueprint(main)

    # Register Socket.IO event handlers
    from duel.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    @click.command('duel-config')
    def duel_config_command():
        """Prints the effective game configuration."""
        service = flask_app.extensions['duel']
        click.echo(json.dumps(service.config.to_dict(), indent=2))

    flask_app.cli.add_command(duel_config_command)

    return flask_app
