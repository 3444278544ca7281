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
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []

    CORS(flask_app, supports_credentials=True, origins=allowed_origins)
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Game engine: one registry per app, shared by every socket handler
    from tambola.services.engine import GameEngine
    from tambola.services.registry import SessionRegistry
    from tambola.services.tickets import TicketGenerator

    seed = flask_app.config.get('RANDOM_SEED')
    rng = random.Random(seed) if seed is not None else random.Random()
    registry = SessionRegistry(
        rng=rng,
        room_code_length=int(flask_app.config.get('ROOM_CODE_LENGTH', 6)),
        player_code_length=int(flask_app.config.get('PLAYER_CODE_LENGTH', 4)),
    )
    flask_app.extensions['tambola'] = GameEngine(
        registry,
        generator=TicketGenerator(rng),
        rng=rng,
        logger=flask_app.logger,
        max_tickets_per_assign=int(flask_app.config.get('MAX_TICKETS_PER_ASSIGN', 6)),
        chat_history_limit=int(flask_app.config.get('CHAT_HISTORY_LIMIT', 200)),
        chat_max_length=int(flask_app.config.get('CHAT_MAX_LENGTH', 500)),
        notify_dropped=bool(flask_app.config.get('NOTIFY_DROPPED_COMMANDS')),
    )

    from tambola.main import main
    flask_app.register_blueprint(main)

    from tambola.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api/rooms')

    from tambola.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    from tambola.services.sweeper import start_room_sweeper
    start_room_sweeper(flask_app, registry)

    @click.command('tickets-sample')
    @click.option('--count', default=1, show_default=True, help='Number of tickets to print.')
    @click.option('--seed', type=int, default=None, help='Seed for a reproducible sample.')
    def tickets_sample_command(count, seed):
        """Prints freshly generated tickets."""
        generator = TicketGenerator(random.Random(seed))
        for idx, ticket in enumerate(generator.generate_many(count), start=1):
            click.echo(f"Ticket {idx}")
            for row in ticket.rows:
                click.echo(' '.join('  .' if n is None else f"{n:3d}" for n in row))

    flask_app.cli.add_command(tickets_sample_command)

    return flask_app
