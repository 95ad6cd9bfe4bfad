from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from sqlalchemy.exc import SQLAlchemyError
import click
import json
from config import Config, DEFAULT_CREDENTIAL_SECRET
from matchmaker.credentials import Credentials

db = SQLAlchemy()
migrate = Migrate()
credentials = Credentials()


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    credentials.init_app(flask_app)
    CORS(flask_app, origins=flask_app.config.get('CORS_ORIGINS', []))

    if flask_app.config.get('CREDENTIAL_SECRET') == DEFAULT_CREDENTIAL_SECRET:
        flask_app.logger.warning("[config] CREDENTIAL_SECRET is the built-in default; set it before deploying")

    # Ensure models are registered with the metadata
    from matchmaker import models  # noqa: F401

    from matchmaker.main import main
    flask_app.register_blueprint(main)

    from matchmaker.errors import IdsExhausted, StorageUnavailable

    @flask_app.errorhandler(StorageUnavailable)
    def storage_unavailable(exc):
        return jsonify({'success': False}), 503

    @flask_app.errorhandler(SQLAlchemyError)
    def storage_error(exc):
        db.session.rollback()
        flask_app.logger.error(f"[storage] request aborted: {exc}")
        return jsonify({'success': False}), 503

    @flask_app.errorhandler(IdsExhausted)
    def ids_exhausted(exc):
        flask_app.logger.error(f"[signup] {exc}")
        return jsonify({'success': False}), 503

    @click.command('init-db')
    def init_db_command():
        """Creates the ledger tables and seeds the id sequences."""
        from matchmaker.models import Counter
        from matchmaker.services.ledger.counters import ensure_counters
        with flask_app.app_context():
            db.create_all()
            created = ensure_counters()
            db.session.commit()
            click.echo(f"Database ready; seeded sequences: {', '.join(created) or 'none'}")
            for counter in Counter.query.order_by(Counter.name):
                state = counter.to_dict()
                click.echo(f"{state['name']}: next={state['value']}")

    @click.command('mint-result')
    @click.option('--pid', type=int, required=True, help='Player the result is addressed to.')
    @click.option('--session', 'session_id', type=int, required=True, help='Game session id.')
    @click.option('--players', required=True, help='Two comma separated player ids.')
    @click.option('--scores', required=True, help='Two comma separated scores, e.g. 1,0.')
    @click.option('--ttl', type=int, default=None, help='Lifetime in seconds (default MATCH_TTL_SEC).')
    def mint_result_command(pid, session_id, players, scores, ttl):
        """Mints a game result credential with the shared secret."""
        from matchmaker.credentials import GameResultPayload, Issuer
        try:
            player_ids = tuple(int(p) for p in players.split(','))
            score_values = tuple(float(s) for s in scores.split(','))
        except ValueError as exc:
            raise click.BadParameter(str(exc))
        if len(player_ids) != 2 or len(score_values) != 2:
            raise click.BadParameter('expected exactly two players and two scores')
        if pid not in player_ids:
            raise click.BadParameter(f'--pid {pid} is not one of the players')
        with flask_app.app_context():
            credential = credentials.issue(
                Issuer.GAME_SERVER,
                pid,
                session_id=session_id,
                payload=GameResultPayload(players=player_ids, scores=score_values),
                ttl=ttl or flask_app.config['MATCH_TTL_SEC'],
            )
        click.echo(credential.raw)

    @click.command('player')
    @click.argument('pid', type=int)
    def player_command(pid):
        """Shows a player's rating."""
        from matchmaker.errors import NotFound
        from matchmaker.services.ledger.players import get_player
        with flask_app.app_context():
            try:
                player = get_player(pid)
            except NotFound:
                raise click.ClickException(f'No player {pid}')
            click.echo(f"pid={player.id} rating={player.rating} matchmaking={'yes' if player.credential else 'no'}")

    @click.command('match')
    @click.argument('session_id', type=int)
    def match_command(session_id):
        """Shows the recorded result of a session as JSON."""
        from matchmaker.errors import NotFound
        from matchmaker.services.ledger.matches import get_match
        with flask_app.app_context():
            try:
                record = get_match(session_id)
            except NotFound:
                raise click.ClickException(f'No match recorded for session {session_id}')
            click.echo(json.dumps(record.to_dict()))

    flask_app.cli.add_command(init_db_command)
    flask_app.cli.add_command(mint_result_command)
    flask_app.cli.add_command(player_command)
    flask_app.cli.add_command(match_command)

    return flask_app
