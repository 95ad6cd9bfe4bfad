import os
import sys
import pytest

# Ensure the backend root (containing the `matchmaker` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from matchmaker import create_app, db
from matchmaker.credentials import GameResultPayload, Issuer, MatchPayload


class TestConfig:
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CREDENTIAL_SECRET = 'test-credential-secret'
    LOGIN_TTL_SEC = 0
    MATCH_TTL_SEC = 60
    RATING_K_FACTOR = 32
    INITIAL_RATING = 1500
    SESSION_ID_OFFSET = 0
    MAX_PLAYERS = 1000
    CORS_ORIGINS = []
    LOG_LEVEL = 'DEBUG'


def build_app(config_class):
    application = create_app(config_class)
    with application.app_context():
        db.create_all()
    return application


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def codec(flask_app):
    return flask_app.extensions['credentials']


@pytest.fixture()
def mint_result(codec):
    """Stand-in for the game server: signs a result with the shared secret."""
    def _mint(pid, session_id, players, scores, ttl=60):
        return codec.issue(
            Issuer.GAME_SERVER,
            pid,
            session_id=session_id,
            payload=GameResultPayload(players=tuple(players), scores=tuple(scores)),
            ttl=ttl,
        ).raw
    return _mint


@pytest.fixture()
def mint_matched(codec):
    """A match credential from the live matchmaker once an opponent is found."""
    def _mint(pid, session_id, ttl=60):
        return codec.issue(
            Issuer.MATCH,
            pid,
            session_id=session_id,
            payload=MatchPayload(matched=True),
            ttl=ttl,
        ).raw
    return _mint


@pytest.fixture()
def file_app(tmp_path):
    """App on a file-backed SQLite database, for tests that use threads."""
    class FileConfig(TestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'ledger.db'}"

    application = build_app(FileConfig)
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()
