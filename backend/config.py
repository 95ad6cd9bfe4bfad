import os

DEFAULT_CREDENTIAL_SECRET = 'secret'


class Config:
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///matchmaker.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Signing key shared with every trusted game server
    CREDENTIAL_SECRET = os.environ.get('CREDENTIAL_SECRET') or DEFAULT_CREDENTIAL_SECRET
    # Credential lifetimes (seconds). 0 leaves login credentials unlimited.
    LOGIN_TTL_SEC = int(os.environ.get('LOGIN_TTL_SEC', '0'))
    MATCH_TTL_SEC = int(os.environ.get('MATCH_TTL_SEC', '1800'))
    # Elo
    RATING_K_FACTOR = float(os.environ.get('RATING_K_FACTOR', '32'))
    INITIAL_RATING = int(os.environ.get('INITIAL_RATING', '1500'))
    # Identifier sequences
    SESSION_ID_OFFSET = int(os.environ.get('SESSION_ID_OFFSET', '0'))
    MAX_PLAYERS = int(os.environ.get('MAX_PLAYERS', '10000000'))
    CORS_ORIGINS = [
        o.strip() for o in os.environ.get(
            'CORS_ORIGINS',
            'http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000',
        ).split(',') if o.strip()
    ]
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
