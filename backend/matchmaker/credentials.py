"""Signed bearer credentials.

Every credential is minted with the one process-wide secret. The ``iss``
claim scopes it to the phase that produced it: a login credential, a match
credential and a game result all verify under the same key, but each one is
only accepted where its issuer is expected.

Wire format is an ``itsdangerous`` URL-safe token (HMAC-SHA256) over
compact JSON claims::

    {"iss": "matchmaker", "pid": 7, "sid": 1, "exp": 1700000000,
     "data": {"matched": false, "rating": 1500}}
"""

import enum
import hashlib
import math
import time
from dataclasses import dataclass, field
from typing import Any, Optional, Tuple

from flask import current_app
from itsdangerous import BadPayload, BadSignature, URLSafeSerializer

SALT = 'matchmaker.credential'


class Issuer(enum.Enum):
    LOGIN = 'auth'
    MATCH = 'matchmaker'
    GAME_SERVER = 'game_server'


class VerificationError(Exception):
    """A credential was refused. Callers must not reveal which subclass."""


class SignatureInvalid(VerificationError):
    pass


class IssuerMismatch(VerificationError):
    pass


class Expired(VerificationError):
    pass


class MalformedPayload(VerificationError):
    pass


def _is_id(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _is_number(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


@dataclass(frozen=True)
class LoginPayload:
    @classmethod
    def from_claim(cls, data: dict) -> 'LoginPayload':
        return cls()

    def to_claim(self) -> dict:
        return {}


@dataclass(frozen=True)
class MatchPayload:
    matched: bool = False
    # Rating at issue time, for the game server's benefit only
    rating: Optional[int] = None

    @classmethod
    def from_claim(cls, data: dict) -> 'MatchPayload':
        matched = data.get('matched')
        if not isinstance(matched, bool):
            raise MalformedPayload('matched must be a boolean')
        rating = data.get('rating')
        if rating is not None and (isinstance(rating, bool) or not isinstance(rating, int)):
            raise MalformedPayload('rating must be an integer')
        return cls(matched=matched, rating=rating)

    def to_claim(self) -> dict:
        claim = {'matched': self.matched}
        if self.rating is not None:
            claim['rating'] = self.rating
        return claim


@dataclass(frozen=True)
class GameResultPayload:
    players: Tuple[int, int]
    scores: Tuple[float, float]

    @classmethod
    def from_claim(cls, data: dict) -> 'GameResultPayload':
        # Game servers send their whole final state; only these two keys matter.
        players = data.get('players')
        scores = data.get('scores')
        if not isinstance(players, list) or len(players) != 2 or not all(_is_id(p) for p in players):
            raise MalformedPayload('players must be two player ids')
        if players[0] == players[1]:
            raise MalformedPayload('players must be distinct')
        if not isinstance(scores, list) or len(scores) != 2 or not all(_is_number(s) for s in scores):
            raise MalformedPayload('scores must be two finite numbers')
        return cls(players=(players[0], players[1]), scores=(float(scores[0]), float(scores[1])))

    def to_claim(self) -> dict:
        return {'players': list(self.players), 'scores': list(self.scores)}


# issuer -> (payload type, session id required, expiry required)
_KINDS = {
    Issuer.LOGIN: (LoginPayload, False, False),
    Issuer.MATCH: (MatchPayload, True, True),
    Issuer.GAME_SERVER: (GameResultPayload, True, True),
}


@dataclass(frozen=True)
class Credential:
    issuer: Issuer
    payload: Any
    subject_pid: int
    session_id: Optional[int] = None
    expires_at: Optional[int] = None
    raw: str = field(default='', compare=False, repr=False)


class CredentialCodec:
    """Issues and verifies credentials with a single shared secret."""

    def __init__(self, secret, clock=time.time):
        if not secret:
            raise ValueError('credential secret must not be empty')
        self.clock = clock
        self._serializer = URLSafeSerializer(
            secret,
            salt=SALT,
            signer_kwargs={'digest_method': hashlib.sha256},
        )

    def issue(self, issuer: Issuer, subject_pid: int, session_id: Optional[int] = None,
              payload: Any = None, ttl: Optional[int] = None) -> Credential:
        """Mint a new credential.

        ``ttl`` of ``None`` or ``0`` means the credential never expires,
        which only login credentials may do.
        """
        payload_type, needs_session, needs_expiry = _KINDS[issuer]
        if payload is None and payload_type is LoginPayload:
            payload = LoginPayload()
        if not isinstance(payload, payload_type):
            raise TypeError(f'{issuer.name} credentials carry a {payload_type.__name__}')
        if not _is_id(subject_pid):
            raise ValueError(f'invalid subject pid {subject_pid!r}')
        if needs_session and not _is_id(session_id):
            raise ValueError(f'{issuer.name} credentials need a session id')
        if needs_expiry and not ttl:
            raise ValueError(f'{issuer.name} credentials need a ttl')

        claims = {'iss': issuer.value, 'pid': subject_pid}
        if session_id is not None:
            claims['sid'] = session_id
        expires_at = None
        if ttl:
            expires_at = int(self.clock()) + int(ttl)
            claims['exp'] = expires_at
        claims['data'] = payload.to_claim()

        raw = self._serializer.dumps(claims)
        return Credential(
            issuer=issuer,
            payload=payload,
            subject_pid=subject_pid,
            session_id=session_id,
            expires_at=expires_at,
            raw=raw,
        )

    def verify(self, raw: str, expected_issuer: Issuer) -> Credential:
        """Return the decoded credential or raise a VerificationError."""
        try:
            claims = self._serializer.loads(raw)
        except BadPayload as exc:
            raise MalformedPayload('undecodable claims') from exc
        except BadSignature as exc:
            raise SignatureInvalid(str(exc)) from exc

        if not isinstance(claims, dict):
            raise MalformedPayload('claims must be an object')
        try:
            issuer = Issuer(claims.get('iss'))
        except ValueError:
            raise IssuerMismatch(f"unknown issuer {claims.get('iss')!r}") from None
        if issuer is not expected_issuer:
            raise IssuerMismatch(f'expected {expected_issuer.value}, got {issuer.value}')

        expires_at = claims.get('exp')
        if expires_at is not None:
            if not _is_number(expires_at):
                raise MalformedPayload('exp must be a number')
            if self.clock() > expires_at:
                raise Expired(f'expired at {expires_at}')

        return self._decode(issuer, claims, raw)

    def _decode(self, issuer: Issuer, claims: dict, raw: str) -> Credential:
        payload_type, needs_session, needs_expiry = _KINDS[issuer]
        pid = claims.get('pid')
        session_id = claims.get('sid')
        expires_at = claims.get('exp')
        if not _is_id(pid):
            raise MalformedPayload('pid must be a player id')
        if session_id is not None and not _is_id(session_id):
            raise MalformedPayload('sid must be a session id')
        if needs_session and session_id is None:
            raise MalformedPayload(f'{issuer.name} credentials carry a session id')
        if needs_expiry and expires_at is None:
            raise MalformedPayload(f'{issuer.name} credentials carry an expiry')
        data = claims.get('data', {})
        if not isinstance(data, dict):
            raise MalformedPayload('data must be an object')

        payload = payload_type.from_claim(data)
        if issuer is Issuer.GAME_SERVER and pid not in payload.players:
            raise MalformedPayload('subject is not one of the players')

        return Credential(
            issuer=issuer,
            payload=payload,
            subject_pid=pid,
            session_id=session_id,
            expires_at=expires_at,
            raw=raw,
        )


class Credentials:
    """Flask extension exposing the app's CredentialCodec."""

    def __init__(self, app=None):
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        if int(app.config.get('LOGIN_TTL_SEC', 0)) < 0:
            raise ValueError('LOGIN_TTL_SEC must not be negative')
        if int(app.config.get('MATCH_TTL_SEC', 1800)) <= 0:
            raise ValueError('MATCH_TTL_SEC must be positive')
        app.extensions['credentials'] = CredentialCodec(app.config.get('CREDENTIAL_SECRET'))

    @property
    def codec(self) -> CredentialCodec:
        return current_app.extensions['credentials']

    def issue(self, issuer: Issuer, subject_pid: int, session_id: Optional[int] = None,
              payload: Any = None, ttl: Optional[int] = None) -> Credential:
        return self.codec.issue(issuer, subject_pid, session_id=session_id, payload=payload, ttl=ttl)

    def verify(self, raw: str, expected_issuer: Issuer) -> Credential:
        return self.codec.verify(raw, expected_issuer)

    def issue_login(self, pid: int) -> Credential:
        ttl = int(current_app.config.get('LOGIN_TTL_SEC', 0))
        return self.issue(Issuer.LOGIN, pid, ttl=ttl or None)

    def issue_match(self, pid: int, session_id: int, rating: Optional[int] = None) -> Credential:
        ttl = int(current_app.config.get('MATCH_TTL_SEC', 1800))
        return self.issue(
            Issuer.MATCH,
            pid,
            session_id=session_id,
            payload=MatchPayload(matched=False, rating=rating),
            ttl=ttl,
        )
