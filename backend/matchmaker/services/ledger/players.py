from flask import current_app

from matchmaker import db
from matchmaker.errors import IdsExhausted, NotFound
from matchmaker.models import Player
from matchmaker.services.rating.elo import truncate
from .counters import PLAYER_SEQUENCE, next_value
from .locks import locks, sequence_key
from .transaction import unit_of_work


def create_player() -> int:
    """Allocate a pid and persist its record in one transaction.

    If the commit fails the pid is never returned, and the rolled back
    increment leaves the sequence where it was.
    """
    with locks.hold(sequence_key(PLAYER_SEQUENCE)):
        with unit_of_work():
            pid = next_value(PLAYER_SEQUENCE)
            max_players = int(current_app.config.get('MAX_PLAYERS', 10000000))
            if pid >= max_players:
                raise IdsExhausted(f'all {max_players} player ids are allocated')
            db.session.add(Player(
                id=pid,
                credential=None,
                rating=int(current_app.config.get('INITIAL_RATING', 1500)),
            ))
    return pid


def get_player(pid: int, for_update: bool = False) -> Player:
    query = Player.query.filter_by(id=pid)
    if for_update:
        # Row lock where the database has one; SQLite's write lock covers it otherwise
        query = query.with_for_update()
    player = query.first()
    if player is None:
        raise NotFound(f'player {pid}')
    return player


def set_credential(pid: int, raw_credential: str) -> Player:
    player = get_player(pid, for_update=True)
    player.credential = raw_credential
    db.session.add(player)
    return player


def clear_credential(pid: int) -> Player:
    player = get_player(pid, for_update=True)
    player.credential = None
    db.session.add(player)
    return player


def apply_rating(pid: int, new_rating: float) -> Player:
    """Store a rating from the Elo update, truncated to an integer."""
    rating = truncate(new_rating)
    player = get_player(pid, for_update=True)
    player.rating = rating
    db.session.add(player)
    return player
