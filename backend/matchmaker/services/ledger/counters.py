from flask import current_app
from sqlalchemy import select, update

from matchmaker import db
from matchmaker.models import Counter

PLAYER_SEQUENCE = 'player'
SESSION_SEQUENCE = 'session'
SEQUENCES = (PLAYER_SEQUENCE, SESSION_SEQUENCE)


def seed_for(name: str) -> int:
    if name == SESSION_SEQUENCE:
        return int(current_app.config.get('SESSION_ID_OFFSET', 0))
    return 0


def ensure_counters() -> list:
    """Stage rows for sequences that have never been used."""
    created = []
    for name in SEQUENCES:
        if not Counter.query.filter_by(name=name).first():
            db.session.add(Counter(name=name, value=seed_for(name)))
            created.append(name)
    return created


def peek(name: str) -> int:
    """Value the next allocation would return."""
    value = db.session.execute(
        select(Counter.value).where(Counter.name == name)
    ).scalar_one_or_none()
    return seed_for(name) if value is None else value


def next_value(name: str) -> int:
    """Allocate one value from a sequence.

    The increment is staged in the caller's transaction: the value is handed
    out only once that transaction commits, and a rollback returns it
    unused. Callers hold ``sequence_key(name)`` until they commit.
    """
    result = db.session.execute(
        update(Counter)
        .where(Counter.name == name)
        .values(value=Counter.value + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        seed = seed_for(name)
        db.session.add(Counter(name=name, value=seed + 1))
        db.session.flush()
        return seed
    value = db.session.execute(
        select(Counter.value).where(Counter.name == name)
    ).scalar_one()
    return value - 1
