import enum

from matchmaker import db
from matchmaker.errors import NotFound
from matchmaker.models import MatchRecord


class InsertOutcome(enum.Enum):
    INSERTED = 'inserted'
    ALREADY_EXISTS = 'already_exists'


def get_match(session_id: int) -> MatchRecord:
    record = MatchRecord.query.filter_by(session_id=session_id).first()
    if record is None:
        raise NotFound(f'match {session_id}')
    return record


def insert_if_absent(record: MatchRecord) -> InsertOutcome:
    """Stage ``record`` unless its session already has one.

    This is the only write path for finished matches. Callers hold
    ``session_key(record.session_id)``; a concurrent insert from another
    process trips the primary key on flush and aborts the caller's
    transaction, and its retry then sees ALREADY_EXISTS.
    """
    if MatchRecord.query.filter_by(session_id=record.session_id).first() is not None:
        return InsertOutcome.ALREADY_EXISTS
    db.session.add(record)
    db.session.flush()
    return InsertOutcome.INSERTED
