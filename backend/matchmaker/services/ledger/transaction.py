from contextlib import contextmanager

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from matchmaker import db
from matchmaker.errors import StorageUnavailable


@contextmanager
def unit_of_work():
    """Commit everything staged inside the block, or nothing.

    Store failures surface as StorageUnavailable after the session has been
    rolled back; any other exception is re-raised after the rollback.
    """
    try:
        yield db.session
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error(f"[storage] rolled back: {exc}")
        raise StorageUnavailable(str(exc)) from exc
    except BaseException:
        db.session.rollback()
        raise
