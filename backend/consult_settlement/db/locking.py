"""
Row-level helpers for moving a record from one state table to another.

A move locks its source row, inserts the destination row and deletes the
source row inside the caller's transaction. The delete has to hit exactly one
row; otherwise a concurrent move got there first and the whole transaction is
rolled back.
"""
from sqlalchemy.orm import Session
from consult_settlement.core.errors import IntegrityViolationError, RowNotFoundError
import logging

logger = logging.getLogger(__name__)


def find_with_exclusive_lock(db: Session, model, *criteria):
    """SELECT ... FOR UPDATE a single row, or None."""
    return db.query(model).filter(*criteria).with_for_update().one_or_none()


def delete_moved_row(db: Session, model, *criteria) -> None:
    """Delete the source row of a move, insisting that exactly one row goes."""
    # matched instances are evicted from the session as well
    deleted = db.query(model).filter(*criteria).delete(synchronize_session="evaluate")
    if deleted != 1:
        raise RowNotFoundError(
            f"expected to delete exactly one {model.__tablename__} row but deleted {deleted}"
        )


def find_at_most_one(db: Session, model, consultation_id: int):
    """
    Fetch the row of a single-row-per-consultation table.

    Two or more rows mean the store is corrupt; that is never resolved by
    picking one.
    """
    rows = db.query(model).filter(model.consultation_id == consultation_id).all()
    if len(rows) > 1:
        logger.error(
            f"{len(rows)} {model.__tablename__} rows found for consultation_id {consultation_id}"
        )
        raise IntegrityViolationError(
            f"multiple {model.__tablename__} rows for consultation_id {consultation_id}"
        )
    return rows[0] if rows else None
