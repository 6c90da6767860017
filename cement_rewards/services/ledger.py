"""Conditional writes for transaction status and point balances.

This module is the only writer of ``transactions.status`` and
``users.points`` once a row exists. Each write is a single UPDATE whose
WHERE clause carries the state it expects, so a racing writer makes the
statement match zero rows instead of silently overwriting. Callers group
the writes of one workflow step inside ``atomic`` so they commit together.
"""
from contextlib import contextmanager
from datetime import datetime
from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from .. import db
from ..models.transaction import Transaction, TransactionStatus
from ..models.user import User
from ..exceptions import (
    RewardsError,
    InvalidTransitionError,
    StaleStateError,
    InsufficientPointsError,
    NotFoundError,
)


@contextmanager
def atomic(action):
    """Commit everything done in the block, or roll all of it back."""
    try:
        yield
        db.session.commit()
    except RewardsError:
        db.session.rollback()
        raise
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Database error during {action}: {str(e)}")
        raise


def transition(transaction, target):
    """Move ``transaction`` to ``target`` if nobody moved it first."""
    target = TransactionStatus(target)
    if not transaction.can_transition_to(target):
        raise InvalidTransitionError(
            f"Cannot move {transaction.type} transaction {transaction.id} "
            f"from {transaction.status} to {target.value}"
        )

    expected = transaction.status
    result = db.session.execute(
        update(Transaction)
        .where(Transaction.id == transaction.id, Transaction.status == expected)
        .values(status=target.value, updated_at=datetime.utcnow())
    )
    if result.rowcount != 1:
        raise StaleStateError(
            f"Transaction {transaction.id} is no longer {expected}; reload and try again"
        )

    current_app.logger.info(
        f"Transaction {transaction.id} ({transaction.type}) {expected} -> {target.value}"
    )
    return transaction


def credit(user_id, amount):
    result = db.session.execute(
        update(User)
        .where(User.id == user_id)
        .values(points=User.points + amount)
    )
    if result.rowcount != 1:
        raise NotFoundError(f"User {user_id} not found")
    current_app.logger.info(f"Credited {amount} points to user {user_id}")


def debit(user_id, amount):
    """Take ``amount`` points, refusing to go below zero."""
    result = db.session.execute(
        update(User)
        .where(User.id == user_id, User.points >= amount)
        .values(points=User.points - amount)
    )
    if result.rowcount != 1:
        if db.session.get(User, user_id) is None:
            raise NotFoundError(f"User {user_id} not found")
        raise InsufficientPointsError("Insufficient points for this reward")
    current_app.logger.info(f"Debited {amount} points from user {user_id}")
