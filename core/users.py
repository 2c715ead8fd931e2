# core/users.py
"""
User lookup with an explicit outcome.

A missing user and a failing database are different things: the first is a
normal state for a stale session, the second must reach the error handler.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from core.database_models import User
from core.extensions import db

logger = logging.getLogger(__name__)


class LookupStatus(Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    LOOKUP_FAILED = "lookup_failed"


@dataclass
class UserLookup:
    status: LookupStatus
    user: Optional[User] = None
    error: Optional[Exception] = None


class UserLookupError(RuntimeError):
    """Raised when the session user could not be loaded"""


def lookup_user(user_id) -> UserLookup:
    try:
        user = db.session.get(User, user_id)
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"User lookup failed for {user_id}: {e}")
        return UserLookup(LookupStatus.LOOKUP_FAILED, error=e)

    if user is None:
        return UserLookup(LookupStatus.NOT_FOUND)
    return UserLookup(LookupStatus.FOUND, user=user)
