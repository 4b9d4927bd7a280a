"""Account removal service backed by the user repository."""

import logging
from dataclasses import dataclass

from .exceptions import AccountDeletionFailed
from .ports import UserRepository
from .user import User

logger = logging.getLogger(__name__)


@dataclass
class AccountRemover:
    """Implements AccountDeleter by deleting the user row."""

    repository: UserRepository

    def delete_account(self, user: User) -> None:
        if not self.repository.delete(user):
            raise AccountDeletionFailed(user.email)
        logger.info("Deleted account %s", user.id)
