"""
Principal resolution.

Looking up a user is an external concern. The directory answers "who is
this?" by id, email or username, and keeps "does not exist" (None)
distinct from "could not ask right now" (IdentityLookupError).
"""

import threading
from abc import ABC, abstractmethod

from tamperseal.errors import ValidationError
from tamperseal.models import Principal


class PrincipalDirectory(ABC):
    """Abstract principal lookup."""

    @abstractmethod
    def resolve(
        self,
        user_id: str = None,
        email: str = None,
        username: str = None,
    ) -> Principal | None:
        """
        Resolve a principal. The first non-empty selector wins, in the
        order user_id, email, username.

        Returns:
            The Principal, or None if no such principal exists.

        Raises:
            ValidationError: If no selector is given.
            IdentityLookupError: On transient lookup failure.
        """


class InMemoryDirectory(PrincipalDirectory):
    """Directory backed by a dict of registered principals."""

    def __init__(self, principals: list[Principal] = None):
        self._by_id: dict[str, Principal] = {}
        self._lock = threading.Lock()
        for principal in principals or []:
            self.add(principal)

    def add(self, principal: Principal) -> Principal:
        with self._lock:
            self._by_id[principal.id] = principal
        return principal

    def resolve(self, user_id=None, email=None, username=None):
        if not (user_id or email or username):
            raise ValidationError("A user id, email or username is required")

        with self._lock:
            if user_id:
                return self._by_id.get(user_id)
            for principal in self._by_id.values():
                if email and principal.email.lower() == email.lower():
                    return principal
                if not email and principal.username == username:
                    return principal
        return None
