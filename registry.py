"""
Registration ledger and enumerable unique set.
"""

from typing import Dict, Iterator, List, Set

from access import AlreadyRegistered, NotRegistered


class UniqueSet:
    """Insertion-ordered set: membership against a set, order kept in a list."""

    def __init__(self):
        self._members: Set[str] = set()
        self._order: List[str] = []

    def add(self, item: str) -> bool:
        if item in self._members:
            return False
        self._members.add(item)
        self._order.append(item)
        return True

    def __contains__(self, item) -> bool:
        return item in self._members

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._order))

    def items(self) -> List[str]:
        return list(self._order)


class RegistrationLedger:
    """
    Tracks which principals are enrolled.

    The owning contract gates who may call register/unregister and passes the
    revert reasons it wants surfaced.
    """

    def __init__(self, already_registered: str = "Already registered",
                 not_registered: str = "Not registered"):
        self._enrolled: Dict[str, bool] = {}
        self.already_registered = already_registered
        self.not_registered = not_registered

    def register(self, principal: str) -> None:
        if self.is_registered(principal):
            raise AlreadyRegistered(self.already_registered)
        self._enrolled[principal] = True

    def unregister(self, principal: str) -> None:
        self.require(principal)
        self._enrolled[principal] = False

    def require(self, principal: str, reason: str = None) -> None:
        if not self.is_registered(principal):
            raise NotRegistered(reason or self.not_registered)

    def is_registered(self, principal: str) -> bool:
        return self._enrolled.get(principal, False)
