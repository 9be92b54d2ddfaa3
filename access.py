"""
Access gate and contract primitives

Every contract in this repository is a plain Python object whose public
operations are marked as entry points (state-changing) or views (read-only).
The development chain only dispatches to marked methods, so helpers that are
not marked stay private to the contract.

A failed precondition raises a ContractError carrying the human-readable
revert reason. Contracts check all preconditions before touching storage.
"""

import functools
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ConfigDict, validate_call

from schemas import Event


class ContractError(Exception):
    """Revert raised by a contract. `reason` is shown to callers verbatim."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason

    @property
    def error(self) -> str:
        return type(self).__name__


class Unauthorized(ContractError):
    pass


class InvalidState(ContractError):
    pass


class AlreadyRegistered(ContractError):
    pass


class NotRegistered(ContractError):
    pass


class LimitExceeded(ContractError):
    pass


class InsufficientPayment(ContractError):
    pass


class InsufficientBalance(ContractError):
    pass


class InsufficientQuantity(ContractError):
    pass


class NotFound(ContractError):
    pass


class InvalidArgument(ContractError):
    pass


def require(condition: bool, error: type, reason: str) -> None:
    if not condition:
        raise error(reason)


def only(sender: str, roles, reason: str) -> None:
    """Fail with Unauthorized unless sender holds one of the given roles."""
    if isinstance(roles, str):
        roles = (roles,)
    if sender not in roles:
        raise Unauthorized(reason)


# Method markers

def _validated(func, kind: str):
    """Wrap a contract method so its arguments are checked against its annotations."""
    validated = validate_call(config=ConfigDict(arbitrary_types_allowed=True))(func)

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        return validated(*args, **kwargs)
    wrapper.__abi__ = kind
    return wrapper


def entrypoint(func=None, *, payable: bool = False):
    def mark(f):
        return _validated(f, "payable" if payable else "nonpayable")
    if func is None:
        return mark
    return mark(func)


def view(func):
    return _validated(func, "view")


def abi_kind(contract: Any, method: str) -> Optional[str]:
    if method.startswith("_"):
        return None
    fn = getattr(type(contract), method, None)
    return getattr(fn, "__abi__", None)


class Msg:
    """Call context handed to every entry point and view."""

    def __init__(self, sender: str, value: int = 0, timestamp: int = 0, block_number: int = 0):
        self.sender = sender
        self.value = value
        self.timestamp = timestamp
        self.block_number = block_number
        self.events: List[Event] = []
        self.transfers: List[Tuple[str, int]] = []


class Contract:
    """Base for all contracts. The deployer becomes the owner."""

    name = "Contract"

    def __init__(self, owner: str):
        self.owner_address = owner
        self.address = ""
        # value held by the contract, in wei
        self.balance = 0

    def emit(self, msg: Msg, event: str, **args) -> None:
        msg.events.append(Event(address=self.address, event=event, args=args, block_number=msg.block_number))

    def pay(self, msg: Msg, to: str, amount: int) -> None:
        require(amount >= 0, InvalidArgument, "Amount cannot be negative")
        require(self.balance >= amount, InsufficientBalance, "Insufficient balance")
        self.balance -= amount
        msg.transfers.append((to, amount))

    @view
    def owner(self, msg: Msg) -> str:
        return self.owner_address

    def describe(self) -> Dict[str, Any]:
        abi = {}
        for attr in dir(type(self)):
            kind = abi_kind(self, attr)
            if kind:
                abi[attr] = kind
        return {"name": self.name, "address": self.address, "owner": self.owner_address,
                "balance": self.balance, "abi": abi}
