"""
Development chain

In-process stand-in for a local development node. It owns funded test
accounts, deploys contracts, runs one transaction at a time and mines a
block per successful transaction. A reverted transaction leaves contract
storage and account balances exactly as they were and mines nothing.

Configuration (environment):
- CHAIN_ACCOUNTS: number of funded test accounts (default 10)
- CHAIN_ACCOUNT_BALANCE: starting balance of each account in ether (default 10000)
"""

import copy
import hashlib
import inspect
import logging
import os
import threading
import time
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from access import ContractError, InvalidArgument, Msg, abi_kind
from breakfast import CollegeBreakfast
from exam import TestExam
from schemas import Account, Deployment, Event, Receipt
from snacks import HostelSnacks
from wallet import Wallet

logger = logging.getLogger(__name__)

WEI_PER_ETHER = 10 ** 18
ZERO_ADDRESS = "0x" + "0" * 40

CONTRACT_TYPES = {cls.name: cls for cls in (CollegeBreakfast, TestExam, HostelSnacks, Wallet)}


class ChainError(Exception):
    """Failure of the environment itself rather than of a contract."""


class ContractNotFound(ChainError):
    pass


class MethodNotFound(ChainError):
    pass


def to_wei(ether) -> int:
    return int(Decimal(str(ether)) * WEI_PER_ETHER)


def from_wei(wei: int) -> Decimal:
    return Decimal(wei) / WEI_PER_ETHER


def make_address(seed: str) -> str:
    return "0x" + hashlib.sha256(seed.encode()).hexdigest()[:40]


class DevChain:
    def __init__(self, accounts: Optional[int] = None, account_balance: Optional[int] = None):
        if accounts is None:
            accounts = int(os.getenv("CHAIN_ACCOUNTS", 10))
        if account_balance is None:
            account_balance = int(os.getenv("CHAIN_ACCOUNT_BALANCE", 10000))
        self.accounts: List[str] = [make_address("account:%d" % i) for i in range(accounts)]
        self.balances: Dict[str, int] = {a: account_balance * WEI_PER_ETHER for a in self.accounts}
        self.contracts: Dict[str, Any] = {}
        self.deployments: List[Deployment] = []
        self.logs: List[Event] = []
        self.block_number = 0
        self.timestamp = int(time.time())
        self._time_offset = 0
        self._next_timestamp: Optional[int] = None
        self._nonces: Dict[str, int] = {}
        self._lock = threading.RLock()

    # Clock

    def _pending_timestamp(self) -> int:
        if self._next_timestamp is not None:
            return self._next_timestamp
        return max(self.timestamp + 1, int(time.time()) + self._time_offset)

    def _seal(self, timestamp: int) -> int:
        self.block_number += 1
        self.timestamp = timestamp
        self._next_timestamp = None
        return self.block_number

    def mine(self) -> int:
        with self._lock:
            return self._seal(self._pending_timestamp())

    def set_next_block_timestamp(self, timestamp: int) -> None:
        with self._lock:
            if timestamp <= self.timestamp:
                raise ChainError("Timestamp %d is lower than or equal to previous block's timestamp %d"
                                 % (timestamp, self.timestamp))
            self._next_timestamp = timestamp
            self._time_offset = timestamp - int(time.time())

    def increase_time(self, seconds: int) -> int:
        with self._lock:
            self._time_offset += seconds
            self._next_timestamp = None
            return self._time_offset

    # Accounts

    def balance_of(self, address: str) -> int:
        contract = self.contracts.get(address)
        if contract is not None:
            return contract.balance
        return self.balances.get(address, 0)

    def list_accounts(self) -> List[Account]:
        return [Account(address=a, balance=self.balances[a]) for a in self.accounts]

    def _require_account(self, address: str):
        if address not in self.balances:
            raise ChainError("Unknown account %s" % address)

    @staticmethod
    def _require_value(value: int):
        if value < 0:
            raise ChainError("Value cannot be negative")

    def _credit(self, address: str, amount: int):
        contract = self.contracts.get(address)
        if contract is not None:
            contract.balance += amount
        else:
            self.balances[address] = self.balances.get(address, 0) + amount

    def _tx_hash(self, sender: str) -> str:
        nonce = self._nonces.get(sender, 0)
        self._nonces[sender] = nonce + 1
        return "0x" + hashlib.sha256(("%s:%d:%d" % (sender, nonce, self.block_number)).encode()).hexdigest()

    # Contracts

    def _contract(self, address: str):
        contract = self.contracts.get(address)
        if contract is None:
            raise ContractNotFound("No contract deployed at %s" % address)
        return contract

    def _method(self, contract, method: str, kinds: Tuple[str, ...]):
        kind = abi_kind(contract, method)
        if kind not in kinds:
            raise MethodNotFound("%s has no %s method %s" % (contract.name, "/".join(kinds), method))
        return getattr(contract, method), kind

    @staticmethod
    def _bind(fn, msg: Msg, args):
        try:
            inspect.signature(fn).bind(msg, *args)
        except TypeError as e:
            raise ChainError("Invalid arguments for %s: %s" % (fn.__name__, e))

    def deploy(self, name: str, sender: str, *args) -> Receipt:
        cls = CONTRACT_TYPES.get(name)
        if cls is None:
            raise ChainError("Unknown contract type %s" % name)
        with self._lock:
            self._require_account(sender)
            try:
                inspect.signature(cls).bind(sender, *args)
            except TypeError as e:
                raise ChainError("Invalid constructor arguments for %s: %s" % (name, e))
            contract = cls(sender, *args)
            tx_hash = self._tx_hash(sender)
            contract.address = make_address("contract:" + tx_hash)
            timestamp = self._pending_timestamp()
            block_number = self._seal(timestamp)
            self.contracts[contract.address] = contract
            self.deployments.append(Deployment(name=name, address=contract.address, deployer=sender,
                                               args=list(args)))
            logger.info("Deployed %s at %s (block %d)", name, contract.address, block_number)
            return Receipt(tx_hash=tx_hash, block_number=block_number, timestamp=timestamp, sender=sender,
                           contract_address=contract.address)

    def transact(self, address: str, method: str, sender: str, *args, value: int = 0) -> Receipt:
        with self._lock:
            contract = self._contract(address)
            fn, kind = self._method(contract, method, ("nonpayable", "payable"))
            if value and kind != "payable":
                raise InvalidArgument("Function is not payable")
            return self._execute(contract, fn, method, sender, args, value)

    def call(self, address: str, method: str, *args, sender: Optional[str] = None):
        with self._lock:
            contract = self._contract(address)
            fn, _ = self._method(contract, method, ("view",))
            msg = Msg(sender or ZERO_ADDRESS, 0, self.timestamp, self.block_number)
            self._bind(fn, msg, args)
            try:
                return fn(msg, *args)
            except ContractError:
                raise
            except Exception as e:
                raise ChainError("Invalid call to %s.%s: %s" % (contract.name, method, e)) from e

    def send(self, sender: str, to: str, value: int) -> Receipt:
        """Plain value transfer. Contracts handle it through their receive hook."""
        with self._lock:
            contract = self.contracts.get(to)
            if contract is not None:
                receive = getattr(contract, "receive", None)
                if receive is None:
                    raise ContractError("Transaction reverted: function selector was not recognized "
                                        "and there's no fallback function")
                return self._execute(contract, receive, None, sender, (), value)
            self._require_account(sender)
            self._require_value(value)
            if self.balances[sender] < value:
                raise ChainError("Insufficient funds for value transfer")
            self.balances[sender] -= value
            self._credit(to, value)
            tx_hash = self._tx_hash(sender)
            timestamp = self._pending_timestamp()
            block_number = self._seal(timestamp)
            return Receipt(tx_hash=tx_hash, block_number=block_number, timestamp=timestamp,
                           sender=sender, to=to, value=value)

    def _execute(self, contract, fn, method: Optional[str], sender: str, args, value: int) -> Receipt:
        self._require_account(sender)
        self._require_value(value)
        if self.balances[sender] < value:
            raise ChainError("Insufficient funds for value transfer")
        timestamp = self._pending_timestamp()
        msg = Msg(sender, value, timestamp, self.block_number + 1)
        self._bind(fn, msg, args)

        snapshot = copy.deepcopy(contract.__dict__)
        contract.balance += value
        try:
            fn(msg, *args)
        except ContractError as e:
            contract.__dict__.clear()
            contract.__dict__.update(snapshot)
            logger.warning("Reverted %s.%s from %s: %s", contract.name, method or "receive", sender, e.reason)
            raise
        except Exception as e:
            contract.__dict__.clear()
            contract.__dict__.update(snapshot)
            logger.error("Failed %s.%s from %s: %s", contract.name, method or "receive", sender, e)
            raise ChainError("Invalid call to %s.%s: %s" % (contract.name, method or "receive", e)) from e

        self.balances[sender] -= value
        for to, amount in msg.transfers:
            self._credit(to, amount)
        tx_hash = self._tx_hash(sender)
        block_number = self._seal(timestamp)
        for event in msg.events:
            event.tx_hash = tx_hash
        self.logs.extend(msg.events)
        logger.info("Mined %s.%s from %s in block %d (%d events)", contract.name, method or "receive",
                    sender, block_number, len(msg.events))
        return Receipt(tx_hash=tx_hash, block_number=block_number, timestamp=timestamp, sender=sender,
                       to=contract.address, method=method, value=value, events=msg.events)

    def get_logs(self, address: Optional[str] = None, event: Optional[str] = None) -> List[Event]:
        with self._lock:
            return [e for e in self.logs
                    if (address is None or e.address == address) and (event is None or e.event == event)]

    def at(self, address: str) -> "ContractHandle":
        contract = self._contract(address)
        return ContractHandle(self, address, contract.owner_address)


class ContractHandle:
    """
    Bound view of a deployed contract. Entry points return receipts, views
    return their result.

        wallet = chain.at(address).connect(depositor)
        wallet.deposit(value=to_wei("1.0"))
        wallet.get_depositor_balance(depositor)
    """

    def __init__(self, chain: DevChain, address: str, sender: str):
        self.chain = chain
        self.address = address
        self.sender = sender

    def connect(self, sender: str) -> "ContractHandle":
        return ContractHandle(self.chain, self.address, sender)

    def __getattr__(self, method: str):
        contract = self.chain._contract(self.address)
        kind = abi_kind(contract, method)
        if kind is None:
            raise AttributeError(method)
        if kind == "view":
            def call(*args):
                return self.chain.call(self.address, method, *args, sender=self.sender)
            return call

        def transact(*args, value: int = 0):
            return self.chain.transact(self.address, method, self.sender, *args, value=value)
        return transact
