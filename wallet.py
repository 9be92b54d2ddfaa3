"""
Deposit wallet

Anyone but the owner can deposit, either through deposit() or by sending
value straight to the contract. The owner withdraws from the pooled balance
and can refund individual depositors.
"""

from typing import Dict, List

from access import (Contract, InsufficientBalance, InvalidArgument, Msg, Unauthorized,
                    entrypoint, only, require, view)
from registry import UniqueSet


class Wallet(Contract):
    name = "Wallet"

    def __init__(self, owner: str):
        super().__init__(owner)
        self.depositor_balances: Dict[str, int] = {}
        self.depositors = UniqueSet()
        self.deposit_count = 0

    def _deposit(self, msg: Msg, owner_reason: str):
        require(msg.value > 0, InvalidArgument, "Deposit amount must be greater than zero")
        require(msg.sender != self.owner_address, Unauthorized, owner_reason)
        new_balance = self.depositor_balances.get(msg.sender, 0) + msg.value
        self.depositor_balances[msg.sender] = new_balance
        self.depositors.add(msg.sender)
        self.deposit_count += 1
        self.emit(msg, "Deposited", depositor=msg.sender, amount=msg.value, new_balance=new_balance)

    @entrypoint(payable=True)
    def deposit(self, msg: Msg):
        self._deposit(msg, "Owner cannot deposit to their own wallet")

    def receive(self, msg: Msg):
        """Direct value transfer to the contract."""
        self._deposit(msg, "Owner cannot send Ether directly")

    @entrypoint
    def withdraw(self, msg: Msg, amount: int):
        only(msg.sender, self.owner_address, "Only owner can withdraw")
        require(amount > 0, InvalidArgument, "Withdrawal amount must be greater than zero")
        require(amount <= self.balance, InsufficientBalance, "Insufficient balance")
        self.pay(msg, msg.sender, amount)
        self.emit(msg, "Withdrawn", owner=msg.sender, amount=amount, remaining_balance=self.balance)

    @entrypoint
    def refund_depositor(self, msg: Msg, depositor: str, amount: int):
        only(msg.sender, self.owner_address, "Only owner can issue refunds")
        require(amount > 0, InvalidArgument, "Refund amount must be greater than zero")
        held = self.depositor_balances.get(depositor, 0)
        require(amount <= held, InsufficientBalance, "Depositor doesn't have enough balance")
        require(amount <= self.balance, InsufficientBalance, "Insufficient balance")
        self.depositor_balances[depositor] = held - amount
        self.pay(msg, depositor, amount)
        self.emit(msg, "DepositRefunded", depositor=depositor, amount=amount)

    # Views

    @view
    def get_balance(self, msg: Msg) -> int:
        return self.balance

    @view
    def total_deposits(self, msg: Msg) -> int:
        return self.deposit_count

    @view
    def get_depositors_count(self, msg: Msg) -> int:
        return len(self.depositors)

    @view
    def get_all_depositors(self, msg: Msg) -> List[str]:
        return self.depositors.items()

    @view
    def get_depositor_balance(self, msg: Msg, depositor: str) -> int:
        return self.depositor_balances.get(depositor, 0)

    @view
    def has_depositor_deposited(self, msg: Msg, depositor: str) -> bool:
        return depositor in self.depositors
