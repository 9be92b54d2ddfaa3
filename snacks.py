"""
Hostel snack marketplace

Sellers list snacks, buyers pay for them up front. Payments stay in the
contract: sellers withdraw their earnings and the owner can refund buyers.
"""

from typing import Dict, List

from access import (Contract, InsufficientBalance, InsufficientPayment, InsufficientQuantity,
                    InvalidArgument, Msg, NotFound, Unauthorized, entrypoint,
                    only, require, view)
from registry import RegistrationLedger
from schemas import Buyer, Seller, Snack


class HostelSnacks(Contract):
    name = "HostelSnacks"

    def __init__(self, owner: str):
        super().__init__(owner)
        self.snacks: Dict[str, Snack] = {}
        self.buyers: Dict[str, Buyer] = {}
        self.sellers: Dict[str, Seller] = {}
        self.buyer_ledger = RegistrationLedger(already_registered="Buyer already registered",
                                               not_registered="Buyer not registered")
        self.seller_ledger = RegistrationLedger(already_registered="Seller already registered",
                                                not_registered="Seller not registered")

    def _only_seller(self, msg: Msg):
        if not self.seller_ledger.is_registered(msg.sender):
            raise Unauthorized("Only seller can perform this action")

    def _only_buyer(self, msg: Msg):
        if not self.buyer_ledger.is_registered(msg.sender):
            raise Unauthorized("Only buyer can perform this action")

    def _snack(self, snack_id: str) -> Snack:
        snack = self.snacks.get(snack_id)
        require(snack is not None, NotFound, "Snack does not exist")
        return snack

    def _check_listing(self, price: int, quantity: int):
        require(price >= 0, InvalidArgument, "Price cannot be negative")
        require(quantity >= 0, InvalidArgument, "Quantity cannot be negative")

    def _own_snack(self, msg: Msg, snack_id: str) -> Snack:
        self._only_seller(msg)
        snack = self._snack(snack_id)
        require(snack.seller == msg.sender, Unauthorized, "Not your snack")
        return snack

    # Registration

    @entrypoint
    def register_seller(self, msg: Msg):
        self.seller_ledger.register(msg.sender)
        self.sellers[msg.sender] = Seller()
        self.emit(msg, "SellerRegistered", seller=msg.sender, username="")

    @entrypoint
    def register_buyer(self, msg: Msg, username: str):
        self.buyer_ledger.register(msg.sender)
        self.buyers[msg.sender] = Buyer(username=username)
        self.emit(msg, "BuyerRegistered", buyer=msg.sender, username=username)

    # Inventory

    @entrypoint
    def add_snack(self, msg: Msg, name: str, price: int, quantity: int, snack_id: str):
        self._only_seller(msg)
        self._check_listing(price, quantity)
        require(snack_id not in self.snacks, InvalidArgument, "Snack already exists")
        self.snacks[snack_id] = Snack(name=name, price=price, quantity=quantity, id=snack_id,
                                      seller=msg.sender)
        self.sellers[msg.sender].snack_ids.append(snack_id)
        self.emit(msg, "SnackAdded", snack_id=snack_id, name=name, price=price, quantity=quantity)

    @entrypoint
    def update_snack(self, msg: Msg, snack_id: str, price: int, quantity: int):
        snack = self._own_snack(msg, snack_id)
        self._check_listing(price, quantity)
        snack.price = price
        snack.quantity = quantity
        self.emit(msg, "SnackUpdated", snack_id=snack_id, price=price, quantity=quantity)

    @entrypoint
    def delete_snack(self, msg: Msg, snack_id: str):
        self._own_snack(msg, snack_id)
        del self.snacks[snack_id]
        self.sellers[msg.sender].snack_ids.remove(snack_id)
        self.emit(msg, "SnackDeleted", snack_id=snack_id)

    # Payments

    @entrypoint(payable=True)
    def buy_snack(self, msg: Msg, snack_id: str, quantity: int):
        self._only_buyer(msg)
        snack = self._snack(snack_id)
        require(quantity > 0, InvalidArgument, "Quantity must be greater than zero")
        total_price = snack.price * quantity
        require(msg.value >= total_price, InsufficientPayment, "Insufficient payment")
        require(quantity <= snack.quantity, InsufficientQuantity, "Not enough quantity available")

        snack.quantity -= quantity
        seller = self.sellers[snack.seller]
        seller.earnings += total_price
        seller.total_earnings += total_price
        seller.total_snacks_sold += quantity
        if snack_id not in seller.sold_snacks:
            seller.sold_snacks.append(snack_id)
        buyer = self.buyers[msg.sender]
        buyer.amount_spent += total_price
        buyer.purchased_snacks += quantity
        if snack_id not in buyer.snack_ids:
            buyer.snack_ids.append(snack_id)
        if msg.value > total_price:
            self.pay(msg, msg.sender, msg.value - total_price)
        self.emit(msg, "SnackPurchased", buyer=msg.sender, snack_id=snack_id, quantity=quantity,
                  total_price=total_price)

    @entrypoint
    def refund_buyer(self, msg: Msg, buyer: str, amount: int):
        only(msg.sender, self.owner_address, "Only owner can perform this action")
        require(amount > 0, InvalidArgument, "Refund amount must be greater than zero")
        self.buyer_ledger.require(buyer)
        profile = self.buyers[buyer]
        require(amount <= profile.amount_spent, InvalidArgument, "Refund exceeds amount spent")
        require(amount <= self.balance, InsufficientBalance, "Insufficient contract balance")
        profile.amount_spent -= amount
        self.pay(msg, buyer, amount)
        self.emit(msg, "BuyerRefunded", buyer=buyer, amount=amount)

    @entrypoint
    def withdraw_earnings(self, msg: Msg):
        self._only_seller(msg)
        seller = self.sellers[msg.sender]
        amount = seller.earnings
        require(amount > 0, InvalidArgument, "No earnings to withdraw")
        require(amount <= self.balance, InsufficientBalance, "Insufficient contract balance")
        seller.earnings = 0
        self.pay(msg, msg.sender, amount)
        self.emit(msg, "EarningsWithdrawn", seller=msg.sender, amount=amount)

    # Views

    @view
    def get_snack(self, msg: Msg, snack_id: str) -> Snack:
        return self._snack(snack_id).model_copy()

    @view
    def get_all_snack_ids(self, msg: Msg) -> List[str]:
        return list(self.snacks)

    @view
    def get_buyer(self, msg: Msg, buyer: str) -> Buyer:
        self.buyer_ledger.require(buyer)
        return self.buyers[buyer].model_copy(deep=True)

    @view
    def get_seller(self, msg: Msg, seller: str) -> Seller:
        self.seller_ledger.require(seller)
        return self.sellers[seller].model_copy(deep=True)
