"""
College breakfast portal

The warden opens and closes the ordering portal and enrols students.
Registered students order while the portal is open, at most ORDER_LIMIT
times per day. Each student keeps a history of the last ORDER_LIMIT orders;
once it is full the oldest order is cancelled to make room.
"""

from enum import IntEnum
from typing import Dict, List, Optional

from access import (Contract, InvalidArgument, InvalidState, LimitExceeded, Msg, NotFound,
                    entrypoint, only, require, view)
from registry import RegistrationLedger
from schemas import FoodOrder

ORDER_LIMIT = 4
CYCLE_SECONDS = 86400


class PortalStatus(IntEnum):
    CLOSED = 0
    OPEN = 1


class OrderHistory:
    """Fixed-capacity ring of orders, indexed by insertion count modulo capacity."""

    def __init__(self, capacity: int = ORDER_LIMIT):
        self.capacity = capacity
        self._slots: List[Optional[FoodOrder]] = [None] * capacity
        self._inserted = 0

    def push(self, order: FoodOrder) -> Optional[FoodOrder]:
        """Store an order, returning the evicted oldest order when full."""
        index = self._inserted % self.capacity
        evicted = self._slots[index]
        self._slots[index] = order
        self._inserted += 1
        return evicted

    def peek_oldest(self) -> Optional[FoodOrder]:
        if self._inserted < self.capacity:
            return None
        return self._slots[self._inserted % self.capacity]

    def last(self) -> Optional[FoodOrder]:
        if self._inserted == 0:
            return None
        return self._slots[(self._inserted - 1) % self.capacity]

    def orders(self) -> List[FoodOrder]:
        """Live orders, oldest first."""
        start = max(0, self._inserted - self.capacity)
        return [self._slots[i % self.capacity] for i in range(start, self._inserted)]

    def __len__(self) -> int:
        return min(self._inserted, self.capacity)


class CollegeBreakfast(Contract):
    name = "CollegeBreakfast"

    def __init__(self, owner: str, warden: str):
        super().__init__(owner)
        self.warden_address = warden
        self.status = PortalStatus.CLOSED
        self.students = RegistrationLedger(
            already_registered="Student is already registered",
            not_registered="Student is not registered",
        )
        self.histories: Dict[str, OrderHistory] = {}
        self.cycle_orders: Dict[str, int] = {}
        self.cycle_day: Dict[str, int] = {}
        self.total_orders = 0

    def _only_warden(self, msg: Msg):
        only(msg.sender, self.warden_address, "Only the warden can call this function")

    # Portal

    @entrypoint
    def open_portal(self, msg: Msg):
        self._only_warden(msg)
        require(self.status != PortalStatus.OPEN, InvalidState, "Portal is already open")
        self.status = PortalStatus.OPEN
        self.emit(msg, "PortalStatusChanged", new_status=int(self.status))

    @entrypoint
    def close_portal(self, msg: Msg):
        self._only_warden(msg)
        require(self.status != PortalStatus.CLOSED, InvalidState, "Portal is already closed")
        self.status = PortalStatus.CLOSED
        self.emit(msg, "PortalStatusChanged", new_status=int(self.status))

    # Students

    @entrypoint
    def register_student(self, msg: Msg, student: str):
        self._only_warden(msg)
        self.students.register(student)
        self.emit(msg, "StudentRegistrationChanged", student=student, is_registered=True)

    @entrypoint
    def unregister_student(self, msg: Msg, student: str):
        self._only_warden(msg)
        self.students.unregister(student)
        self.emit(msg, "StudentRegistrationChanged", student=student, is_registered=False)

    # Orders

    def _orders_today(self, student: str, timestamp: int) -> int:
        if self.cycle_day.get(student) != timestamp // CYCLE_SECONDS:
            return 0
        return self.cycle_orders.get(student, 0)

    @entrypoint
    def order_food(self, msg: Msg, food_item: str):
        require(bool(food_item and food_item.strip()), InvalidArgument, "Food item cannot be empty")
        self.students.require(msg.sender)
        require(self.status == PortalStatus.OPEN, InvalidState, "Portal is not open")
        placed = self._orders_today(msg.sender, msg.timestamp)
        require(placed < ORDER_LIMIT, LimitExceeded, "You have already ordered %d times today" % ORDER_LIMIT)

        history = self.histories.setdefault(msg.sender, OrderHistory())
        if history.peek_oldest() is not None:
            self._cancel_order(msg, msg.sender, history)
        history.push(FoodOrder(food_item=food_item, order_time=msg.timestamp))
        self.cycle_day[msg.sender] = msg.timestamp // CYCLE_SECONDS
        self.cycle_orders[msg.sender] = placed + 1
        self.total_orders += 1
        self.emit(msg, "FoodOrdered", student=msg.sender, food_item=food_item)

    def _cancel_order(self, msg: Msg, student: str, history: OrderHistory):
        oldest = history.peek_oldest()
        # the slot is overwritten by the push that follows
        self.emit(msg, "FoodOrderCancelled", student=student, food_item=oldest.food_item)

    # Views

    @view
    def warden(self, msg: Msg) -> str:
        return self.warden_address

    @view
    def portal_status(self, msg: Msg) -> int:
        return int(self.status)

    @view
    def is_student_registered(self, msg: Msg, student: str) -> bool:
        return self.students.is_registered(student)

    @view
    def get_last_order(self, msg: Msg, student: str) -> FoodOrder:
        history = self.histories.get(student)
        last = history.last() if history else None
        require(last is not None, NotFound, "Student has no orders")
        return last

    @view
    def get_student_orders(self, msg: Msg, student: str) -> List[FoodOrder]:
        history = self.histories.get(student)
        return history.orders() if history else []

    @view
    def get_student_order_count(self, msg: Msg, student: str) -> int:
        self.students.require(student, "student is not registered")
        return self._orders_today(student, msg.timestamp)

    @view
    def get_total_orders(self, msg: Msg) -> int:
        return self.total_orders
