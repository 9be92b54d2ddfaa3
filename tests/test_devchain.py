"""
Development chain and shared primitives: order history ring, registration
ledger, value accounting and revert rollback.
"""

import os
import sys
import unittest
from decimal import Decimal

_TEST_DIR = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, os.path.dirname(_TEST_DIR))

from access import (AlreadyRegistered, Contract, ContractError, InvalidArgument, Msg, NotRegistered,
                    Unauthorized)
from breakfast import OrderHistory
from devchain import ChainError, ContractNotFound, DevChain, MethodNotFound, from_wei, to_wei
from registry import RegistrationLedger, UniqueSet
from schemas import FoodOrder


class TestOrderHistory(unittest.TestCase):
    def test_empty(self):
        history = OrderHistory()
        self.assertIsNone(history.last())
        self.assertIsNone(history.peek_oldest())
        self.assertEqual(history.orders(), [])
        self.assertEqual(len(history), 0)

    def test_evicts_oldest_when_full(self):
        history = OrderHistory(capacity=2)
        self.assertIsNone(history.push(FoodOrder(food_item="a", order_time=1)))
        self.assertIsNone(history.push(FoodOrder(food_item="b", order_time=2)))
        self.assertEqual(history.peek_oldest().food_item, "a")
        evicted = history.push(FoodOrder(food_item="c", order_time=3))
        self.assertEqual(evicted.food_item, "a")
        self.assertEqual([o.food_item for o in history.orders()], ["b", "c"])
        self.assertEqual(history.last().food_item, "c")
        self.assertEqual(len(history), 2)


class TestRegistry(unittest.TestCase):
    def test_unique_set(self):
        s = UniqueSet()
        self.assertTrue(s.add("x"))
        self.assertFalse(s.add("x"))
        s.add("y")
        self.assertEqual(s.items(), ["x", "y"])
        self.assertIn("x", s)
        self.assertEqual(len(s), 2)
        self.assertEqual(list(s), ["x", "y"])

    def test_ledger(self):
        ledger = RegistrationLedger(already_registered="dup", not_registered="missing")
        ledger.register("alice")
        self.assertTrue(ledger.is_registered("alice"))
        with self.assertRaises(AlreadyRegistered) as ctx:
            ledger.register("alice")
        self.assertEqual(ctx.exception.reason, "dup")
        ledger.unregister("alice")
        self.assertFalse(ledger.is_registered("alice"))
        with self.assertRaises(NotRegistered) as ctx:
            ledger.require("alice", "custom")
        self.assertEqual(ctx.exception.reason, "custom")


class TestUnits(unittest.TestCase):
    def test_wei_conversion(self):
        self.assertEqual(to_wei("0.01"), 10 ** 16)
        self.assertEqual(to_wei(1), 10 ** 18)
        self.assertEqual(from_wei(10 ** 16), Decimal("0.01"))


class TestDevChain(unittest.TestCase):
    def setUp(self):
        self.chain = DevChain(accounts=3, account_balance=10)
        self.owner, self.alice, self.bob = self.chain.accounts
        receipt = self.chain.deploy("Wallet", self.owner)
        self.address = receipt.contract_address

    def test_accounts_funded(self):
        accounts = self.chain.list_accounts()
        self.assertEqual(len(accounts), 3)
        self.assertEqual(accounts[1].balance, to_wei(10))

    def test_deploy_mines_block(self):
        self.assertEqual(self.chain.block_number, 1)
        self.assertEqual(self.chain.deployments[0].name, "Wallet")
        self.assertEqual(self.chain.deployments[0].deployer, self.owner)

    def test_unknown_contract_type(self):
        with self.assertRaises(ChainError):
            self.chain.deploy("Lottery", self.owner)

    def test_bad_constructor_arguments(self):
        with self.assertRaises(ChainError):
            self.chain.deploy("CollegeBreakfast", self.owner)

    def test_value_to_non_payable(self):
        with self.assertRaises(InvalidArgument) as ctx:
            self.chain.transact(self.address, "withdraw", self.owner, 1, value=5)
        self.assertEqual(ctx.exception.reason, "Function is not payable")

    def test_private_and_view_methods_not_transactable(self):
        with self.assertRaises(MethodNotFound):
            self.chain.transact(self.address, "_deposit", self.alice, "x")
        with self.assertRaises(MethodNotFound):
            self.chain.transact(self.address, "get_balance", self.alice)
        with self.assertRaises(MethodNotFound):
            self.chain.call(self.address, "withdraw", 1)

    def test_unknown_address(self):
        with self.assertRaises(ContractNotFound):
            self.chain.call("0xdead", "get_balance")

    def test_insufficient_funds(self):
        with self.assertRaises(ChainError):
            self.chain.transact(self.address, "deposit", self.alice, value=to_wei(11))

    def test_revert_rolls_back(self):
        self.chain.transact(self.address, "deposit", self.alice, value=100)
        block = self.chain.block_number
        balance = self.chain.balance_of(self.alice)
        with self.assertRaises(ContractError):
            self.chain.transact(self.address, "refund_depositor", self.owner, self.alice, 101)
        self.assertEqual(self.chain.block_number, block)
        self.assertEqual(self.chain.balance_of(self.alice), balance)
        self.assertEqual(self.chain.balance_of(self.address), 100)
        self.assertEqual(self.chain.call(self.address, "get_depositor_balance", self.alice), 100)

    def test_failed_payable_keeps_sender_value(self):
        balance = self.chain.balance_of(self.owner)
        with self.assertRaises(Unauthorized):
            self.chain.transact(self.address, "deposit", self.owner, value=100)
        self.assertEqual(self.chain.balance_of(self.owner), balance)
        self.assertEqual(self.chain.balance_of(self.address), 0)

    def test_mistyped_payable_call_rolls_back(self):
        snacks = self.chain.deploy("HostelSnacks", self.owner).contract_address
        self.chain.transact(snacks, "register_buyer", self.alice, "alice")
        balance = self.chain.balance_of(self.alice)
        block = self.chain.block_number
        with self.assertRaises(ChainError):
            self.chain.transact(snacks, "buy_snack", self.alice, "chips", "two", value=to_wei(1))
        self.assertEqual(self.chain.balance_of(self.alice), balance)
        self.assertEqual(self.chain.balance_of(snacks), 0)
        self.assertEqual(self.chain.block_number, block)

    def test_mistyped_fee_rejected_before_storage(self):
        exam = self.chain.deploy("TestExam", self.owner, self.alice, self.bob).contract_address
        start = self.chain.timestamp + 100
        with self.assertRaises(ChainError):
            self.chain.transact(exam, "set_exam_details", self.owner, "M", "d", "abc", 60, start, start + 60)
        details = self.chain.call(exam, "get_exam_details")
        self.assertEqual((details.exam_id, details.exam_fee, details.state), (0, 0, "UNSET"))

    def test_mistyped_view_argument(self):
        with self.assertRaises(ChainError):
            self.chain.call(self.address, "get_depositor_balance", ["not", "an", "address"])

    def test_negative_value_rejected(self):
        with self.assertRaises(ChainError):
            self.chain.send(self.alice, self.bob, -1)
        with self.assertRaises(ChainError):
            self.chain.transact(self.address, "deposit", self.alice, value=-1)
        self.assertEqual(self.chain.balance_of(self.bob), to_wei(10))

    def test_contract_cannot_pay_negative_amount(self):
        contract = Contract(self.owner)
        contract.balance = 10
        msg = Msg(self.owner)
        with self.assertRaises(InvalidArgument):
            contract.pay(msg, self.alice, -5)
        self.assertEqual((contract.balance, msg.transfers), (10, []))

    def test_send_between_accounts(self):
        receipt = self.chain.send(self.alice, self.bob, 1000)
        self.assertEqual(receipt.to, self.bob)
        self.assertEqual(self.chain.balance_of(self.bob), to_wei(10) + 1000)
        self.assertEqual(self.chain.balance_of(self.alice), to_wei(10) - 1000)

    def test_send_to_contract_without_receive(self):
        receipt = self.chain.deploy("HostelSnacks", self.owner)
        with self.assertRaises(ContractError) as ctx:
            self.chain.send(self.alice, receipt.contract_address, 1)
        self.assertIn("no fallback function", ctx.exception.reason)

    def test_get_logs_filters(self):
        self.chain.transact(self.address, "deposit", self.alice, value=1)
        self.chain.transact(self.address, "withdraw", self.owner, 1)
        self.assertEqual(len(self.chain.get_logs()), 2)
        self.assertEqual([e.event for e in self.chain.get_logs(event="Withdrawn")], ["Withdrawn"])
        self.assertEqual(self.chain.get_logs(address="0xdead"), [])
        self.assertTrue(all(e.tx_hash for e in self.chain.get_logs(self.address)))

    def test_clock(self):
        target = self.chain.timestamp + 1000
        self.chain.set_next_block_timestamp(target)
        self.chain.mine()
        self.assertEqual(self.chain.timestamp, target)
        with self.assertRaises(ChainError):
            self.chain.set_next_block_timestamp(target)
        self.chain.increase_time(3600)
        self.chain.mine()
        self.assertGreaterEqual(self.chain.timestamp, target + 3600)

    def test_handle_rejects_unknown_method(self):
        with self.assertRaises(AttributeError):
            self.chain.at(self.address).selfdestruct


if __name__ == "__main__":
    unittest.main()
