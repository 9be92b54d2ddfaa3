"""
TestExam contract tests: configuration, fee payment, the exam window and
the cheating override.
"""

import os
import sys
import unittest

_TEST_DIR = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, os.path.dirname(_TEST_DIR))

from access import InsufficientPayment, InvalidArgument, InvalidState, NotRegistered, Unauthorized
from devchain import DevChain
from exam import ExamState


class ExamTestBase(unittest.TestCase):
    def setUp(self):
        self.chain = DevChain(accounts=6)
        self.owner, self.teacher, self.invigilator, self.student, self.other = self.chain.accounts[:5]
        receipt = self.chain.deploy("TestExam", self.owner, self.teacher, self.invigilator)
        self.exam = self.chain.at(receipt.contract_address)
        self.as_teacher = self.exam.connect(self.teacher)
        self.as_student = self.exam.connect(self.student)
        self.start_time = self.chain.timestamp + 100
        self.end_time = self.start_time + 200

    def configure(self):
        self.as_teacher.set_exam_details("Math 101", "Basic Algebra", 100, 200, self.start_time, self.end_time)
        self.as_teacher.register_student_public(self.student)

    def open(self):
        self.configure()
        self.as_teacher.open_exam(100, 200, self.start_time, self.end_time)

    def warp(self, timestamp):
        self.chain.set_next_block_timestamp(timestamp)
        self.chain.mine()


class TestDeployment(ExamTestBase):
    def test_roles(self):
        self.assertEqual(self.exam.owner(), self.owner)
        details = self.exam.get_exam_details()
        self.assertEqual(details.teacher, self.teacher)
        self.assertEqual(details.invigilator, self.invigilator)
        self.assertEqual(details.state, ExamState.UNSET.value)


class TestExamSetup(ExamTestBase):
    def test_teacher_sets_details(self):
        receipt = self.as_teacher.set_exam_details("Math 101", "Basic Algebra", 100, 3600,
                                                   self.start_time, self.end_time)
        self.assertEqual(receipt.events[0].event, "ExamDetailsSet")
        details = self.exam.get_exam_details()
        self.assertEqual(details.exam_name, "Math 101")
        self.assertEqual(details.exam_id, 1)
        self.assertEqual(details.state, "CONFIGURED")

    def test_owner_sets_details(self):
        self.exam.connect(self.owner).set_exam_details("Physics", "Optics", 5, 60, self.start_time, self.end_time)
        self.assertEqual(self.exam.get_exam_details().exam_name, "Physics")

    def test_details_can_be_reconfigured(self):
        self.configure()
        self.as_teacher.set_exam_details("Math 102", "Calculus", 50, 200, self.start_time, self.end_time)
        details = self.exam.get_exam_details()
        self.assertEqual(details.exam_name, "Math 102")
        self.assertEqual(details.exam_id, 2)

    def test_student_cannot_set_details(self):
        with self.assertRaises(Unauthorized) as ctx:
            self.as_student.set_exam_details("Math 101", "x", 100, 200, self.start_time, self.end_time)
        self.assertEqual(ctx.exception.reason, "Only owner or teacher can perform this action")

    def test_inverted_window_rejected(self):
        with self.assertRaises(InvalidArgument):
            self.as_teacher.set_exam_details("Math 101", "x", 100, 200, self.end_time, self.start_time)

    def test_negative_fee_rejected(self):
        with self.assertRaises(InvalidArgument) as ctx:
            self.as_teacher.set_exam_details("Math 101", "x", -1, 200, self.start_time, self.end_time)
        self.assertEqual(ctx.exception.reason, "Exam fee and duration cannot be negative")
        self.assertEqual(self.exam.get_exam_details().state, "UNSET")

    def test_register_student_once(self):
        receipt = self.as_teacher.register_student_public(self.student)
        self.assertEqual(receipt.events[0].args, {"student": self.student})
        receipt = self.as_teacher.register_student_public(self.student)
        self.assertEqual(receipt.events, [])
        self.assertEqual(self.exam.get_registered_students(), [self.student])
        self.assertTrue(self.exam.is_student_registered(self.student))

    def test_invigilator_cannot_register(self):
        with self.assertRaises(Unauthorized):
            self.exam.connect(self.invigilator).register_student_public(self.student)


class TestExamLifecycle(ExamTestBase):
    def test_open_exam(self):
        self.open()
        details = self.exam.get_exam_details()
        self.assertTrue(details.is_exam_open)
        self.assertFalse(details.is_exam_finished)

    def test_open_requires_configuration(self):
        with self.assertRaises(InvalidState) as ctx:
            self.as_teacher.open_exam(100, 200, self.start_time, self.end_time)
        self.assertEqual(ctx.exception.reason, "Exam details not set")

    def test_open_twice_fails(self):
        self.open()
        with self.assertRaises(InvalidState) as ctx:
            self.as_teacher.open_exam(100, 200, self.start_time, self.end_time)
        self.assertEqual(ctx.exception.reason, "Exam is already open")

    def test_pay_below_fee_fails(self):
        self.open()
        with self.assertRaises(InsufficientPayment) as ctx:
            self.as_student.pay_for_exam(value=99)
        self.assertEqual(ctx.exception.reason, "Insufficient exam fee")
        self.assertFalse(self.exam.has_paid(self.student))

    def test_pay_records_fee(self):
        self.open()
        before = self.chain.balance_of(self.student)
        receipt = self.as_student.pay_for_exam(value=100)
        self.assertEqual(receipt.events[0].args, {"student": self.student, "amount": 100})
        self.assertTrue(self.exam.has_paid(self.student))
        self.assertEqual(self.chain.balance_of(self.student), before - 100)
        self.assertEqual(self.chain.balance_of(self.exam.address), 100)
        self.assertEqual(self.exam.get_exam_details().state, "OPEN")

    def test_pay_twice_fails(self):
        self.open()
        self.as_student.pay_for_exam(value=100)
        with self.assertRaises(InvalidState):
            self.as_student.pay_for_exam(value=100)

    def test_unregistered_cannot_pay(self):
        self.open()
        with self.assertRaises(NotRegistered):
            self.exam.connect(self.other).pay_for_exam(value=100)

    def test_pay_before_open_fails(self):
        self.configure()
        with self.assertRaises(InvalidState) as ctx:
            self.as_student.pay_for_exam(value=100)
        self.assertEqual(ctx.exception.reason, "Exam is not open")

    def test_start_within_window(self):
        self.open()
        self.as_student.pay_for_exam(value=100)
        self.warp(self.start_time + 5)
        receipt = self.as_student.start_exam()
        self.assertEqual(receipt.events[0].event, "ExamStarted")
        self.assertEqual(self.exam.get_exam_details().state, "STARTED")

    def test_start_before_window_fails(self):
        self.open()
        self.as_student.pay_for_exam(value=100)
        with self.assertRaises(InvalidState) as ctx:
            self.as_student.start_exam()
        self.assertEqual(ctx.exception.reason, "Exam has not started yet")

    def test_start_after_window_fails(self):
        self.open()
        self.as_student.pay_for_exam(value=100)
        self.warp(self.end_time + 10)
        with self.assertRaises(InvalidState) as ctx:
            self.as_student.start_exam()
        self.assertEqual(ctx.exception.reason, "Exam has ended")

    def test_start_without_payment_fails(self):
        self.open()
        self.warp(self.start_time + 5)
        with self.assertRaises(InsufficientPayment) as ctx:
            self.as_student.start_exam()
        self.assertEqual(ctx.exception.reason, "Exam fee not paid")

    def test_submit_finishes_exam(self):
        self.open()
        self.as_student.pay_for_exam(value=100)
        self.warp(self.start_time + 5)
        self.as_student.start_exam()
        self.as_student.submit_exam_public()
        details = self.exam.get_exam_details()
        self.assertTrue(details.is_exam_finished)
        self.assertFalse(details.is_exam_open)

    def test_submit_before_start_fails(self):
        self.open()
        with self.assertRaises(InvalidState):
            self.as_student.submit_exam_public()

    def test_only_examinee_submits(self):
        self.open()
        self.as_student.pay_for_exam(value=100)
        self.warp(self.start_time + 5)
        self.as_student.start_exam()
        with self.assertRaises(Unauthorized) as ctx:
            self.exam.connect(self.other).submit_exam_public()
        self.assertEqual(ctx.exception.reason, "Only the examinee can submit")


class TestCheating(ExamTestBase):
    def assert_cheating_finishes(self):
        self.exam.connect(self.invigilator).caught_cheating_public()
        details = self.exam.get_exam_details()
        self.assertTrue(details.is_exam_finished)
        self.assertEqual(details.state, "CHEATING")

    def test_from_open(self):
        self.open()
        self.assert_cheating_finishes()

    def test_from_configured(self):
        self.configure()
        self.assert_cheating_finishes()

    def test_from_started(self):
        self.open()
        self.as_student.pay_for_exam(value=100)
        self.warp(self.start_time + 5)
        self.as_student.start_exam()
        receipt = self.exam.connect(self.teacher).caught_cheating_public()
        self.assertEqual(receipt.events[0].args, {"student": self.student})
        self.assertTrue(self.exam.get_exam_details().is_exam_finished)

    def test_finished_exam_cannot_reopen(self):
        self.open()
        self.assert_cheating_finishes()
        with self.assertRaises(InvalidState) as ctx:
            self.as_teacher.open_exam(100, 200, self.start_time, self.end_time)
        self.assertEqual(ctx.exception.reason, "Exam is already finished")

    def test_student_cannot_report(self):
        self.open()
        with self.assertRaises(Unauthorized) as ctx:
            self.as_student.caught_cheating_public()
        self.assertEqual(ctx.exception.reason, "Only invigilator or teacher can perform this action")


if __name__ == "__main__":
    unittest.main()
