"""
Exam fee and proctoring contract

One exam per contract. The owner or teacher configures and opens it and
enrols students; a student pays the fee, starts inside the exam window and
submits. The invigilator or teacher can flag cheating at any point, which
finishes the exam.
"""

from enum import Enum
from typing import List

from access import (Contract, InsufficientPayment, InvalidArgument, InvalidState, Msg,
                    NotRegistered, Unauthorized, entrypoint, only, require, view)
from registry import UniqueSet
from schemas import ExamDetails


class ExamState(str, Enum):
    UNSET = "UNSET"
    CONFIGURED = "CONFIGURED"
    OPEN = "OPEN"
    STARTED = "STARTED"
    SUBMITTED = "SUBMITTED"
    CHEATING = "CHEATING"


FINISHED_STATES = frozenset([ExamState.SUBMITTED, ExamState.CHEATING])


class TestExam(Contract):
    name = "TestExam"
    # keep test runners from collecting the contract class
    __test__ = False

    def __init__(self, owner: str, teacher: str, invigilator: str):
        super().__init__(owner)
        self.details = ExamDetails(teacher=teacher, invigilator=invigilator)
        self.state = ExamState.UNSET
        self.students = UniqueSet()
        self.paid = UniqueSet()
        self.candidate = ""

    def _only_staff(self, msg: Msg):
        only(msg.sender, (self.owner_address, self.details.teacher),
             "Only owner or teacher can perform this action")

    def _check_window(self, fee: int, duration: int, start_time: int, end_time: int):
        require(fee >= 0 and duration >= 0, InvalidArgument, "Exam fee and duration cannot be negative")
        require(end_time > start_time, InvalidArgument, "Invalid exam window")

    def _set_window(self, fee: int, duration: int, start_time: int, end_time: int):
        self.details.exam_fee = fee
        self.details.exam_duration = duration
        self.details.start_time = start_time
        self.details.end_time = end_time

    @entrypoint
    def set_exam_details(self, msg: Msg, exam_name: str, description: str, fee: int,
                         duration: int, start_time: int, end_time: int):
        self._only_staff(msg)
        self._check_window(fee, duration, start_time, end_time)
        self.details.exam_id += 1
        self.details.exam_name = exam_name
        self.details.description = description
        self._set_window(fee, duration, start_time, end_time)
        self.state = ExamState.CONFIGURED
        self.emit(msg, "ExamDetailsSet", exam_id=self.details.exam_id, exam_name=exam_name,
                  fee=fee, start_time=start_time, end_time=end_time)

    @entrypoint
    def register_student_public(self, msg: Msg, student: str):
        self._only_staff(msg)
        if self.students.add(student):
            self.emit(msg, "StudentRegistered", student=student)

    @entrypoint
    def open_exam(self, msg: Msg, fee: int, duration: int, start_time: int, end_time: int):
        self._only_staff(msg)
        require(self.state != ExamState.UNSET, InvalidState, "Exam details not set")
        require(self.state not in FINISHED_STATES, InvalidState, "Exam is already finished")
        require(self.state == ExamState.CONFIGURED, InvalidState, "Exam is already open")
        self._check_window(fee, duration, start_time, end_time)
        self._set_window(fee, duration, start_time, end_time)
        self.state = ExamState.OPEN
        self.emit(msg, "ExamOpened", fee=fee, start_time=start_time, end_time=end_time)

    @entrypoint(payable=True)
    def pay_for_exam(self, msg: Msg):
        require(msg.sender in self.students, NotRegistered, "Student is not registered")
        require(self.state == ExamState.OPEN, InvalidState, "Exam is not open")
        require(msg.sender not in self.paid, InvalidState, "Exam fee already paid")
        require(msg.value >= self.details.exam_fee, InsufficientPayment, "Insufficient exam fee")
        self.paid.add(msg.sender)
        self.emit(msg, "ExamFeePaid", student=msg.sender, amount=msg.value)

    @entrypoint
    def start_exam(self, msg: Msg):
        require(msg.sender in self.students, NotRegistered, "Student is not registered")
        require(msg.sender in self.paid, InsufficientPayment, "Exam fee not paid")
        require(self.state == ExamState.OPEN, InvalidState, "Exam is not open")
        require(msg.timestamp >= self.details.start_time, InvalidState, "Exam has not started yet")
        require(msg.timestamp <= self.details.end_time, InvalidState, "Exam has ended")
        self.state = ExamState.STARTED
        self.candidate = msg.sender
        self.emit(msg, "ExamStarted", student=msg.sender, time=msg.timestamp)

    @entrypoint
    def submit_exam_public(self, msg: Msg):
        require(self.state == ExamState.STARTED, InvalidState, "Exam has not been started")
        require(msg.sender == self.candidate, Unauthorized, "Only the examinee can submit")
        self.state = ExamState.SUBMITTED
        self.emit(msg, "ExamSubmitted", student=msg.sender, time=msg.timestamp)

    @entrypoint
    def caught_cheating_public(self, msg: Msg):
        only(msg.sender, (self.details.invigilator, self.details.teacher),
             "Only invigilator or teacher can perform this action")
        self.state = ExamState.CHEATING
        self.emit(msg, "CheatingReported", student=self.candidate)

    # Views

    @view
    def get_exam_details(self, msg: Msg) -> ExamDetails:
        details = self.details.model_copy()
        details.is_exam_open = self.state in (ExamState.OPEN, ExamState.STARTED)
        details.is_exam_finished = self.state in FINISHED_STATES
        details.state = self.state.value
        return details

    @view
    def is_student_registered(self, msg: Msg, student: str) -> bool:
        return student in self.students

    @view
    def has_paid(self, msg: Msg, student: str) -> bool:
        return student in self.paid

    @view
    def get_registered_students(self, msg: Msg) -> List[str]:
        return self.students.items()
