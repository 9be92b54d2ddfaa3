"""
Schemas for Campus Contracts

Pydantic models for the records kept by the contracts, the notifications
and receipts produced by the development chain, and the request bodies of
the HTTP API.

Receipts and deployments are also stored as documents when a database is
configured (collection name is the lowercase of the class name):
- Receipt -> "receipt"
- Deployment -> "deployment"

All amounts are integers in wei.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional


# Contract records

class Record(BaseModel):
    """Contract storage record. Field constraints also hold on assignment."""
    model_config = ConfigDict(validate_assignment=True)


class FoodOrder(Record):
    food_item: str = Field(..., description="Ordered item")
    order_time: int = Field(..., ge=0, description="Block timestamp of the order")


class ExamDetails(Record):
    exam_id: int = 0
    exam_name: str = ""
    description: str = ""
    exam_fee: int = Field(0, ge=0)
    exam_duration: int = Field(0, ge=0, description="Seconds")
    start_time: int = 0
    end_time: int = 0
    teacher: str
    invigilator: str
    is_exam_open: bool = False
    is_exam_finished: bool = False
    state: str = "UNSET"


class Snack(Record):
    name: str
    price: int = Field(..., ge=0, description="Unit price")
    quantity: int = Field(..., ge=0, description="Units in stock")
    id: str
    seller: str


class Buyer(Record):
    username: str
    amount_spent: int = Field(0, ge=0)
    purchased_snacks: int = 0
    snack_ids: List[str] = []


class Seller(Record):
    username: str = ""
    earnings: int = Field(0, ge=0, description="Withdrawable earnings")
    snack_ids: List[str] = []
    sold_snacks: List[str] = []
    total_snacks_sold: int = 0
    total_earnings: int = 0


# Chain records

class Event(BaseModel):
    """
    Notification emitted by a contract
    Embedded in receipts (not a collection)
    """
    address: str
    event: str
    args: Dict[str, Any] = {}
    block_number: int = 0
    tx_hash: Optional[str] = None


class Receipt(BaseModel):
    """
    Outcome of a mined transaction
    Collection name: "receipt"
    """
    tx_hash: str
    block_number: int
    timestamp: int
    sender: str
    to: Optional[str] = Field(None, description="Contract or account address")
    method: Optional[str] = None
    value: int = 0
    status: int = Field(1, description="1 = success")
    contract_address: Optional[str] = Field(None, description="Set for deployments")
    events: List[Event] = []


class Deployment(BaseModel):
    """
    Deployed contract
    Collection name: "deployment"
    """
    name: str
    address: str
    deployer: str
    args: List[Any] = []


class Account(BaseModel):
    address: str
    balance: int


# Request bodies

class DeployRequest(BaseModel):
    contract: str = Field(..., description="CollegeBreakfast | TestExam | HostelSnacks | Wallet")
    sender: str
    args: List[Any] = []


class TransactRequest(BaseModel):
    sender: str
    value: int = Field(0, ge=0)
    args: List[Any] = []


class CallRequest(BaseModel):
    sender: Optional[str] = None
    args: List[Any] = []


class TransferRequest(BaseModel):
    sender: str
    to: str
    value: int = Field(..., ge=0)


class TimeRequest(BaseModel):
    timestamp: Optional[int] = Field(None, description="Absolute timestamp of the next block")
    increase: Optional[int] = Field(None, ge=0, description="Seconds to advance")
    mine: bool = True
