"""Core data models for the Firestore rules checks."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Dict, Any, Optional, Union


ASSET_TYPES = (
    'paymentAccount',
    'savingsAccount',
    'gold',
    'loan',
    'realEstate',
    'other',
)

Number = Union[int, float, Decimal]


def _drop_none(document: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in document.items() if value is not None}


@dataclass
class UserProfile:
    """Profile document stored at users/{uid}"""
    uid: str
    display_name: Optional[str] = None
    email: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_document(self) -> Dict[str, Any]:
        return _drop_none({
            'displayName': self.display_name,
            'email': self.email,
            'createdAt': self.created_at,
        })


@dataclass
class Asset:
    """Asset document stored at users/{uid}/assets/{assetId}.

    Attributes:
        name: Display name of the asset (e.g., "Vietcombank")
        type: One of ASSET_TYPES
        balance: Current balance, expected to be non-negative
        created_at: Creation timestamp
        updated_at: Last modification timestamp
    """
    name: str
    type: str
    balance: Number
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_document(self) -> Dict[str, Any]:
        return _drop_none({
            'name': self.name,
            'type': self.type,
            'balance': self.balance,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        })


@dataclass
class Category:
    """Category document stored at users/{uid}/categories/{categoryId}"""
    name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    is_default: Optional[bool] = None

    def to_document(self) -> Dict[str, Any]:
        return _drop_none({
            'name': self.name,
            'description': self.description,
            'icon': self.icon,
            'isDefault': self.is_default,
        })


@dataclass
class Transaction:
    """Transaction document stored at users/{uid}/transactions/{transactionId}"""
    asset_id: str
    category_id: str
    amount: Number
    description: str
    date: Optional[datetime] = None
    created_at: Optional[datetime] = None

    def to_document(self) -> Dict[str, Any]:
        return _drop_none({
            'assetId': self.asset_id,
            'categoryId': self.category_id,
            'amount': self.amount,
            'description': self.description,
            'date': self.date,
            'createdAt': self.created_at,
        })


class Expectation(Enum):
    """Expected verdict of the rules for a single request"""
    SUCCEED = "succeed"
    FAIL = "fail"


class Operation(Enum):
    """Document operations a rules case can issue"""
    GET = "get"
    SET = "set"
    ADD = "add"
    UPDATE = "update"
    DELETE = "delete"
    LIST = "list"
    QUERY = "query"


@dataclass
class RuleCase:
    """One row of the rules truth table.

    Attributes:
        name: Human-readable description of the case
        group: Section the case belongs to (e.g., "assets")
        uid: Identity issuing the request, None for an unauthenticated caller
        operation: Operation to perform
        path: Document path, or collection path for ADD/LIST/QUERY
        expect: Whether the emulator should accept or reject the request
        data: Payload for write operations
        seed: Documents written with rules disabled before the request runs
        query: (field, op, value) filter for QUERY operations
    """
    name: str
    group: str
    uid: Optional[str]
    operation: Operation
    path: str
    expect: Expectation
    data: Optional[Dict[str, Any]] = None
    seed: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    query: Optional[tuple] = None

    @property
    def identity(self) -> str:
        return self.uid if self.uid is not None else "unauthenticated"


@dataclass
class CaseResult:
    """Outcome of running one RuleCase against the emulator"""
    case: RuleCase
    passed: bool
    outcome: str
    message: str = ""
    duration: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.case.name,
            'group': self.case.group,
            'identity': self.case.identity,
            'operation': self.case.operation.value,
            'path': self.case.path,
            'expected': self.case.expect.value,
            'outcome': self.outcome,
            'passed': self.passed,
            'message': self.message,
            'duration': self.duration,
        }


@dataclass
class SuiteReport:
    """Aggregated results of a suite run"""
    results: List[CaseResult] = field(default_factory=list)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def passed(self) -> int:
        return sum(1 for result in self.results if result.passed)

    @property
    def failed(self) -> int:
        return self.total - self.passed

    @property
    def success(self) -> bool:
        return self.failed == 0

    @property
    def total_duration(self) -> float:
        if self.start_time and self.end_time:
            return (self.end_time - self.start_time).total_seconds()
        return sum(result.duration for result in self.results)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total': self.total,
            'passed': self.passed,
            'failed': self.failed,
            'start_time': self.start_time.isoformat() if self.start_time else None,
            'end_time': self.end_time.isoformat() if self.end_time else None,
            'total_duration': self.total_duration,
            'results': [result.to_dict() for result in self.results],
        }


@dataclass
class CheckResult:
    """Result of a single static check over a configuration artifact"""
    name: str
    passed: bool
    message: str = ""
    file_path: Optional[str] = None
    error_type: Optional[str] = None


@dataclass
class ToolConfig:
    """Configuration for the rules checks"""
    project_id: str = "quan-ly-tai-san-test"
    emulator_host: str = "localhost"
    emulator_port: int = 8080
    rules_file: str = "firestore.rules"
    firebase_config: str = "firebase.json"
    indexes_file: str = "firestore.indexes.json"
    request_timeout: float = 30.0
    log_directory: str = "logs"
    log_level: str = "ERROR"

    @property
    def emulator_url(self) -> str:
        return f"http://{self.emulator_host}:{self.emulator_port}"
