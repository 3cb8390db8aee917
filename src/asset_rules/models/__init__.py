"""Data models and structures"""

from .core import (
    ASSET_TYPES,
    Asset,
    CaseResult,
    Category,
    CheckResult,
    Expectation,
    Operation,
    RuleCase,
    SuiteReport,
    ToolConfig,
    Transaction,
    UserProfile,
)

__all__ = [
    'ASSET_TYPES',
    'Asset',
    'CaseResult',
    'Category',
    'CheckResult',
    'Expectation',
    'Operation',
    'RuleCase',
    'SuiteReport',
    'ToolConfig',
    'Transaction',
    'UserProfile',
]
