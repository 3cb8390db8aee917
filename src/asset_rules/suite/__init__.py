"""Rules case table and runner"""

from .cases import GROUPS, USER_1, USER_2, build_cases, cases_for_group
from .runner import RulesSuiteRunner, operation_for, save_report

__all__ = [
    'GROUPS',
    'USER_1',
    'USER_2',
    'build_cases',
    'cases_for_group',
    'RulesSuiteRunner',
    'operation_for',
    'save_report',
]
