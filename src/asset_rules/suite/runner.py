"""Runs rules cases against the emulator and collects the verdicts."""

import json
import logging
import time
from datetime import datetime
from typing import Any, Callable, Iterable, Optional

from ..emulator.client import FirestoreContext
from ..emulator.environment import RulesTestEnvironment, assert_fails, assert_succeeds
from ..emulator.errors import (
    EmulatorError,
    EmulatorUnavailableError,
    PermissionDeniedError,
    RulesAssertionError,
)
from ..models.core import CaseResult, Expectation, Operation, RuleCase, SuiteReport
from ..utils.error_handler import ErrorHandler, handle_case_failure


logger = logging.getLogger(__name__)


def operation_for(context: FirestoreContext, case: RuleCase) -> Callable[[], Any]:
    """Bind the case's request to a context, ready to be invoked"""
    if case.operation is Operation.GET:
        return lambda: context.get_doc(case.path)
    if case.operation is Operation.SET:
        return lambda: context.set_doc(case.path, case.data or {})
    if case.operation is Operation.ADD:
        return lambda: context.add_doc(case.path, case.data or {})
    if case.operation is Operation.UPDATE:
        return lambda: context.update_doc(case.path, case.data or {})
    if case.operation is Operation.DELETE:
        return lambda: context.delete_doc(case.path)
    if case.operation is Operation.LIST:
        return lambda: context.list_docs(case.path)
    if case.operation is Operation.QUERY:
        if not case.query:
            raise ValueError(f"Case '{case.name}' has no query filter")
        field, op, value = case.query
        return lambda: context.query(case.path, field, op, value)
    raise ValueError(f"Unsupported operation: {case.operation}")


class RulesSuiteRunner:
    """Runs cases one after another on a freshly cleared database"""

    def __init__(self, env: RulesTestEnvironment, error_handler: Optional[ErrorHandler] = None):
        self.env = env
        self.error_handler = error_handler

    def _seed(self, case: RuleCase) -> None:
        if not case.seed:
            return
        with self.env.with_security_rules_disabled() as admin:
            for path, document in case.seed.items():
                admin.set_doc(path, document)

    def _context(self, case: RuleCase) -> FirestoreContext:
        if case.uid is None:
            return self.env.unauthenticated_context()
        return self.env.authenticated_context(case.uid)

    def run_case(self, case: RuleCase) -> CaseResult:
        """Run one case. EmulatorUnavailableError propagates; everything else is recorded."""
        start = time.time()
        try:
            self.env.clear_firestore()
            self._seed(case)
            request = operation_for(self._context(case), case)
            if case.expect is Expectation.SUCCEED:
                assert_succeeds(request)
                result = CaseResult(case, True, "allowed", "allowed as expected")
            else:
                denial = assert_fails(request)
                result = CaseResult(case, True, "denied", f"denied as expected ({denial.status})")
        except EmulatorUnavailableError:
            raise
        except RulesAssertionError as e:
            outcome = "denied" if case.expect is Expectation.SUCCEED else "allowed"
            cause = e.__cause__
            if isinstance(cause, EmulatorError) and not isinstance(cause, PermissionDeniedError):
                outcome = "error"
            result = CaseResult(case, False, outcome, str(e))
        except (EmulatorError, ValueError, TypeError) as e:
            result = CaseResult(case, False, "error", f"{type(e).__name__}: {e}")

        result.duration = time.time() - start
        if result.passed:
            logger.debug(f"PASS {case.group}: {case.name}")
        else:
            logger.warning(f"FAIL {case.group}: {case.name} - {result.message}")
            if self.error_handler:
                handle_case_failure(self.error_handler, result)
        return result

    def run(self, cases: Iterable[RuleCase]) -> SuiteReport:
        """Run every case and never stop at the first mismatch"""
        report = SuiteReport(start_time=datetime.now())
        for case in cases:
            report.results.append(self.run_case(case))
        report.end_time = datetime.now()
        logger.info(f"Rules suite finished: {report.passed}/{report.total} cases passed")
        return report


def save_report(report: SuiteReport, output_file: str) -> str:
    """Write the suite report as JSON"""
    with open(output_file, 'w', encoding='utf-8') as f:
        json.dump(report.to_dict(), f, indent=2, default=str)
    logger.info(f"Suite report saved to {output_file}")
    return output_file
