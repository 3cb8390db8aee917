"""Tests for the rules case table and the suite runner."""

import json
import os
import tempfile
import unittest
from datetime import datetime, timezone
from unittest.mock import MagicMock, Mock

from asset_rules.emulator.errors import EmulatorError, EmulatorUnavailableError, PermissionDeniedError
from asset_rules.models.core import Expectation, Operation, RuleCase
from asset_rules.suite.cases import GROUPS, USER_1, USER_2, build_cases, cases_for_group
from asset_rules.suite.runner import RulesSuiteRunner, operation_for, save_report
from asset_rules.utils.error_handler import ErrorHandler


NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


class TestCaseTable(unittest.TestCase):

    def setUp(self):
        self.cases = build_cases(NOW)
        self.by_name = {case.name: case for case in self.cases}

    def test_names_are_unique(self):
        self.assertEqual(len(self.by_name), len(self.cases))

    def test_groups(self):
        self.assertEqual({case.group for case in self.cases}, set(GROUPS))
        for group in GROUPS:
            self.assertTrue(all(c.group == group for c in cases_for_group(group, NOW)))
        with self.assertRaises(ValueError):
            cases_for_group('budgets')

    def test_isolation_cases(self):
        own = self.by_name["User can read their own data"]
        other = self.by_name["User cannot read other user data"]
        anonymous = self.by_name["Unauthenticated user cannot read any data"]

        self.assertEqual((own.uid, own.path, own.expect), (USER_1, f"users/{USER_1}", Expectation.SUCCEED))
        self.assertEqual((other.path, other.expect), (f"users/{USER_2}", Expectation.FAIL))
        self.assertIsNone(anonymous.uid)
        self.assertEqual(anonymous.identity, 'unauthenticated')

    def test_asset_payloads(self):
        valid = self.by_name["User can create valid asset"].data
        self.assertEqual(valid, {
            'name': 'Test Asset', 'type': 'paymentAccount', 'balance': 1000,
            'createdAt': NOW, 'updatedAt': NOW,
        })
        self.assertEqual(self.by_name["User cannot create asset with invalid type"].data['type'], 'invalidType')
        self.assertEqual(self.by_name["User cannot create asset with negative balance"].data['balance'], -100)
        self.assertNotIn('updatedAt', self.by_name["User cannot create asset without updatedAt"].data)

    def test_category_payloads(self):
        self.assertIs(self.by_name["User can create valid category"].data['isDefault'], False)
        empty = self.by_name["User cannot create category with empty name"].data
        self.assertEqual(empty['name'], '')
        self.assertNotIn('isDefault', empty)

    def test_transaction_payloads(self):
        self.assertEqual(self.by_name["User can create valid transaction"].data['amount'], 100)
        self.assertEqual(self.by_name["User cannot create transaction with zero amount"].data['amount'], 0)
        self.assertEqual(self.by_name["User cannot create transaction with negative amount"].data['amount'], -50)
        query = self.by_name["User cannot query other user transactions"]
        self.assertEqual(query.query, ('assetId', '==', 'asset1'))

    def test_cases_are_independent_copies(self):
        self.by_name['User can create valid asset'].data['balance'] = 5
        second = {case.name: case for case in build_cases(NOW)}
        self.assertEqual(second['User can create valid asset'].data['balance'], 1000)


class TestOperationFor(unittest.TestCase):

    def setUp(self):
        self.context = Mock()

    def _case(self, operation, **kwargs):
        return RuleCase('case', 'assets', USER_1, operation, 'users/user1/assets/a1',
                        Expectation.SUCCEED, **kwargs)

    def test_dispatch(self):
        operation_for(self.context, self._case(Operation.GET))()
        self.context.get_doc.assert_called_once_with('users/user1/assets/a1')

        operation_for(self.context, self._case(Operation.SET, data={'a': 1}))()
        self.context.set_doc.assert_called_once_with('users/user1/assets/a1', {'a': 1})

        operation_for(self.context, self._case(Operation.UPDATE, data={'a': 2}))()
        self.context.update_doc.assert_called_once_with('users/user1/assets/a1', {'a': 2})

        operation_for(self.context, self._case(Operation.DELETE))()
        self.context.delete_doc.assert_called_once_with('users/user1/assets/a1')

    def test_query_requires_filter(self):
        with self.assertRaises(ValueError):
            operation_for(self.context, self._case(Operation.QUERY))


class TestRulesSuiteRunner(unittest.TestCase):

    def setUp(self):
        self.user_context = Mock()
        self.anonymous_context = Mock()
        self.admin_context = Mock()

        self.env = MagicMock()
        self.env.authenticated_context.return_value = self.user_context
        self.env.unauthenticated_context.return_value = self.anonymous_context
        self.env.with_security_rules_disabled.return_value.__enter__.return_value = self.admin_context

        self.temp_dir = tempfile.mkdtemp()
        self.error_handler = ErrorHandler(log_directory=self.temp_dir, enable_console=False)
        self.runner = RulesSuiteRunner(self.env, self.error_handler)

    def tearDown(self):
        import shutil
        for handler in list(self.error_handler.logger.handlers):
            handler.close()
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _case(self, expect, uid=USER_1, **kwargs):
        return RuleCase('case', 'assets', uid, Operation.GET, 'users/user1', expect, **kwargs)

    def test_expected_success(self):
        result = self.runner.run_case(self._case(Expectation.SUCCEED))

        self.assertTrue(result.passed)
        self.assertEqual(result.outcome, 'allowed')
        self.env.clear_firestore.assert_called_once()
        self.env.authenticated_context.assert_called_once_with(USER_1)

    def test_expected_denial(self):
        self.anonymous_context.get_doc.side_effect = PermissionDeniedError('no', 403, 'PERMISSION_DENIED')

        result = self.runner.run_case(self._case(Expectation.FAIL, uid=None))

        self.assertTrue(result.passed)
        self.assertEqual(result.outcome, 'denied')
        self.env.unauthenticated_context.assert_called_once()

    def test_unexpected_allow_is_recorded(self):
        result = self.runner.run_case(self._case(Expectation.FAIL))

        self.assertFalse(result.passed)
        self.assertEqual(result.outcome, 'allowed')
        self.assertEqual(self.error_handler.errors[0].error_code, 'A001')

    def test_unexpected_deny_is_recorded(self):
        self.user_context.get_doc.side_effect = PermissionDeniedError('no', 403, 'PERMISSION_DENIED')

        result = self.runner.run_case(self._case(Expectation.SUCCEED))

        self.assertFalse(result.passed)
        self.assertEqual(result.outcome, 'denied')
        self.assertEqual(self.error_handler.errors[0].error_code, 'A002')
        self.assertEqual(self.error_handler.errors[0].category, 'rules_assertion')

    def test_emulator_error_is_recorded(self):
        self.user_context.get_doc.side_effect = EmulatorError('bad', 400, 'INVALID_ARGUMENT')

        result = self.runner.run_case(self._case(Expectation.FAIL))

        self.assertFalse(result.passed)
        self.assertEqual(result.outcome, 'error')

    def test_unavailable_emulator_propagates(self):
        self.user_context.get_doc.side_effect = EmulatorUnavailableError('down')

        with self.assertRaises(EmulatorUnavailableError):
            self.runner.run_case(self._case(Expectation.SUCCEED))

    def test_seed_documents_are_written_with_rules_disabled(self):
        self.runner.run_case(self._case(Expectation.SUCCEED, seed={'users/user1/assets/a1': {'name': 'x'}}))

        self.admin_context.set_doc.assert_called_once_with('users/user1/assets/a1', {'name': 'x'})

    def test_run_continues_after_failures(self):
        cases = [self._case(Expectation.FAIL), self._case(Expectation.SUCCEED)]

        report = self.runner.run(cases)

        self.assertEqual(report.total, 2)
        self.assertEqual(report.passed, 1)
        self.assertEqual(report.failed, 1)
        self.assertFalse(report.success)
        self.assertEqual(self.env.clear_firestore.call_count, 2)

    def test_failed_clear_is_recorded_and_run_continues(self):
        self.env.clear_firestore.side_effect = [EmulatorError('boom', 500, 'INTERNAL'), None]
        cases = [self._case(Expectation.SUCCEED), self._case(Expectation.SUCCEED)]

        report = self.runner.run(cases)

        self.assertEqual(report.total, 2)
        self.assertEqual(report.results[0].outcome, 'error')
        self.assertIn('INTERNAL: boom', report.results[0].message)
        self.assertTrue(report.results[1].passed)
        self.assertEqual(self.error_handler.errors[0].error_code, 'E002')

    def test_denial_after_bad_request_is_an_error(self):
        self.user_context.get_doc.side_effect = EmulatorError('bad', 400, 'INVALID_ARGUMENT')

        result = self.runner.run_case(self._case(Expectation.SUCCEED))

        self.assertFalse(result.passed)
        self.assertEqual(result.outcome, 'error')

    def test_save_report(self):
        report = self.runner.run([self._case(Expectation.SUCCEED)])
        path = os.path.join(self.temp_dir, 'report.json')

        save_report(report, path)

        with open(path) as f:
            data = json.load(f)
        self.assertEqual(data['passed'], 1)
        self.assertEqual(data['results'][0]['identity'], USER_1)
        self.assertEqual(data['results'][0]['expected'], 'succeed')


if __name__ == '__main__':
    unittest.main()
