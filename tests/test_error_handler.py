"""Tests for the error handler and structured logging."""

import json
import logging
import os
import tempfile
import unittest

from asset_rules.models.core import CaseResult, CheckResult, Expectation, Operation, RuleCase
from asset_rules.utils.error_handler import (
    ErrorCategory,
    ErrorHandler,
    configure_library_logging,
    handle_case_failure,
    handle_check_failure,
    handle_file_access_error,
)


class TestErrorHandler(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.handler = ErrorHandler(log_directory=self.temp_dir, enable_console=False)

    def tearDown(self):
        import shutil
        for handler in list(self.handler.logger.handlers):
            handler.close()
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_log_error_records_detail(self):
        detail = self.handler.log_error(
            "Rules upload rejected", "RULES_UPLOAD_FAILED", ErrorCategory.EMULATOR,
            file_path="firestore.rules"
        )

        self.assertEqual(detail.error_code, "E003")
        self.assertEqual(detail.category, "emulator")
        self.assertTrue(self.handler.has_errors())
        self.assertEqual(self.handler.get_errors_for_file("firestore.rules"), [detail])

    def test_unknown_error_type_uses_fallback_code(self):
        detail = self.handler.log_error("odd", "SOMETHING_NEW")
        self.assertEqual(detail.error_code, "S999")

    def test_exception_stack_trace_is_kept(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError as e:
            detail = self.handler.log_error("failed", "UNEXPECTED_ERROR", exception=e)

        self.assertIn("RuntimeError: boom", detail.stack_trace)

    def test_json_lines_are_written(self):
        self.handler.log_warning("slow emulator", "EMULATOR_UNAVAILABLE", ErrorCategory.EMULATOR)
        for handler in self.handler.logger.handlers:
            handler.flush()

        log_files = [f for f in os.listdir(self.temp_dir) if f.endswith('.jsonl')]
        self.assertEqual(len(log_files), 1)
        with open(os.path.join(self.temp_dir, log_files[0])) as f:
            entry = json.loads(f.readline())
        self.assertEqual(entry['level'], 'WARNING')
        self.assertEqual(entry['error_code'], 'E001')
        self.assertEqual(entry['message'], 'slow emulator')

    def test_summary_and_report(self):
        handle_check_failure(self.handler, CheckResult("rules_version", False, "missing", "firestore.rules"))
        handle_check_failure(self.handler, CheckResult("indexes_list", False, "not a list", "firestore.indexes.json"))
        self.handler.log_warning("careful", "FILE_EMPTY", ErrorCategory.FILE_ACCESS)

        summary = self.handler.get_error_summary()
        self.assertEqual(summary['total_errors'], 2)
        self.assertEqual(summary['total_warnings'], 1)
        self.assertEqual(summary['errors_by_category'], {'rules_file': 1, 'config_file': 1})

        report_path = self.handler.generate_error_report(os.path.join(self.temp_dir, 'report.json'))
        with open(report_path) as f:
            report = json.load(f)
        self.assertEqual(report['all_errors'][0]['check_name'], 'rules_version')
        self.assertEqual(report['all_errors'][0]['error_code'], 'R001')

        self.handler.clear_errors()
        self.assertFalse(self.handler.has_errors())
        self.assertFalse(self.handler.has_warnings())

    def test_unreadable_files_use_their_own_codes(self):
        missing = handle_check_failure(self.handler, CheckResult(
            "file_readable", False, "Rules file not found", "firestore.rules", "FILE_NOT_FOUND"))
        empty = handle_check_failure(self.handler, CheckResult(
            "file_readable", False, "Rules file is empty", "firestore.rules", "FILE_EMPTY"))
        broken = handle_check_failure(self.handler, CheckResult(
            "firebase_json_valid", False, "Invalid JSON", "firebase.json", "INVALID_JSON"))

        self.assertEqual((missing.error_code, missing.category), ('F001', 'file_access'))
        self.assertEqual((empty.error_code, empty.category), ('F003', 'file_access'))
        self.assertEqual((broken.error_code, broken.category), ('J001', 'config_file'))

    def test_case_failures(self):
        case = RuleCase("case", "assets", "user1", Operation.GET, "users/user1", Expectation.FAIL)

        allowed = handle_case_failure(self.handler, CaseResult(case, False, "allowed", "succeeded"))
        denied = handle_case_failure(self.handler, CaseResult(case, False, "denied", "denied"))
        error = handle_case_failure(self.handler, CaseResult(case, False, "error", "INTERNAL: boom"))

        self.assertEqual((allowed.error_code, allowed.category), ('A001', 'rules_assertion'))
        self.assertEqual((denied.error_code, denied.category), ('A002', 'rules_assertion'))
        self.assertEqual((error.error_code, error.category), ('E002', 'emulator'))
        self.assertEqual(allowed.context['name'], 'case')

    def test_file_access_errors(self):
        missing = handle_file_access_error(self.handler, 'firebase.json', FileNotFoundError())
        denied = handle_file_access_error(self.handler, 'firebase.json', PermissionError())

        self.assertEqual(missing.error_code, 'F001')
        self.assertEqual(denied.error_code, 'F002')

    def test_no_log_directory(self):
        handler = ErrorHandler(log_directory=None, enable_console=False)
        handler.log_error("kept in memory", "UNEXPECTED_ERROR")
        self.assertEqual(len(handler.errors), 1)


class TestLibraryLogging(unittest.TestCase):

    def tearDown(self):
        logging.getLogger('urllib3').setLevel(logging.NOTSET)

    def test_levels(self):
        configure_library_logging('warning')
        self.assertEqual(logging.getLogger('urllib3').level, logging.WARNING)

        configure_library_logging('not-a-level')
        self.assertEqual(logging.getLogger('urllib3').level, logging.ERROR)


if __name__ == '__main__':
    unittest.main()
