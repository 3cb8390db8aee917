"""Static checks over the text of a Firestore rules file.

These are plain regular-expression searches. They confirm that the rules
file still contains the constructs the application depends on; they do not
parse or evaluate the rules language.
"""

import logging
import os
import re
from typing import Callable, List, Optional, Tuple

from ..models.core import ASSET_TYPES, CheckResult


logger = logging.getLogger(__name__)

MIN_AUTH_CHECKS = 6


def _has_all_pattern(keys: List[str]) -> str:
    quoted = r',\s*'.join(f"'{key}'" for key in keys)
    return r'data\.keys\(\)\.hasAll\(\[' + quoted + r'\]\)'


ASSET_KEYS = ['name', 'type', 'balance', 'createdAt', 'updatedAt']
CATEGORY_KEYS = ['name', 'description', 'icon']
TRANSACTION_KEYS = ['assetId', 'categoryId', 'amount', 'description', 'date', 'createdAt']

# (check name, patterns that must all be present)
PATTERN_CHECKS: List[Tuple[str, List[str]]] = [
    ("rules_version", [r'''rules_version\s*=\s*['"]2['"];''']),
    ("service_definition", [r'service\s+cloud\.firestore']),
    ("user_isolation", [r'match\s+/users/\{userId\}', r'request\.auth\.uid\s*==\s*userId']),
    ("asset_validation", [r'function\s+validateAssetData\s*\(', _has_all_pattern(ASSET_KEYS)]),
    ("category_validation", [r'function\s+validateCategoryData\s*\(', _has_all_pattern(CATEGORY_KEYS)]),
    ("transaction_validation", [r'function\s+validateTransactionData\s*\(', _has_all_pattern(TRANSACTION_KEYS)]),
    ("non_negative_balance", [r'data\.balance\s*>=\s*0']),
    ("positive_amount", [r'data\.amount\s*>\s*0']),
    ("non_empty_name", [r'data\.name\.size\(\)\s*>\s*0']),
    ("timestamp_validation", [r'is\s+timestamp']),
]


class RulesValidator:
    """Runs the static checks against one rules file"""

    def __init__(self, rules_path: str = "firestore.rules"):
        self.rules_path = rules_path
        self.content: Optional[str] = None
        self.load_error: Optional[str] = None
        self.load_error_type: Optional[str] = None

    def load(self) -> bool:
        """Read the rules file. Returns False when it is missing or unreadable."""
        self.content = None
        self.load_error = None
        self.load_error_type = None

        if not os.path.exists(self.rules_path):
            self.load_error = f"Rules file not found: {self.rules_path}"
            self.load_error_type = "FILE_NOT_FOUND"
            logger.error(self.load_error)
            return False

        try:
            with open(self.rules_path, 'r', encoding='utf-8') as f:
                self.content = f.read()
        except (OSError, UnicodeDecodeError) as e:
            self.load_error = f"Cannot read rules file {self.rules_path}: {e}"
            self.load_error_type = "FILE_PERMISSION_DENIED" if isinstance(e, PermissionError) else "UNEXPECTED_ERROR"
            logger.error(self.load_error)
            return False

        logger.debug(f"Loaded {len(self.content)} characters from {self.rules_path}")
        return True

    def _result(self, name: str, passed: bool, message: str, error_type: Optional[str] = None) -> CheckResult:
        return CheckResult(name=name, passed=passed, message=message, file_path=self.rules_path,
                           error_type=error_type)

    def check_readable(self) -> CheckResult:
        if self.content is None:
            return self._result("file_readable", False, self.load_error or "Rules file not loaded",
                                self.load_error_type)
        if not self.content:
            return self._result("file_readable", False, "Rules file is empty", "FILE_EMPTY")
        return self._result("file_readable", True, f"{len(self.content)} characters")

    def check_patterns(self, name: str, patterns: List[str]) -> CheckResult:
        """Pass when every pattern is found somewhere in the rules text"""
        if not self.content:
            return self._result(name, False, self.load_error or "Rules file is empty")
        missing = [pattern for pattern in patterns if not re.search(pattern, self.content)]
        if missing:
            return self._result(name, False, f"Pattern not found: {missing[0]}")
        return self._result(name, True, "present")

    def check_asset_types(self) -> CheckResult:
        if not self.content:
            return self._result("asset_types", False, self.load_error or "Rules file is empty")
        missing = [t for t in ASSET_TYPES if not re.search(f"'{re.escape(t)}'", self.content)]
        if missing:
            return self._result("asset_types", False, f"Missing asset types: {', '.join(missing)}")
        return self._result("asset_types", True, f"{len(ASSET_TYPES)} asset types listed")

    def check_auth_required(self) -> CheckResult:
        if not self.content:
            return self._result("auth_required", False, self.load_error or "Rules file is empty")
        count = len(re.findall(r'request\.auth\s*!=\s*null', self.content))
        if count < MIN_AUTH_CHECKS:
            return self._result(
                "auth_required", False,
                f"Found {count} authentication checks, expected at least {MIN_AUTH_CHECKS}"
            )
        return self._result("auth_required", True, f"{count} authentication checks")

    def run_all_checks(self) -> List[CheckResult]:
        """Load the file and run every check, in a fixed order"""
        self.load()

        checks: List[Callable[[], CheckResult]] = [self.check_readable]
        checks.extend(
            (lambda n=name, p=patterns: self.check_patterns(n, p))
            for name, patterns in PATTERN_CHECKS
        )
        checks.extend([self.check_asset_types, self.check_auth_required])

        results = [check() for check in checks]
        failed = sum(1 for r in results if not r.passed)
        logger.info(f"Rules checks for {self.rules_path}: {len(results) - failed} passed, {failed} failed")
        return results
