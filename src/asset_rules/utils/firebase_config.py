"""Checks for firebase.json and firestore.indexes.json."""

import json
import logging
import os
from typing import Any, Dict, List, Optional, Tuple

from ..models.core import CheckResult


logger = logging.getLogger(__name__)

EXPECTED_RULES_FILE = "firestore.rules"
EXPECTED_INDEXES_FILE = "firestore.indexes.json"
REQUIRED_EMULATORS = ['firestore', 'auth']


class FirebaseConfigValidator:
    """Validates the deployment config and index declarations"""

    def __init__(self,
                 firebase_json_path: str = "firebase.json",
                 indexes_path: str = "firestore.indexes.json"):
        self.firebase_json_path = firebase_json_path
        self.indexes_path = indexes_path

    def _load_json(self, path: str) -> Tuple[Optional[Any], Optional[str], Optional[str]]:
        """Return (data, error message, error type)"""
        if not os.path.exists(path):
            return None, f"File not found: {path}", "FILE_NOT_FOUND"
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f), None, None
        except json.JSONDecodeError as e:
            return None, f"Invalid JSON in {path}: {e}", "INVALID_JSON"
        except PermissionError as e:
            return None, f"Cannot read {path}: {e}", "FILE_PERMISSION_DENIED"
        except OSError as e:
            return None, f"Cannot read {path}: {e}", "UNEXPECTED_ERROR"

    def validate_firebase_json(self) -> List[CheckResult]:
        path = self.firebase_json_path
        data, error, error_type = self._load_json(path)
        if error:
            logger.error(error)
            return [CheckResult("firebase_json_valid", False, error, path, error_type)]

        results = [CheckResult("firebase_json_valid", True, "parsed", path)]

        firestore = data.get('firestore') if isinstance(data, dict) else None
        if not isinstance(firestore, dict):
            results.append(CheckResult("firestore_section", False, "Missing 'firestore' section", path))
        else:
            results.append(CheckResult("firestore_section", True, "present", path))
            for key, expected in (('rules', EXPECTED_RULES_FILE), ('indexes', EXPECTED_INDEXES_FILE)):
                actual = firestore.get(key)
                results.append(CheckResult(
                    f"firestore_{key}",
                    actual == expected,
                    f"firestore.{key} = {actual!r}" if actual == expected
                    else f"Expected firestore.{key} to be {expected!r}, got {actual!r}",
                    path
                ))

        emulators = data.get('emulators') if isinstance(data, dict) else None
        if not isinstance(emulators, dict):
            results.append(CheckResult("emulators_section", False, "Missing 'emulators' section", path))
        else:
            results.append(CheckResult("emulators_section", True, "present", path))
            for name in REQUIRED_EMULATORS:
                present = emulators.get(name) is not None
                results.append(CheckResult(
                    f"emulator_{name}",
                    present,
                    "declared" if present else f"Missing emulators.{name}",
                    path
                ))

        return results

    def validate_indexes(self) -> List[CheckResult]:
        path = self.indexes_path
        data, error, error_type = self._load_json(path)
        if error:
            logger.error(error)
            return [CheckResult("indexes_json_valid", False, error, path, error_type)]

        results = [CheckResult("indexes_json_valid", True, "parsed", path)]

        indexes = data.get('indexes') if isinstance(data, dict) else None
        if not isinstance(indexes, list):
            results.append(CheckResult("indexes_list", False, "'indexes' must be a list", path))
            return results
        results.append(CheckResult("indexes_list", True, f"{len(indexes)} indexes", path))

        found = any(
            isinstance(index, dict)
            and index.get('collectionGroup') == 'transactions'
            and any(isinstance(f, dict) and f.get('fieldPath') == 'date'
                    for f in index.get('fields') or [])
            for index in indexes
        )
        results.append(CheckResult(
            "transactions_date_index",
            found,
            "present" if found else "No index on transactions including field 'date'",
            path
        ))
        return results

    def run_all_checks(self) -> List[CheckResult]:
        results = self.validate_firebase_json() + self.validate_indexes()
        failed = sum(1 for r in results if not r.passed)
        logger.info(f"Firebase config checks: {len(results) - failed} passed, {failed} failed")
        return results

    def emulator_endpoint(self, name: str = 'firestore') -> Optional[Dict[str, Any]]:
        """Host and port declared for an emulator in firebase.json, or None"""
        data, error, _ = self._load_json(self.firebase_json_path)
        if error or not isinstance(data, dict):
            return None
        emulators = data.get('emulators')
        if not isinstance(emulators, dict):
            return None
        emulator = emulators.get(name)
        if not isinstance(emulator, dict) or 'port' not in emulator:
            return None
        return {'host': emulator.get('host', 'localhost'), 'port': emulator['port']}
