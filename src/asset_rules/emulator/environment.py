"""Test environment around a running Firestore emulator.

Mirrors the shape of the Firebase rules-unit-testing SDK: upload the rules
once, hand out per-identity contexts, wipe data between cases and clean up
at the end.
"""

import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, Optional

import requests

from ..models.core import ToolConfig
from ..utils.error_handler import configure_library_logging
from .client import FirestoreContext, OWNER_TOKEN, make_unsigned_token
from .errors import (
    EmulatorError,
    EmulatorUnavailableError,
    PermissionDeniedError,
    RulesAssertionError,
)


logger = logging.getLogger(__name__)


class RulesTestEnvironment:
    """Connection to one emulator project with a fixed set of rules"""

    def __init__(self, config: ToolConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()
        self.base_url = config.emulator_url
        self.rules: Optional[str] = None
        self._closed = False

    @property
    def admin_url(self) -> str:
        return f"{self.base_url}/emulator/v1/projects/{self.config.project_id}"

    def _admin_request(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            response = self.session.request(method, url, timeout=self.config.request_timeout, **kwargs)
        except (requests.ConnectionError, requests.Timeout) as e:
            raise EmulatorUnavailableError(f"Firestore emulator not reachable at {self.base_url}: {e}")
        FirestoreContext.raise_for_error(response)
        return response

    def load_rules(self, rules: str) -> None:
        """Replace the rules the emulator enforces for this project"""
        body = {'rules': {'files': [{'name': 'firestore.rules', 'content': rules}]}}
        self._admin_request('PUT', f"{self.admin_url}:securityRules", json=body)
        self.rules = rules
        logger.info(f"Loaded security rules into project {self.config.project_id}")

    def _context(self, token: Optional[str]) -> FirestoreContext:
        return FirestoreContext(
            self.session,
            self.base_url,
            self.config.project_id,
            token=token,
            timeout=self.config.request_timeout,
        )

    def authenticated_context(self, uid: str, claims: Optional[Dict[str, Any]] = None) -> FirestoreContext:
        return self._context(make_unsigned_token(self.config.project_id, uid, claims))

    def unauthenticated_context(self) -> FirestoreContext:
        return self._context(None)

    @contextmanager
    def with_security_rules_disabled(self) -> Iterator[FirestoreContext]:
        """Yield a context whose requests bypass the rules, for seeding fixtures"""
        yield self._context(OWNER_TOKEN)

    def clear_firestore(self) -> None:
        """Delete every document in the project's default database"""
        self._admin_request('DELETE', f"{self.admin_url}/databases/(default)/documents")
        logger.debug(f"Cleared emulator data for project {self.config.project_id}")

    def cleanup(self) -> None:
        """Clear data and release the HTTP session; safe to call twice"""
        if self._closed:
            return
        try:
            self.clear_firestore()
        except EmulatorError as e:
            logger.warning(f"Could not clear emulator data during cleanup: {e}")
        finally:
            self.session.close()
            self._closed = True


def initialize_test_environment(config: ToolConfig,
                                rules: Optional[str] = None,
                                session: Optional[requests.Session] = None) -> RulesTestEnvironment:
    """Create an environment and upload the rules (read from config.rules_file by default)"""
    configure_library_logging(config.log_level)
    if rules is None:
        with open(config.rules_file, 'r', encoding='utf-8') as f:
            rules = f.read()
    env = RulesTestEnvironment(config, session=session)
    try:
        env.load_rules(rules)
    except EmulatorError:
        env.session.close()
        raise
    return env


def is_emulator_running(config: ToolConfig, timeout: float = 1.0) -> bool:
    """True when something answers HTTP at the configured emulator address"""
    try:
        requests.get(f"{config.emulator_url}/", timeout=timeout)
    except requests.RequestException:
        return False
    return True


def assert_succeeds(operation: Callable[..., Any], *args, **kwargs) -> Any:
    """Run a request that the rules must allow and return its result"""
    try:
        return operation(*args, **kwargs)
    except PermissionDeniedError as e:
        raise RulesAssertionError(f"Expected request to succeed, but it was denied: {e}") from e
    except EmulatorUnavailableError:
        raise
    except EmulatorError as e:
        raise RulesAssertionError(f"Expected request to succeed, but it failed: {e}") from e


def assert_fails(operation: Callable[..., Any], *args, **kwargs) -> PermissionDeniedError:
    """Run a request that the rules must deny and return the denial"""
    try:
        operation(*args, **kwargs)
    except PermissionDeniedError as e:
        return e
    except EmulatorUnavailableError:
        raise
    except EmulatorError as e:
        raise RulesAssertionError(f"Expected PERMISSION_DENIED but got unexpected error: {e}") from e
    raise RulesAssertionError("Expected request to fail, but it succeeded")
