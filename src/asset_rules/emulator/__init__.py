"""Access to the Firestore emulator"""

from .client import DocumentSnapshot, FirestoreContext, make_unsigned_token
from .environment import (
    RulesTestEnvironment,
    assert_fails,
    assert_succeeds,
    initialize_test_environment,
    is_emulator_running,
)
from .errors import EmulatorError, EmulatorUnavailableError, PermissionDeniedError, RulesAssertionError

__all__ = [
    'DocumentSnapshot',
    'FirestoreContext',
    'make_unsigned_token',
    'RulesTestEnvironment',
    'assert_fails',
    'assert_succeeds',
    'initialize_test_environment',
    'is_emulator_running',
    'EmulatorError',
    'EmulatorUnavailableError',
    'PermissionDeniedError',
    'RulesAssertionError',
]
