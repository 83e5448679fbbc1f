"""pdskit error types."""

from typing import Any


class ConfigurationError(Exception):
    """Raised when the harness or adapter is misused.

    Examples: no store factory, no clear-data hook, a store whose
    methods mix blocking and coroutine calling conventions, or a
    request to install an update hook on a store type that has none.
    Never retried.
    """


class ContractViolation(AssertionError):
    """Raised when a store's observable state breaks the store contract.

    Subclasses ``AssertionError`` so test runners report it as a plain
    failure.

    Attributes:
        expected: What the version-gated protocol requires.
        actual: What the store returned.
    """

    def __init__(self, message: str, expected: Any = None, actual: Any = None) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"{message}: expected {expected!r}, got {actual!r}")
