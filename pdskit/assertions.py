"""Assertions that report store contract violations."""

from typing import Mapping

from .errors import ContractViolation
from .model import Record


def assert_record_equals(expected: Record, actual: Record | None) -> None:
    """Check that a store returned exactly ``expected``.

    Values must match byte for byte and versions exactly.

    Raises:
        ContractViolation: The record is missing or differs.
    """
    if actual is None:
        raise ContractViolation(f"No record for key {expected.key!r}", expected, None)
    if actual.value != expected.value:
        raise ContractViolation(f"Wrong value for key {expected.key!r}", expected.value, actual.value)
    if actual.version != expected.version:
        raise ContractViolation(
            f"Wrong version for key {expected.key!r}", expected.version, actual.version
        )


def assert_missing(key: str, actual: Record | None) -> None:
    if actual is not None:
        raise ContractViolation(f"Key {key!r} should not exist", None, actual)


def assert_records(actual: Mapping[str, Record], *expected: Record) -> None:
    """Check that a ``get_all`` result holds exactly the expected records."""
    expected_keys = sorted(r.key for r in expected)
    if sorted(actual) != expected_keys:
        raise ContractViolation("Wrong keys", expected_keys, sorted(actual))
    for record in expected:
        assert_record_equals(record, actual[record.key])


def assert_upsert_result(expected: bool, actual: bool, record: Record) -> None:
    if actual is not expected:
        verb = "accepted" if expected else "rejected"
        raise ContractViolation(
            f"Upsert of {record.key!r} version {record.version} should be {verb}", expected, actual
        )
