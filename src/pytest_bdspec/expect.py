"""Simple value assertions.

Expectations report mismatches to a harness as non-fatal errors: the
step keeps running and the suite is marked failed, like `t.Errorf`.
Plain `assert` statements remain available for fail-fast checks.
"""

from collections.abc import Sized
from os import linesep
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pytest_bdspec.harness import Harness


class Expectation:
    """Assertions about a single value."""

    def __init__(self, value: Any, harness: 'Harness') -> None:  # noqa: ANN401
        self.value = value
        self.harness = harness

    def to_equal(self, expected: Any) -> None:  # noqa: ANN401
        """Expect the value to equal `expected`."""
        if self.value == expected:
            return

        expected_type, actual_type = type(expected), type(self.value)
        if expected_type is not actual_type:
            self.harness.error(
                f'equality check failed{linesep}'
                f'\texpected: {expected!r} (type: {expected_type.__name__}){linesep}'
                f'\t  actual: {self.value!r} (type: {actual_type.__name__})',
            )
            return

        self.harness.error(
            f'equality check failed{linesep}'
            f'\texpected: {expected!r}{linesep}'
            f'\t  actual: {self.value!r}',
        )

    def not_to_equal(self, unexpected: Any) -> None:  # noqa: ANN401
        """Expect the value to differ from `unexpected`."""
        if self.value == unexpected:
            self.harness.error(f'expected value to differ from {unexpected!r}')

    def to_have_length(self, length: int) -> None:
        """Expect a sized value of the given length."""
        if not isinstance(self.value, Sized):
            self.harness.error(
                f'expected target to have a length but it was {type(self.value).__name__}',
            )
            return

        if len(self.value) != length:
            self.harness.error(
                f'expected {self.value!r} to have length {length} but it has {len(self.value)}',
            )

    def to_be_instance_of(self, expected: type | tuple[type, ...]) -> None:
        """Expect the value to be an instance of `expected`."""
        if not isinstance(self.value, expected):
            self.harness.error(
                f'expected {self.value!r} to be of type {expected!r} '
                f'but it was {type(self.value).__name__}',
            )

    def to_be_true(self) -> None:
        """Expect exactly `True`."""
        self._expect_bool(True)

    def to_be_false(self) -> None:
        """Expect exactly `False`."""
        self._expect_bool(False)

    def to_be_none(self) -> None:
        """Expect `None`."""
        if self.value is not None:
            self.harness.error(f'expected {self.value!r} to be None but it is not')

    def not_to_be_none(self) -> None:
        """Expect anything but `None`."""
        if self.value is None:
            self.harness.error('expected value not to be None')

    def _expect_bool(self, expected: bool) -> None:
        if not isinstance(self.value, bool):
            self.harness.error(
                f'expected test target to be bool but it was {type(self.value).__name__}',
            )
            return

        if self.value is not expected:
            self.harness.error(f'expected {expected} but got {self.value}')
