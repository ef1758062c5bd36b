"""Per-suite state container.

Suites replayed in parallel can not exchange state through captured
variables, since those are shared by every concurrent replay. Instead,
each replay gets its own `World` and its steps read and write values by
name.
"""

from threading import Lock
from typing import TYPE_CHECKING, Any

from pytest_bdspec.errors import ErrorContext, StateError

if TYPE_CHECKING:
    from collections.abc import Callable

if TYPE_CHECKING:
    from pytest_bdspec.harness import Harness


class World:
    """Lock-guarded key/value store of one suite replay.

    Every operation holds the lock for its full duration. The lock is
    not re-entrant: a `swap` update function must not call back into
    the same World.

    Using a key before it was set is reported as an error of the suite
    sub-test rather than raised, so the misuse fails the suite without
    interrupting its remaining steps.
    """

    def __init__(self, case: 'Harness') -> None:
        """Initialize an empty World.

        Args:
            case: Sub-test harness receiving usage errors.
        """
        self.t = case
        self._values: dict[str, Any] = {}
        self._lock = Lock()

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._values

    def set(self, name: str, value: Any) -> None:  # noqa: ANN401
        """Store a value, overwriting any previous one.

        Meant for the initial assignment of a variable.
        """
        with self._lock:
            self._values[name] = value

    def get(self, name: str) -> Any:  # noqa: ANN401
        """Retrieve a value.

        Returns:
            The stored value, or `None` after reporting an error when
            the name was never set.
        """
        with self._lock:
            if name not in self._values:
                self._report(f'World does not have value set for {name!r}')
                return None

            return self._values[name]

    def swap(self, name: str, update: 'Callable[[Any], Any]') -> None:
        """Replace a value with the result of `update(current)`.

        Reports an error and leaves the World unchanged when the name
        was never set.
        """
        with self._lock:
            if name not in self._values:
                self._report(
                    f'Can not swap value, since World does not have value set for {name!r}, '
                    'try setting it first',
                )
                return

            self._values[name] = update(self._values[name])

    def snapshot(self) -> dict[str, Any]:
        """Return a shallow copy of all values."""
        with self._lock:
            return dict(self._values)

    def _report(self, message: str) -> None:
        """Report a usage error; the lock is already held."""
        self.t.error(StateError(message, context=ErrorContext(
            context=dict(self._values),
        )))
