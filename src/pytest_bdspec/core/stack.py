"""Declaration stack and precondition accumulator.

Both structures only live while a top-level group is being declared.
The stack mirrors the chain of open groups and the setups declared in
them; the accumulator keeps background steps per group so they can be
spliced into every suite assembled under that group.
"""

from typing import TYPE_CHECKING

from pytest_bdspec.errors import DeclarationError

if TYPE_CHECKING:
    from collections.abc import Iterator

if TYPE_CHECKING:
    from pytest_bdspec.nodes import Kind
    from pytest_bdspec.steps import Step


class DeclarationStack:
    """Ordered chain of the steps enclosing the current declaration."""

    def __init__(self) -> None:
        self._steps: list[Step] = []

    def __len__(self) -> int:
        return len(self._steps)

    def __iter__(self) -> 'Iterator[Step]':
        return iter(self._steps)

    @property
    def top(self) -> 'Step | None':
        """The most recently pushed step."""
        return self._steps[-1] if self._steps else None

    def depth(self, kind: 'Kind') -> int:
        """Count the steps of a kind currently on the stack."""
        return sum(1 for step in self._steps if step.kind == kind)

    def find(self, kind: 'Kind') -> 'Step | None':
        """Return the innermost step of a kind."""
        for step in reversed(self._steps):
            if step.kind == kind:
                return step

        return None

    def push(self, step: 'Step') -> None:
        self._steps.append(step)

    def pop(self, expected: 'Step') -> list['Step']:
        """Pop steps down to and including `expected`.

        Setups declared inside a group stay on the stack until the
        group closes, so closing a group pops them as well.

        Args:
            expected: The step opened by the closing declaration.

        Returns:
            The popped steps, innermost first.

        Raises:
            DeclarationError: If `expected` is not on the stack.
        """
        if not any(step is expected for step in self._steps):
            raise DeclarationError(f'{expected!r} is not on the declaration stack')

        popped = []
        while self._steps:
            step = self._steps.pop()
            popped.append(step)
            if step is expected:
                break

        return popped

    def copy(self) -> tuple['Step', ...]:
        """Return the current chain, outermost first."""
        return tuple(self._steps)


class PreconditionAccumulator:
    """Background steps collected per group step."""

    def __init__(self) -> None:
        self._steps: dict[int, list[Step]] = {}

    def add(self, group: 'Step', step: 'Step') -> None:
        """Append a background step to a group."""
        self._steps.setdefault(id(group), []).append(step)

    def get(self, group: 'Step') -> tuple['Step', ...]:
        """Return the background steps of a group in declaration order."""
        return tuple(self._steps.get(id(group), ()))

    def clear(self, group: 'Step') -> None:
        """Forget the background steps of a closing group."""
        self._steps.pop(id(group), None)
