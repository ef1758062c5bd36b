"""Suite assembly.

A suite is a snapshot of the declaration stack taken when a leaf is
declared (or when a group closes without any leaf). Every group in the
snapshot is followed by the background steps accumulated for it, so a
replay runs the whole precondition chain before the terminal step.
"""

from typing import TYPE_CHECKING

from pytest_bdspec.names import TITLE_SEPARATOR
from pytest_bdspec.nodes import TITLED_KINDS, Kind

if TYPE_CHECKING:
    from collections.abc import Iterable

if TYPE_CHECKING:
    from pytest_bdspec.core.stack import PreconditionAccumulator
    from pytest_bdspec.steps import Step


class Suite(tuple['Step', ...]):
    """Immutable, replayable chain of steps."""

    __slots__ = ()

    @property
    def terminal(self) -> 'Step | None':
        """The last step of the chain."""
        return self[-1] if self else None

    @property
    def title(self) -> str:
        """Slash-separated titles of the group and leaf steps."""
        return TITLE_SEPARATOR.join(
            step.title
            for step in self
            if step.kind in TITLED_KINDS and step.title
        )


class SuiteAssembler:
    """Registry of the suites recorded for a suite object.

    Suites are kept in registration order. The scheduler takes them in
    batches, one per top-level group, through `pending`.
    """

    def __init__(self) -> None:
        self.suites: list[Suite] = []
        self._cursor = 0

    def __len__(self) -> int:
        return len(self.suites)

    @staticmethod
    def assemble(stack: 'Iterable[Step]', accumulator: 'PreconditionAccumulator') -> Suite:
        """Snapshot a stack, splicing in the accumulated backgrounds.

        Args:
            stack: Steps of the declaration stack, outermost first.
            accumulator: Background steps per group.

        Returns:
            The assembled suite.
        """
        steps: list[Step] = []
        for step in stack:
            steps.append(step)
            if step.kind == Kind.GROUP:
                steps.extend(accumulator.get(step))

        return Suite(steps)

    def record(self, suite: Suite) -> bool:
        """Append a suite to the registry.

        A suite ending on the same step as the previously recorded one
        is a duplicate and is refused.

        Returns:
            Whether the suite was recorded.
        """
        if not suite:
            return False

        if self.suites and self.suites[-1].terminal is suite.terminal:
            return False

        self.suites.append(suite)
        return True

    def pending(self) -> list[Suite]:
        """Hand out the suites recorded since the previous call."""
        batch = self.suites[self._cursor:]
        self._cursor = len(self.suites)

        return batch
