"""Suite replay.

Sequential replay runs the suites of a top-level group one after the
other, each as a blocking sub-test, right after the group is declared.
Parallel replay spawns one sub-test per suite on the harness pool and
renders the report once the suite object is closed and every spawned
suite has completed.
"""

from contextlib import nullcontext
from datetime import timedelta
from threading import BoundedSemaphore, Condition, Lock
from time import perf_counter
from typing import TYPE_CHECKING

import pytest

from pytest_bdspec.errors import StepError
from pytest_bdspec.world import World

if TYPE_CHECKING:
    from collections.abc import Callable
    from threading import local

if TYPE_CHECKING:
    from pytest_bdspec.core.assembler import Suite
    from pytest_bdspec.harness import Harness
    from pytest_bdspec.nodes import Node
    from pytest_bdspec.options import Parallel
    from pytest_bdspec.steps import Step

FOREIGN_FAILURE_REASON = 'the enclosing test has already failed'
CASCADE_FAILURE_REASON = 'a shared precondition failed in an earlier suite'


class Countdown:
    """Completion counter for spawned suites.

    Works like a wait group that must also be sealed: `on_zero` fires
    exactly once, after `seal` was called and every `add` was matched
    by a `done`.
    """

    def __init__(self, on_zero: 'Callable[[], None]') -> None:
        self._on_zero = on_zero
        self._condition = Condition()

        self._count = 0
        self._sealed = False
        self._fired = False
        self._finished = False

    @property
    def count(self) -> int:
        with self._condition:
            return self._count

    def add(self, count: int = 1) -> None:
        with self._condition:
            self._count += count

    def done(self) -> None:
        with self._condition:
            self._count -= 1
        self._check()

    def seal(self) -> None:
        with self._condition:
            self._sealed = True
        self._check()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until `on_zero` returned.

        Returns:
            Whether it returned before the timeout.
        """
        with self._condition:
            return self._condition.wait_for(lambda: self._finished, timeout=timeout)

    def _check(self) -> None:
        with self._condition:
            if self._fired or not self._sealed or self._count > 0:
                return
            self._fired = True

        try:
            self._on_zero()
        finally:
            with self._condition:
                self._finished = True
                self._condition.notify_all()


class Scheduler:
    """Replays assembled suites against a harness.

    The scheduler publishes the step being replayed and its sub-test
    through the `current` thread-local, which the table helper and the
    registration guard read.
    """

    def __init__(self, harness: 'Harness', current: 'local', *,
                 render: 'Callable[[Node], None]',
                 parallel: 'Parallel | None' = None) -> None:
        """Initialize a scheduler.

        Args:
            harness: Root harness; every suite becomes its child.
            current: Thread-local receiving `step` and `case`.
            render: Callback rendering a top-level node.
            parallel: Parallel switch; sequential replay when omitted.
        """
        self.harness = harness
        self.current = current
        self.render = render
        self.parallel = parallel

        #: Errors reported by the engine on the root harness.
        self.own_errors = 0
        #: Sub-tests created for replayed suites.
        self.cases: list[Harness] = []

        self._roots: list[Node] = []
        self._lock = Lock()
        self.countdown = Countdown(self.complete) if parallel is not None else None

        #: Limits the number of suites replaying at the same time.
        self.slots = None
        if parallel is not None and parallel.workers:
            self.slots = BoundedSemaphore(parallel.workers)

    @property
    def foreign_failures(self) -> int:
        """Failures of the harness not caused by this scheduler."""
        with self._lock:
            cases = list(self.cases)

        own = self.own_errors + sum(1 for case in cases if case.failed)
        return self.harness.failures - own

    def schedule(self, root: 'Node', suites: list['Suite']) -> None:
        """Replay the suites of a freshly declared top-level group.

        Args:
            root: The top-level node the suites were declared under.
            suites: Suites in registration order.
        """
        if self.countdown is None:
            for suite in suites:
                self.run_sequential(suite)
            self.render(root)
            return

        with self._lock:
            self._roots.append(root)

        for suite in suites:
            self.dispatch(suite)

    def seal(self) -> None:
        """Signal that no more suites will be scheduled."""
        if self.countdown is not None:
            self.countdown.seal()

    def run_sequential(self, suite: 'Suite') -> None:
        """Replay one suite as a blocking sub-test.

        A suite is skipped without touching its steps when the harness
        already failed for another reason, or when one of its shared
        steps failed while replaying an earlier suite.
        """
        reason = None
        if self.foreign_failures > 0:
            reason = FOREIGN_FAILURE_REASON
        elif any(step.failed for step in suite[:-1]):
            reason = CASCADE_FAILURE_REASON

        def replay(case: 'Harness') -> None:
            self.track(case)
            if reason is not None:
                case.skip(reason)
            self.replay(suite, case, timed=True)

        self.harness.run(suite.title, replay)

    def dispatch(self, suite: 'Suite') -> None:
        """Spawn one suite on the harness pool."""
        skip = self.foreign_failures > 0

        def replay(case: 'Harness') -> None:
            try:
                self.track(case)
                if skip:
                    case.skip(FOREIGN_FAILURE_REASON)
                with self.slots or nullcontext():
                    self.replay(suite, case, timed=False)
            finally:
                self.countdown.done()

        self.countdown.add()
        self.harness.spawn(suite.title, replay)

    def track(self, case: 'Harness') -> None:
        with self._lock:
            self.cases.append(case)

    def replay(self, suite: 'Suite', case: 'Harness', *, timed: bool) -> None:
        """Run every step callback of a suite in order.

        Steps keep running after a failure; each step ending while the
        sub-test is failed is marked with its failure ordinal, so only
        the first one renders as failed. A skip ends the suite.

        Args:
            suite: Suite to replay.
            case: Sub-test harness of the suite.
            timed: Whether to record the elapsed time of each step.
        """
        world = World(case)
        for step in suite:
            step.reset()

        failures = 0
        self.current.case = case
        try:
            for step_num, step in enumerate(suite):
                if not step.executable:
                    continue

                self.current.step = step
                started = perf_counter()
                try:
                    self.run_step(step, case, world, suite=suite, step_num=step_num)
                except pytest.skip.Exception:
                    step.update(executed=True, skipped=True)
                    raise

                fields: dict[str, object] = {'executed': True}
                if timed:
                    fields['elapsed'] = timedelta(seconds=perf_counter() - started)
                if case.failed:
                    failures += 1
                    fields.update(failed=True, failed_at=failures)
                step.update(**fields)

        finally:
            self.current.step = None
            self.current.case = None

    def run_step(self, step: 'Step', case: 'Harness', world: World, *,
                 suite: 'Suite', step_num: int) -> None:
        """Invoke a step callback with unified error handling.

        Skips propagate as-is. Assertion failures and unexpected
        exceptions are reported on the sub-test with the location of
        the step and the World values.
        """
        try:
            step.callback(case, world)

        except pytest.skip.Exception:
            raise

        except (AssertionError, pytest.fail.Exception) as failure:
            case.error(StepError.from_step(
                step,
                failure,
                suite=suite.title,
                step_num=step_num,
                context=world.snapshot(),
            ))

        except Exception as error:  # noqa: BLE001
            case.error(StepError.from_step(
                step,
                error,
                suite=suite.title,
                step_num=step_num,
                context=world.snapshot(),
            ))

    def complete(self) -> None:
        """Render every parallel top-level node, then notify the caller."""
        with self._lock:
            roots = list(self._roots)

        for root in roots:
            self.render(root)

        if self.parallel is None or self.parallel.done is None:
            return

        try:
            self.parallel.done()
        except Exception as error:  # noqa: BLE001
            self.own_errors += 1
            self.harness.error(f'parallel completion callback failed: {error!r}')
