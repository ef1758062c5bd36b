"""Replayable steps and their callback variants.

A step is the stack entry matching a node. Unlike nodes, steps carry
run-scoped state (`executed`, `failed`, `failed_at`, `skipped`,
`elapsed`) that is overwritten by every replay of a suite including
the step. A step shared by several suites is the same object in all
of them.

Callbacks come in three shapes, resolved once at registration:

- `NoArgStep` calls `callback()`;
- `ContextStep` calls `callback(t)` with the suite sub-test harness;
- `ContextAndWorldStep` calls `callback(t, world)`.
"""

from datetime import timedelta
from enum import StrEnum
from inspect import Parameter, signature
from threading import Lock
from typing import TYPE_CHECKING, Any, TypeAlias

from pytest_bdspec.errors import CallbackError
from pytest_bdspec.nodes import EXECUTABLE_KINDS, Kind, Node

if TYPE_CHECKING:
    from collections.abc import Callable

if TYPE_CHECKING:
    from pytest_bdspec.harness import Harness
    from pytest_bdspec.location import Location
    from pytest_bdspec.world import World

_POSITIONAL = (Parameter.POSITIONAL_ONLY, Parameter.POSITIONAL_OR_KEYWORD)


class NoArgStep:
    """Callback taking no arguments."""

    accepts_world = False

    def __init__(self, callback: 'Callable[[], Any]') -> None:
        self.callback = callback

    def __call__(self, case: 'Harness', world: 'World') -> None:
        self.callback()


class ContextStep:
    """Callback taking the suite sub-test harness."""

    accepts_world = False

    def __init__(self, callback: 'Callable[[Harness], Any]') -> None:
        self.callback = callback

    def __call__(self, case: 'Harness', world: 'World') -> None:
        self.callback(case)


class ContextAndWorldStep:
    """Callback taking the suite sub-test harness and the suite World."""

    accepts_world = True

    def __init__(self, callback: 'Callable[[Harness, World], Any]') -> None:
        self.callback = callback

    def __call__(self, case: 'Harness', world: 'World') -> None:
        self.callback(case, world)


StepCallback: TypeAlias = NoArgStep | ContextStep | ContextAndWorldStep


def bind_callback(callback: 'Callable[..., Any]') -> StepCallback:
    """Resolve a callable into its callback variant.

    The variant is chosen by the number of positional parameters the
    callable accepts: none, one (the harness), or two and more (the
    harness and the World).

    Args:
        callback: User-supplied callable.

    Returns:
        The matching callback variant.

    Raises:
        CallbackError: If the value is not callable or requires more
            than two positional arguments.
    """
    if not callable(callback):
        raise CallbackError(f'{callback!r} is not callable')

    try:
        parameters = signature(callback).parameters.values()
    except (TypeError, ValueError) as base:
        raise CallbackError(f'Can not inspect signature of {callback!r}') from base

    positional = [item for item in parameters if item.kind in _POSITIONAL]
    required = [item for item in positional if item.default is Parameter.empty]
    variadic = any(item.kind is Parameter.VAR_POSITIONAL for item in parameters)

    if len(required) > 2:  # noqa: PLR2004
        raise CallbackError(
            f'{getattr(callback, "__qualname__", callback)!r} requires '
            f'{len(required)} arguments, expected at most two: the harness and the world',
        )

    if variadic or len(positional) >= 2:  # noqa: PLR2004
        return ContextAndWorldStep(callback)
    if positional:
        return ContextStep(callback)

    return NoArgStep(callback)


class Status(StrEnum):
    """Rendered status of a step."""

    PASS = 'pass'
    FAIL = 'fail'
    SKIP = 'skip'


class Step:
    """One entry of the declaration stack.

    Fields mutated during replay are guarded by a per-step lock, since
    parallel suites sharing an ancestor step update it concurrently.
    """

    def __init__(self, node: Node, callback: StepCallback | None = None) -> None:
        self.node = node
        node.step = self
        self.callback = callback

        self.executed = False
        self.failed = False
        self.failed_at = 0
        self.skipped = False
        self.elapsed = timedelta()

        self._lock = Lock()

    def __repr__(self) -> str:
        return f'Step({self.kind.value!r}, {self.title!r})'

    @property
    def kind(self) -> Kind:
        return self.node.kind

    @property
    def title(self) -> str:
        return self.node.title

    @property
    def keyword(self) -> str:
        return self.node.keyword

    @property
    def location(self) -> 'Location':
        return self.node.location

    @property
    def executable(self) -> bool:
        """Whether the scheduler runs a callback for this step."""
        return self.callback is not None and self.kind in EXECUTABLE_KINDS

    def reset(self) -> None:
        """Forget the state of a previous replay."""
        self.update(
            executed=False,
            failed=False,
            failed_at=0,
            skipped=False,
            elapsed=timedelta(),
        )

    def update(self, **fields: Any) -> None:  # noqa: ANN401
        """Set replay fields under the step lock."""
        with self._lock:
            for name, value in fields.items():
                setattr(self, name, value)

    def attach(self, child: Node) -> None:
        """Attach a display-only node, replacing one of the same kind.

        Replays of a shared step attach their table again; only the
        latest one is kept.
        """
        with self._lock:
            self.node.children = [
                item for item in self.node.children
                if item.kind != child.kind
            ]
            self.node.children.append(child)

    @property
    def status(self) -> Status:
        """Status of the latest replay.

        A step fails only when it is the first failure of its replay;
        later failures of the same replay cascade into skips.
        """
        with self._lock:
            if self.failed:
                return Status.FAIL if self.failed_at == 1 else Status.SKIP
            if not self.executed or self.skipped:
                return Status.SKIP

        return Status.PASS
