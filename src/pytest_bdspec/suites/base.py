"""Shared suite machinery.

Both vocabularies are thin front ends over the same engine: they only
differ in which blocks they offer, where those blocks may appear, and
how the report looks. Everything else lives in `BaseSuite`.
"""

from functools import wraps
from threading import local
from typing import TYPE_CHECKING, Any, ClassVar, ParamSpec

from pytest_bdspec.core import (
    DeclarationStack,
    PreconditionAccumulator,
    RegistrationMixin,
    Scheduler,
    SuiteAssembler,
)
from pytest_bdspec.location import locate
from pytest_bdspec.options import Output, Parallel, SuiteSettings

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path
    from types import TracebackType
    from typing import Self

if TYPE_CHECKING:
    from pytest_bdspec.core import Suite
    from pytest_bdspec.expect import Expectation
    from pytest_bdspec.harness import Harness
    from pytest_bdspec.nodes import Node
    from pytest_bdspec.report import Reporter


P = ParamSpec('P')


def declaration(method: 'Callable[P, None]') -> 'Callable[..., Any]':
    """Let a declaration method be used as a decorator.

    Called with its callback, the method declares right away. Called
    without it, the method returns a decorator declaring the decorated
    function. Either way the callback itself is returned.

    Titled declarations used as bare decorators (`@describe` without a
    title) are reported instead of declaring anything.
    """
    arity = method.__code__.co_argcount - 1

    @wraps(method)
    def declare(self: 'BaseSuite', *args: Any, **kwargs: Any) -> Any:  # noqa: ANN401
        if arity > 1 and args and callable(args[0]):
            self.report(f'{method.__name__!r} requires a title before its callback', locate())
            return args[0]

        if 'callback' in kwargs:
            method(self, *args, **kwargs)
            return kwargs['callback']

        if len(args) >= arity:
            method(self, *args, **kwargs)
            return args[arity - 1]

        def decorator(callback: 'Callable[..., Any]') -> 'Callable[..., Any]':
            method(self, *args, callback, **kwargs)
            return callback

        return decorator

    return declare


class BaseSuite(RegistrationMixin):
    """Suite object owning the registration state of one vocabulary.

    The suite replays the suites of a top-level group as soon as the
    group is declared (sequential) or dispatches them (parallel). A
    parallel suite renders its report once it is closed and every
    dispatched suite has completed.
    """

    #: Reporter class of the vocabulary.
    reporter_class: ClassVar[type['Reporter']]

    def __init__(self, harness: 'Harness', *options: Output | Parallel,
                 base_path: 'Path | None' = None,
                 settings: SuiteSettings | None = None) -> None:
        """Initialize a suite.

        Args:
            harness: Harness receiving one sub-test per suite.
            *options: Any number of outputs and at most one parallel switch.
            base_path: Directory source locations are shown relative to.
            settings: Defaults; read from the environment when omitted.

        Raises:
            TypeError: If an option is neither `Output` nor `Parallel`.
            ValueError: If more than one `Parallel` option is given.
        """
        self.harness = harness
        self.settings = settings or SuiteSettings()
        self.base_path = base_path

        outputs = []
        parallel = None
        for option in options:
            if isinstance(option, Output):
                outputs.append(option)
            elif isinstance(option, Parallel):
                if parallel is not None:
                    raise ValueError('Parallel option given more than once')
                parallel = option
            else:
                raise TypeError(f'Unsupported suite option {option!r}')

        self.outputs = tuple(outputs) or (self.settings.output(),)
        self.parallel = parallel

        self.current = local()
        self.roots: list[Node] = []

        self.stack = DeclarationStack()
        self.accumulator = PreconditionAccumulator()
        self.assembler = SuiteAssembler()

        self.reporter = self.reporter_class(
            self.outputs,
            base_path=base_path,
            timed=parallel is None,
        )
        self.scheduler = Scheduler(
            harness,
            self.current,
            render=self.reporter.render,
            parallel=parallel,
        )

    def __enter__(self) -> 'Self':
        return self

    def __exit__(self, exc_type: type[BaseException] | None,
                 exc_value: BaseException | None,
                 traceback: 'TracebackType | None') -> None:
        self.close()

    @property
    def suites(self) -> list['Suite']:
        """Suites recorded so far, in registration order."""
        return list(self.assembler.suites)

    def expect(self, value: Any) -> 'Expectation':  # noqa: ANN401
        """Start an expectation.

        While a suite is replaying on the calling thread, mismatches are
        reported to its sub-test, so they fail the step being replayed.
        Otherwise they are reported to the suite harness.
        """
        case = getattr(self.current, 'case', None)
        return (case or self.harness).expect(value)

    def close(self) -> None:
        """Seal registration.

        A parallel suite renders its report and calls its completion
        callback once this was called and every suite completed.
        Closing twice has no effect.
        """
        if self.closed:
            return

        self.closed = True
        self.scheduler.seal()

    def wait(self, timeout: float | None = None) -> bool:
        """Wait for a closed parallel suite to complete.

        Returns:
            Whether the report was rendered in time; always true for
            sequential suites.
        """
        if self.scheduler.countdown is None:
            return True

        return self.scheduler.countdown.wait(timeout)
