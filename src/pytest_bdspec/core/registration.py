"""Declaration walking.

Declaring is calling: a group body runs synchronously as soon as the
group is declared, so the nesting of calls is the nesting of blocks.
The mixin below turns those calls into nodes, stack entries and
suites, and reports blocks declared in a disallowed position instead of
raising, so the rest of the declaration still gets registered.
"""

import warnings
from typing import TYPE_CHECKING, Any

from pytest_bdspec.errors import CallbackError, DeclarationError, SharedStateWarning
from pytest_bdspec.nodes import Kind, Node
from pytest_bdspec.steps import Step, bind_callback

if TYPE_CHECKING:
    from collections.abc import Callable
    from threading import local

if TYPE_CHECKING:
    from pytest_bdspec.core.assembler import SuiteAssembler
    from pytest_bdspec.core.scheduler import Scheduler
    from pytest_bdspec.core.stack import DeclarationStack, PreconditionAccumulator
    from pytest_bdspec.harness import Harness
    from pytest_bdspec.location import Location
    from pytest_bdspec.steps import StepCallback


def block_name(keyword: str, title: str) -> str:
    """Name a block in error messages."""
    return f'{keyword} {title!r}' if title else keyword


class RegistrationMixin:
    """Mixin turning declaration calls into the node tree and suites.

    Classes using it provide the attributes declared below. The
    vocabulary-specific rules (where a block may appear, when a group
    records a suite of its own) are decided by the suite classes; this
    mixin only carries them out.
    """

    harness: 'Harness'
    current: 'local'
    roots: list[Node]

    stack: 'DeclarationStack'
    accumulator: 'PreconditionAccumulator'
    assembler: 'SuiteAssembler'
    scheduler: 'Scheduler'

    #: Group step owning the background being declared, if any.
    precondition: Step | None = None
    #: Node of the background being declared, if any.
    background: Node | None = None
    closed: bool = False

    def report(self, message: str, location: 'Location') -> None:
        """Report a structural error of a declaration."""
        self.scheduler.own_errors += 1
        self.harness.error(DeclarationError.at(
            message,
            location.filename,
            location.line,
        ))

    def check_declaring(self, location: 'Location') -> bool:
        """Reject declarations made while replaying or after closing."""
        if getattr(self.current, 'step', None) is not None:
            self.report('Blocks can not be declared while a suite is replaying', location)
            return False

        if self.closed:
            self.report('Blocks can not be declared on a closed suite', location)
            return False

        return True

    def bind(self, callback: 'Callable[..., Any]', location: 'Location') -> 'StepCallback | None':
        """Resolve a step callback, reporting unsupported signatures."""
        try:
            bound = bind_callback(callback)
        except CallbackError as error:
            self.report(error.message, location)
            return None

        if self.scheduler.parallel is not None and not bound.accepts_world:
            warnings.warn_explicit(
                SharedStateWarning(
                    f'{getattr(callback, "__qualname__", callback)!r} does not accept '
                    'the World and can only share state with other parallel suites',
                ),
                category=SharedStateWarning,
                filename=location.filename or '<unknown source>',
                lineno=location.line or 0,
            )

        return bound

    def copy_on_leave(self, step: Step, recorded: int) -> bool:
        """Decide whether a closing group records a suite for itself.

        By default a group records one only when no suite was recorded
        since it opened, so a group without leaves still replays its
        setups once.

        Args:
            step: The closing group step.
            recorded: Number of suites recorded when the group opened.
        """
        return len(self.assembler) == recorded

    def open_group(self, title: str, body: 'Callable[[], Any]', *,
                   location: 'Location', keyword: str = '') -> None:
        """Declare a top-level group and replay its suites.

        Args:
            title: Group title.
            body: Callable declaring the nested blocks.
            location: Declaration site.
            keyword: Display keyword of the vocabulary.
        """
        if not self.check_declaring(location):
            return

        if len(self.stack):
            self.report(f'{block_name(keyword or "Group", title)} must be declared at the top level', location)
            return

        node = Node(Kind.GROUP, title, keyword=keyword, location=location)
        self.roots.append(node)

        step = Step(node)
        self.enter(step, body)
        self.finalize(node)

    def open_subgroup(self, title: str, body: 'Callable[[], Any]', *,
                      location: 'Location', keyword: str = '') -> None:
        """Declare a group nested in the innermost open group."""
        if not self.check_declaring(location):
            return

        parent = self.stack.find(Kind.GROUP)
        if parent is None or self.precondition is not None:
            self.report(f'{block_name(keyword or "Group", title)} must be declared inside a group', location)
            return

        node = parent.node.append(Node(Kind.GROUP, title, keyword=keyword, location=location))
        self.enter(Step(node), body)

    def open_precondition_group(self, body: 'Callable[[], Any]', *,
                                location: 'Location', keyword: str = '') -> None:
        """Declare a background of the innermost open group.

        Steps declared in the body are not pushed to the stack; they
        prefix every suite assembled under the group from now on.
        """
        if not self.check_declaring(location):
            return

        group = self.stack.top
        if group is None or group.kind != Kind.GROUP or self.precondition is not None:
            self.report(
                f'{keyword or "Background"} must be declared directly inside a group',
                location,
            )
            return

        node = group.node.append(Node(Kind.PRECONDITION_GROUP, keyword=keyword, location=location))
        self.accumulator.add(group, Step(node))

        self.precondition, self.background = group, node
        try:
            self.invoke(body, location)
        finally:
            self.precondition, self.background = None, None

    def declare_setup(self, kind: Kind, title: str, callback: 'Callable[..., Any]', *,
                      location: 'Location', keyword: str = '') -> None:
        """Declare a step replayed before the leaves that follow it.

        Inside a background the step goes to the accumulator of the
        owning group, otherwise it is pushed to the stack until the
        enclosing group closes.
        """
        if not self.check_declaring(location):
            return

        group = self.stack.find(Kind.GROUP)
        if group is None:
            self.report(f'{block_name(keyword or "Setup", title)} must be declared inside a group', location)
            return

        if (bound := self.bind(callback, location)) is None:
            return

        node = Node(kind, title, keyword=keyword, location=location)
        if self.precondition is not None:
            self.background.append(node)
            self.accumulator.add(self.precondition, Step(node, bound))
            return

        group.node.append(node)
        self.stack.push(Step(node, bound))

    def declare_leaf(self, title: str, callback: 'Callable[..., Any]', *,
                     location: 'Location', keyword: str = '') -> None:
        """Declare a leaf and record the suite ending with it."""
        if not self.check_declaring(location):
            return

        group = self.stack.find(Kind.GROUP)
        if group is None or self.precondition is not None:
            self.report(f'{block_name(keyword or "Leaf", title)} must be declared inside a group', location)
            return

        if (bound := self.bind(callback, location)) is None:
            return

        node = group.node.append(Node(Kind.LEAF, title, keyword=keyword, location=location))
        step = Step(node, bound)

        self.stack.push(step)
        try:
            self.record()
        finally:
            self.stack.pop(step)

    def enter(self, step: Step, body: 'Callable[[], Any]') -> None:
        """Run a group body with the group on the stack."""
        recorded = len(self.assembler)

        self.stack.push(step)
        try:
            self.invoke(body, step.location)
            if self.copy_on_leave(step, recorded):
                self.record()
        finally:
            self.accumulator.clear(step)
            self.stack.pop(step)

    def invoke(self, body: 'Callable[[], Any]', location: 'Location') -> None:
        """Run a declaration body, reporting anything it raises."""
        try:
            body()
        except Exception as error:  # noqa: BLE001
            self.report(f'Declaration body raised {error!r}', location)

    def record(self) -> None:
        """Assemble the current stack into a suite and record it."""
        self.assembler.record(self.assembler.assemble(self.stack, self.accumulator))

    def finalize(self, root: Node) -> None:
        """Hand the suites of a closed top-level group to the scheduler."""
        self.scheduler.schedule(root, self.assembler.pending())
