"""The describe/it vocabulary."""

from typing import TYPE_CHECKING, Any

from pytest_bdspec.location import locate
from pytest_bdspec.nodes import Kind
from pytest_bdspec.report import SpecReporter

from .base import BaseSuite, declaration

if TYPE_CHECKING:
    from collections.abc import Callable


class SpecSuite(BaseSuite):
    """Nested describe/it declarations.

    Every `it` becomes a suite replaying the `before_each` blocks of
    all enclosing groups, in declaration order, before the leaf itself.
    Example:

        with SpecSuite(harness) as suite:
            describe, before_each, it = suite.api()

            @describe('Calculator')
            def _() -> None:
                before_each(lambda t, world: world.set('value', 1))
                it('adds', lambda t, world: t.expect(world.get('value') + 1).to_equal(2))
    """

    reporter_class = SpecReporter

    @declaration
    def describe(self, title: str, callback: 'Callable[[], Any]') -> None:
        """Declare a group; its body runs right away."""
        location = locate(stacklevel=2)
        if len(self.stack):
            self.open_subgroup(title, callback, location=location, keyword='Describe')
        else:
            self.open_group(title, callback, location=location, keyword='Describe')

    context = describe

    @declaration
    def background(self, callback: 'Callable[[], Any]') -> None:
        """Declare setups prefixing every leaf declared after it in the group."""
        self.open_precondition_group(callback, location=locate(stacklevel=2), keyword='Background')

    @declaration
    def before_each(self, callback: 'Callable[..., Any]') -> None:
        """Declare a setup replayed before every following leaf of the group."""
        self.declare_setup(Kind.SETUP, '', callback, location=locate(stacklevel=2), keyword='BeforeEach')

    @declaration
    def it(self, title: str, callback: 'Callable[..., Any]') -> None:
        """Declare a leaf: the last step of its own suite."""
        self.declare_leaf(title, callback, location=locate(stacklevel=2), keyword='It')

    def api(self) -> tuple['Callable[..., Any]', ...]:
        """Return `(describe, before_each, it)` for unpacking."""
        return self.describe, self.before_each, self.it
