"""The Gherkin vocabulary."""

from typing import TYPE_CHECKING, Any

from pytest_bdspec.errors import DeclarationError
from pytest_bdspec.location import locate
from pytest_bdspec.nodes import Kind, Node
from pytest_bdspec.report import FeatureReporter, format_table

from .base import BaseSuite, declaration

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

if TYPE_CHECKING:
    from pytest_bdspec.location import Location
    from pytest_bdspec.steps import Step


class FeatureSuite(BaseSuite):
    """Feature/scenario declarations.

    Every scenario becomes one suite: the feature, its backgrounds
    declared so far, then the given, when and then steps of the
    scenario. Backgrounds only apply to scenarios declared after them.
    """

    reporter_class = FeatureReporter

    def copy_on_leave(self, step: 'Step', recorded: int) -> bool:
        """Record a suite for every closing scenario, never for a feature."""
        return self.stack.depth(Kind.GROUP) == 2  # noqa: PLR2004

    @declaration
    def feature(self, title: str, callback: 'Callable[[], Any]') -> None:
        """Declare a feature; its body runs right away."""
        self.open_group(title, callback, location=locate(stacklevel=2), keyword='Feature')

    @declaration
    def background(self, callback: 'Callable[[], Any]') -> None:
        """Declare givens prefixing every later scenario of the feature."""
        location = locate(stacklevel=2)
        if self.in_feature(location, 'Background'):
            self.open_precondition_group(callback, location=location, keyword='Background')

    @declaration
    def scenario(self, title: str, callback: 'Callable[[], Any]') -> None:
        """Declare a scenario of the enclosing feature."""
        location = locate(stacklevel=2)
        if self.in_feature(location, 'Scenario'):
            self.open_subgroup(title, callback, location=location, keyword='Scenario')

    @declaration
    def given(self, title: str, callback: 'Callable[..., Any]') -> None:
        """Declare a precondition step."""
        self.declare_setup(Kind.SETUP, title, callback, location=locate(stacklevel=2), keyword='Given')

    @declaration
    def when(self, title: str, callback: 'Callable[..., Any]') -> None:
        """Declare the exercise step."""
        location = locate(stacklevel=2)
        if self.outside_background(location, 'When'):
            self.declare_setup(Kind.EXERCISE, title, callback, location=location, keyword='When')

    @declaration
    def then(self, title: str, callback: 'Callable[..., Any]') -> None:
        """Declare an assertion step."""
        location = locate(stacklevel=2)
        if self.outside_background(location, 'Then'):
            self.declare_setup(Kind.ASSERTION_GROUP, title, callback, location=location, keyword='Then')

    def table(self, items: 'Sequence[Any]', *columns: str) -> None:
        """Render example data under the step being replayed.

        Args:
            items: Rows: mappings, pydantic models or plain objects.
            *columns: Names of the fields shown, in order.
        """
        location = locate()

        step = getattr(self.current, 'step', None)
        case = getattr(self.current, 'case', None)
        if step is None or case is None:
            self.report('Table can only be rendered from a running step', location)
            return

        try:
            lines = format_table(items, columns)
        except TypeError as error:
            case.error(DeclarationError.at(f'{error}', location.filename, location.line))
            return

        step.attach(Node(Kind.TABLE, '\n'.join(lines), location=location))

    def api(self) -> tuple['Callable[..., Any]', ...]:
        """Return `(feature, background, scenario, given, when, then, table)`."""
        return (
            self.feature,
            self.background,
            self.scenario,
            self.given,
            self.when,
            self.then,
            self.table,
        )

    def in_feature(self, location: 'Location', keyword: str) -> bool:
        """Check that a block is declared directly inside a feature."""
        if not self.check_declaring(location):
            return False

        if self.precondition is not None or self.stack.depth(Kind.GROUP) != 1:
            self.report(f'{keyword} must be declared directly inside a feature', location)
            return False

        return True

    def outside_background(self, location: 'Location', keyword: str) -> bool:
        """Check that a step is not declared inside a background."""
        if self.precondition is not None:
            self.report(f'{keyword} can not be declared inside a background', location)
            return False

        return True
