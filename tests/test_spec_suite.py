"""Tests for the describe/it vocabulary."""

import re
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from pytest_bdspec.nodes import Kind
from pytest_bdspec.options import Output
from pytest_bdspec.suites import SpecSuite

if TYPE_CHECKING:
    from collections.abc import Callable
    from io import StringIO

if TYPE_CHECKING:
    from pytest_mock import MockerFixture

    from pytest_bdspec.harness import Harness


def titles(suite: SpecSuite) -> list[str]:
    """Return the titles of the recorded suites."""
    return [item.title for item in suite.suites]


def test_top_level_describes(harness: 'Harness', plain: Output, stream: 'StringIO') -> None:
    """Each empty top-level describe replays as its own suite."""
    suite = SpecSuite(harness, plain)
    describe, _, _ = suite.api()

    describe('describe 1', lambda: None)
    describe('describe 2', lambda: None)

    assert titles(suite) == ['describe 1', 'describe 2']
    assert [child.name for child in harness.children] == ['describe 1', 'describe 2']
    assert len(suite.stack) == 0
    assert stream.getvalue() == 'describe 1\n\ndescribe 2\n\n'
    assert not harness.failed


def test_nested_describes(harness: 'Harness', plain: Output, stream: 'StringIO') -> None:
    """Only the innermost describe of a chain records a suite."""
    suite = SpecSuite(harness, plain)
    describe, _, _ = suite.api()

    @describe('describe 1')
    def _() -> None:
        @describe('nested 1')
        def _() -> None:
            describe('nested 2', lambda: None)
            @describe('nested 3')
            def _() -> None:
                describe('nested 4', lambda: None)
        describe('nested 5', lambda: None)

    @describe('describe 6')
    def _() -> None:
        describe('nested 7', lambda: None)

    assert titles(suite) == [
        'describe 1/nested 1/nested 2',
        'describe 1/nested 1/nested 3/nested 4',
        'describe 1/nested 5',
        'describe 6/nested 7',
    ]
    assert stream.getvalue() == '\n'.join([
        'describe 1',
        '  nested 1',
        '    nested 2',
        '    nested 3',
        '      nested 4',
        '  nested 5',
        '',
        'describe 6',
        '  nested 7',
        '',
        '',
    ])


def test_before_each_without_leaves(harness: 'Harness', plain: Output) -> None:
    """A group without leaves still replays its setups once."""
    calls = []
    suite = SpecSuite(harness, plain)
    describe, before_each, _ = suite.api()

    @describe('describe 1')
    def _() -> None:
        before_each(lambda: calls.append('setup'))

    assert titles(suite) == ['describe 1']
    assert len(suite.suites[0]) == 2
    assert calls == ['setup']


def test_sequential_replay_order(harness: 'Harness', plain: Output,
                                 record: 'Callable[..., Callable[..., None]]') -> None:
    """Every leaf replays the setups of all its ancestors first."""
    suite = SpecSuite(harness, plain)
    describe, before_each, it = suite.api()

    @describe('describe 1')
    def _() -> None:
        before_each(record(1))
        @describe('nested')
        def _() -> None:
            before_each(record(2))
            it('it 1', record(3))
            it('it 2', record(4))
        it('it 3', record(5))

    assert record.calls == [1, 2, 3, 1, 2, 4, 1, 5]
    assert titles(suite) == [
        'describe 1/nested/it 1',
        'describe 1/nested/it 2',
        'describe 1/it 3',
    ]


def test_setups_only_apply_to_later_leaves(harness: 'Harness', plain: Output,
                                           record: 'Callable[..., Callable[..., None]]') -> None:
    """A setup declared after a leaf is not part of its suite."""
    suite = SpecSuite(harness, plain)
    describe, before_each, it = suite.api()

    @describe('describe 1')
    def _() -> None:
        it('it 1', record('it 1'))
        before_each(record('setup'))
        it('it 2', record('it 2'))

    assert record.calls == ['it 1', 'setup', 'it 2']


def test_shared_ancestor_steps(harness: 'Harness', plain: Output) -> None:
    """Suites share the very same ancestor step objects."""
    suite = SpecSuite(harness, plain)
    describe, before_each, it = suite.api()

    @describe('describe 1')
    def _() -> None:
        before_each(lambda: None)
        it('it 1', lambda: None)
        it('it 2', lambda: None)

    first, second = suite.suites

    assert first[0] is second[0]
    assert first[1] is second[1]
    assert first[2] is not second[2]
    assert [step.kind for step in first] == [Kind.GROUP, Kind.SETUP, Kind.LEAF]


def test_context_alias(harness: 'Harness', plain: Output, stream: 'StringIO') -> None:
    """`context` declares groups like `describe`."""
    suite = SpecSuite(harness, plain)

    @suite.describe('describe 1')
    def _() -> None:
        @suite.context('when empty')
        def _() -> None:
            suite.it('it 1', lambda: None)

    assert titles(suite) == ['describe 1/when empty/it 1']
    assert stream.getvalue() == 'describe 1\n  when empty\n    ✔ it 1\n\n'


def test_decorators_return_callbacks(harness: 'Harness', plain: Output) -> None:
    """Decorated callbacks keep their names bound."""
    suite = SpecSuite(harness, plain)
    describe, before_each, it = suite.api()

    @describe('describe 1')
    def group() -> None:
        @before_each
        def setup() -> None:
            pass

        @it('it 1')
        def leaf() -> None:
            pass

        assert callable(setup)
        assert callable(leaf)

    assert callable(group)
    assert not harness.failed


def test_sibling_leaves_fail_independently(harness: 'Harness', plain: Output, stream: 'StringIO') -> None:
    """A failing leaf does not affect its siblings."""
    suite = SpecSuite(harness, plain)
    describe, _, it = suite.api()

    @describe('describe 1')
    def _() -> None:
        it('it 1', lambda t: t.error('boom'))
        it('it 2', lambda: None)
        it('it 3', lambda t: t.expect(1).to_equal(1))

    assert stream.getvalue() == 'describe 1\n  ⨯ it 1\n  ✔ it 2\n  ✔ it 3\n\n'
    assert [child.failed for child in harness.children] == [True, False, False]


def test_suite_expect_fails_replayed_leaf(harness: 'Harness', plain: Output, stream: 'StringIO') -> None:
    """Suite expectations fail the leaf being replayed, not its siblings."""
    suite = SpecSuite(harness, plain)
    describe, _, it = suite.api()

    @describe('describe 1')
    def _() -> None:
        it('it 1', lambda: suite.expect(1).to_equal(2))
        it('it 2', lambda: suite.expect(1).to_equal(1))

    assert stream.getvalue() == 'describe 1\n  ⨯ it 1\n  ✔ it 2\n\n'
    assert [child.failed for child in harness.children] == [True, False]
    assert not harness.errors


def test_suite_expect_outside_replay(harness: 'Harness', plain: Output) -> None:
    """Suite expectations outside a replay report to the suite harness."""
    suite = SpecSuite(harness, plain)

    suite.expect([]).to_have_length(1)

    assert len(harness.errors) == 1
    assert harness.errors[0].startswith('expected [] to have length 1')


@pytest.mark.parametrize('name', ('describe', 'context', 'it'))
def test_bare_decorator_without_title(harness: 'Harness', plain: Output, name: str) -> None:
    """Titled blocks used as bare decorators are reported."""
    suite = SpecSuite(harness, plain)
    declare = getattr(suite, name)

    @suite.describe('describe 1')
    def _() -> None:
        @declare
        def block() -> None:
            pass

        assert callable(block)

    assert len(harness.errors) == 1
    assert f"'{declare.__name__}' requires a title before its callback" in harness.errors[0]
    assert titles(suite) == ['describe 1']


def test_raising_leaf(harness: 'Harness', plain: Output, stream: 'StringIO') -> None:
    """Assertion errors and exceptions are reported with the step location."""
    suite = SpecSuite(harness, plain)
    describe, _, it = suite.api()

    def fails() -> None:
        assert 1 == 2, 'numbers differ'  # noqa: PLR0133

    @describe('describe 1')
    def _() -> None:
        it('it 1', fails)
        it('it 2', lambda: {}['missing'])

    first, second = harness.children

    assert first.errors[0].startswith('It failed: it 1\n    numbers differ')
    assert 'on step 2 of "describe 1/it 1"' in first.errors[0]
    assert __file__ in first.errors[0]
    assert "KeyError('missing')" in second.errors[0]
    assert stream.getvalue() == 'describe 1\n  ⨯ it 1\n  ⨯ it 2\n\n'


def test_skipping_leaf(harness: 'Harness', plain: Output, stream: 'StringIO') -> None:
    """A skipped step ends its suite and renders as skipped."""
    calls = []
    suite = SpecSuite(harness, plain)
    describe, before_each, it = suite.api()

    @describe('describe 1')
    def _() -> None:
        before_each(lambda t: t.skip('not ready'))
        it('it 1', lambda: calls.append('it 1'))

    assert calls == []
    assert harness.children[0].skipped
    assert harness.children[0].skip_reason == 'not ready'
    assert not harness.failed
    assert stream.getvalue() == 'describe 1\n  s it 1\n\n'


def test_failed_setup_cascades(harness: 'Harness', plain: Output, stream: 'StringIO') -> None:
    """Suites sharing a failed setup are skipped."""
    calls = []
    suite = SpecSuite(harness, plain)
    describe, before_each, it = suite.api()

    @describe('describe 1')
    def _() -> None:
        before_each(lambda t: t.error('setup failed'))
        it('it 1', lambda: calls.append('it 1'))
        it('it 2', lambda: calls.append('it 2'))

    @describe('describe 2')
    def _() -> None:
        it('it 3', lambda: calls.append('it 3'))

    assert calls == ['it 1', 'it 3']
    assert [child.failed for child in harness.children] == [True, False, False]
    assert [child.skipped for child in harness.children] == [False, True, False]
    assert stream.getvalue() == 'describe 1\n  s it 1\n  s it 2\n\ndescribe 2\n  ✔ it 3\n\n'


def test_earlier_failure_skips_suites(harness: 'Harness', plain: Output, stream: 'StringIO') -> None:
    """Nothing is replayed once the harness failed for another reason."""
    calls = []
    harness.error('failed before')

    suite = SpecSuite(harness, plain)
    describe, _, it = suite.api()

    @describe('describe 1')
    def _() -> None:
        it('it 1', lambda: calls.append('it 1'))

    assert calls == []
    assert harness.children[0].skipped
    assert stream.getvalue() == 'describe 1\n  s it 1\n\n'


@pytest.mark.parametrize('declare', (
    pytest.param(lambda suite: suite.before_each(lambda: None), id='before-each'),
    pytest.param(lambda suite: suite.it('it 1', lambda: None), id='it'),
    pytest.param(lambda suite: suite.background(lambda: None), id='background'),
))
def test_blocks_outside_groups(harness: 'Harness', plain: Output,
                               declare: 'Callable[[SpecSuite], None]') -> None:
    """Blocks other than describe require an open group."""
    suite = SpecSuite(harness, plain)
    declare(suite)

    assert len(harness.errors) == 1
    assert 'must be declared' in harness.errors[0]
    assert __file__ in harness.errors[0]
    assert suite.suites == []


def test_leaf_inside_background(harness: 'Harness', plain: Output) -> None:
    """Leaves can not be declared inside a background."""
    suite = SpecSuite(harness, plain)
    describe, _, it = suite.api()

    @describe('describe 1')
    def _() -> None:
        @suite.background
        def _() -> None:
            it('it 1', lambda: None)

    assert len(harness.errors) == 1
    assert "It 'it 1' must be declared inside a group" in harness.errors[0]


def test_background_prefixes_leaves(harness: 'Harness', plain: Output, stream: 'StringIO',
                                    record: 'Callable[..., Callable[..., None]]') -> None:
    """Background setups run before every later leaf of their group."""
    suite = SpecSuite(harness, plain)
    describe, before_each, it = suite.api()

    @describe('describe 1')
    def _() -> None:
        @suite.background
        def _() -> None:
            before_each(record('background'))
        it('it 1', record('it 1'))
        it('it 2', record('it 2'))

    assert record.calls == ['background', 'it 1', 'background', 'it 2']
    assert [step.kind for step in suite.suites[0]] == [
        Kind.GROUP,
        Kind.PRECONDITION_GROUP,
        Kind.SETUP,
        Kind.LEAF,
    ]
    assert stream.getvalue() == 'describe 1\n  ✔ it 1\n  ✔ it 2\n\n'


def test_declaring_while_replaying(harness: 'Harness', plain: Output) -> None:
    """Blocks declared from a replayed step are rejected."""
    suite = SpecSuite(harness, plain)
    describe, _, it = suite.api()

    @describe('describe 1')
    def _() -> None:
        it('it 1', lambda: describe('describe 2', lambda: None))

    assert len(harness.errors) == 1
    assert 'while a suite is replaying' in harness.errors[0]
    assert titles(suite) == ['describe 1/it 1']


def test_declaring_after_close(harness: 'Harness', plain: Output) -> None:
    """A closed suite rejects new blocks."""
    with SpecSuite(harness, plain) as suite:
        pass

    suite.describe('describe 1', lambda: None)

    assert 'closed suite' in harness.errors[0]


def test_unsupported_callback(harness: 'Harness', plain: Output, stream: 'StringIO') -> None:
    """Callbacks requiring more than two arguments are rejected."""
    suite = SpecSuite(harness, plain)
    describe, _, it = suite.api()

    @describe('describe 1')
    def _() -> None:
        it('it 1', lambda a, b, c: None)

    assert 'requires 3 arguments' in harness.errors[0]
    assert titles(suite) == ['describe 1']
    assert stream.getvalue() == 'describe 1\n\n'


def test_raising_group_body(harness: 'Harness', plain: Output) -> None:
    """A raising group body is reported and the declared blocks kept."""
    suite = SpecSuite(harness, plain)
    describe, _, it = suite.api()

    @describe('describe 1')
    def _() -> None:
        it('it 1', lambda: None)
        raise RuntimeError('broken')

    assert "Declaration body raised RuntimeError('broken')" in harness.errors[0]
    assert titles(suite) == ['describe 1/it 1']


def test_durations(harness: 'Harness', stream: 'StringIO', mocker: 'MockerFixture') -> None:
    """Elapsed times of leaves are rendered in milliseconds."""
    mocker.patch(
        'pytest_bdspec.core.scheduler.perf_counter',
        side_effect=[0.0, 0.25, 1.0, 1.5],
    )

    suite = SpecSuite(harness, Output(stream, durations=True))
    describe, _, it = suite.api()

    @describe('describe 1')
    def _() -> None:
        it('it 1', lambda: None)
        it('it 2', lambda: None)

    assert stream.getvalue() == 'describe 1\n  ✔ it 1 (250ms)\n  ✔ it 2 (500ms)\n\n'


def test_filenames(harness: 'Harness', stream: 'StringIO') -> None:
    """Source locations are rendered relative to the base path."""
    suite = SpecSuite(harness, Output(stream, filenames=True), base_path=Path(__file__).parent)
    describe, _, it = suite.api()

    @describe('describe 1')
    def _() -> None:
        it('it 1', lambda: None)

    first, second, *_ = stream.getvalue().splitlines()

    assert re.fullmatch(r'describe 1\ttest_spec_suite\.py:\d+', first)
    assert re.fullmatch(r'  ✔ it 1\ttest_spec_suite\.py:\d+', second)


def test_colors(harness: 'Harness', stream: 'StringIO') -> None:
    """Groups are bold, passing leaves green and gray, failing leaves red."""
    suite = SpecSuite(harness, Output(stream, colorful=True))
    describe, _, it = suite.api()

    @describe('describe 1')
    def _() -> None:
        it('it 1', lambda: None)
        it('it 2', lambda t: t.error('boom'))

    assert stream.getvalue() == ''.join([
        '\033[1mdescribe 1\033[0m\n',
        '  \033[32m✔ \033[0m\033[90mit 1\033[0m\n',
        '  \033[31m⨯ \033[0m\033[31mit 2\033[0m\n',
        '\n',
    ])


def test_several_outputs(harness: 'Harness', stream: 'StringIO', mocker: 'MockerFixture') -> None:
    """Each output renders the same tree with its own decorations."""
    other = mocker.Mock()
    suite = SpecSuite(harness, Output(stream), Output(other, indent='\t'))
    describe, _, it = suite.api()

    @describe('describe 1')
    def _() -> None:
        it('it 1', lambda: None)

    assert stream.getvalue() == 'describe 1\n  ✔ it 1\n\n'
    other.write.assert_called_once_with('describe 1\n\t✔ it 1\n\n')


def test_render_reset_render(harness: 'Harness', plain: Output, stream: 'StringIO') -> None:
    """Rendering again after a reset reproduces the same report."""
    suite = SpecSuite(harness, plain)
    describe, _, it = suite.api()

    @describe('describe 1')
    def _() -> None:
        it('it 1', lambda: None)
        it('it 2', lambda t: t.error('boom'))

    first = stream.getvalue()

    suite.reporter.render(*suite.roots)
    assert stream.getvalue() == first

    suite.reporter.reset(*suite.roots)
    suite.reporter.render(*suite.roots)
    assert stream.getvalue() == first * 2


def test_default_output(harness: 'Harness', capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch) -> None:
    """Without outputs the report goes to stdout with the configured defaults."""
    monkeypatch.setenv('BDSPEC_COLORFUL', 'false')
    monkeypatch.setenv('BDSPEC_DURATIONS', 'false')

    suite = SpecSuite(harness)
    describe, _, it = suite.api()

    @describe('describe 1')
    def _() -> None:
        it('it 1', lambda: None)

    assert capsys.readouterr().out == 'describe 1\n  ✔ it 1\n\n'


@pytest.mark.parametrize('option', (
    pytest.param(object(), id='unknown'),
    pytest.param('stdout', id='string'),
))
def test_unsupported_options(harness: 'Harness', option: object) -> None:
    """Only outputs and the parallel switch are accepted as options."""
    with pytest.raises(TypeError, match=r'^Unsupported suite option'):
        SpecSuite(harness, option)  # type: ignore[arg-type]
