"""Report rendering.

A reporter walks the node tree and writes one report per output. Each
node is rendered at most once: a render pass formats a node for every
output at the same time and then flips its `printed` flag, so a later
pass over the same tree only renders what was declared since.
"""

from abc import ABC, abstractmethod
from datetime import timedelta
from typing import TYPE_CHECKING

from pytest_bdspec.names import FAIL_GLYPH, PASS_GLYPH, SKIP_GLYPH
from pytest_bdspec.nodes import Kind
from pytest_bdspec.steps import Status

from .colors import BOLD, CYAN, GRAY, GREEN, NO_BOLD, RED, YELLOW, paint

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

if TYPE_CHECKING:
    from pytest_bdspec.nodes import Node
    from pytest_bdspec.options import Output

#: Glyph, glyph color and title color per leaf status.
LEAF_STYLES = {
    Status.PASS: (PASS_GLYPH, GREEN, GRAY),
    Status.SKIP: (SKIP_GLYPH, CYAN, CYAN),
    Status.FAIL: (FAIL_GLYPH, RED, RED),
}

#: Kinds whose lines carry the elapsed time.
TIMED_KINDS = frozenset({
    Kind.LEAF,
    Kind.ASSERTION_GROUP,
})


class Reporter(ABC):
    """Base reporter writing the same tree to several outputs."""

    def __init__(self, outputs: 'Sequence[Output]', *,
                 base_path: 'Path | None' = None,
                 timed: bool = True) -> None:
        """Initialize a reporter.

        Args:
            outputs: Destinations with their decorations.
            base_path: Directory source files are shown relative to.
            timed: Whether elapsed times were recorded at all.
        """
        self.outputs = tuple(outputs)
        self.base_path = base_path
        self.timed = timed

    def render(self, *roots: 'Node') -> None:
        """Render the not yet printed part of the given trees."""
        chunks: list[list[str]] = [[] for _ in self.outputs]

        for root in roots:
            fresh = not root.printed
            for depth, node in root.walk():
                if node.printed:
                    continue
                node.printed = True
                for chunk, output in zip(chunks, self.outputs, strict=True):
                    chunk.extend(self.format(node, depth, output))

            if fresh:
                for chunk in chunks:
                    chunk.append('\n')

        for chunk, output in zip(chunks, self.outputs, strict=True):
            if chunk:
                output.write(''.join(chunk))

    @staticmethod
    def reset(*roots: 'Node') -> None:
        """Allow the given trees to be rendered again."""
        for root in roots:
            root.reset()

    @abstractmethod
    def format(self, node: 'Node', depth: int, output: 'Output') -> list[str]:
        """Format the lines of a single node."""

    def suffix(self, node: 'Node', output: 'Output') -> str:
        """Format the optional duration and location decorations."""
        suffix = ''
        if self.timed and output.durations and node.kind in TIMED_KINDS and node.step:
            elapsed = node.step.elapsed // timedelta(milliseconds=1)
            suffix += f' ({elapsed}ms)'

        if output.filenames:
            suffix += f'\t{node.location.relative_to(self.base_path)}'

        return suffix


class SpecReporter(Reporter):
    """Reporter of the describe/it vocabulary.

    Only groups and leaves are rendered, indented one unit per depth.
    """

    def format(self, node: 'Node', depth: int, output: 'Output') -> list[str]:
        indent = output.indent * depth
        colorful = output.colorful

        if node.kind == Kind.GROUP:
            title = paint(node.title, BOLD, enabled=colorful)
            return [f'{indent}{title}{self.suffix(node, output)}\n']

        if node.kind == Kind.LEAF:
            status = node.step.status if node.step else Status.SKIP
            glyph, glyph_color, title_color = LEAF_STYLES[status]
            return [
                f'{indent}'
                f'{paint(glyph, glyph_color, enabled=colorful)}'
                f'{paint(node.title, title_color, enabled=colorful)}'
                f'{self.suffix(node, output)}\n',
            ]

        return []


class FeatureReporter(Reporter):
    """Reporter of the Gherkin vocabulary.

    Blocks are rendered at fixed depths: the feature at the margin,
    backgrounds and scenarios one unit in, their steps two units in and
    tables three units in.
    """

    #: Keyword color per step kind.
    STEP_COLORS = {
        Kind.SETUP: CYAN,
        Kind.EXERCISE: GREEN,
        Kind.ASSERTION_GROUP: YELLOW,
    }

    def format(self, node: 'Node', depth: int, output: 'Output') -> list[str]:  # noqa: PLR0911
        unit = output.indent
        colorful = output.colorful

        if node.kind == Kind.GROUP and depth == 0:
            keyword = paint(f'{node.keyword}:', BOLD, enabled=colorful, reset=NO_BOLD)
            return [f'{keyword} {node.title}{self.suffix(node, output)}\n']

        if node.kind == Kind.GROUP:
            keyword = paint(f'{node.keyword}:', BOLD, enabled=colorful, reset=NO_BOLD)
            return ['\n', f'{unit}{keyword} {node.title}{self.suffix(node, output)}\n']

        if node.kind == Kind.PRECONDITION_GROUP:
            keyword = paint(f'{node.keyword}:', BOLD, enabled=colorful, reset=NO_BOLD)
            return ['\n', f'{unit}{keyword}{self.suffix(node, output)}\n']

        if node.kind == Kind.TABLE:
            return [f'{unit * 3}{line}\n' for line in node.title.splitlines()]

        if color := self.STEP_COLORS.get(node.kind):
            glyph = ''
            if node.kind == Kind.ASSERTION_GROUP and node.step:
                status = node.step.status
                if status != Status.PASS:
                    glyph, glyph_color, _ = LEAF_STYLES[status]
                    glyph = paint(glyph, glyph_color, enabled=colorful)

            keyword = paint(node.keyword, color, enabled=colorful)
            return [f'{unit * 2}{glyph}{keyword} {node.title}{self.suffix(node, output)}\n']

        return []
