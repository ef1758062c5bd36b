"""Declared block tree.

The Node Tree records the nesting exactly as it was declared and is what
the reporter renders. It is independent of the replay order: suites are
flat copies of steps, while nodes keep their parent/children shape.
"""

from collections.abc import Iterator
from enum import StrEnum
from typing import TYPE_CHECKING

from pytest_bdspec.location import Location

if TYPE_CHECKING:
    from pytest_bdspec.steps import Step


class Kind(StrEnum):
    """Kind of a declared block, shared by both vocabularies."""

    GROUP = 'group'
    SETUP = 'setup'
    LEAF = 'leaf'
    PRECONDITION_GROUP = 'precondition-group'
    EXERCISE = 'exercise'
    ASSERTION_GROUP = 'assertion-group'
    TABLE = 'table'


#: Kinds whose steps carry a callback replayed by the scheduler.
EXECUTABLE_KINDS = frozenset({
    Kind.SETUP,
    Kind.LEAF,
    Kind.EXERCISE,
    Kind.ASSERTION_GROUP,
})

#: Kinds whose titles make up a suite title.
TITLED_KINDS = frozenset({
    Kind.GROUP,
    Kind.LEAF,
})


class Node:
    """One declared block.

    Nodes are created once during registration and appended to their
    parent; they are never re-parented. The reporter flips `printed`
    the first time it renders a node.
    """

    def __init__(self, kind: Kind, title: str = '', *,
                 keyword: str = '',
                 location: Location | None = None) -> None:
        self.kind = kind
        self.title = title
        self.keyword = keyword
        self.location = location or Location()

        self.children: list[Node] = []
        self.step: Step | None = None
        self.printed = False

    def __repr__(self) -> str:
        return f'Node({self.kind.value!r}, {self.title!r})'

    def append(self, child: 'Node') -> 'Node':
        """Append a child node and return it."""
        self.children.append(child)
        return child

    def walk(self, depth: int = 0) -> Iterator[tuple[int, 'Node']]:
        """Iterate over this subtree depth-first with nesting depth."""
        yield depth, self
        for child in self.children:
            yield from child.walk(depth + 1)

    def reset(self) -> None:
        """Clear the printed flag of the whole subtree."""
        for _, node in self.walk():
            node.printed = False
