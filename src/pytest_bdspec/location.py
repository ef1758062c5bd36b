"""Source location lookup for declarations."""

import sys
from pathlib import Path
from typing import NamedTuple


class Location(NamedTuple):
    """File and line where a block was declared."""

    filename: str | None = None
    line: int | None = None

    def relative_to(self, base_path: Path | None) -> str:
        """Render `file:line`, with the file relative to `base_path`.

        Files outside of `base_path` keep their full path.
        """
        filename = self.filename or ''
        if base_path is not None and filename:
            path = Path(filename)
            if path.is_relative_to(base_path):
                filename = path.relative_to(base_path).as_posix()

        return f'{filename}:{self.line or 0}'


def locate(stacklevel: int = 1) -> Location:
    """Return the location of a caller frame.

    Args:
        stacklevel: Number of frames above the function calling
            `locate`; `1` is the caller of that function, like
            `warnings.warn`.

    Returns:
        The file and line of the requested frame, or an empty
        location when the stack is not that deep.
    """
    try:
        frame = sys._getframe(stacklevel + 1)  # noqa: SLF001
    except ValueError:
        return Location()

    return Location(frame.f_code.co_filename, frame.f_lineno)
