"""Report primitive types and display names.

This module defines indentation units, status glyphs and the separator
used to build suite titles. They form part of the public report format
and are relied upon by the reporter, the options and the pytest plugin.
"""

from typing import Annotated, Literal

from pydantic import Field

TWO_SPACES = '  '
FOUR_SPACES = '    '
ONE_TAB = '\t'

#: Indentation aliases accepted on the command line.
INDENT_ALIASES = {
    '2': TWO_SPACES,
    '4': FOUR_SPACES,
    'tab': ONE_TAB,
}

#: Separator between group and leaf titles in a suite title.
TITLE_SEPARATOR = '/'

PASS_GLYPH = '✔ '
FAIL_GLYPH = '⨯ '
SKIP_GLYPH = 's '

Indent = Annotated[
    Literal['  ', '    ', '\t'], Field(
        title='Indentation unit',
        description=(
            'Unit of indentation applied once per nesting level of the '
            'report. Only two spaces, four spaces or one tab are supported.'
        ),
    ),
]
