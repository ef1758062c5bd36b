"""ANSI escape sequences used by colorful reports."""

BOLD = '\033[1m'
NO_BOLD = '\033[22m'
RESET = '\033[0m'

GREEN = '\033[32m'
GRAY = '\033[90m'
CYAN = '\033[36m'
RED = '\033[31m'
YELLOW = '\033[33m'


def paint(text: str, color: str, *, enabled: bool = True, reset: str = RESET) -> str:
    """Wrap text into a color and its reset sequence."""
    if not enabled or not text:
        return text

    return f'{color}{text}{reset}'
