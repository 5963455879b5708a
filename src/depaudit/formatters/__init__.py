"""Output formatters for depaudit."""

from .base import BaseFormatter
from .github_formatter import GithubFormatter
from .json_formatter import JsonFormatter
from .rich_formatter import RichFormatter
from .text_formatter import TextFormatter

FORMATTERS = {
    "rich": RichFormatter,
    "json": JsonFormatter,
    "github": GithubFormatter,
    "text": TextFormatter,
}


def get_formatter(name: str) -> BaseFormatter:
    """Get a formatter instance by name.

    Args:
        name: One of "rich", "json", "github", "text"

    Returns:
        Formatter instance

    Raises:
        ValueError: If name is not recognized
    """
    cls = FORMATTERS.get(name)
    if cls is None:
        choices = ", ".join(sorted(FORMATTERS))
        raise ValueError(f"Unknown formatter: {name!r}. Choose from: {choices}")
    return cls()


__all__ = [
    "BaseFormatter",
    "RichFormatter",
    "JsonFormatter",
    "GithubFormatter",
    "TextFormatter",
    "get_formatter",
]
