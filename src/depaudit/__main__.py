"""Allow ``python -m depaudit``."""

from .cli import main

main()
