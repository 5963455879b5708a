"""Usage extractor interface.

The analysis pipeline only depends on this capability, so a different
class-file reader can be substituted without touching the index, the
resolver or the classifier.
"""

from abc import ABC, abstractmethod
from typing import FrozenSet

from ..models import ClassReference


class UsageExtractor(ABC):
    """Extracts external class references from a compiled class body."""

    @abstractmethod
    def extract(self, data: bytes, origin: str = "<unknown>") -> FrozenSet[ClassReference]:
        """Return the classes referenced by one class file.

        Args:
            data: Raw class file bytes
            origin: Where the bytes came from, used in error messages

        Raises:
            ClassFileFormatError: If the bytes are not a parseable class file
        """
