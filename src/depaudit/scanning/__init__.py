"""Bytecode scanning: archive reading and class file usage extraction."""

from .archive import CLASS_SUFFIX, class_name_for_entry, iter_class_files, list_classes
from .base import UsageExtractor
from .classfile import ClassFileSummary, ClassFileUsageExtractor, parse_class_file
from .signatures import class_names_in_signature

__all__ = [
    "CLASS_SUFFIX",
    "UsageExtractor",
    "ClassFileUsageExtractor",
    "ClassFileSummary",
    "parse_class_file",
    "class_names_in_signature",
    "class_name_for_entry",
    "iter_class_files",
    "list_classes",
]
