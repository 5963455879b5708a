"""Reading class entries out of jars and class directories."""

from __future__ import annotations

import zipfile
import zlib
from pathlib import Path
from typing import Callable, Iterator, Optional, Tuple

from ..exceptions import ArchiveError
from ..logging_config import get_logger

logger = get_logger(__name__)

CLASS_SUFFIX = ".class"

# Zip-based archive formats that carry compiled classes
ARCHIVE_SUFFIXES = frozenset({".jar", ".nar", ".zip", ".war", ".aar"})

# Errors raised while inflating a single zip entry
_ENTRY_READ_ERRORS = (zipfile.BadZipFile, zlib.error, NotImplementedError, EOFError, OSError)

EntryErrorHandler = Callable[[str, str], None]


def class_name_for_entry(entry: str) -> Optional[str]:
    """Map an archive entry path to a binary class name.

    ``org/example/Foo$Bar.class`` becomes ``org.example.Foo$Bar``. Entries
    that are not classes, or whose path contains ``-`` (``module-info``,
    ``package-info``, ``META-INF`` tooling), return None.
    """
    entry = entry.replace("\\", "/")
    if not entry.endswith(CLASS_SUFFIX) or "-" in entry:
        return None
    return entry[: -len(CLASS_SUFFIX)].replace("/", ".")


def is_archive(path: Path) -> bool:
    return path.suffix.lower() in ARCHIVE_SUFFIXES


def list_classes(path: Path) -> Tuple[str, ...]:
    """Return the sorted class names contained in a jar or class directory.

    Raises:
        ArchiveError: If the path does not exist, is not a supported archive,
            or cannot be read.
    """
    names = set()
    for entry in _iter_entry_names(path):
        class_name = class_name_for_entry(entry)
        if class_name is not None:
            names.add(class_name)
    return tuple(sorted(names))


def iter_class_files(
    path: Path, on_entry_error: Optional[EntryErrorHandler] = None
) -> Iterator[Tuple[str, bytes]]:
    """Yield ``(class_name, bytes)`` for every class in a jar or directory.

    A missing location yields nothing: compiled output directories do not
    exist for source sets without sources.

    Args:
        path: Jar, nar or class directory
        on_entry_error: Called with ``(class_name, reason)`` for a single
            class entry that cannot be read (bad CRC, corrupt deflate
            stream, unreadable file); the entry is skipped. Without a
            handler such an entry raises ArchiveError.

    Raises:
        ArchiveError: If the location exists but cannot be read.
    """
    if not path.exists():
        logger.debug(f"Compiled output {path} does not exist; nothing to scan")
        return

    if path.is_dir():
        for class_file in sorted(path.rglob(f"*{CLASS_SUFFIX}")):
            class_name = class_name_for_entry(class_file.relative_to(path).as_posix())
            if class_name is None:
                continue
            try:
                data = class_file.read_bytes()
            except OSError as e:
                if on_entry_error is None:
                    raise ArchiveError(class_file, str(e)) from e
                on_entry_error(class_name, str(e))
                continue
            yield class_name, data
        return

    if not is_archive(path):
        raise ArchiveError(path, "unsupported file for collecting classes")

    try:
        with zipfile.ZipFile(path) as zf:
            for info in sorted(zf.infolist(), key=lambda i: i.filename):
                if info.is_dir():
                    continue
                class_name = class_name_for_entry(info.filename)
                if class_name is None:
                    continue
                try:
                    data = zf.read(info)
                except _ENTRY_READ_ERRORS as e:
                    reason = f"unreadable entry {info.filename}: {e}"
                    if on_entry_error is None:
                        raise ArchiveError(path, reason) from e
                    logger.warning(f"Skipping {reason} in {path}")
                    on_entry_error(class_name, reason)
                    continue
                yield class_name, data
    except (OSError, zipfile.BadZipFile, zipfile.LargeZipFile) as e:
        raise ArchiveError(path, str(e)) from e


def _iter_entry_names(path: Path) -> Iterator[str]:
    if not path.exists():
        raise ArchiveError(path, "file does not exist")

    if path.is_dir():
        try:
            for class_file in path.rglob(f"*{CLASS_SUFFIX}"):
                yield class_file.relative_to(path).as_posix()
        except OSError as e:
            raise ArchiveError(path, f"{e} from directory = {path}") from e
        return

    if not is_archive(path):
        raise ArchiveError(path, "unsupported file for collecting classes")

    try:
        with zipfile.ZipFile(path) as zf:
            names = zf.namelist()
    except (OSError, zipfile.BadZipFile) as e:
        raise ArchiveError(path, str(e)) from e
    yield from names
