"""Pure-Python class file reader.

Walks the constant pool, fields, methods and attributes of a JVM class file
(JVMS chapter 4) and collects every class it refers to. The scope is wider
than source imports on purpose: inherited members, erased generics and
annotations make a dependency "used" without any textual import.

Collected:
    - superclass and interfaces
    - every CONSTANT_Class, CONSTANT_NameAndType and CONSTANT_MethodType
      entry (casts, instanceof, class literals, static member access,
      invoked method descriptors)
    - field, method and record component descriptors
    - Signature attributes (class, field, method, local variable)
    - annotations (visible and invisible, parameter annotations,
      AnnotationDefault, enum/class element values, nested annotations)
    - Exceptions attribute, catch types and local variable tables of Code
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, List, Optional, Set, Tuple

from ..exceptions import ClassFileFormatError
from ..models import ClassReference
from .base import UsageExtractor
from .signatures import (
    class_names_in_class_constant,
    class_names_in_signature,
    internal_to_binary,
)

MAGIC = 0xCAFEBABE

CONSTANT_UTF8 = 1
CONSTANT_INTEGER = 3
CONSTANT_FLOAT = 4
CONSTANT_LONG = 5
CONSTANT_DOUBLE = 6
CONSTANT_CLASS = 7
CONSTANT_STRING = 8
CONSTANT_FIELDREF = 9
CONSTANT_METHODREF = 10
CONSTANT_INTERFACE_METHODREF = 11
CONSTANT_NAME_AND_TYPE = 12
CONSTANT_METHOD_HANDLE = 15
CONSTANT_METHOD_TYPE = 16
CONSTANT_DYNAMIC = 17
CONSTANT_INVOKE_DYNAMIC = 18
CONSTANT_MODULE = 19
CONSTANT_PACKAGE = 20

# Payload size in bytes for fixed-size constant pool entries
_CONSTANT_SIZES = {
    CONSTANT_INTEGER: 4,
    CONSTANT_FLOAT: 4,
    CONSTANT_LONG: 8,
    CONSTANT_DOUBLE: 8,
    CONSTANT_CLASS: 2,
    CONSTANT_STRING: 2,
    CONSTANT_FIELDREF: 4,
    CONSTANT_METHODREF: 4,
    CONSTANT_INTERFACE_METHODREF: 4,
    CONSTANT_NAME_AND_TYPE: 4,
    CONSTANT_METHOD_HANDLE: 3,
    CONSTANT_METHOD_TYPE: 2,
    CONSTANT_DYNAMIC: 4,
    CONSTANT_INVOKE_DYNAMIC: 4,
    CONSTANT_MODULE: 2,
    CONSTANT_PACKAGE: 2,
}

_ANNOTATION_ATTRIBUTES = frozenset({"RuntimeVisibleAnnotations", "RuntimeInvisibleAnnotations"})
_PARAMETER_ANNOTATION_ATTRIBUTES = frozenset(
    {"RuntimeVisibleParameterAnnotations", "RuntimeInvisibleParameterAnnotations"}
)
_LOCAL_VARIABLE_ATTRIBUTES = frozenset({"LocalVariableTable", "LocalVariableTypeTable"})
_CONST_ELEMENT_TAGS = frozenset("BCDFIJSZs")


def _decode_modified_utf8(raw: bytes) -> str:
    # The JVM encodes NUL as C0 80 and supplementary characters as surrogate pairs
    return raw.replace(b"\xc0\x80", b"\x00").decode("utf-8", errors="surrogatepass")


class _ByteReader:
    """Big-endian cursor over a byte buffer with bounds checking."""

    def __init__(self, data: bytes, origin: str):
        self.data = data
        self.pos = 0
        self.origin = origin

    def _take(self, size: int) -> bytes:
        end = self.pos + size
        if end > len(self.data):
            raise ClassFileFormatError(
                f"truncated class file: needed {size} bytes at offset {self.pos}", self.origin
            )
        chunk = self.data[self.pos : end]
        self.pos = end
        return chunk

    def u1(self) -> int:
        return self._take(1)[0]

    def u2(self) -> int:
        return struct.unpack(">H", self._take(2))[0]

    def u4(self) -> int:
        return struct.unpack(">I", self._take(4))[0]

    def read(self, size: int) -> bytes:
        return self._take(size)

    def skip(self, size: int) -> None:
        self._take(size)

    @property
    def exhausted(self) -> bool:
        return self.pos >= len(self.data)


@dataclass(frozen=True)
class ClassFileSummary:
    """What the reader learned about one class file."""

    name: str
    super_name: Optional[str]
    interfaces: Tuple[str, ...]
    major_version: int
    references: FrozenSet[str]


class _ClassFileParser:
    def __init__(self, data: bytes, origin: str):
        self.reader = _ByteReader(data, origin)
        self.origin = origin
        self.pool: List[Optional[tuple]] = []
        self.names: Set[str] = set()
        self._handlers: Dict[str, Callable[[_ByteReader], None]] = {
            "Signature": self._read_signature,
            "Exceptions": self._read_exceptions,
            "AnnotationDefault": self._read_element_value,
            "Code": self._read_code,
            "Record": self._read_record,
        }
        for name in _ANNOTATION_ATTRIBUTES:
            self._handlers[name] = self._read_annotations
        for name in _PARAMETER_ANNOTATION_ATTRIBUTES:
            self._handlers[name] = self._read_parameter_annotations
        for name in _LOCAL_VARIABLE_ATTRIBUTES:
            self._handlers[name] = self._read_local_variables

    # -- constant pool access --

    def _entry(self, index: int, *tags: int) -> tuple:
        if index <= 0 or index >= len(self.pool) or self.pool[index] is None:
            raise ClassFileFormatError(f"invalid constant pool index {index}", self.origin)
        entry = self.pool[index]
        if tags and entry[0] not in tags:
            raise ClassFileFormatError(
                f"constant pool entry {index} has tag {entry[0]}, expected {tags}", self.origin
            )
        return entry

    def _utf8(self, index: int) -> str:
        return self._entry(index, CONSTANT_UTF8)[1]

    def _class_name(self, index: int) -> str:
        return self._utf8(self._entry(index, CONSTANT_CLASS)[1])

    # -- collection helpers --

    def _add_signature(self, text: str) -> None:
        try:
            self.names.update(class_names_in_signature(text))
        except ClassFileFormatError as e:
            raise ClassFileFormatError(e.reason, self.origin) from e

    def _add_class_constant(self, index: int) -> None:
        try:
            self.names.update(class_names_in_class_constant(self._class_name(index)))
        except ClassFileFormatError as e:
            raise ClassFileFormatError(e.reason, self.origin) from e

    # -- structure --

    def parse(self) -> ClassFileSummary:
        r = self.reader
        if r.u4() != MAGIC:
            raise ClassFileFormatError("bad magic number", self.origin)
        r.u2()  # minor version
        major = r.u2()

        self._read_constant_pool()
        self._collect_constant_pool()

        r.u2()  # access flags
        this_name = internal_to_binary(self._class_name(r.u2()))

        super_index = r.u2()
        super_name = None
        if super_index:
            super_name = internal_to_binary(self._class_name(super_index))

        interfaces = tuple(internal_to_binary(self._class_name(r.u2())) for _ in range(r.u2()))

        for _ in range(r.u2()):  # fields
            self._read_member()
        for _ in range(r.u2()):  # methods
            self._read_member()
        self._read_attributes(r)

        if not r.exhausted:
            raise ClassFileFormatError("trailing bytes after class attributes", self.origin)

        references = set(self.names)
        references.discard(this_name)
        return ClassFileSummary(
            name=this_name,
            super_name=super_name,
            interfaces=interfaces,
            major_version=major,
            references=frozenset(references),
        )

    def _read_constant_pool(self) -> None:
        r = self.reader
        count = r.u2()
        if count == 0:
            raise ClassFileFormatError("constant pool count is zero", self.origin)
        self.pool = [None] * count
        index = 1
        while index < count:
            tag = r.u1()
            if tag == CONSTANT_UTF8:
                raw = r.read(r.u2())
                try:
                    self.pool[index] = (tag, _decode_modified_utf8(raw))
                except UnicodeDecodeError as e:
                    raise ClassFileFormatError(f"invalid utf8 constant: {e}", self.origin) from e
            elif tag in _CONSTANT_SIZES:
                payload = r.read(_CONSTANT_SIZES[tag])
                if tag in (CONSTANT_CLASS, CONSTANT_STRING, CONSTANT_METHOD_TYPE,
                           CONSTANT_MODULE, CONSTANT_PACKAGE):
                    self.pool[index] = (tag, struct.unpack(">H", payload)[0])
                elif tag in (CONSTANT_FIELDREF, CONSTANT_METHODREF, CONSTANT_INTERFACE_METHODREF,
                             CONSTANT_NAME_AND_TYPE, CONSTANT_DYNAMIC, CONSTANT_INVOKE_DYNAMIC):
                    self.pool[index] = (tag,) + struct.unpack(">HH", payload)
                else:
                    self.pool[index] = (tag, payload)
            else:
                raise ClassFileFormatError(
                    f"unknown constant pool tag {tag} at index {index}", self.origin
                )
            # Long and double take two slots
            index += 2 if tag in (CONSTANT_LONG, CONSTANT_DOUBLE) else 1

    def _collect_constant_pool(self) -> None:
        for entry in self.pool:
            if entry is None:
                continue
            tag = entry[0]
            if tag == CONSTANT_CLASS:
                try:
                    self.names.update(class_names_in_class_constant(self._utf8(entry[1])))
                except ClassFileFormatError as e:
                    raise ClassFileFormatError(e.reason, self.origin) from e
            elif tag == CONSTANT_NAME_AND_TYPE:
                self._add_signature(self._utf8(entry[2]))
            elif tag == CONSTANT_METHOD_TYPE:
                self._add_signature(self._utf8(entry[1]))

    def _read_member(self) -> None:
        r = self.reader
        r.u2()  # access flags
        self._utf8(r.u2())  # name
        self._add_signature(self._utf8(r.u2()))
        self._read_attributes(r)

    # -- attributes --

    def _read_attributes(self, r: _ByteReader) -> None:
        for _ in range(r.u2()):
            name = self._utf8(r.u2())
            body = _ByteReader(r.read(r.u4()), self.origin)
            handler = self._handlers.get(name)
            if handler is not None:
                handler(body)

    def _read_signature(self, r: _ByteReader) -> None:
        self._add_signature(self._utf8(r.u2()))

    def _read_exceptions(self, r: _ByteReader) -> None:
        for _ in range(r.u2()):
            self._add_class_constant(r.u2())

    def _read_code(self, r: _ByteReader) -> None:
        r.u2()  # max stack
        r.u2()  # max locals
        r.skip(r.u4())
        for _ in range(r.u2()):
            r.skip(6)  # start, end, handler
            catch_type = r.u2()
            if catch_type:
                self._add_class_constant(catch_type)
        self._read_attributes(r)

    def _read_local_variables(self, r: _ByteReader) -> None:
        for _ in range(r.u2()):
            r.skip(4)  # start pc, length
            self._utf8(r.u2())  # name
            self._add_signature(self._utf8(r.u2()))
            r.u2()  # slot

    def _read_record(self, r: _ByteReader) -> None:
        for _ in range(r.u2()):
            self._utf8(r.u2())  # component name
            self._add_signature(self._utf8(r.u2()))
            self._read_attributes(r)

    def _read_annotations(self, r: _ByteReader) -> None:
        for _ in range(r.u2()):
            self._read_annotation(r)

    def _read_parameter_annotations(self, r: _ByteReader) -> None:
        for _ in range(r.u1()):
            self._read_annotations(r)

    def _read_annotation(self, r: _ByteReader) -> None:
        self._add_signature(self._utf8(r.u2()))
        for _ in range(r.u2()):
            self._utf8(r.u2())  # element name
            self._read_element_value(r)

    def _read_element_value(self, r: _ByteReader) -> None:
        tag = chr(r.u1())
        if tag in _CONST_ELEMENT_TAGS:
            r.u2()
        elif tag == "e":
            self._add_signature(self._utf8(r.u2()))
            r.u2()  # constant name
        elif tag == "c":
            descriptor = self._utf8(r.u2())
            if descriptor != "V":
                self._add_signature(descriptor)
        elif tag == "@":
            self._read_annotation(r)
        elif tag == "[":
            for _ in range(r.u2()):
                self._read_element_value(r)
        else:
            raise ClassFileFormatError(f"unknown annotation element tag {tag!r}", self.origin)


def parse_class_file(data: bytes, origin: str = "<unknown>") -> ClassFileSummary:
    """Parse class file bytes.

    Raises:
        ClassFileFormatError: On any structural problem.
    """
    try:
        return _ClassFileParser(data, origin).parse()
    except (struct.error, IndexError, RecursionError) as e:
        raise ClassFileFormatError(str(e) or type(e).__name__, origin) from e


class ClassFileUsageExtractor(UsageExtractor):
    """UsageExtractor backed by the built-in class file reader."""

    def extract(self, data: bytes, origin: str = "<unknown>") -> FrozenSet[ClassReference]:
        summary = parse_class_file(data, origin)
        return frozenset(ClassReference(name, summary.name) for name in summary.references)
