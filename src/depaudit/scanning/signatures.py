"""Parsing of JVM type descriptors and generic signatures.

Both grammars are handled by one recursive-descent reader: a field
descriptor is a single type, a method descriptor is ``(params)return``, and
generic signatures add formal type parameters, type arguments, type
variables and inner-class suffixes on top. Only class names are collected;
primitives, ``void`` and type variables contribute nothing.

    >>> sorted(class_names_in_signature("(Ljava/util/List<Lorg/x/Foo;>;I)[Lorg/x/Bar;"))
    ['java.util.List', 'org.x.Bar', 'org.x.Foo']
"""

from __future__ import annotations

from typing import Set

from ..exceptions import ClassFileFormatError

BASE_TYPES = frozenset("BCDFIJSZ")


def internal_to_binary(name: str) -> str:
    """``java/util/Map$Entry`` -> ``java.util.Map$Entry``."""
    return name.replace("/", ".")


def class_names_in_signature(signature: str) -> Set[str]:
    """Collect every class named by a descriptor or generic signature.

    Raises:
        ClassFileFormatError: If the text is not a valid descriptor/signature.
    """
    reader = _SignatureReader(signature)
    reader.read_any()
    return reader.names


def class_names_in_class_constant(name: str) -> Set[str]:
    """Class names referenced by a ``CONSTANT_Class`` entry.

    Array classes are stored as descriptors (``[Ljava/lang/String;``, ``[[I``);
    everything else is an internal name.
    """
    if name.startswith("["):
        return class_names_in_signature(name)
    if not name:
        raise ClassFileFormatError("empty class name in constant pool")
    return {internal_to_binary(name)}


class _SignatureReader:
    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.names: Set[str] = set()

    # -- helpers --

    def _peek(self) -> str:
        if self.pos >= len(self.text):
            return ""
        return self.text[self.pos]

    def _expect(self, char: str) -> None:
        if self._peek() != char:
            self._fail(f"expected '{char}'")
        self.pos += 1

    def _fail(self, reason: str) -> None:
        raise ClassFileFormatError(f"{reason} at offset {self.pos} in signature {self.text!r}")

    def _identifier(self, stops: str) -> str:
        start = self.pos
        while self.pos < len(self.text) and self.text[self.pos] not in stops:
            self.pos += 1
        if self.pos == start:
            self._fail("expected identifier")
        return self.text[start : self.pos]

    # -- grammar --

    def read_any(self) -> None:
        if not self.text:
            self._fail("empty signature")
        if self._peek() == "<":
            self._formal_type_parameters()
        if self._peek() == "(":
            self._method_tail()
        else:
            # Field descriptor/signature, or a class signature (superclass
            # followed by interfaces)
            while self.pos < len(self.text):
                self._java_type()
        if self.pos != len(self.text):
            self._fail("trailing characters")

    def _formal_type_parameters(self) -> None:
        self._expect("<")
        while self._peek() != ">":
            if not self._peek():
                self._fail("unterminated type parameters")
            self._identifier(":>")
            # Class bound may be empty (``T::Ljava/lang/Runnable;``)
            self._expect(":")
            if self._peek() not in (":", ">", ""):
                self._reference_type()
            while self._peek() == ":":
                self.pos += 1
                self._reference_type()
        self._expect(">")

    def _method_tail(self) -> None:
        self._expect("(")
        while self._peek() != ")":
            if not self._peek():
                self._fail("unterminated parameter list")
            self._java_type()
        self._expect(")")
        if self._peek() == "V":
            self.pos += 1
        else:
            self._java_type()
        while self._peek() == "^":
            self.pos += 1
            self._reference_type()

    def _java_type(self) -> None:
        char = self._peek()
        if char in BASE_TYPES and char:
            self.pos += 1
        else:
            self._reference_type()

    def _reference_type(self) -> None:
        char = self._peek()
        if char == "L":
            self._class_type()
        elif char == "T":
            self.pos += 1
            self._identifier(";")
            self._expect(";")
        elif char == "[":
            self.pos += 1
            self._java_type()
        else:
            self._fail("expected reference type")

    def _class_type(self) -> None:
        self._expect("L")
        name = self._identifier("<.;")
        self.names.add(internal_to_binary(name))
        if self._peek() == "<":
            self._type_arguments()
        while self._peek() == ".":
            self.pos += 1
            inner = self._identifier("<.;")
            name = f"{name}${inner}"
            self.names.add(internal_to_binary(name))
            if self._peek() == "<":
                self._type_arguments()
        self._expect(";")

    def _type_arguments(self) -> None:
        self._expect("<")
        while self._peek() != ">":
            char = self._peek()
            if not char:
                self._fail("unterminated type arguments")
            if char == "*":
                self.pos += 1
                continue
            if char in "+-":
                self.pos += 1
            self._reference_type()
        self._expect(">")
