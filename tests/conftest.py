"""Shared test fixtures for depaudit.

Class files are assembled byte by byte with ``ClassFileBuilder`` so the
tests never need a JDK. Jars and class directories are written under
``tmp_path``.
"""

import struct
import zipfile
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional

import pytest

from depaudit.models import Artifact, ArtifactCoordinate, Configuration


def internal(name: str) -> str:
    return name.replace(".", "/")


class ClassFileBuilder:
    """Assembles small but structurally valid class files."""

    def __init__(
        self,
        name: str,
        super_name: Optional[str] = "java.lang.Object",
        interfaces: Iterable[str] = (),
        major: int = 52,
    ):
        self._pool = []
        self._next_index = 1
        self._indexes = {}
        self.major = major
        self.this_index = self.class_ref(name)
        self.super_index = self.class_ref(super_name) if super_name else 0
        self.interface_indexes = [self.class_ref(i) for i in interfaces]
        self.fields = []
        self.methods = []
        self.attributes = []

    # -- constant pool --

    def _add(self, key, data: bytes, slots: int = 1) -> int:
        if key in self._indexes:
            return self._indexes[key]
        index = self._next_index
        self._pool.append(data)
        self._next_index += slots
        self._indexes[key] = index
        return index

    def utf8(self, text: str) -> int:
        raw = text.encode("utf-8")
        return self._add(("utf8", text), struct.pack(">BH", 1, len(raw)) + raw)

    def class_ref(self, name: str) -> int:
        name_index = self.utf8(internal(name) if not name.startswith("[") else name)
        return self._add(("class", name), struct.pack(">BH", 7, name_index))

    def string(self, text: str) -> int:
        return self._add(("string", text), struct.pack(">BH", 8, self.utf8(text)))

    def long(self, value: int) -> int:
        return self._add(("long", value), struct.pack(">Bq", 5, value), slots=2)

    def name_and_type(self, name: str, descriptor: str) -> int:
        data = struct.pack(">BHH", 12, self.utf8(name), self.utf8(descriptor))
        return self._add(("nat", name, descriptor), data)

    def method_ref(self, owner: str, name: str, descriptor: str) -> int:
        data = struct.pack(">BHH", 10, self.class_ref(owner), self.name_and_type(name, descriptor))
        return self._add(("method", owner, name, descriptor), data)

    def field_ref(self, owner: str, name: str, descriptor: str) -> int:
        data = struct.pack(">BHH", 9, self.class_ref(owner), self.name_and_type(name, descriptor))
        return self._add(("field", owner, name, descriptor), data)

    def method_type(self, descriptor: str) -> int:
        return self._add(("mtype", descriptor), struct.pack(">BH", 16, self.utf8(descriptor)))

    # -- attributes --

    def attribute(self, name: str, body: bytes) -> bytes:
        return struct.pack(">HI", self.utf8(name), len(body)) + body

    def signature_attribute(self, signature: str) -> bytes:
        return self.attribute("Signature", struct.pack(">H", self.utf8(signature)))

    def exceptions_attribute(self, *classes: str) -> bytes:
        body = struct.pack(">H", len(classes))
        body += b"".join(struct.pack(">H", self.class_ref(c)) for c in classes)
        return self.attribute("Exceptions", body)

    def annotations_attribute(self, *descriptors: str, visible: bool = True) -> bytes:
        body = struct.pack(">H", len(descriptors))
        for descriptor in descriptors:
            body += struct.pack(">HH", self.utf8(descriptor), 0)
        name = "RuntimeVisibleAnnotations" if visible else "RuntimeInvisibleAnnotations"
        return self.attribute(name, body)

    def enum_annotation_attribute(
        self, descriptor: str, element: str, enum_descriptor: str, constant: str
    ) -> bytes:
        body = struct.pack(">H", 1)
        body += struct.pack(">HH", self.utf8(descriptor), 1)
        body += struct.pack(">H", self.utf8(element))
        body += b"e" + struct.pack(">HH", self.utf8(enum_descriptor), self.utf8(constant))
        return self.attribute("RuntimeVisibleAnnotations", body)

    def code_attribute(self, catch_types: Iterable[str] = (), code: bytes = b"\xb1") -> bytes:
        catch_types = list(catch_types)
        body = struct.pack(">HHI", 1, 1, len(code)) + code
        body += struct.pack(">H", len(catch_types))
        for catch_type in catch_types:
            body += struct.pack(">HHHH", 0, len(code), 0, self.class_ref(catch_type))
        body += struct.pack(">H", 0)
        return self.attribute("Code", body)

    # -- members --

    def add_field(self, name: str, descriptor: str, *attributes: bytes) -> "ClassFileBuilder":
        self.fields.append(self._member(name, descriptor, attributes))
        return self

    def add_method(self, name: str, descriptor: str, *attributes: bytes) -> "ClassFileBuilder":
        self.methods.append(self._member(name, descriptor, attributes))
        return self

    def add_attribute(self, attribute: bytes) -> "ClassFileBuilder":
        self.attributes.append(attribute)
        return self

    def _member(self, name: str, descriptor: str, attributes) -> bytes:
        header = struct.pack(
            ">HHHH", 0x0001, self.utf8(name), self.utf8(descriptor), len(attributes)
        )
        return header + b"".join(attributes)

    def build(self) -> bytes:
        out = struct.pack(">IHH", 0xCAFEBABE, 0, self.major)
        out += struct.pack(">H", self._next_index) + b"".join(self._pool)
        out += struct.pack(">HHH", 0x0021, self.this_index, self.super_index)
        out += struct.pack(">H", len(self.interface_indexes))
        out += b"".join(struct.pack(">H", i) for i in self.interface_indexes)
        for members in (self.fields, self.methods, self.attributes):
            out += struct.pack(">H", len(members)) + b"".join(members)
        return out


def build_class(name: str, references: Iterable[str] = (), **kwargs) -> bytes:
    """A class whose constant pool references ``references``."""
    builder = ClassFileBuilder(name, **kwargs)
    for reference in references:
        builder.class_ref(reference)
    builder.add_method("<init>", "()V", builder.code_attribute())
    return builder.build()


def entry_for(class_name: str) -> str:
    return internal(class_name) + ".class"


@pytest.fixture
def class_builder():
    """The ClassFileBuilder type, for tests that need fine control."""
    return ClassFileBuilder


@pytest.fixture
def make_class():
    return build_class


@pytest.fixture
def make_jar(tmp_path):
    """Write a jar holding the given classes; returns its path.

    ``classes`` maps binary class names to class bytes; None bytes get a
    generated empty class.
    """

    def _make(filename: str, classes: Mapping[str, Optional[bytes]], extra=()) -> Path:
        path = tmp_path / "libs" / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(path, "w") as zf:
            zf.writestr("META-INF/MANIFEST.MF", "Manifest-Version: 1.0\n")
            for class_name, data in classes.items():
                if data is None:
                    data = build_class(class_name)
                zf.writestr(entry_for(class_name), data)
            for entry, data in extra:
                zf.writestr(entry, data)
        return path

    return _make


@pytest.fixture
def corrupt_zip_entry():
    """Overwrite the start of an entry's stored data inside a zip file."""

    def _corrupt(path: Path, entry: str, filler: bytes) -> None:
        with zipfile.ZipFile(path) as zf:
            info = zf.getinfo(entry)
        with open(path, "r+b") as fh:
            fh.seek(info.header_offset + 26)
            name_length, extra_length = struct.unpack("<HH", fh.read(4))
            fh.seek(info.header_offset + 30 + name_length + extra_length)
            fh.write(filler)

    return _corrupt


@pytest.fixture
def make_classes_dir(tmp_path):
    """Write class files into a compiled output directory; returns its path."""

    def _make(dirname: str, classes: Mapping[str, bytes]) -> Path:
        root = tmp_path / dirname
        root.mkdir(parents=True, exist_ok=True)
        for class_name, data in classes.items():
            target = root / entry_for(class_name)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        return root

    return _make


@pytest.fixture
def make_artifact(make_jar):
    """Build an Artifact backed by a jar of empty classes.

    Pass ``classes=None`` for a POM-only artifact without an archive.
    """

    def _make(coordinate: str, classes: Optional[Iterable[str]] = (), dependencies=()) -> Artifact:
        coord = ArtifactCoordinate.parse(coordinate)
        path = None
        if classes is not None:
            path = make_jar(f"{coord.name}-{coord.version}.jar", {c: None for c in classes})
        return Artifact(
            coordinate=coord,
            path=path,
            dependencies=tuple(ArtifactCoordinate.parse(d) for d in dependencies),
        )

    return _make


@pytest.fixture
def make_configuration(make_classes_dir):
    """Build a Configuration whose compiled output holds ``classes``."""

    def _make(
        name: str,
        declared: Iterable[str] = (),
        artifacts: Iterable[Artifact] = (),
        classes: Optional[Dict[str, bytes]] = None,
        extends: Iterable[str] = (),
    ) -> Configuration:
        outputs = ()
        if classes is not None:
            outputs = (make_classes_dir(f"build/classes/{name}", classes),)
        return Configuration(
            name=name,
            declared=frozenset(ArtifactCoordinate.parse(d) for d in declared),
            artifacts=tuple(artifacts),
            outputs=outputs,
            extends=tuple(extends),
        )

    return _make


def coord(text: str) -> ArtifactCoordinate:
    return ArtifactCoordinate.parse(text)


@pytest.fixture
def parse_coord():
    return coord


SAMPLE_MANIFEST = """\
[artifacts."g:a:1"]
path = "libs/a-1.jar"

[artifacts."g:b:1"]
path = "libs/b-1.jar"

[artifacts."g:c:1"]
path = "libs/c-1.jar"

[configurations.main]
declared = ["g:a:1", "g:b:1"]
resolved = ["g:a:1", "g:b:1", "g:c:1"]
outputs = ["build/classes/main"]
"""


@pytest.fixture
def sample_project(tmp_path, make_jar, make_classes_dir):
    """A manifest whose ``main`` uses A (declared), C (undeclared) and not B (declared).

    Returns the manifest path; ``permits`` appended to the manifest text
    silence both violations.
    """

    def _make(permits: str = "") -> Path:
        make_jar("a-1.jar", {"org.a.Api": None})
        make_jar("b-1.jar", {"org.b.Api": None})
        make_jar("c-1.jar", {"org.c.Api": None})
        make_classes_dir(
            "build/classes/main",
            {"org.app.Main": build_class("org.app.Main", ["org.a.Api", "org.c.Api"])},
        )
        manifest = tmp_path / "depaudit.toml"
        manifest.write_text(SAMPLE_MANIFEST + permits, encoding="utf-8")
        return manifest

    return _make


@pytest.fixture
def all_permitted():
    return """
[permits.main]
used_undeclared = ["g:c:1"]
unused_declared = ["g:b:1"]
"""
