"""Tests for the class file reader and usage extractor."""

import pytest

from depaudit.exceptions import ClassFileFormatError
from depaudit.models import ClassReference
from depaudit.scanning import ClassFileUsageExtractor, UsageExtractor, parse_class_file


class TestParseClassFile:
    def test_header_fields(self, class_builder):
        data = class_builder(
            "org.app.Main", super_name="org.lib.Base", interfaces=["org.lib.Api"], major=61
        ).build()
        summary = parse_class_file(data)
        assert summary.name == "org.app.Main"
        assert summary.super_name == "org.lib.Base"
        assert summary.interfaces == ("org.lib.Api",)
        assert summary.major_version == 61
        assert {"org.lib.Base", "org.lib.Api"} <= summary.references

    def test_own_name_excluded(self, make_class):
        summary = parse_class_file(make_class("org.app.Main"))
        assert "org.app.Main" not in summary.references

    def test_no_superclass(self, class_builder):
        summary = parse_class_file(class_builder("java.lang.Object", super_name=None).build())
        assert summary.super_name is None
        assert summary.references == frozenset()

    def test_class_constants(self, make_class):
        summary = parse_class_file(make_class("org.app.Main", ["org.lib.Util", "[Lorg/lib/Item;"]))
        assert {"org.lib.Util", "org.lib.Item"} <= summary.references

    def test_member_references(self, class_builder):
        builder = class_builder("org.app.Main")
        builder.method_ref("org.lib.Service", "run", "(Lorg/lib/Request;)Lorg/lib/Response;")
        builder.field_ref("org.lib.Constants", "NAME", "Lorg/lib/Name;")
        summary = parse_class_file(builder.build())
        assert {
            "org.lib.Service",
            "org.lib.Request",
            "org.lib.Response",
            "org.lib.Constants",
            "org.lib.Name",
        } <= summary.references

    def test_method_type_constant(self, class_builder):
        builder = class_builder("org.app.Main")
        builder.method_type("(Lorg/lib/Event;)V")
        assert "org.lib.Event" in parse_class_file(builder.build()).references

    def test_field_and_method_descriptors(self, class_builder):
        builder = class_builder("org.app.Main")
        builder.add_field("cache", "Lorg/lib/Cache;")
        builder.add_method("handle", "(Lorg/lib/In;)[Lorg/lib/Out;", builder.code_attribute())
        summary = parse_class_file(builder.build())
        assert {"org.lib.Cache", "org.lib.In", "org.lib.Out"} <= summary.references

    def test_generic_signature_attribute(self, class_builder):
        builder = class_builder("org.app.Main")
        builder.add_field(
            "items",
            "Ljava/util/List;",
            builder.signature_attribute("Ljava/util/List<Lorg/lib/Item;>;"),
        )
        assert "org.lib.Item" in parse_class_file(builder.build()).references

    def test_exceptions_and_catch_types(self, class_builder):
        builder = class_builder("org.app.Main")
        builder.add_method(
            "risky",
            "()V",
            builder.code_attribute(catch_types=["org.lib.RetryException"]),
            builder.exceptions_attribute("org.lib.FatalException"),
        )
        summary = parse_class_file(builder.build())
        assert {"org.lib.RetryException", "org.lib.FatalException"} <= summary.references

    def test_annotations(self, class_builder):
        builder = class_builder("org.app.Main")
        builder.add_attribute(builder.annotations_attribute("Lorg/lib/Visible;"))
        builder.add_attribute(builder.annotations_attribute("Lorg/lib/Hidden;", visible=False))
        builder.add_method(
            "run",
            "()V",
            builder.enum_annotation_attribute(
                "Lorg/lib/Mode;", "value", "Lorg/lib/ModeType;", "FAST"
            ),
        )
        summary = parse_class_file(builder.build())
        assert {
            "org.lib.Visible",
            "org.lib.Hidden",
            "org.lib.Mode",
            "org.lib.ModeType",
        } <= summary.references

    def test_long_constants_take_two_slots(self, class_builder):
        builder = class_builder("org.app.Main")
        builder.long(1 << 40)
        builder.class_ref("org.lib.AfterLong")
        assert "org.lib.AfterLong" in parse_class_file(builder.build()).references

    def test_unknown_attributes_are_skipped(self, class_builder):
        builder = class_builder("org.app.Main")
        builder.add_attribute(builder.attribute("SourceFile", b"\x00\x01"))
        builder.add_attribute(builder.attribute("com.vendor.Custom", b"\xff" * 7))
        assert parse_class_file(builder.build()).name == "org.app.Main"


class TestMalformedClassFiles:
    def test_bad_magic(self, make_class):
        data = b"\x00\x00\x00\x00" + make_class("org.app.Main")[4:]
        with pytest.raises(ClassFileFormatError, match="Malformed class file"):
            parse_class_file(data, "Main.class")

    def test_truncated(self, make_class):
        data = make_class("org.app.Main")
        with pytest.raises(ClassFileFormatError) as exc_info:
            parse_class_file(data[: len(data) // 2], "Main.class")
        assert exc_info.value.origin == "Main.class"

    def test_trailing_bytes(self, make_class):
        with pytest.raises(ClassFileFormatError, match="Malformed"):
            parse_class_file(make_class("org.app.Main") + b"\x00")

    def test_empty(self):
        with pytest.raises(ClassFileFormatError):
            parse_class_file(b"")

    def test_unknown_constant_tag(self, class_builder):
        builder = class_builder("org.app.Main")
        builder._add(("bogus",), b"\x63\x00\x00")
        with pytest.raises(ClassFileFormatError) as exc_info:
            parse_class_file(builder.build())
        assert "unknown constant pool tag" in exc_info.value.reason


class TestClassFileUsageExtractor:
    def test_is_a_usage_extractor(self):
        assert isinstance(ClassFileUsageExtractor(), UsageExtractor)

    def test_references_are_tagged_with_referencing_class(self, make_class):
        refs = ClassFileUsageExtractor().extract(make_class("org.app.Main", ["org.lib.Util"]))
        assert ClassReference("org.lib.Util", "org.app.Main") in refs
        assert all(ref.referenced_from == "org.app.Main" for ref in refs)

    def test_extraction_is_deterministic(self, make_class):
        data = make_class("org.app.Main", ["org.lib.A", "org.lib.B"])
        extractor = ClassFileUsageExtractor()
        assert extractor.extract(data) == extractor.extract(data)
