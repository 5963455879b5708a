"""Tests for analysis manifest loading."""

import pytest

from depaudit.exceptions import (
    ConfigurationError,
    InvalidCoordinateError,
    ManifestError,
    ResolutionFailure,
    UnknownConfigurationError,
)
from depaudit.manifest import load_manifest
from depaudit.models import ArtifactCoordinate, PermitEntry, PermitKind

PLATFORM = """\
[artifacts."g:core:1"]
path = "libs/core-1.jar"

[artifacts."g:lib:1"]
path = "libs/lib-1.jar"
dependencies = ["g:core:1"]

[artifacts."g:platform:1"]
dependencies = ["g:lib:1"]

[artifacts."g:junit:4"]
path = "libs/junit-4.jar"

[configurations.main]
declared = ["g:platform:1"]
outputs = ["build/classes/main"]

[configurations.test]
extends = ["main"]
declared = ["g:junit:4"]
outputs = ["build/classes/test"]

[permits.main]
aggregator = ["g:platform:1"]
unused_declared = ["g:lib:1"]
"""


def _c(text):
    return ArtifactCoordinate.parse(text)


@pytest.fixture
def write_manifest(tmp_path):
    def _write(text):
        path = tmp_path / "depaudit.toml"
        path.write_text(text, encoding="utf-8")
        return path

    return _write


class TestLoad:
    def test_configurations_sorted_with_paths(self, write_manifest, tmp_path):
        manifest = load_manifest(write_manifest(PLATFORM))
        assert [c.name for c in manifest.configurations] == ["main", "test"]

        main = manifest.configuration("main")
        assert main.declared == frozenset({_c("g:platform:1")})
        assert main.outputs == ((tmp_path / "build" / "classes" / "main").resolve(),)
        lib = main.artifact_map()[_c("g:lib:1")]
        assert lib.path == (tmp_path / "libs" / "lib-1.jar").resolve()
        assert lib.dependencies == (_c("g:core:1"),)

    def test_pom_only_artifact_has_no_path(self, write_manifest):
        main = load_manifest(write_manifest(PLATFORM)).configuration("main")
        assert main.artifact_map()[_c("g:platform:1")].path is None

    def test_resolved_defaults_to_closure(self, write_manifest):
        manifest = load_manifest(write_manifest(PLATFORM))
        main = manifest.configuration("main")
        assert set(main.artifact_map()) == {_c("g:platform:1"), _c("g:lib:1"), _c("g:core:1")}

    def test_closure_includes_inherited_declarations(self, write_manifest):
        test = load_manifest(write_manifest(PLATFORM)).configuration("test")
        assert test.extends == ("main",)
        assert set(test.artifact_map()) == {
            _c("g:platform:1"),
            _c("g:lib:1"),
            _c("g:core:1"),
            _c("g:junit:4"),
        }

    def test_explicit_resolved(self, write_manifest):
        text = PLATFORM.replace(
            'declared = ["g:platform:1"]',
            'declared = ["g:platform:1"]\nresolved = ["g:platform:1", "g:junit:4"]',
        )
        main = load_manifest(write_manifest(text)).configuration("main")
        assert set(main.artifact_map()) == {_c("g:platform:1"), _c("g:junit:4")}

    def test_compile_only(self, write_manifest):
        text = PLATFORM.replace(
            "[configurations.main]\n",
            '[artifacts."g:anno:1"]\npath = "libs/anno-1.jar"\n\n'
            '[configurations.main]\ncompile_only = ["g:anno:1"]\n',
        )
        manifest = load_manifest(write_manifest(text))
        main = manifest.configuration("main")
        assert main.compile_only == frozenset({_c("g:anno:1")})
        assert _c("g:anno:1") in main.artifact_map()
        test = manifest.configuration("test")
        assert test.compile_only == frozenset()
        assert _c("g:anno:1") not in test.artifact_map()

    def test_compile_only_not_in_catalog(self, write_manifest):
        text = PLATFORM.replace(
            "[configurations.main]\n", '[configurations.main]\ncompile_only = ["g:anno:1"]\n'
        )
        with pytest.raises(ResolutionFailure, match="g:anno:1"):
            load_manifest(write_manifest(text))

    def test_permits(self, write_manifest):
        manifest = load_manifest(write_manifest(PLATFORM))
        assert manifest.permits == {
            "main": frozenset(
                {
                    PermitEntry(_c("g:platform:1"), PermitKind.ALLOW_AGGREGATOR_USE),
                    PermitEntry(_c("g:lib:1"), PermitKind.ALLOW_UNUSED_DECLARED),
                }
            )
        }

    def test_declaration_model(self, write_manifest):
        model = load_manifest(write_manifest(PLATFORM)).declaration_model()
        main = model.for_configuration("main")
        assert main.aggregators == {_c("g:platform:1"): frozenset({_c("g:lib:1"), _c("g:core:1")})}

        test = model.for_configuration("test")
        assert test.inherited == frozenset({_c("g:platform:1")})
        assert test.permits == frozenset()

    def test_unknown_configuration_lookup(self, write_manifest):
        manifest = load_manifest(write_manifest(PLATFORM))
        with pytest.raises(UnknownConfigurationError):
            manifest.configuration("runtime")

    def test_empty_manifest(self, write_manifest):
        assert load_manifest(write_manifest("")).configurations == ()


class TestErrors:
    def test_missing_file(self, tmp_path):
        with pytest.raises(ManifestError, match="file not found"):
            load_manifest(tmp_path / "absent.toml")

    def test_not_toml(self, write_manifest):
        with pytest.raises(ManifestError, match="not valid TOML"):
            load_manifest(write_manifest("[configurations.main\n"))

    def test_unknown_top_level_key(self, write_manifest):
        with pytest.raises(ManifestError, match="unknown key"):
            load_manifest(write_manifest(PLATFORM + "\n[repositories]\n"))

    def test_unknown_configuration_key(self, write_manifest):
        text = PLATFORM.replace('extends = ["main"]', 'extends = ["main"]\nscope = "test"')
        with pytest.raises(ManifestError, match="scope"):
            load_manifest(write_manifest(text))

    def test_unknown_permit_kind(self, write_manifest):
        text = PLATFORM.replace("aggregator = ", "platform = ")
        with pytest.raises(ManifestError, match="platform"):
            load_manifest(write_manifest(text))

    def test_declared_must_be_strings(self, write_manifest):
        text = PLATFORM.replace('declared = ["g:junit:4"]', "declared = [4]")
        with pytest.raises(ManifestError, match="list of strings"):
            load_manifest(write_manifest(text))

    def test_malformed_coordinate(self, write_manifest):
        text = PLATFORM.replace('declared = ["g:junit:4"]', 'declared = ["junit"]')
        with pytest.raises(InvalidCoordinateError):
            load_manifest(write_manifest(text))

    def test_unknown_extends(self, write_manifest):
        text = PLATFORM.replace('extends = ["main"]', 'extends = ["api"]')
        with pytest.raises(UnknownConfigurationError, match="api"):
            load_manifest(write_manifest(text))

    def test_permits_for_unknown_configuration(self, write_manifest):
        text = PLATFORM.replace("[permits.main]", "[permits.runtime]")
        with pytest.raises(UnknownConfigurationError, match="runtime"):
            load_manifest(write_manifest(text))

    def test_declared_not_in_catalog(self, write_manifest):
        text = PLATFORM.replace('declared = ["g:junit:4"]', 'declared = ["g:mockito:5"]')
        with pytest.raises(ResolutionFailure) as excinfo:
            load_manifest(write_manifest(text))
        assert excinfo.value.coordinate == "g:mockito:5"
        assert excinfo.value.configuration == "test"

    def test_dependency_not_in_catalog(self, write_manifest):
        text = PLATFORM.replace('dependencies = ["g:core:1"]', 'dependencies = ["g:gone:1"]')
        with pytest.raises(ResolutionFailure, match="g:gone:1"):
            load_manifest(write_manifest(text))

    def test_extension_cycle_reported_by_model(self, write_manifest):
        text = PLATFORM.replace(
            "[configurations.main]\n", '[configurations.main]\nextends = ["test"]\n'
        )
        manifest = load_manifest(write_manifest(text))
        with pytest.raises(ConfigurationError, match="cycle"):
            manifest.declaration_model()
