"""Unit tests for pattern compilation, record matching and grouping."""

import pytest

from pkgprovides.exceptions import InvalidPatternError, MalformedRecordError
from pkgprovides.search import (
    SearchIndex,
    SearchIndexBuilder,
    basename,
    compile_pattern,
    pattern_has_path_separator,
    split_record,
)


@pytest.mark.unit
class TestCompilePattern:
    """Test compiling user patterns."""

    def test_basename_pattern(self):
        compiled = compile_pattern("tool$")
        assert compiled.source == "tool$"
        assert compiled.full_path is False

    def test_full_path_pattern(self):
        assert compile_pattern("bin/tool$").full_path is True

    @pytest.mark.parametrize("pattern,expected", [("bash", False), ("/bash", True), ("bin/", True), (r"\.so", False)])
    def test_pattern_has_path_separator(self, pattern, expected):
        assert pattern_has_path_separator(pattern) is expected

    def test_invalid_pattern(self):
        with pytest.raises(InvalidPatternError) as exc_info:
            compile_pattern("lib(curl")

        error = exc_info.value
        assert error.pattern == "lib(curl"
        assert error.position == 3
        assert error.parameter_name == "pattern"
        assert error.original_error is not None

    def test_empty_pattern(self):
        with pytest.raises(InvalidPatternError):
            compile_pattern("")

    def test_ignore_case(self):
        assert compile_pattern("BASH", ignore_case=True).matches("/usr/local/bin/bash")
        assert not compile_pattern("BASH").matches("/usr/local/bin/bash")


@pytest.mark.unit
class TestMatching:
    """Test basename versus full path matching."""

    def test_basename_only_without_slash(self):
        compiled = compile_pattern("tool$")

        assert compiled.matches("/usr/local/bin/tool")
        assert not compiled.matches("/usr/local/tool/other")

    def test_directory_names_ignored_without_slash(self):
        assert not compile_pattern("local").matches("/usr/local/bin/tool")

    def test_full_path_with_slash(self):
        compiled = compile_pattern("/bin/tool$")

        assert compiled.matches("/usr/local/bin/tool")
        assert not compiled.matches("/usr/local/sbin/tool")

    def test_full_path_match_is_substring_search(self):
        # "sbin/tool" contains "bin/tool"
        compiled = compile_pattern("bin/tool$")

        assert compiled.matches("/usr/local/bin/tool")
        assert compiled.matches("/usr/local/sbin/tool")
        assert not compiled.matches("/usr/local/lib/tool")

    def test_unanchored_search(self):
        assert compile_pattern("ash").matches("/usr/local/bin/bash")
        assert compile_pattern("^ba").matches("/usr/local/bin/bash")
        assert not compile_pattern("^ash").matches("/usr/local/bin/bash")

    @pytest.mark.parametrize(
        "path,expected",
        [
            ("/usr/local/bin/tool", "tool"),
            ("/usr/local/share/doc/", "doc"),
            ("tool", "tool"),
            ("/", "/"),
            ("", "."),
        ],
    )
    def test_basename(self, path, expected):
        assert basename(path) == expected


@pytest.mark.unit
class TestSplitRecord:
    """Test splitting records into package and path."""

    def test_split(self):
        assert split_record("bash*/usr/local/bin/bash") == ("bash", "/usr/local/bin/bash")

    def test_first_separator_wins(self):
        assert split_record("pkg*/usr/local/share/a*b") == ("pkg", "/usr/local/share/a*b")

    def test_missing_separator(self):
        with pytest.raises(MalformedRecordError) as exc_info:
            split_record("no-separator-here")

        assert exc_info.value.record == "no-separator-here"


@pytest.mark.unit
class TestSearchIndexBuilder:
    """Test grouping matches by package."""

    def test_groups_files_of_same_package(self):
        builder = SearchIndexBuilder(compile_pattern("tool"))
        builder.add_record("pkg*/usr/local/bin/tool")
        builder.add_record("other*/usr/local/bin/ls")
        builder.add_record("pkg*/usr/local/sbin/tool2")

        index = builder.build()

        assert index.packages == ["pkg"]
        assert index.files_for("pkg") == ("/usr/local/bin/tool", "/usr/local/sbin/tool2")

    def test_scan_order_is_preserved(self):
        builder = SearchIndexBuilder(compile_pattern("x"))
        for record in ["b*/x1", "a*/x2", "b*/x3", "c*/x4", "a*/x5"]:
            builder.add_record(record)

        index = builder.build()

        assert index.packages == ["b", "a", "c"]
        assert index.files_for("a") == ("/x2", "/x5")
        assert index.files_for("b") == ("/x1", "/x3")
        assert [match.name for match in index] == ["b", "a", "c"]

    def test_malformed_records_are_skipped(self):
        builder = SearchIndexBuilder(compile_pattern("tool"))

        assert builder.add_record("tool-without-separator") is False
        assert builder.add_record("pkg*/bin/tool") is True

        index = builder.build()
        assert index.packages == ["pkg"]
        assert index.malformed_records == 1
        assert index.records_scanned == 2

    def test_sink_interface(self):
        builder = SearchIndexBuilder(compile_pattern("sh$"))
        builder("bash*/usr/local/bin/bash", None)
        builder("zsh*/usr/local/bin/zsh", object())

        assert builder.build().packages == ["bash", "zsh"]

    def test_package_names_compared_exactly(self):
        builder = SearchIndexBuilder(compile_pattern("a"))
        builder.add_record("py*/a")
        builder.add_record("py3*/a")

        assert builder.build().packages == ["py", "py3"]

    def test_empty_result(self):
        index = SearchIndexBuilder(compile_pattern("nothing")).build()

        assert len(index) == 0
        assert not index
        assert index.packages == []


@pytest.mark.unit
class TestSearchIndex:
    """Test the finished grouping."""

    def test_read_only(self):
        index = SearchIndex(pattern="x", groups={"pkg": ("/x",)})

        with pytest.raises(TypeError):
            index.groups["other"] = ("/y",)  # type: ignore[index]

    def test_accessors(self):
        index = SearchIndex(pattern="x", groups={"a": ("/x", "/y"), "b": ("/z",)}, records_scanned=10)

        assert "a" in index
        assert "c" not in index
        assert index.files_for("c") == ()
        assert index.match_count == 3

    def test_to_dict(self):
        index = SearchIndex(pattern="x", groups={"a": ("/x",)}, records_scanned=4, malformed_records=1)

        assert index.to_dict() == {
            "pattern": "x",
            "records_scanned": 4,
            "malformed_records": 1,
            "packages": {"a": ["/x"]},
        }
