"""Tests for single-file emission."""
import io
import os
import stat

import pytest
from rich.console import Console

from tokenforge.build_file import EmitResult, build_file, write_atomic
from tokenforge.config import FileSpec, PlatformConfig
from tokenforge.diagnostics import Group
from tokenforge.errors import ConfigurationError, FormatterError
from tokenforge.filters import path_startswith
from tokenforge.formats import Formatter, get_format
from tokenforge.references import record_filtered_reference


def names_and_values(args):
    """Formatter writing one 'name=value' line per token."""
    return "".join(f"{t.name}={t.value}\n" for t in args.dictionary.all_properties)


def _platform(tmp_path, **kwargs):
    return PlatformConfig(build_path=f"{tmp_path}/", **kwargs)


# =============================================================================
# Validation
# =============================================================================

class TestValidation:

    def test_missing_format_raises_before_filesystem(self, tmp_path, sample_dictionary, console):
        """Scenario D: nothing is created and nothing is reported."""
        platform = PlatformConfig(build_path=f"{tmp_path}/out/")

        with pytest.raises(ConfigurationError) as exc_info:
            build_file(FileSpec(destination="vars.css", format=None), platform, sample_dictionary,
                       console=console)

        assert exc_info.value.field == "format"
        assert not (tmp_path / "out").exists()
        assert console.file.getvalue() == ""

    def test_non_callable_format(self, tmp_path, sample_dictionary):
        with pytest.raises(ConfigurationError):
            build_file(FileSpec(destination="x.txt", format="css/variables"),
                       _platform(tmp_path), sample_dictionary)

    @pytest.mark.parametrize("destination", ["", None, 42])
    def test_invalid_destination(self, tmp_path, sample_dictionary, destination):
        with pytest.raises(ConfigurationError) as exc_info:
            build_file(FileSpec(destination=destination, format=names_and_values),
                       _platform(tmp_path), sample_dictionary)
        assert exc_info.value.field == "destination"

    def test_configuration_error_is_value_error(self, tmp_path, sample_dictionary):
        with pytest.raises(ValueError):
            build_file(FileSpec(destination="", format=names_and_values),
                       _platform(tmp_path), sample_dictionary)


# =============================================================================
# Writing
# =============================================================================

class TestWriting:

    def test_build_path_is_prepended(self, tmp_path, monkeypatch, sample_dictionary, console):
        """Scenario C: buildPath 'dist/' + 'vars.css' -> dist/vars.css, directory created."""
        monkeypatch.chdir(tmp_path)

        result = build_file(
            FileSpec(destination="vars.css", format=names_and_values),
            PlatformConfig(build_path="dist/"),
            sample_dictionary,
            console=console,
        )

        assert result.full_destination == "dist/vars.css"
        assert (tmp_path / "dist").is_dir()
        assert (tmp_path / "dist" / "vars.css").read_text() == names_and_values_text(sample_dictionary)

    def test_nested_directories_are_created(self, tmp_path, sample_dictionary, console):
        build_file(FileSpec(destination="a/b/c/tokens.txt", format=names_and_values),
                   _platform(tmp_path), sample_dictionary, console=console)
        assert (tmp_path / "a" / "b" / "c" / "tokens.txt").exists()

    def test_existing_directory_is_fine(self, tmp_path, sample_dictionary, console):
        (tmp_path / "out").mkdir()
        build_file(FileSpec(destination="out/tokens.txt", format=names_and_values),
                   _platform(tmp_path), sample_dictionary, console=console)
        assert (tmp_path / "out" / "tokens.txt").exists()

    def test_no_build_path(self, tmp_path, monkeypatch, sample_dictionary, console):
        monkeypatch.chdir(tmp_path)
        result = build_file(FileSpec(destination="tokens.txt", format=names_and_values),
                            None, sample_dictionary, console=console)
        assert result.full_destination == "tokens.txt"
        assert (tmp_path / "tokens.txt").exists()

    def test_content_equals_formatter_output(self, tmp_path, sample_dictionary, console):
        build_file(FileSpec(destination="tokens.txt", format=names_and_values),
                   _platform(tmp_path), sample_dictionary, console=console)
        assert (tmp_path / "tokens.txt").read_text() == names_and_values_text(sample_dictionary)

    def test_bytes_content(self, tmp_path, sample_dictionary, console):
        build_file(FileSpec(destination="tokens.bin", format=lambda args: b"\x00\x01"),
                   _platform(tmp_path), sample_dictionary, console=console)
        assert (tmp_path / "tokens.bin").read_bytes() == b"\x00\x01"

    def test_overwrites_existing_file(self, tmp_path, sample_dictionary, console):
        (tmp_path / "tokens.txt").write_text("stale content that is much longer than the new one" * 10)
        build_file(FileSpec(destination="tokens.txt", format=lambda args: "fresh"),
                   _platform(tmp_path), sample_dictionary, console=console)
        assert (tmp_path / "tokens.txt").read_text() == "fresh"

    def test_no_temp_files_left_behind(self, tmp_path, sample_dictionary, console):
        build_file(FileSpec(destination="tokens.txt", format=names_and_values),
                   _platform(tmp_path), sample_dictionary, console=console)
        assert [p.name for p in tmp_path.iterdir()] == ["tokens.txt"]

    def test_new_file_gets_default_mode(self, tmp_path, sample_dictionary, console):
        old_umask = os.umask(0o022)
        try:
            build_file(FileSpec(destination="new.css", format=names_and_values),
                       _platform(tmp_path), sample_dictionary, console=console)
        finally:
            os.umask(old_umask)
        assert stat.S_IMODE((tmp_path / "new.css").stat().st_mode) == 0o644

    @pytest.mark.parametrize("mode", [0o644, 0o640])
    def test_overwrite_keeps_existing_mode(self, tmp_path, sample_dictionary, console, mode):
        existing = tmp_path / "existing.css"
        existing.write_text("old")
        existing.chmod(mode)

        build_file(FileSpec(destination="existing.css", format=names_and_values),
                   _platform(tmp_path), sample_dictionary, console=console)

        assert existing.read_text() == names_and_values_text(sample_dictionary)
        assert stat.S_IMODE(existing.stat().st_mode) == mode

    def test_idempotent(self, tmp_path, colliding_dictionary, diagnostics, console):
        spec = FileSpec(destination="tokens.txt", format=names_and_values)
        first = build_file(spec, _platform(tmp_path), colliding_dictionary, diagnostics, console)
        first_bytes = (tmp_path / "tokens.txt").read_bytes()
        second = build_file(spec, _platform(tmp_path), colliding_dictionary, diagnostics, console)

        assert (tmp_path / "tokens.txt").read_bytes() == first_bytes
        assert first.collision_count == second.collision_count == 1
        assert diagnostics.count(
            (Group.PROPERTY_NAME_COLLISION_WARNINGS, "tokens.txt")
        ) == 1


def names_and_values_text(dictionary):
    return "".join(f"{t.name}={t.value}\n" for t in dictionary.all_properties)


# =============================================================================
# Filtering and Skipping
# =============================================================================

class TestFiltering:

    def test_formatter_sees_filtered_and_unfiltered(self, tmp_path, sample_dictionary, console):
        seen = {}

        def capture(args):
            seen["args"] = args
            return "ok"

        build_file(FileSpec(destination="t.txt", format=capture, filter=path_startswith("size")),
                   _platform(tmp_path), sample_dictionary, console=console)

        args = seen["args"]
        assert [t.name for t in args.dictionary.all_properties] == ["size-spacing-small", "size-spacing-large"]
        assert list(args.dictionary.properties) == ["size"]
        assert args.dictionary.unfiltered_properties is sample_dictionary.properties
        assert args.file.destination == "t.txt"
        assert args.platform.build_path == f"{tmp_path}/"

    def test_options_merge_platform_then_file(self, tmp_path, sample_dictionary, console):
        seen = {}

        def capture(args):
            seen["options"] = dict(args.options)
            return "ok"

        platform = _platform(tmp_path, options={"a": 1, "b": 1})
        build_file(FileSpec(destination="t.txt", format=capture, options={"b": 2}),
                   platform, sample_dictionary, console=console)

        assert seen["options"] == {"a": 1, "b": 2}

    def test_empty_filter_skips_file(self, tmp_path, monkeypatch, sample_dictionary, console):
        """Scenario B: no tokens -> no file, one informational line, no exception."""
        monkeypatch.chdir(tmp_path)
        calls = []

        def formatter(args):
            calls.append(args)
            return "never written"

        result = build_file(
            FileSpec(destination="build/tokens.json", format=formatter, filter=lambda t: False),
            PlatformConfig(),
            sample_dictionary,
            console=console,
        )

        assert result.skipped
        assert not result.has_warnings
        assert calls == []
        assert not (tmp_path / "build" / "tokens.json").exists()
        assert console.file.getvalue().strip() == "No properties for build/tokens.json. File not created."

    def test_skip_leaves_existing_file_untouched(self, tmp_path, sample_dictionary, console):
        existing = tmp_path / "tokens.json"
        existing.write_text("previous build")

        build_file(FileSpec(destination="tokens.json", format=names_and_values, filter=lambda t: False),
                   _platform(tmp_path), sample_dictionary, console=console)

        assert existing.read_text() == "previous build"

    def test_empty_dictionary_skips(self, tmp_path, console):
        result = build_file(FileSpec(destination="t.txt", format=names_and_values),
                            _platform(tmp_path), None, console=console)
        assert result.skipped


# =============================================================================
# Collisions and Reporting
# =============================================================================

class TestCollisionReporting:

    def test_collision_is_reported(self, tmp_path, colliding_dictionary, console):
        """Scenario A: both tokens reach the formatter, one collision group is reported."""
        result = build_file(FileSpec(destination="tokens.txt", format=names_and_values),
                            _platform(tmp_path), colliding_dictionary, console=console)

        assert (tmp_path / "tokens.txt").read_text() == "color-a=#fff\ncolor-a=#000\n"
        assert result.collision_count == 1
        assert list(result.collisions) == ["color-a"]
        assert len(result.collisions["color-a"]) == 2
        assert result.has_warnings

        output = console.file.getvalue()
        assert "⚠️" in output
        assert "token collisions were found" in output
        assert "Output name color-a was generated by:" in output
        assert "color.a   #fff" in output
        assert "color.b   #000" in output
        assert "overly inclusive file filters" in output

    def test_clean_build_reports_success(self, tmp_path, sample_dictionary, console):
        result = build_file(FileSpec(destination="tokens.txt", format=names_and_values),
                            _platform(tmp_path), sample_dictionary, console=console)

        assert result.ok
        output = console.file.getvalue()
        assert output.startswith("✔")
        assert f"{tmp_path}/tokens.txt" in output
        assert "⚠" not in output

    def test_nested_format_suppresses_collisions(self, tmp_path, colliding_dictionary, console):
        nested = Formatter(name="tree", render=names_and_values, nested=True)
        result = build_file(FileSpec(destination="tokens.txt", format=nested),
                            _platform(tmp_path), colliding_dictionary, console=console)

        assert result.nested
        assert result.collision_count == 1
        assert result.ok
        assert "✔︎" in console.file.getvalue()
        assert "token collisions were found" not in console.file.getvalue()

    def test_file_spec_nested_overrides_formatter(self, tmp_path, colliding_dictionary, console):
        result = build_file(FileSpec(destination="tokens.txt", format=names_and_values, nested=True),
                            _platform(tmp_path), colliding_dictionary, console=console)
        assert result.ok

    def test_builtin_nested_json_suppresses_collisions(self, tmp_path, colliding_dictionary, console):
        result = build_file(FileSpec(destination="tokens.json", format=get_format("json/nested")),
                            _platform(tmp_path), colliding_dictionary, console=console)
        assert result.ok


class TestReferenceLossReporting:

    def test_upstream_reference_loss_is_reported_and_flushed(
        self, tmp_path, sample_dictionary, diagnostics, console
    ):
        red = sample_dictionary.properties["color"]["base"]["red"]
        blue = sample_dictionary.properties["color"]["base"]["blue"]
        record_filtered_reference(diagnostics, red, blue)

        result = build_file(FileSpec(destination="tokens.txt", format=names_and_values),
                            _platform(tmp_path), sample_dictionary, diagnostics, console)

        assert result.reference_loss_count == 1
        assert result.has_warnings
        output = console.file.getvalue()
        assert "filtered out token references were found" in output
        assert "color-base-blue" in output
        assert "outputReferences" in output
        assert diagnostics.count(Group.FILTERED_OUTPUT_REFERENCES) == 0

    def test_nested_still_reports_reference_loss(
        self, tmp_path, colliding_dictionary, diagnostics, console
    ):
        token = colliding_dictionary.all_properties[0]
        record_filtered_reference(diagnostics, token, colliding_dictionary.all_properties[1])

        nested = Formatter(name="tree", render=names_and_values, nested=True)
        result = build_file(FileSpec(destination="tokens.txt", format=nested),
                            _platform(tmp_path), colliding_dictionary, diagnostics, console)

        output = console.file.getvalue()
        assert result.has_warnings
        assert "filtered out token references" in output
        assert "token collisions" not in output

    def test_css_output_references_to_filtered_tokens(
        self, tmp_path, sample_dictionary, diagnostics, console
    ):
        spec = FileSpec(
            destination="brand.css",
            format=get_format("css/variables"),
            filter=path_startswith("color", "brand"),
            options={"outputReferences": True},
        )

        result = build_file(spec, _platform(tmp_path), sample_dictionary, diagnostics, console)

        assert "--color-brand-primary: var(--color-base-blue);" in (tmp_path / "brand.css").read_text()
        assert result.reference_loss_count == 1
        assert "color-base-blue (referenced by color-brand-primary" in console.file.getvalue()

    def test_losses_do_not_repeat_on_next_file(self, tmp_path, sample_dictionary, diagnostics, console):
        spec = FileSpec(
            destination="brand.css",
            format=get_format("css/variables"),
            filter=path_startswith("color", "brand"),
            options={"outputReferences": True},
        )
        build_file(spec, _platform(tmp_path), sample_dictionary, diagnostics, console)

        second = build_file(FileSpec(destination="size.txt", format=names_and_values,
                                     filter=path_startswith("size")),
                            _platform(tmp_path), sample_dictionary, diagnostics, console)

        assert second.reference_loss_count == 0
        assert second.ok

    def test_repeated_build_reports_same_losses(self, tmp_path, sample_dictionary, diagnostics):
        spec = FileSpec(
            destination="brand.css",
            format=get_format("css/variables"),
            filter=path_startswith("color", "brand"),
            options={"outputReferences": True},
        )
        message = "color-base-blue (referenced by color-brand-primary"

        runs = []
        for _ in range(2):
            run_console = Console(file=io.StringIO(), width=500, color_system=None, force_terminal=False)
            result = build_file(spec, _platform(tmp_path), sample_dictionary, diagnostics, run_console)
            runs.append((result, run_console.file.getvalue(), (tmp_path / "brand.css").read_bytes()))
            assert diagnostics.count(Group.FILTERED_OUTPUT_REFERENCES) == 0

        (first, first_output, first_bytes), (second, second_output, second_bytes) = runs
        assert first.reference_loss_count == second.reference_loss_count == 1
        assert first_output.count(message) == second_output.count(message) == 1
        assert first_bytes == second_bytes


# =============================================================================
# Errors
# =============================================================================

class TestErrors:

    def test_formatter_exception_propagates_unchanged(self, tmp_path, sample_dictionary, console):
        class Boom(Exception):
            pass

        def broken(args):
            raise Boom("formatter failed")

        with pytest.raises(Boom):
            build_file(FileSpec(destination="tokens.txt", format=broken),
                       _platform(tmp_path), sample_dictionary, console=console)
        assert not (tmp_path / "tokens.txt").exists()

    def test_invalid_content_type(self, tmp_path, sample_dictionary, console):
        with pytest.raises(FormatterError):
            build_file(FileSpec(destination="tokens.txt", format=lambda args: {"not": "text"}),
                       _platform(tmp_path), sample_dictionary, console=console)
        assert not (tmp_path / "tokens.txt").exists()

    def test_write_failure_leaves_no_temp_file(self, tmp_path, monkeypatch):
        def failing_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", failing_replace)

        with pytest.raises(OSError):
            write_atomic(tmp_path / "tokens.txt", "content")
        assert list(tmp_path.iterdir()) == []


def test_emit_result_warning_rules():
    assert EmitResult("a", "a").ok
    assert EmitResult("a", "a", collision_count=2).has_warnings
    assert EmitResult("a", "a", collision_count=2, nested=True).ok
    assert EmitResult("a", "a", reference_loss_count=1, nested=True).has_warnings
    assert EmitResult("a", "a", skipped=True).ok
