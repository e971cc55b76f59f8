"""
Dialect Importer Test Suite

Tests cover:
- Configuration errors (options, dialects, coalesce hook, options file)
- import_from_data input errors and row validity
- Byte and row streams, including source failures
- Forced import and the unknowns bucket
- Dialect selection across several dialects, pinned dialects
- DataFrame input
- Command line entry point
"""

import copy
import io
import json

import pandas as pd
import pytest

from csvdialect.ingestion.config import load_options
from csvdialect.ingestion.errors import (
    ConfigurationError,
    InvalidInputError,
    SourceError,
    UnknownDialectError,
)
from csvdialect.ingestion.importer import DialectImporter, main
from csvdialect.ingestion.reconciler import ColumnsDescriptor, Complete, Incomplete


STANDARD_OPTIONS = {
    "dialects": {
        "test_standard": {
            "column_map": {
                "First Name": None,
                "Last Name": None,
            },
            "language_map": {
                "First Name": ["First-o Name-o"],
                "Last Name": ["Family Name"],
            },
        },
    },
}

FOO_BAR_OPTIONS = {
    "dialects": {
        "foo_bar": {"column_map": {"Foo": None, "Bar": None}},
    },
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _importer(options: dict = STANDARD_OPTIONS) -> DialectImporter:
    return DialectImporter.from_options(options)


def _import_lines(lines, options: dict = STANDARD_OPTIONS, force_import: bool = False):
    """Run a byte stream import and return (error, outcome)."""
    results = []
    _importer(options).import_from_stream(
        io.BytesIO("\n".join(lines).encode("utf-8")),
        lambda err, outcome: results.append((err, outcome)),
        force_import=force_import,
    )
    assert len(results) == 1
    return results[0]


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class TestConfiguration:
    @pytest.mark.parametrize("options", [None, "options", ["dialects"]])
    def test_missing_options(self, options):
        with pytest.raises(ConfigurationError) as exc_info:
            DialectImporter.from_options(options)
        assert "missing configuration options" in str(exc_info.value)

    @pytest.mark.parametrize("dialects", [None, {}])
    def test_missing_dialects(self, dialects):
        with pytest.raises(ConfigurationError) as exc_info:
            DialectImporter.from_options({"dialects": dialects})
        assert "no dialects specified" in str(exc_info.value)

    def test_invalid_coalesce_hook(self):
        with pytest.raises(ConfigurationError) as exc_info:
            DialectImporter.from_options({**FOO_BAR_OPTIONS, "process_row_coalesce": "nope"})
        assert "invalid process_row_coalesce supplied" in str(exc_info.value)

    def test_coalesce_hook_from_options(self):
        options = {**FOO_BAR_OPTIONS, "process_row_coalesce": lambda r, a, u: {"count": len(r)}}
        outcome = _importer(options).import_from_rows(["Foo", "Bar"], [["x", "y"]])
        assert outcome == Complete([{"count": 2}])

    def test_error_text_lists_fix_steps(self):
        error = ConfigurationError(reason="broken", fix_steps=["do this", "then that"])
        lines = str(error).splitlines()
        assert "Reason          : broken" in lines
        assert lines.index("  1. do this") < lines.index("  2. then that")

    def test_error_text_without_fix_steps(self):
        assert str(InvalidInputError(reason="Invalid header.")) == "Invalid header."


class TestLoadOptions:
    def test_round_trip(self, tmp_path):
        path = tmp_path / "options.json"
        path.write_text(json.dumps(FOO_BAR_OPTIONS), encoding="utf-8")
        assert load_options(path) == FOO_BAR_OPTIONS

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError) as exc_info:
            load_options(tmp_path / "nope.json")
        assert "not found" in str(exc_info.value)

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "options.json"
        path.write_text("{dialects:", encoding="utf-8")
        with pytest.raises(ConfigurationError) as exc_info:
            load_options(path)
        assert "not valid JSON" in str(exc_info.value)

    def test_top_level_must_be_object(self, tmp_path):
        path = tmp_path / "options.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(ConfigurationError) as exc_info:
            load_options(path)
        assert "missing configuration options" in str(exc_info.value)


# ---------------------------------------------------------------------------
# import_from_data
# ---------------------------------------------------------------------------

class TestImportFromDataErrors:
    def test_missing_data(self):
        with pytest.raises(InvalidInputError) as exc_info:
            _importer().import_from_data(None)
        assert "Missing input data." in str(exc_info.value)

    def test_missing_header(self):
        with pytest.raises(InvalidInputError) as exc_info:
            _importer().import_from_data({})
        assert "Invalid header." in str(exc_info.value)

    def test_missing_rows(self):
        with pytest.raises(InvalidInputError) as exc_info:
            _importer().import_from_rows(["Foo"], None)
        assert "Missing input rows." in str(exc_info.value)


class TestImportFromData:
    def test_rows_become_records(self):
        outcome = _importer(FOO_BAR_OPTIONS).import_from_data(
            {"header": ["Foo", "Bar"], "rows": [["Mr.", "Smith"]]}
        )
        assert outcome == Complete([{"Foo": "Mr.", "Bar": "Smith"}])

    def test_rows_key_is_optional(self):
        outcome = _importer(FOO_BAR_OPTIONS).import_from_data({"header": ["Foo"]})
        assert outcome == Complete([])

    def test_null_header_cell_with_data(self):
        outcome = _importer(FOO_BAR_OPTIONS).import_from_data(
            {"header": ["Foo", None], "rows": [["Mr.", "Smith"]]}
        )
        assert outcome == Incomplete(
            columns=ColumnsDescriptor(
                dialect_name="foo_bar", present=["Foo", None], missing=[], unmatched=[None]
            ),
            rows=[["Mr.", "Smith"]],
        )

    def test_blank_row_is_ignored(self):
        outcome = _importer(FOO_BAR_OPTIONS).import_from_data(
            {"header": ["Foo"], "rows": [["Smith"], ["", ""]]}
        )
        assert outcome == Complete([{"Foo": "Smith"}])

    def test_extra_empty_field_is_ignored(self):
        outcome = _importer(FOO_BAR_OPTIONS).import_from_data(
            {"header": ["Bar"], "rows": [["Smith"], ["Doe", ""]]}
        )
        assert outcome == Complete([{"Bar": "Smith"}, {"Bar": "Doe"}])

    def test_crlf_in_values(self):
        outcome = _importer(FOO_BAR_OPTIONS).import_from_data(
            {"header": ["Foo"], "rows": [["one\r\ntwo"]]}
        )
        assert outcome == Complete([{"Foo": "one\ntwo"}])

    def test_unknown_column(self):
        outcome = _importer(FOO_BAR_OPTIONS).import_from_data(
            {"header": ["Last Name"], "rows": [["Smith"], ["", ""]]}
        )
        assert outcome == Incomplete(
            columns=ColumnsDescriptor(
                dialect_name="foo_bar", present=[None], missing=[], unmatched=["Last Name"]
            ),
            rows=[["Smith"]],
        )

    def test_unknown_column_with_extra_empty_field(self):
        outcome = _importer(FOO_BAR_OPTIONS).import_from_data(
            {"header": ["Last Name"], "rows": [["Smith"], ["Doe", ""]]}
        )
        assert outcome.columns.present == [None]
        assert outcome.columns.unmatched == ["Last Name"]
        assert outcome.rows == [["Smith"], ["Doe"]]

    def test_inputs_are_not_mutated(self):
        data = {"header": ["Foo", "junk"], "rows": [["a", "b"], ["", ""], ["c"]]}
        before = copy.deepcopy(data)
        importer = _importer(FOO_BAR_OPTIONS)

        first = importer.import_from_data(data)
        second = importer.import_from_data(data)

        assert data == before
        assert first == second


class TestForcedImport:
    def test_unknown_column_goes_to_bucket(self):
        outcome = _importer(FOO_BAR_OPTIONS).import_from_data(
            {"header": ["Last Name"], "rows": [["Smith"], ["", ""]]}, force_import=True
        )
        assert outcome == Complete([{"unknowns": {"Last Name": "Smith"}}])

    def test_unknown_column_with_extra_field(self):
        outcome = _importer(FOO_BAR_OPTIONS).import_from_data(
            {"header": ["Last Name"], "rows": [["Smith"], ["Doe", ""]]}, force_import=True
        )
        assert outcome == Complete([
            {"unknowns": {"Last Name": "Smith"}},
            {"unknowns": {"Last Name": "Doe"}},
        ])

    def test_column_without_header_keyed_by_index(self):
        outcome = _importer(FOO_BAR_OPTIONS).import_from_data(
            {"header": ["Foo", None], "rows": [["Doe", "something"]]}, force_import=True
        )
        assert outcome == Complete([{"Foo": "Doe", "unknowns": {1: "something"}}])

    def test_named_unknown_column(self):
        outcome = _importer(FOO_BAR_OPTIONS).import_from_data(
            {"header": ["Foo", "xxx"], "rows": [["Mr.", "Smith"]]}, force_import=True
        )
        assert outcome == Complete([{"Foo": "Mr.", "unknowns": {"xxx": "Smith"}}])


# ---------------------------------------------------------------------------
# Streams
# ---------------------------------------------------------------------------

class TestByteStream:
    def test_empty_file(self):
        err, outcome = _import_lines(["", "", "", "", ""])
        assert err is None
        assert outcome == Complete([])

    def test_only_empty_rows(self):
        err, outcome = _import_lines([",,", ",", ",,", ",", ",,,,,,"])
        assert err is None
        assert outcome == Complete([])

    def test_header_without_rows(self):
        err, outcome = _import_lines([",,"])
        assert err is None
        assert outcome == Complete([])

    def test_empty_header_row(self):
        err, outcome = _import_lines(["", "", "a,a", "b,b"])
        assert err is None
        assert outcome == Incomplete(
            columns=ColumnsDescriptor(
                dialect_name="test_standard",
                present=[None, None],
                missing=[],
                unmatched=[None, None],
            ),
            rows=[["a", "a"], ["b", "b"]],
        )

    def test_row_wider_than_header(self):
        err, outcome = _import_lines(["First Name", "john,", ",doe"])
        assert err is None
        assert outcome.columns.present == ["First Name", None]
        assert outcome.columns.unmatched == [None]
        assert outcome.rows == [["john", None], ["", "doe"]]

    def test_unmatched_header_short_row(self):
        err, outcome = _import_lines(["First Name,unidentified", "john,doe", "foo,"])
        assert err is None
        assert outcome == Incomplete(
            columns=ColumnsDescriptor(
                dialect_name="test_standard",
                present=["First Name", None],
                missing=[],
                unmatched=["unidentified"],
            ),
            rows=[["john", "doe"], ["foo", None]],
        )

    def test_extra_empty_field(self):
        err, outcome = _import_lines(["First Name", "john,"])
        assert err is None
        assert outcome == Complete([{"First Name": "john"}])

    def test_rows_narrower_than_header(self):
        err, outcome = _import_lines(["First Name,Last Name,", "john,", ",doe"])
        assert err is None
        assert outcome == Complete([{"First Name": "john"}, {"Last Name": "doe"}])

    def test_language_map(self):
        err, outcome = _import_lines(["First-o Name-o,Family Name,", "john,", ",doe", ",smith,"])
        assert err is None
        assert outcome == Complete([
            {"First Name": "john"},
            {"Last Name": "doe"},
            {"Last Name": "smith"},
        ])

    def test_repeated_alias_collects_values(self):
        options = {
            "dialects": {
                "test_standard": {
                    "column_map": {"Anything": "anything"},
                    "language_map": {"Anything": ["First-o Name-o", "Last-o Name-o"]},
                },
            },
        }
        err, outcome = _import_lines(["Anything,Anything", "john,smith"], options)
        assert err is None
        assert outcome == Complete([{"anything": ["john", "smith"]}])

    def test_forced(self):
        err, outcome = _import_lines(["First Name,junk", "john,x"], force_import=True)
        assert err is None
        assert outcome == Complete([{"First Name": "john", "unknowns": {"junk": "x"}}])

    def test_non_utf8_bytes(self):
        results = []
        _importer().import_from_stream(
            io.BytesIO("First Name\nJos\xe9\n".encode("iso-8859-1")),
            lambda err, outcome: results.append((err, outcome)),
        )
        assert results == [(None, Complete([{"First Name": "José"}]))]

    def test_read_failure_reaches_callback(self):
        class BrokenStream:
            def read(self):
                raise OSError("disk gone")

        results = []
        _importer().import_from_stream(BrokenStream(), lambda err, outcome: results.append((err, outcome)))

        assert len(results) == 1
        err, outcome = results[0]
        assert isinstance(err, OSError)
        assert outcome is None

    def test_undecodable_source_reaches_callback(self):
        class TextStream:
            def read(self):
                return "not bytes"

        results = []
        _importer().import_from_stream(TextStream(), lambda err, outcome: results.append((err, outcome)))

        assert isinstance(results[0][0], SourceError)
        assert results[0][1] is None


class TestRowStream:
    def test_coalesce_hook_receives_aliases(self):
        calls = []

        def capture(record, aliases, unknowns):
            calls.append((aliases, unknowns))
            return record

        importer = DialectImporter(STANDARD_OPTIONS["dialects"], process_row_coalesce=capture)
        results = []
        importer.import_from_row_stream(
            iter([["First-o Name-o", "Family Name"], ["john", "doe"]]),
            lambda err, outcome: results.append((err, outcome)),
        )

        assert results == [(None, Complete([{"First Name": "john", "Last Name": "doe"}]))]
        assert calls == [({"First Name": "First-o Name-o", "Last Name": "Family Name"}, {})]

    def test_blank_line_row(self):
        results = []
        _importer().import_from_row_stream(
            iter([["First Name"], [""], ["john"]]),
            lambda err, outcome: results.append((err, outcome)),
        )
        assert results == [(None, Complete([{"First Name": "john"}]))]

    def test_no_rows_at_all(self):
        results = []
        _importer().import_from_row_stream(iter([]), lambda err, outcome: results.append((err, outcome)))
        assert results == [(None, Complete([]))]

    def test_source_error_is_passed_unchanged(self):
        failure = ValueError("bad row")

        def rows():
            yield ["First Name"]
            raise failure

        results = []
        _importer().import_from_row_stream(rows(), lambda err, outcome: results.append((err, outcome)))

        assert results == [(failure, None)]

    def test_callback_errors_reach_the_caller(self):
        def on_complete(err, outcome):
            raise RuntimeError("callback failed")

        with pytest.raises(RuntimeError):
            _importer().import_from_row_stream(iter([["First Name"], ["john"]]), on_complete)


# ---------------------------------------------------------------------------
# Dialect selection
# ---------------------------------------------------------------------------

class TestDialectSelection:
    OPTIONS = {
        "dialects": {
            "test_dialect_1": {"column_map": {"Name": None, "Foo": None, "Baz": None}},
            "test_dialect_2": {"column_map": {"Name": None, "Foo": None, "Bar": None}},
        },
    }

    def test_second_dialect_wins(self):
        outcome = _importer(self.OPTIONS).import_from_rows(["Name", "Foo", "Bar"], [["a", "b", "c"]])
        assert outcome == Complete([{"Name": "a", "Foo": "b", "Bar": "c"}])

    def test_first_dialect_wins(self):
        outcome = _importer(self.OPTIONS).import_from_rows(["Name", "Foo", "Baz"], [["a", "b", "c"]])
        assert outcome == Complete([{"Name": "a", "Foo": "b", "Baz": "c"}])

    def test_selected_dialect_is_reported(self):
        outcome = _importer(self.OPTIONS).import_from_rows(["Name", "Bar", "junk"], [["a", "b", "c"]])
        assert outcome.columns.dialect_name == "test_dialect_2"

    def test_pinned_dialect(self):
        outcome = _importer(self.OPTIONS).import_from_rows(
            ["Name", "Foo", "Bar"], [["a", "b", "c"]], dialect="test_dialect_1"
        )
        assert outcome.columns.dialect_name == "test_dialect_1"
        assert outcome.columns.unmatched == ["Bar"]

    def test_unknown_pinned_dialect(self):
        with pytest.raises(UnknownDialectError):
            _importer(self.OPTIONS).import_from_rows(["Name"], [], dialect="test_dialect_3")


# ---------------------------------------------------------------------------
# DataFrame input
# ---------------------------------------------------------------------------

class TestImportFromDataFrame:
    def test_missing_cells_are_empty(self):
        frame = pd.DataFrame({"Foo": ["Mr.", None], "Bar": ["Smith", "Doe"]})
        outcome = _importer(FOO_BAR_OPTIONS).import_from_dataframe(frame)
        assert outcome == Complete([{"Foo": "Mr.", "Bar": "Smith"}, {"Bar": "Doe"}])

    def test_unmatched_frame_column(self):
        frame = pd.DataFrame({"Foo": ["Mr."], "Title": ["Dr."]})
        outcome = _importer(FOO_BAR_OPTIONS).import_from_dataframe(frame)
        assert outcome.columns.unmatched == ["Title"]
        assert outcome.rows == [["Mr.", "Dr."]]


# ---------------------------------------------------------------------------
# Command line
# ---------------------------------------------------------------------------

class TestMain:
    def _files(self, tmp_path, csv_text: str):
        options_path = tmp_path / "options.json"
        options_path.write_text(json.dumps(STANDARD_OPTIONS), encoding="utf-8")
        data_path = tmp_path / "data.csv"
        data_path.write_bytes(csv_text.encode("utf-8"))
        return str(options_path), str(data_path)

    def test_usage(self, capsys):
        assert main([]) == 1
        assert "Usage" in capsys.readouterr().out

    def test_complete(self, tmp_path, capsys):
        options_path, data_path = self._files(tmp_path, "First Name,Last Name\njohn,doe\n")
        assert main([options_path, data_path]) == 0
        assert "COMPLETE" in capsys.readouterr().out

    def test_incomplete(self, tmp_path, capsys):
        options_path, data_path = self._files(tmp_path, "First Name,junk\njohn,x\n")
        assert main([options_path, data_path]) == 2
        out = capsys.readouterr().out
        assert "INCOMPLETE" in out
        assert "junk" in out

    def test_forced(self, tmp_path, capsys):
        options_path, data_path = self._files(tmp_path, "First Name,junk\njohn,x\n")
        assert main([options_path, data_path, "--force"]) == 0
        assert "With unknowns   : 1" in capsys.readouterr().out

    def test_missing_data_file(self, tmp_path, capsys):
        options_path, _ = self._files(tmp_path, "")
        assert main([options_path, str(tmp_path / "nope.csv")]) == 2
        assert "Data file not found" in capsys.readouterr().out

    def test_bad_options(self, tmp_path, capsys):
        _, data_path = self._files(tmp_path, "First Name\njohn\n")
        assert main([str(tmp_path / "nope.json"), data_path]) == 2
        assert "not found" in capsys.readouterr().out
