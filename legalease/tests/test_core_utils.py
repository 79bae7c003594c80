import pytest

from legalease.core.errors import (
    DocumentNotFoundError,
    LegalEaseError,
    NotFoundError,
    SessionNotFoundError,
)
from legalease.core.text import clean_text, to_printable_ascii, truncate
from legalease.models.document import FileType


class TestCleanText:
    def test_removes_null_bytes_and_control_characters(self):
        assert clean_text("Lease\x00 agree\x07ment") == "Lease agreement"

    def test_keeps_tabs_and_newlines(self):
        assert clean_text("Clause 1\tParties\nClause 2") == "Clause 1\tParties\nClause 2"

    def test_normalizes_line_endings(self):
        assert clean_text("one\r\ntwo\rthree") == "one\ntwo\nthree"

    def test_collapses_runs_of_blank_lines(self):
        assert clean_text("one\n\n\n\n\ntwo") == "one\n\ntwo"

    def test_strips_surrounding_whitespace(self):
        assert clean_text("   text  \n") == "text"

    @pytest.mark.parametrize("value", ["", None])
    def test_empty_input(self, value):
        assert clean_text(value) == ""


class TestPrintableAscii:
    def test_replaces_binary_runs_with_single_space(self):
        assert to_printable_ascii("Term\x01\x02\xffsheet") == "Term sheet"

    def test_collapses_inline_whitespace(self):
        assert to_printable_ascii("a    b\t\tc") == "a b c"

    def test_keeps_newlines(self):
        assert to_printable_ascii("line one\nline two") == "line one\nline two"


class TestTruncate:
    def test_shorter_text_is_unchanged(self):
        assert truncate("abc", 10) == "abc"

    def test_cuts_to_limit(self):
        assert truncate("a" * 20, 5) == "aaaaa"

    def test_none_becomes_empty(self):
        assert truncate(None, 5) == ""


class TestFileType:
    @pytest.mark.parametrize(
        "filename, expected",
        [
            ("lease.pdf", FileType.PDF),
            ("NDA.DOCX", FileType.DOCX),
            ("notes.txt", FileType.TXT),
            ("scan.png", FileType.OTHER),
            ("README", FileType.OTHER),
        ],
    )
    def test_from_filename(self, filename, expected):
        assert FileType.from_filename(filename) == expected


def test_not_found_errors_share_a_base():
    error = DocumentNotFoundError("abc")
    assert isinstance(error, NotFoundError)
    assert isinstance(error, LegalEaseError)
    assert "abc" in str(error)
    assert isinstance(SessionNotFoundError("s1"), NotFoundError)
