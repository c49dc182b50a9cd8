"""
Unit tests for file name and directory sanitization.
"""

import pytest

from filegate.features.files.sanitizer import (
    MAX_FILENAME_LENGTH,
    file_extension,
    is_valid_directory,
    sanitize_filename,
)


@pytest.mark.unit
class TestSanitizeFilename:
    """Test sanitize_filename."""

    @pytest.mark.parametrize("raw", [
        "C:\\Users\\test\\report.pdf",
        "/etc/secret/report.pdf",
        "../../../report.pdf",
        "..\\..\\report.pdf",
    ])
    def test_strips_path_components(self, raw):
        assert sanitize_filename(raw) == "report.pdf"

    def test_replaces_special_chars(self):
        assert sanitize_filename("my report (2024).pdf") == "my_report__2024_.pdf"

    def test_allows_valid_chars(self):
        assert sanitize_filename("Q3-results_v2.final.xlsx") == "Q3-results_v2.final.xlsx"

    def test_non_ascii_replaced_per_character(self):
        assert sanitize_filename("résumé.txt") == "r_sum_.txt"

    @pytest.mark.parametrize("raw", [None, "", "   ", "\t\n"])
    def test_rejects_empty_or_blank(self, raw):
        assert sanitize_filename(raw) is None

    @pytest.mark.parametrize("raw", ["folder/", "folder\\", "a/b/  "])
    def test_rejects_blank_final_segment(self, raw):
        assert sanitize_filename(raw) is None

    @pytest.mark.parametrize("raw", [".", "..", "...", "___", "._._", "_"])
    def test_rejects_dots_and_underscores_only(self, raw):
        assert sanitize_filename(raw) is None

    def test_rejects_name_that_sanitizes_to_underscores(self):
        # Every character is replaced, leaving only "_"
        assert sanitize_filename("@@@") is None

    def test_truncates_long_names(self):
        raw = "a" * 300 + ".pdf"

        result = sanitize_filename(raw)

        assert result is not None
        assert len(result) <= MAX_FILENAME_LENGTH
        assert result == "a" * MAX_FILENAME_LENGTH

    @pytest.mark.parametrize("raw", [
        "report.pdf",
        "my report (2024).pdf",
        "C:\\Users\\test\\data.csv",
        "a" * 300 + ".pdf",
        "ünïcödé nämé.txt",
        "tab\there.txt",
    ])
    def test_idempotent(self, raw):
        once = sanitize_filename(raw)

        assert once is not None
        assert sanitize_filename(once) == once

    def test_non_string_input_rejected(self):
        assert sanitize_filename(42) is None


@pytest.mark.unit
class TestDirectory:
    """Test directory tag validation."""

    @pytest.mark.parametrize("directory", ["inbound", "outbound"])
    def test_valid(self, directory):
        assert is_valid_directory(directory) is True

    @pytest.mark.parametrize("directory", [
        None, "", "Inbound", "OUTBOUND", "inbound/", "inbound/sub", "*", "../inbound", " inbound",
    ])
    def test_invalid(self, directory):
        assert is_valid_directory(directory) is False


@pytest.mark.unit
class TestFileExtension:
    """Test file_extension."""

    def test_lowercases(self):
        assert file_extension("REPORT.PDF") == ".pdf"

    def test_uses_last_dot(self):
        assert file_extension("archive.tar.gz") == ".gz"

    def test_no_extension(self):
        assert file_extension("README") == ""
