"""Unit tests for account file writers."""

import io
import json
import os

from src.account_migration.core.writer import DocumentWriter, RowWriter, create_writer
from src.account_migration.models.options import DataFormat


class TestRowWriter:
    def test_one_line_per_account(self, user_factory):
        stream = io.StringIO()
        writer = RowWriter(stream)

        writer.write_all([user_factory("1"), user_factory("2")])

        lines = stream.getvalue().split(os.linesep)
        assert lines[-1] == ""
        assert [line.split(",")[0] for line in lines[:-1]] == ["1", "2"]
        assert writer.records_written == 2

    def test_no_trailing_delimiter(self, user_factory):
        stream = io.StringIO()

        RowWriter(stream).write(user_factory("1"))

        line = stream.getvalue().rstrip(os.linesep)
        assert not line.endswith(",")
        assert len(line.split(",")) == 27

    def test_header_and_footer_are_empty(self):
        stream = io.StringIO()
        writer = RowWriter(stream)

        writer.write_header()
        writer.write_footer()

        assert stream.getvalue() == ""


class TestDocumentWriter:
    def test_separator_only_between_records(self, user_factory):
        stream = io.StringIO()
        writer = DocumentWriter(stream)

        writer.write(user_factory("1"))
        first = stream.getvalue()
        writer.write(user_factory("2"))

        assert not first.startswith(",")
        assert stream.getvalue().count("," + os.linesep + "{") == 1

    def test_is_first_written_flag(self, user_factory):
        writer = DocumentWriter(io.StringIO())

        assert writer.is_first_written is False
        writer.write(user_factory("1"))
        assert writer.is_first_written is True

    def test_framed_output_is_valid_json(self, user_factory, password_user):
        stream = io.StringIO()
        writer = DocumentWriter(stream)

        writer.write_header()
        writer.write_all([user_factory("1"), password_user])
        writer.write_footer()

        data = json.loads(stream.getvalue())
        assert [user["localId"] for user in data["users"]] == ["1", "pw-1"]
        assert data["users"][1]["passwordHash"] == "ab+c/d=="

    def test_records_are_indented(self, user_factory):
        stream = io.StringIO()

        DocumentWriter(stream).write(user_factory("1"))

        assert stream.getvalue().startswith("{\n  \"localId\": \"1\"")

    def test_empty_export_is_valid_json(self):
        stream = io.StringIO()
        writer = DocumentWriter(stream)

        writer.write_header()
        writer.write_footer()

        assert json.loads(stream.getvalue()) == {"users": []}


def test_create_writer():
    assert isinstance(create_writer(DataFormat.CSV, io.StringIO()), RowWriter)
    assert isinstance(create_writer(DataFormat.JSON, io.StringIO()), DocumentWriter)
