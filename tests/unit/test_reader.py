"""Unit tests for the account file reader."""

import json

import pytest

from src.account_migration.core.reader import AccountFileReader
from src.account_migration.models.options import DataFormat, HashOptions, ImportOptions
from src.account_migration.utils.exceptions import (
    DecodeError,
    RecordValidationError,
    ValidationError,
)

CSV_OPTIONS = ImportOptions(format=DataFormat.CSV)
JSON_OPTIONS = ImportOptions(format=DataFormat.JSON)
BCRYPT_CSV_OPTIONS = ImportOptions(format=DataFormat.CSV, hash=HashOptions(algorithm="BCRYPT"))
BCRYPT_JSON_OPTIONS = ImportOptions(format=DataFormat.JSON, hash=HashOptions(algorithm="BCRYPT"))


def row(*fields: str) -> str:
    return ",".join(list(fields) + [""] * (27 - len(fields)))


@pytest.fixture
def csv_file(tmp_path):
    path = tmp_path / "users.csv"
    path.write_text(
        "\n".join(
            [
                row("1", "one@example.com", "true"),
                "",
                row("2", '"Two, Esq."'),
                row("3", "", "", "not base64!"),
                row("4"),
            ]
        )
        + "\n"
    )
    return path


@pytest.fixture
def json_file(tmp_path, sample_document):
    path = tmp_path / "users.json"
    path.write_text(
        json.dumps(
            {
                "users": [
                    {"localId": "1", "email": "one@example.com"},
                    {"localId": "2", "uid": "2"},
                    sample_document,
                ]
            }
        )
    )
    return path


class TestRowFiles:
    def test_reads_valid_rows_and_collects_errors(self, csv_file):
        reader = AccountFileReader(csv_file, CSV_OPTIONS)

        records = list(reader.iter_records())

        assert [r.local_id for r in records] == ["1", "2", "4"]
        assert records[1].email == "Two, Esq."
        assert len(reader.errors) == 1
        assert isinstance(reader.errors[0], DecodeError)
        assert reader.errors[0].line_number == 4

    def test_strict_raises_first_error(self, csv_file):
        reader = AccountFileReader(csv_file, CSV_OPTIONS)

        with pytest.raises(DecodeError) as exc_info:
            list(reader.iter_records(strict=True))

        assert str(exc_info.value).startswith("Line 4:")

    def test_batches(self, csv_file):
        reader = AccountFileReader(csv_file, CSV_OPTIONS)

        batches = list(reader.iter_batches(2))

        assert [[u["localId"] for u in batch] for batch in batches] == [["1", "2"], ["4"]]

    def test_invalid_batch_size(self, csv_file):
        reader = AccountFileReader(csv_file, CSV_OPTIONS)

        with pytest.raises(ValueError):
            list(reader.iter_batches(0))

    def test_password_rows_need_hash_algorithm(self, tmp_path):
        path = tmp_path / "pw.csv"
        path.write_text(row("1", "", "", "YWJj", "c2FsdA==") + "\n")

        without_hash = AccountFileReader(path, CSV_OPTIONS)
        assert without_hash.validate() == 0
        assert isinstance(without_hash.errors[0], RecordValidationError)

        with_hash = AccountFileReader(path, BCRYPT_CSV_OPTIONS)
        assert with_hash.validate() == 1
        batch = next(with_hash.iter_batches(10))
        assert batch[0]["passwordHash"] == "YWJj"
        assert batch[0]["salt"] == "c2FsdA=="

    def test_missing_file(self, tmp_path):
        reader = AccountFileReader(tmp_path / "missing.csv", CSV_OPTIONS)

        with pytest.raises(FileNotFoundError):
            reader.validate()


class TestDocumentFiles:
    def test_reads_valid_documents(self, json_file):
        reader = AccountFileReader(json_file, BCRYPT_JSON_OPTIONS)

        records = list(reader.iter_records())

        assert [r.local_id for r in records] == ["1", "doc-1"]
        assert reader.errors[0].line_number == 2
        assert reader.errors[0].unknown_fields == ["uid"]

    def test_bare_list(self, tmp_path):
        path = tmp_path / "users.json"
        path.write_text(json.dumps([{"localId": "1"}, {"localId": "2"}]))

        assert AccountFileReader(path, JSON_OPTIONS).validate() == 2

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "users.json"
        path.write_text('{"users": [')

        with pytest.raises(ValidationError, match="Invalid JSON"):
            AccountFileReader(path, JSON_OPTIONS).validate()

    def test_missing_users_array(self, tmp_path):
        path = tmp_path / "users.json"
        path.write_text('{"accounts": []}')

        with pytest.raises(ValidationError, match="'users' array"):
            AccountFileReader(path, JSON_OPTIONS).validate()

    def test_error_summary(self, json_file):
        reader = AccountFileReader(json_file, JSON_OPTIONS)
        reader.validate()

        summary = reader.get_error_summary()

        # uid and the password-carrying sample document
        assert summary.startswith("Found 2 invalid account(s):")
        assert "Line 2:" in summary


def test_requires_format(tmp_path):
    with pytest.raises(ValueError):
        AccountFileReader(tmp_path / "users.csv", ImportOptions())
