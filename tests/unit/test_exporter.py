"""Unit tests for the export driver."""

import io
import json

import pytest

from src.account_migration.constants import DOWNLOAD_ACCOUNT_ENDPOINT
from src.account_migration.core.exporter import AccountExporter, ExportState, strip_foreign_hash
from src.account_migration.core.writer import DocumentWriter, RowWriter
from src.account_migration.observability.metrics import get_global_collector
from src.account_migration.utils.exceptions import (
    ServiceError,
    TerminalError,
    TransientNetworkError,
)


def page(*local_ids: str, token: str | None = None) -> dict:
    body: dict = {"users": [{"localId": local_id} for local_id in local_ids]}
    if token:
        body["nextPageToken"] = token
    return body


def timeout() -> TransientNetworkError:
    return TransientNetworkError("Request timed out")


@pytest.fixture
def stream():
    return io.StringIO()


@pytest.fixture
def exporter(mock_client, stream):
    """Exporter writing rows, 2 accounts per page."""
    return AccountExporter(mock_client, "demo-project", RowWriter(stream), batch_size=2)


def request_bodies(mock_client) -> list[dict]:
    return [call.kwargs["json"] for call in mock_client.post.call_args_list]


class TestPagination:
    """Test page token handling."""

    @pytest.mark.asyncio
    async def test_follows_page_tokens(self, exporter, mock_client, stream):
        mock_client.post.side_effect = [
            page("1", "2", token="A"),
            page("3", "4", token="B"),
            page("5"),
        ]

        result = await exporter.run()

        assert mock_client.post.call_count == 3
        assert request_bodies(mock_client) == [
            {"targetProjectId": "demo-project", "maxResults": 2},
            {"targetProjectId": "demo-project", "maxResults": 2, "nextPageToken": "A"},
            {"targetProjectId": "demo-project", "maxResults": 2, "nextPageToken": "B"},
        ]
        assert mock_client.post.call_args.args[0] == DOWNLOAD_ACCOUNT_ENDPOINT
        assert result.records_exported == 5
        assert result.pages == 3
        assert exporter.state is ExportState.DONE
        assert [line.split(",")[0] for line in stream.getvalue().splitlines()] == [
            "1", "2", "3", "4", "5",
        ]

    @pytest.mark.asyncio
    async def test_empty_page_ends_export(self, exporter, mock_client):
        mock_client.post.side_effect = [page("1", "2", token="A"), page(token="B")]

        result = await exporter.run()

        assert mock_client.post.call_count == 2
        assert result.records_exported == 2

    @pytest.mark.asyncio
    async def test_empty_response_body(self, exporter, mock_client, stream):
        mock_client.post.return_value = None

        result = await exporter.run()

        assert result.records_exported == 0
        assert stream.getvalue() == ""

    @pytest.mark.asyncio
    async def test_malformed_response(self, exporter, mock_client):
        mock_client.post.return_value = {"users": [{"email": "no-id@example.com"}]}

        with pytest.raises(ServiceError, match="Malformed downloadAccount response"):
            await exporter.run()

    def test_batch_size_must_be_positive(self, mock_client, stream):
        with pytest.raises(ValueError):
            AccountExporter(mock_client, "demo-project", RowWriter(stream), batch_size=0)


class TestTimeoutRetries:
    """Test retry of timed out pages."""

    @pytest.mark.asyncio
    async def test_succeeds_after_five_timeouts(self, exporter, mock_client):
        mock_client.post.side_effect = [timeout() for _ in range(5)] + [page("1")]

        result = await exporter.run()

        assert mock_client.post.call_count == 6
        assert result.retries == 5
        assert result.records_exported == 1
        # Every retry resends the same page request
        assert all(body == request_bodies(mock_client)[0] for body in request_bodies(mock_client))

    @pytest.mark.asyncio
    async def test_sixth_timeout_is_terminal(self, exporter, mock_client):
        mock_client.post.side_effect = [timeout() for _ in range(6)]

        with pytest.raises(TerminalError) as exc_info:
            await exporter.run()

        assert mock_client.post.call_count == 6
        assert exc_info.value.attempts == 6
        assert exc_info.value.records_processed == 0
        assert isinstance(exc_info.value.original_error, TransientNetworkError)

    @pytest.mark.asyncio
    async def test_terminal_error_reports_accounts_written(self, exporter, mock_client, stream):
        mock_client.post.side_effect = [page("1", "2", token="A")] + [timeout() for _ in range(6)]

        with pytest.raises(TerminalError) as exc_info:
            await exporter.run()

        assert exc_info.value.records_processed == 2
        assert len(stream.getvalue().splitlines()) == 2

    @pytest.mark.asyncio
    async def test_retry_budget_is_per_page(self, exporter, mock_client):
        mock_client.post.side_effect = (
            [timeout() for _ in range(5)]
            + [page("1", "2", token="A")]
            + [timeout() for _ in range(5)]
            + [page("3")]
        )

        result = await exporter.run()

        assert result.records_exported == 3
        assert result.retries == 10
        assert request_bodies(mock_client)[-1]["nextPageToken"] == "A"

    @pytest.mark.asyncio
    async def test_custom_retry_budget(self, mock_client, stream):
        exporter = AccountExporter(
            mock_client, "demo-project", RowWriter(stream), batch_size=2, max_timeout_retries=1
        )
        mock_client.post.side_effect = [timeout(), timeout()]

        with pytest.raises(TerminalError):
            await exporter.run()

        assert mock_client.post.call_count == 2

    @pytest.mark.asyncio
    async def test_other_errors_are_not_retried(self, exporter, mock_client):
        mock_client.post.side_effect = ServiceError("API Error 403: Forbidden", status_code=403)

        with pytest.raises(ServiceError) as exc_info:
            await exporter.run()

        assert not isinstance(exc_info.value, TerminalError)
        assert mock_client.post.call_count == 1

    @pytest.mark.asyncio
    async def test_retries_are_counted(self, exporter, mock_client):
        mock_client.post.side_effect = [timeout(), page("1")]

        await exporter.run()

        counters = get_global_collector().get_summary()["counters"]
        assert counters[f"identity_api_retries_total[endpoint={DOWNLOAD_ACCOUNT_ENDPOINT}]"] == 1
        assert counters["accounts_total[direction=export,status=ok]"] == 1


class TestPasswordFilter:
    """Test which password hashes are exported."""

    def test_default_scheme_keeps_hash(self, user_factory):
        record = user_factory("1", password_hash="YWJj", salt="c2FsdA==", version=0)

        assert strip_foreign_hash(record) is record

    def test_other_scheme_drops_hash(self, user_factory):
        record = user_factory("1", password_hash="YWJj", salt="c2FsdA==", version=1)

        stripped = strip_foreign_hash(record)

        assert stripped.password_hash is None
        assert stripped.salt is None
        assert stripped.email == record.email

    def test_unknown_scheme_drops_hash(self, user_factory):
        record = user_factory("1", password_hash="YWJj")

        assert strip_foreign_hash(record).password_hash is None

    def test_no_hash_is_untouched(self, user_factory):
        record = user_factory("1", version=1)

        assert strip_foreign_hash(record) is record

    @pytest.mark.asyncio
    async def test_export_applies_filter(self, mock_client, stream):
        mock_client.post.return_value = {
            "users": [
                {"localId": "1", "passwordHash": "YWJj", "salt": "c2FsdA==", "version": 0},
                {"localId": "2", "passwordHash": "ZGVm", "salt": "c2FsdA==", "version": 1},
            ]
        }
        writer = DocumentWriter(stream)
        exporter = AccountExporter(mock_client, "demo-project", writer, batch_size=10)

        writer.write_header()
        await exporter.run()
        writer.write_footer()

        users = json.loads(stream.getvalue())["users"]
        assert users[0]["passwordHash"] == "YWJj"
        assert "passwordHash" not in users[1]
        assert "salt" not in users[1]
