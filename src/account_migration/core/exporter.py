"""Export driver: pages accounts out of the identity service into a writer.

Paging:
------
Each downloadAccount request asks for ``batch_size`` accounts. A page with
accounts is written out in order and the next request carries the page's
``nextPageToken``. The run ends on a page without a token or an empty page.

Timeouts:
--------
A timed out request is sent again unchanged, with the same page token, up to
``max_timeout_retries`` times. The budget is per page: a page that succeeds
resets it. When it runs out the export stops with ``TerminalError``; accounts
already written stay written. Every other error propagates on the first
occurrence.
"""

from dataclasses import dataclass
from enum import Enum

import structlog
from pydantic import ValidationError as PydanticValidationError
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from ..api.client import IdentityToolkitClient
from ..constants import DOWNLOAD_ACCOUNT_ENDPOINT, MAX_TIMEOUT_RETRIES
from ..models.user import UserRecord
from ..models.wire import DownloadAccountRequest, DownloadAccountResponse
from ..observability.metrics import get_global_collector
from ..utils.exceptions import ServiceError, TerminalError, TransientNetworkError
from .writer import AccountWriter

logger = structlog.get_logger(__name__)


class ExportState(Enum):
    FETCHING = "fetching"
    DONE = "done"


@dataclass
class ExportResult:
    """Outcome of a completed export."""

    records_exported: int = 0
    pages: int = 0
    retries: int = 0


def strip_foreign_hash(record: UserRecord) -> UserRecord:
    """
    Drop the password hash of an account hashed with a non-default scheme.

    Such a hash can't be verified after import, so it is not exported.
    """
    if record.password_hash and record.version != 0:
        return record.model_copy(update={"password_hash": None, "salt": None})
    return record


class AccountExporter:
    """
    Downloads every account of a project, one page at a time.

    Requests are strictly sequential: the next page token is only known once
    the previous page has arrived.
    """

    def __init__(
        self,
        client: IdentityToolkitClient,
        project_id: str,
        writer: AccountWriter,
        batch_size: int,
        max_timeout_retries: int = MAX_TIMEOUT_RETRIES,
        retry_wait_seconds: float = 0.0,
    ) -> None:
        """
        Initialize exporter.

        Args:
            client: Identity service client
            project_id: Project to export from
            writer: Destination for encoded accounts
            batch_size: Accounts requested per page
            max_timeout_retries: Retries of one page after a timeout
            retry_wait_seconds: Fixed wait before each retry
        """
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.client = client
        self.project_id = project_id
        self.writer = writer
        self.batch_size = batch_size
        self.max_timeout_retries = max_timeout_retries
        self.retry_wait_seconds = retry_wait_seconds
        self.state = ExportState.FETCHING
        self.result = ExportResult()
        self.collector = get_global_collector()

    async def run(self) -> ExportResult:
        """
        Export every account.

        Returns:
            Counts of exported accounts, pages and retries

        Raises:
            TerminalError: If one page timed out more than max_timeout_retries times
            ServiceError: On any other request failure
        """
        self.state = ExportState.FETCHING
        self.result = ExportResult()
        page_token: str | None = None

        logger.info("Starting export", project_id=self.project_id, batch_size=self.batch_size)

        while self.state is ExportState.FETCHING:
            page = await self._fetch_page(page_token)
            self.result.pages += 1

            if not page.users:
                self.state = ExportState.DONE
                break

            for user in page.users:
                self.writer.write(strip_foreign_hash(user))
            self.result.records_exported += len(page.users)
            self.collector.count_accounts("export", "ok", len(page.users))
            logger.debug(
                "Exported page",
                page=self.result.pages,
                accounts=len(page.users),
                total=self.result.records_exported,
            )

            page_token = page.nextPageToken
            if not page_token:
                self.state = ExportState.DONE

        logger.info(
            "Export complete",
            accounts=self.result.records_exported,
            pages=self.result.pages,
            retries=self.result.retries,
        )
        return self.result

    async def _fetch_page(self, page_token: str | None) -> DownloadAccountResponse:
        body = DownloadAccountRequest(
            targetProjectId=self.project_id,
            maxResults=self.batch_size,
            nextPageToken=page_token,
        ).model_dump(exclude_none=True)

        retrying = AsyncRetrying(
            retry=retry_if_exception_type(TransientNetworkError),
            stop=stop_after_attempt(self.max_timeout_retries + 1),
            wait=wait_fixed(self.retry_wait_seconds),
            before_sleep=self._before_retry,
            reraise=True,
        )

        attempts = 0
        try:
            async for attempt in retrying:
                with attempt:
                    attempts += 1
                    data = await self.client.post(DOWNLOAD_ACCOUNT_ENDPOINT, json=body)
        except TransientNetworkError as e:
            logger.error(
                "Export aborted after repeated timeouts",
                attempts=attempts,
                records_processed=self.result.records_exported,
            )
            raise TerminalError(
                f"Export timed out {attempts} times in a row; "
                f"{self.result.records_exported} account(s) were exported before giving up",
                records_processed=self.result.records_exported,
                attempts=attempts,
                original_error=e,
            ) from e

        try:
            return DownloadAccountResponse.model_validate(data or {})
        except PydanticValidationError as e:
            raise ServiceError(f"Malformed downloadAccount response: {e}") from e

    def _before_retry(self, retry_state: RetryCallState) -> None:
        self.result.retries += 1
        self.collector.count_retry(DOWNLOAD_ACCOUNT_ENDPOINT)
        logger.warning(
            "Page request timed out, retrying",
            attempt=retry_state.attempt_number,
            max_retries=self.max_timeout_retries,
        )
