"""Import driver: uploads batches of accounts to the identity service.

Every batch is sent exactly once, in order, in its own uploadAccount request
carrying the hash parameters. A batch can fail as a whole (the request
failed) or in part (the response lists rejected accounts by index). Neither
stops the run; all failures are returned for the caller to report.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

import structlog
from pydantic import ValidationError as PydanticValidationError

from ..api.client import IdentityToolkitClient
from ..constants import UPLOAD_ACCOUNT_ENDPOINT
from ..models.options import HashOptions
from ..models.wire import UploadAccountRequest, UploadAccountResponse
from ..observability.metrics import get_global_collector
from ..utils.exceptions import ServiceError

logger = structlog.get_logger(__name__)


@dataclass
class ImportFailure:
    """
    A rejected batch or account.

    ``record_index`` is None when the whole batch failed.
    """

    batch_index: int
    message: str
    record_index: int | None = None
    local_id: str | None = None

    def __str__(self) -> str:
        if self.record_index is None:
            return f"Batch {self.batch_index}: {self.message}"
        who = f" ({self.local_id})" if self.local_id else ""
        return f"Batch {self.batch_index}, account {self.record_index}{who}: {self.message}"


@dataclass
class ImportResult:
    """Outcome of an import run."""

    batches_attempted: int = 0
    records_submitted: int = 0
    records_failed: int = 0
    failures: list[ImportFailure] = field(default_factory=list)

    @property
    def records_imported(self) -> int:
        return self.records_submitted - self.records_failed

    @property
    def success(self) -> bool:
        return not self.failures


class AccountImporter:
    """Sends account batches to uploadAccount, one request at a time."""

    def __init__(
        self,
        client: IdentityToolkitClient,
        project_id: str,
        hash_options: HashOptions | None = None,
    ) -> None:
        self.client = client
        self.project_id = project_id
        self.hash_options = hash_options
        self.collector = get_global_collector()

    def build_request(self, batch: list[dict[str, Any]]) -> dict[str, Any]:
        """
        Build the uploadAccount body for one batch.

        Args:
            batch: Accounts in uploadAccount form

        Returns:
            Request body with unset hash parameters left out
        """
        hash_fields = self.hash_options.to_request_fields() if self.hash_options else {}
        return UploadAccountRequest(
            targetProjectId=self.project_id, users=batch, **hash_fields
        ).model_dump(exclude_none=True)

    async def import_batches(self, batches: Iterable[list[dict[str, Any]]]) -> ImportResult:
        """
        Upload every batch.

        Args:
            batches: Batches of accounts in uploadAccount form

        Returns:
            Counts and every batch or account failure
        """
        result = ImportResult()
        logger.info(
            "Starting import",
            project_id=self.project_id,
            hash_algorithm=self.hash_options.algorithm if self.hash_options else None,
        )

        for batch_index, batch in enumerate(batches):
            result.batches_attempted += 1
            result.records_submitted += len(batch)
            failures = await self._import_batch(batch_index, batch)

            failed = len(batch) if failures and failures[0].record_index is None else len(failures)
            result.records_failed += failed
            result.failures.extend(failures)
            self.collector.count_accounts("import", "ok", len(batch) - failed)
            self.collector.count_accounts("import", "failed", failed)

        logger.info(
            "Import complete",
            batches=result.batches_attempted,
            accounts=result.records_submitted,
            failed=result.records_failed,
        )
        return result

    async def _import_batch(self, batch_index: int, batch: list[dict[str, Any]]) -> list[ImportFailure]:
        body = self.build_request(batch)
        try:
            data = await self.client.post(UPLOAD_ACCOUNT_ENDPOINT, json=body)
        except ServiceError as e:
            logger.error("Batch upload failed", batch=batch_index, accounts=len(batch), error=str(e))
            return [ImportFailure(batch_index=batch_index, message=str(e))]

        failures = self._parse_failures(batch_index, batch, data)
        for failure in failures:
            logger.warning(
                "Account rejected",
                batch=batch_index,
                index=failure.record_index,
                local_id=failure.local_id,
                error=failure.message,
            )
        logger.debug("Batch uploaded", batch=batch_index, accounts=len(batch), rejected=len(failures))
        return failures

    def _parse_failures(
        self, batch_index: int, batch: list[dict[str, Any]], data: Any
    ) -> list[ImportFailure]:
        if not data or not isinstance(data, dict):
            return []
        try:
            response = UploadAccountResponse.model_validate(data)
        except PydanticValidationError as e:
            return [
                ImportFailure(batch_index=batch_index, message=f"Malformed uploadAccount response: {e}")
            ]

        failures = []
        for error in response.error:
            local_id = batch[error.index].get("localId") if 0 <= error.index < len(batch) else None
            failures.append(
                ImportFailure(
                    batch_index=batch_index,
                    message=error.message,
                    record_index=error.index,
                    local_id=local_id,
                )
            )
        return failures
