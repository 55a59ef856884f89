"""CLI for exporting and importing user accounts."""

import asyncio
from collections import Counter
from pathlib import Path
from typing import Any

import structlog
import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .api.client import IdentityToolkitClient
from .config import MigrationConfig, load_config
from .constants import MAX_IMPORT_BATCH_SIZE
from .core.exporter import AccountExporter
from .core.importer import AccountImporter
from .core.reader import AccountFileReader
from .core.writer import create_writer
from .observability import LogContext, configure_logging, get_global_collector
from .utils.exceptions import MigrationError, TerminalError
from .validation.validator import validate_export_options, validate_import_options

app = typer.Typer(
    name="account-migrate",
    help="Export user accounts from an identity project to CSV/JSON and import them back",
    add_completion=False,
)

console = Console()
logger = structlog.get_logger(__name__)

FORMAT_OPTION = typer.Option(
    None, "--format", "-f", help="Account file format: csv or json (default: from file extension)"
)
CONFIG_OPTION = typer.Option(None, "--config", "-c", help="Configuration file")
LOG_LEVEL_OPTION = typer.Option(
    None, "--log-level", help="Log verbosity: DEBUG, VERBOSE, INFO, WARNING, ERROR"
)
JSON_LOGS_OPTION = typer.Option(False, "--json-logs", help="Write logs as JSON lines")
STRICT_OPTION = typer.Option(False, "--strict", help="Stop at the first invalid account")
HASH_ALGO_OPTION = typer.Option(
    None,
    "--hash-algo",
    help="Password hash algorithm: HMAC_SHA512, HMAC_SHA256, HMAC_SHA1, HMAC_MD5, MD5, SHA1, "
    "SHA256, SHA512, PBKDF_SHA1, PBKDF2_SHA256, SCRYPT, STANDARD_SCRYPT, BCRYPT",
)
HASH_KEY_OPTION = typer.Option(None, "--hash-key", help="Base64 signer key (HMAC_* and SCRYPT)")
SALT_SEPARATOR_OPTION = typer.Option(None, "--salt-separator", help="Salt separator (SCRYPT)")
ROUNDS_OPTION = typer.Option(None, "--rounds", help="Hash rounds")
MEM_COST_OPTION = typer.Option(None, "--mem-cost", help="Memory cost (SCRYPT, STANDARD_SCRYPT)")
PARALLELIZATION_OPTION = typer.Option(
    None, "--parallelization", help="Parallelization (STANDARD_SCRYPT)"
)
BLOCK_SIZE_OPTION = typer.Option(None, "--block-size", help="Block size (STANDARD_SCRYPT)")
DK_LEN_OPTION = typer.Option(None, "--dk-len", help="Derived key length (STANDARD_SCRYPT)")
HASH_INPUT_ORDER_OPTION = typer.Option(
    None, "--hash-input-order", help="SALT_FIRST or PASSWORD_FIRST"
)


def _load_config(config_file: Path | None) -> MigrationConfig:
    try:
        return load_config(config_file)
    except (FileNotFoundError, ValueError, TypeError) as e:
        console.print(f"[red]ERROR: Could not load configuration:[/red] {escape(str(e))}")
        raise typer.Exit(code=1) from e


def _setup_logging(config: MigrationConfig, log_level: str | None, json_logs: bool) -> None:
    configure_logging(
        level=log_level or config.logging.level,
        json_logs=json_logs or config.logging.format == "json",
        log_file=config.logging.file,
    )


def _resolve_project(config: MigrationConfig, project: str | None) -> str:
    project_id = project or config.service.project_id
    if not project_id:
        console.print(
            "[red]ERROR: No project specified.[/red] "
            "Use --project, IDENTITY_PROJECT_ID or the service.project_id config key."
        )
        raise typer.Exit(code=1)
    if not config.service.access_token:
        logger.warning("No access token configured, requests will be unauthenticated")
    return project_id


def _raw_import_options(
    data_format: str | None,
    hash_algo: str | None,
    hash_key: str | None,
    salt_separator: str | None,
    rounds: str | None,
    mem_cost: str | None,
    parallelization: str | None,
    block_size: str | None,
    dk_len: str | None,
    hash_input_order: str | None,
) -> dict[str, Any]:
    return {
        "format": data_format,
        "hash_algo": hash_algo,
        "hash_key": hash_key,
        "salt_separator": salt_separator,
        "rounds": rounds,
        "mem_cost": mem_cost,
        "parallelization": parallelization,
        "block_size": block_size,
        "dk_len": dk_len,
        "hash_input_order": hash_input_order,
    }


def _discard_partial_output(output_file: Path) -> None:
    """Remove an export file that was left without its closing footer."""
    try:
        output_file.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(
            "Could not remove incomplete export file", path=str(output_file), error=str(e)
        )
        console.print(f"[yellow]Incomplete export left at {escape(str(output_file))}[/yellow]")
    else:
        logger.info("Removed incomplete export file", path=str(output_file))


@app.command()
def export(
    output_file: Path | None = typer.Argument(None, help="Account file to write (.csv or .json)"),
    project: str | None = typer.Option(None, "--project", "-p", help="Project to export from"),
    data_format: str | None = FORMAT_OPTION,
    batch_size: int | None = typer.Option(
        None, "--batch-size", min=1, help="Accounts requested per page (default: 1000)"
    ),
    config_file: Path | None = CONFIG_OPTION,
    log_level: str | None = LOG_LEVEL_OPTION,
    json_logs: bool = JSON_LOGS_OPTION,
) -> None:
    """
    Export every account of a project to a file.

    Password hashes computed with a non-default scheme are left out.

    Examples:
        account-migrate export users.csv --project my-project
        account-migrate export users.json --project my-project --batch-size 500
    """
    config = _load_config(config_file)
    _setup_logging(config, log_level, json_logs)

    try:
        options = validate_export_options({"format": data_format}, output_file)
    except MigrationError as e:
        console.print(f"[red]ERROR:[/red] {escape(str(e))}")
        raise typer.Exit(code=1) from e

    project_id = _resolve_project(config, project)
    page_size = batch_size or config.export.batch_size

    console.print(
        f"\n[bold blue]Exporting accounts from[/bold blue] {project_id} "
        f"[bold blue]to[/bold blue] {output_file} ({options.format.value})\n"
    )

    async def run_export() -> int:
        with open(output_file, "w", encoding="utf-8", newline="") as stream:
            writer = create_writer(options.format, stream)
            writer.write_header()
            async with IdentityToolkitClient(config.service) as client:
                exporter = AccountExporter(
                    client,
                    project_id,
                    writer,
                    batch_size=page_size,
                    max_timeout_retries=config.export.max_timeout_retries,
                    retry_wait_seconds=config.export.retry_wait_seconds,
                )
                result = await exporter.run()
            writer.write_footer()
        return result.records_exported

    try:
        with LogContext(project_id=project_id, direction="export"):
            exported = asyncio.run(run_export())
    except TerminalError as e:
        _discard_partial_output(output_file)
        console.print(f"\n[red]ERROR: Export aborted:[/red] {escape(str(e))}")
        raise typer.Exit(code=1) from e
    except (MigrationError, OSError) as e:
        _discard_partial_output(output_file)
        console.print(f"\n[red]ERROR: Export failed:[/red] {escape(str(e))}")
        raise typer.Exit(code=1) from e
    finally:
        get_global_collector().log_summary()

    console.print(f"[green]Exported {exported} account(s) to {output_file}[/green]")


@app.command("import")
def import_accounts(
    input_file: Path = typer.Argument(..., help="Account file to import (.csv or .json)"),
    project: str | None = typer.Option(None, "--project", "-p", help="Project to import into"),
    data_format: str | None = FORMAT_OPTION,
    hash_algo: str | None = HASH_ALGO_OPTION,
    hash_key: str | None = HASH_KEY_OPTION,
    salt_separator: str | None = SALT_SEPARATOR_OPTION,
    rounds: str | None = ROUNDS_OPTION,
    mem_cost: str | None = MEM_COST_OPTION,
    parallelization: str | None = PARALLELIZATION_OPTION,
    block_size: str | None = BLOCK_SIZE_OPTION,
    dk_len: str | None = DK_LEN_OPTION,
    hash_input_order: str | None = HASH_INPUT_ORDER_OPTION,
    batch_size: int | None = typer.Option(
        None,
        "--batch-size",
        min=1,
        max=MAX_IMPORT_BATCH_SIZE,
        help=f"Accounts per upload request (default and maximum: {MAX_IMPORT_BATCH_SIZE})",
    ),
    strict: bool = STRICT_OPTION,
    config_file: Path | None = CONFIG_OPTION,
    log_level: str | None = LOG_LEVEL_OPTION,
    json_logs: bool = JSON_LOGS_OPTION,
) -> None:
    """
    Import accounts from a file into a project.

    Accounts are uploaded in batches. A rejected account does not stop the
    run; every rejection is listed at the end.

    Examples:
        account-migrate import users.csv --project my-project
        account-migrate import users.json --project my-project --hash-algo HMAC_SHA256 --hash-key c2VjcmV0
        account-migrate import users.csv --project my-project --hash-algo SCRYPT \\
            --hash-key a2V5 --salt-separator Bw== --rounds 8 --mem-cost 14
    """
    config = _load_config(config_file)
    _setup_logging(config, log_level, json_logs)

    raw_options = _raw_import_options(
        data_format,
        hash_algo,
        hash_key,
        salt_separator,
        rounds,
        mem_cost,
        parallelization,
        block_size,
        dk_len,
        hash_input_order,
    )
    try:
        options = validate_import_options(raw_options, input_file)
    except MigrationError as e:
        console.print(f"[red]ERROR:[/red] {escape(str(e))}")
        raise typer.Exit(code=1) from e

    project_id = _resolve_project(config, project)
    upload_size = batch_size or config.import_.batch_size
    if not 0 < upload_size <= MAX_IMPORT_BATCH_SIZE:
        console.print(
            f"[red]ERROR: Batch size must be between 1 and {MAX_IMPORT_BATCH_SIZE}[/red]"
        )
        raise typer.Exit(code=1)

    reader = AccountFileReader(input_file, options)

    console.print(
        f"\n[bold blue]Importing accounts from[/bold blue] {input_file} "
        f"[bold blue]into[/bold blue] {project_id}\n"
    )

    async def run_import():
        async with IdentityToolkitClient(config.service) as client:
            importer = AccountImporter(client, project_id, hash_options=options.hash)
            return await importer.import_batches(reader.iter_batches(upload_size))

    try:
        with LogContext(project_id=project_id, direction="import"):
            if strict:
                # Nothing is uploaded unless the whole file is valid
                reader.validate(strict=True)
            result = asyncio.run(run_import())
    except (MigrationError, OSError) as e:
        console.print(f"\n[red]ERROR: Import failed:[/red] {escape(str(e))}")
        raise typer.Exit(code=1) from e
    finally:
        get_global_collector().log_summary()

    if reader.errors:
        console.print(f"\n[yellow]{escape(reader.get_error_summary())}[/yellow]")

    console.print(
        f"\nSubmitted {result.records_submitted} account(s) in {result.batches_attempted} "
        f"batch(es): {result.records_imported} imported, {result.records_failed} failed"
    )

    if result.failures:
        console.print(f"\n[red]Import failures ({len(result.failures)}):[/red]")
        for failure in result.failures:
            console.print(f"  - {escape(str(failure))}")
        raise typer.Exit(code=1)

    console.print("[green]Import completed successfully[/green]")


@app.command()
def validate(
    input_file: Path = typer.Argument(..., help="Account file to validate", exists=True),
    data_format: str | None = FORMAT_OPTION,
    hash_algo: str | None = HASH_ALGO_OPTION,
    hash_key: str | None = HASH_KEY_OPTION,
    salt_separator: str | None = SALT_SEPARATOR_OPTION,
    rounds: str | None = ROUNDS_OPTION,
    mem_cost: str | None = MEM_COST_OPTION,
    parallelization: str | None = PARALLELIZATION_OPTION,
    block_size: str | None = BLOCK_SIZE_OPTION,
    dk_len: str | None = DK_LEN_OPTION,
    hash_input_order: str | None = HASH_INPUT_ORDER_OPTION,
    strict: bool = STRICT_OPTION,
    log_level: str | None = LOG_LEVEL_OPTION,
) -> None:
    """
    Validate an account file without contacting the service.

    Takes the same format and hash options as import.

    Examples:
        account-migrate validate users.csv
        account-migrate validate users.json --hash-algo BCRYPT --strict
    """
    configure_logging(level=log_level or "WARNING")

    console.print(f"\n[bold blue]Validating account file:[/bold blue] {input_file}\n")

    raw_options = _raw_import_options(
        data_format,
        hash_algo,
        hash_key,
        salt_separator,
        rounds,
        mem_cost,
        parallelization,
        block_size,
        dk_len,
        hash_input_order,
    )

    try:
        options = validate_import_options(raw_options, input_file)
        reader = AccountFileReader(input_file, options)
        providers: Counter[str] = Counter()
        with_password = 0
        for record in reader.iter_records(strict=strict):
            with_password += record.has_password
            providers.update(link.provider_id for link in record.provider_user_info)
    except MigrationError as e:
        console.print(f"[red]ERROR: Validation failed:[/red] {escape(str(e))}")
        raise typer.Exit(code=1) from e

    table = Table(title="Account File Summary")
    table.add_column("Item", style="cyan")
    table.add_column("Count", justify="right", style="green")
    table.add_row("Valid accounts", str(reader.records_read))
    table.add_row("Invalid entries", str(len(reader.errors)))
    table.add_row("With password hash", str(with_password))
    for provider_id, count in sorted(providers.items()):
        table.add_row(f"Linked to {provider_id}", str(count))
    console.print(table)

    if reader.errors:
        console.print(f"\n[yellow]{escape(reader.get_error_summary())}[/yellow]")
        raise typer.Exit(code=1)

    console.print("\n[green]PASS: Validation successful![/green]")


if __name__ == "__main__":
    app()
