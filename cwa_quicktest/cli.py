"""Command Line Interface for cwa-quicktest.

This module provides a CLI using Typer for generating salts and app URLs,
decoding app URLs, and reporting test results to the result API.

Security Impact:
    - All commands validate inputs locally before any network call
    - The key passphrase is never printed; prefer CWA_KEY_PASSPHRASE over
      the --passphrase option
"""

import json
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from cwa_quicktest.adapters.result_client import QuicktestResultClient
from cwa_quicktest.domain.enums import API_ENDPOINT_RESULTS, ResultStatus, Stage
from cwa_quicktest.domain.ports import QuicktestError, ValidationError
from cwa_quicktest.domain.quicktest_data import create_test_record
from cwa_quicktest.domain.quicktest_result import ResultRecord, create_result_record
from cwa_quicktest.domain.services import QuicktestEncoder, build_app_url, generate_salt
from cwa_quicktest.infrastructure.config_manager import ClientConfig, ConfigManager
from cwa_quicktest.infrastructure.logging_config import setup_logging
from cwa_quicktest.infrastructure.settings import settings

app = typer.Typer(
    name="cwa-quicktest",
    help="Corona-Warn-App rapid test integration: app URLs and result reporting",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()


def _parse_result(value: str) -> int:
    """Accept a status name (negative, positive, invalid) or its code."""
    name = value.strip().upper()
    if name in ResultStatus.__members__:
        return ResultStatus[name].value
    try:
        return int(name)
    except ValueError:
        raise ValidationError(
            f"Invalid value for property 'result': {value} "
            "(possible values: negative, positive, invalid, 6, 7, 8)",
            field="result",
        ) from None


def _load_client_config(**overrides: Any) -> ClientConfig:
    """Merge CLI overrides into the environment configuration."""
    client_data: Dict[str, Any] = dict(settings.config_manager.get("client", {}) or {})
    client_data.update({key: value for key, value in overrides.items() if value is not None})
    return ConfigManager({"client": client_data}).get_client_config()


def _read_results_file(results_file: Path) -> List[ResultRecord]:
    try:
        data = json.loads(results_file.read_text())
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON in results file: {e}") from e

    # Accept a bare list, a single result or the {"testResults": [...]} envelope
    if isinstance(data, dict):
        data = data.get("testResults", [data])
    if not isinstance(data, list):
        raise ValidationError("Results file must contain a list of results")

    return [create_result_record(item) for item in data]


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"{settings.app_name} v{settings.app_version}")
        raise typer.Exit()


@app.command()
def salt() -> None:
    """Print a fresh 128-bit uppercase hex salt."""
    typer.echo(generate_salt())


@app.command()
def url(
    timestamp: Optional[int] = typer.Option(None, "--timestamp", "-t", help="Unix timestamp of the test (default: now)"),
    salt_value: Optional[str] = typer.Option(None, "--salt", help="Salt to use (default: newly generated)"),
    first_name: Optional[str] = typer.Option(None, "--fn", help="First name (personal mode)"),
    last_name: Optional[str] = typer.Option(None, "--ln", help="Last name (personal mode)"),
    date_of_birth: Optional[str] = typer.Option(None, "--dob", help="Date of birth, YYYY-MM-DD (personal mode)"),
    test_id: Optional[str] = typer.Option(None, "--testid", help="Test id, typically a UUID (personal mode)"),
    data_file: Optional[Path] = typer.Option(None, "--data-file", "-f", help="JSON file with the test fields", exists=True, dir_okay=False),
    show_payload: bool = typer.Option(False, "--show-payload", help="Also print the JSON payload and hash"),
) -> None:
    """Build the app URL for a rapid test.

    Without personal data options an anonymous record is created.

    Examples:
        cwa-quicktest url
        cwa-quicktest url --fn Erika --ln Mustermann --dob 1990-12-23 --testid 52cddd8e-ff32-4478-af64-cb867cea1db5
        cwa-quicktest url --data-file test.json --show-payload
    """
    try:
        if data_file:
            fields = json.loads(data_file.read_text())
            if not isinstance(fields, dict):
                raise ValidationError("Data file must contain a JSON object")
        else:
            fields = {
                "timestamp": timestamp if timestamp is not None else int(time.time()),
                "salt": salt_value if salt_value is not None else generate_salt(),
            }
            personal = {"fn": first_name, "ln": last_name, "dob": date_of_birth, "testid": test_id}
            fields.update({key: value for key, value in personal.items() if value is not None})

        record = create_test_record(fields)
    except json.JSONDecodeError as e:
        console.print(f"[red]✗[/red] Invalid JSON in data file: {escape(str(e))}")
        raise typer.Exit(code=1)
    except ValidationError as e:
        console.print(f"[red]✗[/red] {escape(str(e))}")
        raise typer.Exit(code=1)

    if show_payload:
        console.print(f"[dim]Mode:[/dim] {'anonymous' if record.is_anonymous else 'personal'}")
        console.print(f"[dim]Hash:[/dim] {record.get_hash()}")
        console.print(f"[dim]JSON:[/dim] {escape(record.to_json())}", soft_wrap=True, highlight=False)

    typer.echo(build_app_url(record))


@app.command()
def decode(
    payload: str = typer.Argument(..., help="App URL or its base64 fragment"),
) -> None:
    """Decode an app URL and verify its hash."""
    try:
        data = QuicktestEncoder.decode_payload(payload)
    except ValidationError as e:
        console.print(f"[red]✗[/red] {escape(str(e))}")
        raise typer.Exit(code=1)

    typer.echo(json.dumps(data, indent=2))

    try:
        valid = QuicktestEncoder.verify_hash(data)
    except ValidationError as e:
        console.print(f"[red]✗[/red] Payload is not a valid test record: {escape(str(e))}")
        raise typer.Exit(code=1)

    if not valid:
        console.print("[red]✗[/red] Hash does not match the payload")
        raise typer.Exit(code=1)

    console.print("[green]✓[/green] Hash verified")


@app.command()
def submit(
    test_id: Optional[str] = typer.Option(None, "--id", help="CWA test id (the hash of the test record)"),
    result: Optional[str] = typer.Option(None, "--result", "-r", help="negative, positive, invalid (or 6, 7, 8)"),
    sc: Optional[int] = typer.Option(None, "--sc", help="Unix timestamp of the result (default: now)"),
    results_file: Optional[Path] = typer.Option(None, "--results-file", help="JSON file with a list of results", exists=True, dir_okay=False),
    cert: Optional[Path] = typer.Option(None, "--cert", help="Client certificate (default: CWA_CERT_FILE)"),
    key: Optional[Path] = typer.Option(None, "--key", help="Private key (default: CWA_KEY_FILE)"),
    passphrase: Optional[str] = typer.Option(None, "--passphrase", help="Key passphrase (prefer CWA_KEY_PASSPHRASE)"),
    stage: Optional[str] = typer.Option(None, "--stage", "-s", help="PRODUCTION, WRU or INT (default: CWA_STAGE or WRU)"),
    skip_passphrase_check: bool = typer.Option(False, "--skip-passphrase-check", help="Do not validate the key passphrase up front"),
) -> None:
    """Report test results to the result API.

    Examples:
        cwa-quicktest submit --id <hash> --result negative
        cwa-quicktest submit --results-file results.json --stage PRODUCTION
    """
    try:
        if results_file:
            records = _read_results_file(results_file)
        else:
            if not test_id or not result:
                raise ValidationError("Either --results-file or both --id and --result are required")
            records = [
                create_result_record({
                    "id": test_id,
                    "result": _parse_result(result),
                    "sc": sc if sc is not None else int(time.time()),
                })
            ]

        config = _load_client_config(
            cert_path=str(cert) if cert else None,
            key_path=str(key) if key else None,
            key_passphrase=passphrase,
            stage=stage,
            skip_passphrase_check=True if skip_passphrase_check else None,
        )
        client = QuicktestResultClient.from_config(config)

        with console.status(f"[bold green]Submitting {len(records)} result(s) to {client.stage.value}..."):
            outcome = client.submit_results(records)
    except QuicktestError as e:
        console.print(f"[red]✗[/red] {type(e).__name__}: {escape(str(e))}")
        raise typer.Exit(code=1)

    if outcome is True:
        console.print(f"[green]✓[/green] {len(records)} result(s) accepted")
        return

    console.print("[red]✗[/red] Result API rejected the submission:")
    typer.echo(json.dumps(outcome, indent=2, default=str))
    raise typer.Exit(code=1)


@app.command()
def info() -> None:
    """Display the active configuration (without secrets)."""
    try:
        config = _load_client_config()
    except QuicktestError as e:
        console.print(f"[red]✗[/red] {escape(str(e))}")
        raise typer.Exit(code=1)

    console.print("[bold blue]Configuration[/bold blue]\n")

    info_table = Table(show_header=False, box=None, padding=(0, 2))
    info_table.add_row("Application:", f"{settings.app_name} v{settings.app_version}")
    info_table.add_row("Stage:", config.stage.value)
    info_table.add_row("Endpoint:", f"{config.stage.base_url}{API_ENDPOINT_RESULTS}")
    info_table.add_row("Certificate:", config.cert_path or "[yellow]not configured[/yellow]")
    info_table.add_row("Private key:", config.key_path or "[yellow]not configured[/yellow]")
    info_table.add_row("Passphrase:", "configured" if config.key_passphrase is not None else "none")
    info_table.add_row("Server CA:", config.server_ca or "system trust store")
    info_table.add_row("Timeout:", f"{config.timeout:g} s")
    info_table.add_row("Available stages:", ", ".join(member.value for member in Stage))

    console.print(info_table)


@app.callback()
def main_callback(
    version: bool = typer.Option(False, "--version", help="Show version information", callback=_version_callback, is_eager=True),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit logs as JSON lines"),
) -> None:
    """Corona-Warn-App rapid test integration."""
    setup_logging(
        use_json=json_logs or settings.log_json,
        log_level="DEBUG" if verbose else settings.log_level,
        app_name=settings.app_name,
    )


if __name__ == "__main__":
    app()
