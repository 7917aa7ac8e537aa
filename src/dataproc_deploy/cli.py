"""dataproc-deploy CLI."""

from __future__ import annotations

import logging
import signal
import threading
import time
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from dataproc_deploy import __version__
from dataproc_deploy._constants import DEFAULT_PROJECT_ENV
from dataproc_deploy.config import (
    ConfigError,
    ConfigFileNotFoundError,
    ConfigValidationError,
    DeployConfig,
    EnvRole,
    generate_example_config_yaml,
    load_config,
)
from dataproc_deploy.dataproc import (
    ClientSetupError,
    DataprocError,
    ExecutionContext,
    WaitCancelled,
    WaitTimeout,
    get_dataproc_client,
)
from dataproc_deploy.journal import DEFAULT_JOURNAL_DIR, Journal, Outcome, SubmissionRecord

# Default config file name for auto-discovery
DEFAULT_CONFIG = "dataproc-deploy.yaml"

logger = logging.getLogger(__name__)

# Global journal instance (lazy-initialized)
_journal: Journal | None = None


app = typer.Typer(
    name="dataproc-deploy",
    help="Submit Spark jobs to Google Cloud Dataproc clusters",
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
    epilog="[dim]Workflow: init -> validate -> deploy[/dim]",
)

console = Console()


# =============================================================================
# Helper Functions
# =============================================================================


def resolve_config_path(
    config_file: Path | None,
    file_option: Path | None = None,
) -> Path:
    """Resolve config file path, using ./dataproc-deploy.yaml as default.

    Supports both positional argument and --file/-f option.
    If both are provided, --file takes precedence.
    """
    path = file_option or config_file
    if path is not None:
        return path

    default = Path(DEFAULT_CONFIG)
    if default.exists():
        return default

    console.print(f"[red]ERROR[/red] No config file specified and ./{DEFAULT_CONFIG} not found")
    console.print("[blue]INFO[/blue] Create one with: dataproc-deploy init")
    raise typer.Exit(1)


def get_journal() -> Journal:
    """Get or create the global journal instance."""
    global _journal
    if _journal is None:
        _journal = Journal()
    return _journal


def print_success(message: str) -> None:
    console.print(f"[green]OK[/green] {message}")


def print_error(message: str) -> None:
    console.print(f"[red]ERROR[/red] {message}")


def print_warning(message: str) -> None:
    console.print(f"[yellow]WARN[/yellow] {message}")


def print_info(message: str) -> None:
    console.print(f"[blue]...[/blue] {message}")


_journal_warned = False


def _journal_safe(fn, *args, **kwargs) -> None:
    """Call a journal function, logging failures instead of raising them."""
    global _journal_warned
    try:
        fn(*args, **kwargs)
    except Exception:
        if not _journal_warned:
            logger.debug("Journal write failed (further warnings suppressed)", exc_info=True)
            _journal_warned = True


def _record_attempt(
    cfg: DeployConfig,
    outcome: Outcome,
    started: float,
    result=None,
    error: BaseException | None = None,
) -> None:
    record = SubmissionRecord.for_attempt(
        cfg, outcome, result=result, error=error, elapsed_seconds=time.monotonic() - started
    )
    get_journal().append(record)


def _load_config_or_exit(config_file: Path) -> DeployConfig:
    """Load configuration, printing errors and exiting on failure."""
    try:
        return load_config(config_file)
    except ConfigFileNotFoundError as e:
        print_error(f"File not found: {e}")
        raise typer.Exit(1)  # noqa: B904
    except ConfigValidationError as e:
        print_error("Config validation failed:")
        for err in e.errors:
            loc = ".".join(str(x) for x in err["loc"]) or "config"
            console.print(f"  [red]*[/red] {loc}: {err['msg']}")
        raise typer.Exit(1)  # noqa: B904
    except ConfigError as e:
        print_error(f"Config error: {e}")
        raise typer.Exit(1)  # noqa: B904


def _config_table(cfg: DeployConfig) -> Table:
    table = Table(show_header=False, box=None)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Region", cfg.region)
    table.add_row("Cluster", cfg.cluster_name)
    unset = f"[yellow](unset, ${DEFAULT_PROJECT_ENV} empty)[/yellow]"
    table.add_row("Project", cfg.project_id or unset)
    table.add_row("Main class", cfg.main_class)
    table.add_row("Job URI", cfg.job_uri)
    for role in EnvRole:
        count = len(cfg.env_variables(role))
        if count:
            table.add_row(f"{role.value.capitalize()} env", f"{count} variable(s)")
    if cfg.arguments:
        table.add_row("Arguments", " ".join(cfg.arguments))
    return table


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# =============================================================================
# Commands
# =============================================================================


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"dataproc-deploy version {__version__}")


@app.command()
def init(
    output: Annotated[
        Path,
        typer.Option(
            "--output",
            "-o",
            help="Output file path for configuration",
        ),
    ] = Path(DEFAULT_CONFIG),
    cluster_name: Annotated[
        str,
        typer.Option(
            "--cluster",
            "-c",
            help="Dataproc cluster name",
        ),
    ] = "",
    region: Annotated[
        str,
        typer.Option(
            "--region",
            "-r",
            help="Dataproc region",
        ),
    ] = "",
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            help="Overwrite existing file",
        ),
    ] = False,
) -> None:
    """Create a starter configuration file."""
    if output.exists() and not force:
        print_error(f"{output} already exists (use --force to overwrite)")
        raise typer.Exit(1)

    config_content = generate_example_config_yaml()
    if cluster_name:
        config_content = config_content.replace(
            "cluster_name: my-cluster", f"cluster_name: {cluster_name}", 1
        )
    if region:
        config_content = config_content.replace("region: us-central1", f"region: {region}", 1)

    output.write_text(config_content)
    print_success(f"Created configuration file: {output}")
    print_info("Edit main_class and job_uri for your job")
    print_info("Then run: dataproc-deploy validate")


@app.command()
def validate(
    config_file: Annotated[
        Path | None,
        typer.Argument(
            help="Path to configuration YAML file (default: ./dataproc-deploy.yaml)",
        ),
    ] = None,
    file_option: Annotated[
        Path | None,
        typer.Option(
            "--file",
            "-f",
            help="Path to configuration YAML file (alternative to positional argument)",
        ),
    ] = None,
    skip_client: Annotated[
        bool,
        typer.Option(
            "--skip-client",
            help="Do not try to construct the Dataproc client",
        ),
    ] = False,
) -> None:
    """Validate configuration and Dataproc client setup.

    This command performs the following checks:
    - YAML syntax is valid
    - Required fields are present
    - A project is set (in config or via GOOGLE_PROJECT_ID)
    - The Dataproc job client can be created for the region
    """
    config_file = resolve_config_path(config_file, file_option)
    console.print(Panel(f"Validating: [bold]{config_file}[/bold]", expand=False))

    cfg = _load_config_or_exit(config_file)
    print_success("Config syntax valid")

    console.print(_config_table(cfg))

    failed = False
    if cfg.project_id:
        print_success(f"Project: {cfg.project_id}")
    else:
        print_error(f"project_id is not set and ${DEFAULT_PROJECT_ENV} is empty")
        failed = True

    if not skip_client:
        try:
            client = get_dataproc_client(cfg.region)
            print_success(f"Dataproc client ready ({client.endpoint})")
            client.close()
        except ClientSetupError as e:
            print_error(str(e))
            failed = True

    if failed:
        raise typer.Exit(1)
    console.print()
    print_success("Configuration is valid")


@app.command()
def deploy(
    config_file: Annotated[
        Path | None,
        typer.Argument(
            help="Path to configuration YAML file (default: ./dataproc-deploy.yaml)",
        ),
    ] = None,
    file_option: Annotated[
        Path | None,
        typer.Option(
            "--file",
            "-f",
            help="Path to configuration YAML file (alternative to positional argument)",
        ),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            help="Show what would be submitted without contacting Dataproc",
        ),
    ] = False,
    timeout: Annotated[
        float | None,
        typer.Option(
            "--timeout",
            "-t",
            help="Seconds to wait for the submission to be acknowledged",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging",
        ),
    ] = False,
) -> None:
    """Submit the configured Spark job and wait for Dataproc to accept it.

    Press Ctrl-C while waiting to stop waiting; the job itself is not cancelled.
    """
    from dataproc_deploy.deploy import DeploymentEngine, DeploymentStatus

    _configure_logging(verbose)
    config_file = resolve_config_path(config_file, file_option)
    cfg = _load_config_or_exit(config_file)

    if dry_run:
        console.print(
            Panel(
                f"[yellow]DRY RUN[/yellow] - Deploying: [bold]{cfg.main_class}[/bold]",
                expand=False,
            )
        )
    else:
        console.print(Panel(f"Deploying: [bold]{cfg.main_class}[/bold]", expand=False))
    console.print(f"Config: {config_file.resolve()}")
    console.print()

    def on_progress(component: str, status: DeploymentStatus, message: str) -> None:
        if status == DeploymentStatus.IN_PROGRESS:
            console.print(f"[blue]...[/blue] {message}")
        elif status == DeploymentStatus.SUCCESS:
            print_success(message)
        elif status == DeploymentStatus.FAILED:
            print_error(message)

    started = time.monotonic()
    context = ExecutionContext(timeout_seconds=timeout)
    previous_handler = None
    if threading.current_thread() is threading.main_thread():
        previous_handler = signal.signal(signal.SIGINT, lambda *_: context.cancel())

    try:
        engine = DeploymentEngine(cfg, dry_run=dry_run)
        result = engine.deploy(context=context, progress_callback=on_progress)
    except WaitCancelled as e:
        _journal_safe(_record_attempt, cfg, Outcome.CANCELLED, started, error=e)
        print_warning(f"Deployment cancelled: {e}")
        raise typer.Exit(1)  # noqa: B904
    except WaitTimeout as e:
        _journal_safe(_record_attempt, cfg, Outcome.TIMED_OUT, started, error=e)
        print_error(f"Timed out: {e}")
        raise typer.Exit(1)  # noqa: B904
    except (ConfigError, DataprocError) as e:
        _journal_safe(_record_attempt, cfg, Outcome.FAILED, started, error=e)
        console.print(
            Panel(
                f"[red]{type(e).__name__}[/red]: {e}\n\n"
                "Fix the issue above, then re-run 'dataproc-deploy deploy'.",
                title="Deployment Failed",
                expand=False,
            )
        )
        raise typer.Exit(1)  # noqa: B904
    finally:
        if previous_handler is not None:
            signal.signal(signal.SIGINT, previous_handler)

    outcome = Outcome.DRY_RUN if dry_run else Outcome.ACCEPTED
    _journal_safe(_record_attempt, cfg, outcome, started, result=result)

    console.print()
    if dry_run:
        lines = [result.message]
        properties = result.details.get("properties", {})
        if properties:
            lines.append("\n[bold]Properties:[/bold]")
            lines.extend(f"  {k}={v}" for k, v in sorted(properties.items()))
        console.print(Panel("\n".join(lines), title="Dry Run", expand=False))
        return

    console.print(
        Panel(
            f"[green]{result.message}[/green]"
            f"\n\nJob ID:        {result.job_id or '-'}"
            f"\nDriver output: {result.details.get('driver_output_uri', '-')}",
            title="Deployment Successful",
            expand=False,
        )
    )


_OUTCOME_STYLES = {
    Outcome.ACCEPTED: "green",
    Outcome.DRY_RUN: "yellow",
}


def _styled_outcome(outcome: Outcome) -> str:
    style = _OUTCOME_STYLES.get(outcome, "red")
    return f"[{style}]{outcome.value}[/{style}]"


def _timestamp(iso: str) -> str:
    return iso[:19].replace("T", " ")


@app.command()
def journal(
    target_key: Annotated[
        str | None,
        typer.Option(
            "--target",
            "-t",
            help="Show every attempt for one target (key from the listing)",
        ),
    ] = None,
    last: Annotated[
        int,
        typer.Option(
            "--last",
            "-n",
            help="Show at most N rows",
        ),
    ] = 10,
    journal_dir: Annotated[
        Path,
        typer.Option(
            "--dir",
            help="Journal directory",
        ),
    ] = DEFAULT_JOURNAL_DIR,
) -> None:
    """Show the deploy history.

    Examples:

        dataproc-deploy journal

        dataproc-deploy journal --target my-project__us-central1__my-cluster
    """
    j = Journal(journal_dir)

    if target_key:
        records = j.history(target_key)
        if not records:
            print_warning(f"No deploy attempts recorded for {target_key}")
            return

        console.print(Panel(f"Target: [bold]{target_key}[/bold]", expand=False))
        table = Table()
        table.add_column("Time", style="dim")
        table.add_column("Outcome", justify="center")
        table.add_column("Job ID", style="cyan")
        table.add_column("Driver output / error")
        table.add_column("Elapsed", justify="right")

        for record in records[-last:]:
            if record.error:
                detail = f"[red]{record.error_type}[/red]: {escape(record.error)}"
            else:
                detail = record.driver_output_uri or ""
            table.add_row(
                _timestamp(record.recorded_at),
                _styled_outcome(record.outcome),
                record.job_id or "-",
                detail,
                f"{record.elapsed_seconds:.1f}s",
            )

        console.print(table)
        return

    summaries = j.targets()
    if not summaries:
        print_warning(f"No deploy attempts recorded in {journal_dir}")
        return

    console.print(Panel("dataproc-deploy Deploy History", expand=False))
    table = Table()
    table.add_column("Target", style="cyan", no_wrap=True)
    table.add_column("Accepted", justify="right")
    table.add_column("Last outcome", justify="center")
    table.add_column("Last job", no_wrap=True)
    table.add_column("Last attempt", style="dim")

    for s in summaries[:last]:
        table.add_row(
            s["key"],
            f"{s['accepted']}/{s['attempts']}",
            _styled_outcome(s["last_outcome"]),
            s["last_job_id"] or "-",
            _timestamp(s["last_recorded"]),
        )

    console.print(table)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
