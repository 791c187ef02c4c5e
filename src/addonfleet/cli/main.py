"""Main CLI entry point for addonfleet."""

from __future__ import annotations

import platform
import sys
from typing import TYPE_CHECKING, Any

import click
from rich.console import Console
from rich.table import Table

from addonfleet import __version__
from addonfleet.core.models import Command, ExitStatus

if TYPE_CHECKING:
    from addonfleet.core.config import RunSettings
    from addonfleet.core.models import RunSummary
    from addonfleet.interfaces.runtime import RuntimeFactory

console = Console(stderr=True)

SYSTEM = f"{platform.system().lower()}/{platform.machine()}"


class FleetContext:
    """Shared context for CLI commands with lazy initialization."""

    def __init__(self, config_path: str | None, options: dict[str, Any]):
        """Initialize context.

        Args:
            config_path: Optional YAML settings file
            options: Global command line options
        """
        self.config_path = config_path
        self.options = options
        self._settings: RunSettings | None = None
        self._runtime_factory: RuntimeFactory | None = None

    @property
    def settings(self) -> RunSettings:
        """Get or build settings lazily."""
        if self._settings is None:
            from addonfleet.core.config import LoggingConfig, RunSettings

            overrides = {k: v for k, v in self.options.items() if v not in (None, False, "")}
            log_level = overrides.pop("log_level", None)
            log_format = overrides.pop("log_format", None)

            if self.config_path:
                settings = RunSettings.from_file(self.config_path, **overrides)
            else:
                settings = RunSettings.build(**overrides)

            if log_level or log_format:
                settings = settings.model_copy(
                    update={
                        "logging": LoggingConfig(
                            level=log_level or settings.logging.level,
                            format=log_format or settings.logging.format,
                            output=settings.logging.output,
                        )
                    }
                )
            self._settings = settings
        return self._settings

    @property
    def runtime_factory(self) -> RuntimeFactory:
        """Get or load the runtime plugin lazily."""
        if self._runtime_factory is None:
            from addonfleet.execution.runtime_loader import load_runtime_factory

            self._runtime_factory = load_runtime_factory(self.settings.runtime)
        return self._runtime_factory


@click.group()
@click.version_option(
    version=__version__,
    prog_name="addonfleet",
    message=f"Version: %(version)s\nSystem: {SYSTEM}",
)
@click.option("--config", type=click.Path(exists=True, dir_okay=False), help="YAML settings file.")
@click.option(
    "--vault-token",
    envvar="VAULT_TOKEN",
    help="Vault token obtained during authentication.",
)
@click.option("--vault-addr", envvar="VAULT_ADDR", help="Vault address.")
@click.option("--namespace", help="Kubernetes namespace to store metadata in.  [default: default]")
@click.option("--kubeconfig", help="Kubernetes client config path.")
@click.option("--match-addons", help="Filters configured addons based on provided regex.")
@click.option(
    "--context",
    help="Comma-separated list of foo=bar context parameters passed to the clusters function.",
)
@click.option("--dry-run", is_flag=True, help="Print intended actions but don't mutate anything.")
@click.option("--sa-key", "sa_key_file", help="Path to the service account json file.")
@click.option("--nospin", "no_spin", is_flag=True, help="Disables command line status spinner.")
@click.option("--kube-diff", is_flag=True, help="Print diff against live Kubernetes objects.")
@click.option("--rel-path", help="The base path used to interpret double slash prefix.")
@click.option("--timeout", "timeout_seconds", type=float, help="Deadline for the whole run in seconds.")
@click.option("--runtime", help="Runtime plugin, as module:attribute or entry point name.")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
)
@click.option("--log-format", type=click.Choice(["json", "console"]))
@click.pass_context
def cli(ctx: click.Context, config: str | None, **options: Any) -> None:
    """addonfleet - install, remove and list addons across GKE clusters.

    By default every addon on every selected cluster is targeted. Narrow the
    selection with --match-addons and --context.

    \b
    Exit status:
      0  success
      1  unit tests failed (test)
      2  the command failed on at least one cluster
      3  nothing ran: discovery, credential or runtime setup failed
    """
    ctx.obj = FleetContext(config_path=config, options=options)


def _print_summary(summary: RunSummary) -> None:
    if not summary.outcomes:
        return

    table = Table(title=f"Clusters ({summary.attempted} total, {summary.failed} failed)")
    table.add_column("Cluster", style="cyan")
    table.add_column("Result", style="bold")
    table.add_column("Error")

    for outcome in summary.outcomes:
        result = "[green]ok[/green]" if outcome.succeeded else "[red]failed[/red]"
        table.add_row(outcome.cluster, result, outcome.error or "")

    console.print(table)


def _execute(ctx: click.Context, command: Command, path: str | None) -> None:
    import asyncio

    from addonfleet.core.exceptions import AddonFleetError
    from addonfleet.execution.execution_orchestrator import ExecutionOrchestrator
    from addonfleet.utils.logging import get_logger, log_error, setup_logging

    fleet_ctx: FleetContext = ctx.obj

    try:
        settings = fleet_ctx.settings
    except AddonFleetError as e:
        console.print(f"[red]Error: {e}[/red]")
        ctx.exit(int(ExitStatus.FATAL))

    setup_logging(
        level=settings.logging.level,
        format=settings.logging.format,
        output=settings.logging.output,
    )
    logger = get_logger(__name__)

    try:
        runtime_factory = fleet_ctx.runtime_factory
    except AddonFleetError as e:
        log_error(logger, e, "runtime_unavailable")
        ctx.exit(int(ExitStatus.FATAL))

    orchestrator = ExecutionOrchestrator(settings=settings, runtime_factory=runtime_factory)
    status = asyncio.run(orchestrator.run(command, path))

    _print_summary(orchestrator.summary)
    ctx.exit(int(status))


@cli.command()
@click.argument("path", type=click.Path())
@click.pass_context
def install(ctx: click.Context, path: str) -> None:
    """Install addons from the ENTRYFILE_PATH on every selected cluster."""
    _execute(ctx, Command.INSTALL, path)


@cli.command()
@click.argument("path", type=click.Path())
@click.pass_context
def remove(ctx: click.Context, path: str) -> None:
    """Uninstall addons from every selected cluster."""
    _execute(ctx, Command.REMOVE, path)


@cli.command(name="list")
@click.argument("path", type=click.Path())
@click.pass_context
def list_addons(ctx: click.Context, path: str) -> None:
    """List addons in the ENTRYFILE_PATH for every selected cluster."""
    _execute(ctx, Command.LIST, path)


@cli.command(name="test")
@click.argument("path", type=click.Path(), required=False)
@click.pass_context
def run_tests(ctx: click.Context, path: str | None) -> None:
    """Run unit tests in TEST_PATH (clusters are never contacted)."""
    _execute(ctx, Command.TEST, path)


def main(argv: list[str] | None = None) -> None:
    """Console script entry point.

    Runs the CLI without click's standalone handling so that usage errors
    exit with ExitStatus.USAGE instead of click's 2, which is reserved for
    per-cluster failures.
    """
    try:
        code = cli.main(args=argv, prog_name="addonfleet", standalone_mode=False)
    except click.ClickException as e:
        e.show()
        sys.exit(int(ExitStatus.USAGE))
    except click.Abort:
        console.print("Aborted!")
        sys.exit(int(ExitStatus.FATAL))

    sys.exit(code if isinstance(code, int) else int(ExitStatus.SUCCESS))


if __name__ == "__main__":
    main()
