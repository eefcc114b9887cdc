"""Main CLI implementation using Typer."""

from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from dockhand.engine.compose import Compose
from dockhand.engine.manifest import ManifestLoader
from dockhand.errors import DockhandError
from dockhand.models.config import AuthConfig, ComposeConfig, DockerRuntimeConfig
from dockhand.models.report import RunReport
from dockhand.providers.docker_runtime import DockerRuntime
from dockhand.utils.logging import setup_logging


# Create Typer app
app = typer.Typer(
    name="dockhand",
    help="Dockhand - declarative, idempotent container lifecycle management",
    add_completion=False,
)

# Console for rich output
console = Console()

DEFAULT_MANIFEST = Path("compose.yml")


def parse_auth(auth: Optional[str], registry: Optional[str]) -> AuthConfig:
    """Parse ``user:password`` into registry credentials."""
    if not auth:
        return AuthConfig(registry=registry)
    username, sep, password = auth.partition(":")
    if not sep:
        raise typer.BadParameter("expected user:password", param_hint="--auth")
    return AuthConfig(username=username, password=password, registry=registry)


def print_report(report: RunReport, as_json: bool = False):
    """Print a run report as a table or as JSON."""
    if as_json:
        typer.echo(report.model_dump_json(indent=2))
        return

    if not report.changed:
        console.print("[green]Nothing changed[/green]")
        return

    table = Table(title="Changes")
    table.add_column("Change", style="cyan")
    table.add_column("Id")
    table.add_column("Name")
    for ref in report.removed:
        table.add_row("removed", ref.id[:12], ref.name)
    for ref in report.created:
        table.add_row("created", ref.id[:12], ref.name)
    for image in report.pulled:
        table.add_row("pulled", "", image)
    for image in report.cleaned:
        table.add_row("cleaned", "", image)
    console.print(table)


def _run_cli_command(
    verb: str,
    file: Optional[Path],
    config_values: dict,
    as_json: bool = False,
) -> Compose:
    """Helper to run an orchestrator verb with error handling."""
    try:
        config = ComposeConfig(**config_values)
        setup_logging(config.log_level)
        manifest = ManifestLoader(file).load() if file else None
        runtime = DockerRuntime(DockerRuntimeConfig(keep_images=config.keep_images, auth=config.auth))
        compose = Compose(manifest, runtime, config)
        getattr(compose, verb)()
    except (DockhandError, ValidationError, FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    print_report(compose.report(), as_json=as_json)
    return compose


FileOption = typer.Option(DEFAULT_MANIFEST, "--file", "-f", help="Path to the manifest")
DryOption = typer.Option(False, "--dry", "-d", help="Describe changes without applying them")
JsonOption = typer.Option(False, "--json", help="Print the run report as JSON")
LogLevelOption = typer.Option("INFO", "--log-level", "-l", help="Log level")
AuthOption = typer.Option(None, "--auth", "-a", help="Registry credentials, user:password")
RegistryOption = typer.Option(None, "--registry", help="Registry server address")
WaitOption = typer.Option(1.0, "--wait", "-w", help="Seconds to wait before force-stopping a container")
TierTimeoutOption = typer.Option(None, "--tier-timeout", help="Deadline in seconds for each tier of the plan")


@app.command("run")
def run_command(
    file: Path = FileOption,
    dry: bool = DryOption,
    attach: bool = typer.Option(False, "--attach", help="Stream container output after the run"),
    pull: bool = typer.Option(False, "--pull", help="Pull all images before the run"),
    rm: bool = typer.Option(False, "--rm", help="Remove every container of the manifest"),
    wait: float = WaitOption,
    tier_timeout: Optional[float] = TierTimeoutOption,
    auth: Optional[str] = AuthOption,
    registry: Optional[str] = RegistryOption,
    as_json: bool = JsonOption,
    log_level: str = LogLevelOption,
):
    """Converge running containers to the manifest."""
    _run_cli_command(
        "run",
        file,
        dict(
            dry_run=dry,
            attach=attach,
            pull=pull,
            remove=rm,
            wait=wait,
            tier_timeout=tier_timeout,
            auth=parse_auth(auth, registry),
            log_level=log_level,
        ),
        as_json=as_json,
    )


@app.command("plan")
def plan_command(
    file: Path = FileOption,
    rm: bool = typer.Option(False, "--rm", help="Plan the removal of every container"),
    log_level: str = LogLevelOption,
):
    """Show what a run would change."""
    compose = _run_cli_command(
        "run", file, dict(dry_run=True, remove=rm, log_level=log_level), as_json=False
    )
    for description in compose.plan.describe() if compose.plan else []:
        console.print(f"  {description}")


@app.command("recover")
def recover_command(
    dry: bool = DryOption,
    wait: float = WaitOption,
    tier_timeout: Optional[float] = TierTimeoutOption,
    as_json: bool = JsonOption,
    log_level: str = LogLevelOption,
):
    """Restore the recorded state of every managed container."""
    _run_cli_command(
        "recover",
        None,
        dict(dry_run=dry, recover=True, wait=wait, tier_timeout=tier_timeout, log_level=log_level),
        as_json=as_json,
    )


@app.command("pull")
def pull_command(
    file: Path = FileOption,
    auth: Optional[str] = AuthOption,
    registry: Optional[str] = RegistryOption,
    as_json: bool = JsonOption,
    log_level: str = LogLevelOption,
):
    """Pull every image of the manifest."""
    _run_cli_command(
        "pull", file, dict(auth=parse_auth(auth, registry), log_level=log_level), as_json=as_json
    )


@app.command("clean")
def clean_command(
    file: Path = FileOption,
    keep_images: int = typer.Option(5, "--keep", "-k", help="Number of newest tags to keep per image"),
    as_json: bool = JsonOption,
    log_level: str = LogLevelOption,
):
    """Remove old tags of the manifest's images."""
    _run_cli_command(
        "clean", file, dict(keep_images=keep_images, log_level=log_level), as_json=as_json
    )


def main():
    """Main entry point for CLI."""
    app()
