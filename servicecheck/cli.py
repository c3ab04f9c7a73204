"""
service-check - CLI Interface

Runs the service check loop, or a single pass, against a cluster.
"""

import logging
from typing import List, Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from . import __version__
from .config import (
    CHECK_INTERVAL_SECONDS, CONFIGMAP_NAME, CONFIGMAP_NAMESPACE,
    KUBECONFIG, LOAD_FAILURE_POLICY, LOG_LEVEL,
)
from .exceptions import BootstrapError, ConfigError
from .health import (
    LoadFailurePolicy, PassResult, Remediator, ServiceCheck,
    ServiceCheckLoader, ServiceCheckScheduler, ServiceChecker, parse_services,
)
from .kube import create_core_v1


console = Console()
logger = logging.getLogger(__name__)


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
        force=True,
    )


def _build_scheduler(
    kubeconfig: Optional[str],
    configmap_name: str,
    configmap_namespace: str,
    interval: float,
    on_load_failure: str,
    dry_run: bool,
) -> ServiceCheckScheduler:
    core_v1 = create_core_v1(kubeconfig)
    logger.info(f"Reading configmap from: {configmap_name}.{configmap_namespace}")
    
    loader = ServiceCheckLoader(core_v1, namespace=configmap_namespace, name=configmap_name)
    checker = ServiceChecker(remediator=Remediator(core_v1, dry_run=dry_run))
    return ServiceCheckScheduler(
        loader,
        checker,
        interval_seconds=interval,
        failure_policy=LoadFailurePolicy(on_load_failure),
    )


def _checks_table(checks: List[ServiceCheck]) -> Table:
    table = Table(title="Service Checks")
    table.add_column("Name", style="cyan")
    table.add_column("Namespace")
    table.add_column("Endpoint")
    table.add_column("Port", justify="right")
    table.add_column("Command", style="dim")
    for check in checks:
        table.add_row(check.name, check.namespace, check.endpoint, str(check.port), escape(check.command))
    return table


def _pass_table(result: PassResult) -> Table:
    table = Table(title=f"Pass {result.tick}")
    table.add_column("Service", style="cyan")
    table.add_column("Status")
    table.add_column("Remediation")
    for outcome in result.outcomes:
        status = "[green]healthy[/green]" if outcome.healthy else f"[red]{outcome.probe.status.value}[/red]"
        remediation = ""
        if outcome.remediation:
            if outcome.remediation.dry_run:
                remediation = "[yellow]dry-run[/yellow]"
            elif outcome.remediation.deleted:
                remediation = "deleted"
            else:
                remediation = f"[red]failed: {escape(outcome.remediation.error or '')}[/red]"
        table.add_row(escape(outcome.check.slug), status, remediation)
    return table


_cluster_options = [
    click.option("--kubeconfig", default=KUBECONFIG, help="Kubeconfig path (in-cluster credentials if unset)"),
    click.option("--configmap-name", default=CONFIGMAP_NAME, show_default=True, help="ConfigMap holding services.yaml"),
    click.option("--configmap-namespace", default=CONFIGMAP_NAMESPACE, show_default=True, help="ConfigMap namespace"),
    click.option(
        "--on-load-failure",
        type=click.Choice([p.value for p in LoadFailurePolicy], case_sensitive=False),
        default=LOAD_FAILURE_POLICY,
        show_default=True,
        help="Abort the process or skip the tick when the config cannot be loaded",
    ),
    click.option("--dry-run", is_flag=True, help="Log deletions instead of performing them"),
]


def cluster_options(fn):
    for option in reversed(_cluster_options):
        fn = option(fn)
    return fn


@click.group()
@click.version_option(version=__version__)
@click.option("--log-level", default=LOG_LEVEL, show_default=True, help="Logging level")
def cli(log_level: str):
    """service-check - delete the Service of any endpoint that fails its health probe."""
    setup_logging(log_level)


@cli.command()
@cluster_options
@click.option("--interval", type=float, default=CHECK_INTERVAL_SECONDS, show_default=True, help="Seconds between passes")
@click.option("--run-immediately", is_flag=True, help="Run the first pass without waiting one interval")
def run(kubeconfig, configmap_name, configmap_namespace, on_load_failure, dry_run, interval, run_immediately):
    """Poll, check and remediate forever."""
    try:
        scheduler = _build_scheduler(
            kubeconfig, configmap_name, configmap_namespace, interval, on_load_failure, dry_run
        )
        scheduler.run_forever(run_immediately=run_immediately)
    except BootstrapError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)
    except ConfigError as e:
        console.print(f"[red]Error loading service checks: {e}[/red]")
        raise SystemExit(1)
    except KeyboardInterrupt:
        console.print("\n[dim]Interrupted.[/dim]")


@cli.command()
@cluster_options
def once(kubeconfig, configmap_name, configmap_namespace, on_load_failure, dry_run):
    """Run a single pass and print a summary."""
    try:
        scheduler = _build_scheduler(
            kubeconfig, configmap_name, configmap_namespace, CHECK_INTERVAL_SECONDS, on_load_failure, dry_run
        )
        result = scheduler.run_pass()
    except BootstrapError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)
    except ConfigError as e:
        console.print(f"[red]Error loading service checks: {e}[/red]")
        raise SystemExit(1)
    
    if result.load_error:
        console.print(f"[yellow]Pass skipped: {result.load_error}[/yellow]")
        return
    
    console.print(_pass_table(result))
    console.print(
        f"{result.healthy_count}/{len(result.outcomes)} healthy, "
        f"{result.remediated_count} remediated, "
        f"{result.remediation_failed_count} remediation failures"
    )


@cli.command("show-config")
@click.option("--file", "file_path", type=click.Path(exists=True, dir_okay=False), help="Read services YAML from a local file")
@click.option("--kubeconfig", default=KUBECONFIG, help="Kubeconfig path (in-cluster credentials if unset)")
@click.option("--configmap-name", default=CONFIGMAP_NAME, show_default=True)
@click.option("--configmap-namespace", default=CONFIGMAP_NAMESPACE, show_default=True)
def show_config(file_path, kubeconfig, configmap_name, configmap_namespace):
    """Print the service checks with defaults applied."""
    try:
        if file_path:
            with open(file_path, "r") as f:
                checks = parse_services(f.read())
        else:
            core_v1 = create_core_v1(kubeconfig)
            checks = ServiceCheckLoader(
                core_v1, namespace=configmap_namespace, name=configmap_name
            ).load()
    except (BootstrapError, ConfigError) as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)
    
    console.print(_checks_table(checks))


def main():
    """Entry point."""
    cli()


if __name__ == "__main__":
    main()
