"""CLI entrypoint for kube-resource-explorer."""

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as package_version
from pathlib import Path

import typer
from rich.console import Console

from kre.application import execute_historical, execute_resource_usage
from kre.config import ExplorerConfig, load_config
from kre.domain.duration import parse_duration
from kre.domain.records import MetricKind
from kre.infrastructure.cluster_inventory import KubectlInventory
from kre.infrastructure.log import configure_logging

app = typer.Typer(
    name="kre",
    help="Kubernetes container resource explorer",
    no_args_is_help=True,
    add_completion=False,
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)
console = Console()


def _resolve_version() -> str:
    """Return installed package version or local fallback."""
    try:
        return package_version("kube-resource-explorer")
    except PackageNotFoundError:
        return "0.1.0"


@app.callback()
def callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit.",
    ),
) -> None:
    """Handle global CLI options."""
    if version:
        console.print(f"kube-resource-explorer {_resolve_version()}")
        raise typer.Exit(code=0)
    if ctx.invoked_subcommand is None:
        raise typer.Exit(code=0)


def _handle_error(exc: Exception) -> None:
    """Convert domain exceptions to CLI exit codes."""
    if isinstance(exc, ValueError):
        console.print(f"[red]ERROR:[/red] {exc}")
        raise typer.Exit(code=1) from exc
    if isinstance(exc, RuntimeError):
        console.print(f"[red]ERROR:[/red] {exc}")
        raise typer.Exit(code=2) from exc
    raise exc


def _prepare(verbose: bool, kubeconfig: Path | None, **overrides) -> ExplorerConfig:
    config = load_config().with_overrides(kubeconfig=kubeconfig, **overrides)
    configure_logging("DEBUG" if verbose else config.log_level)
    return config


def _namespace(namespace: str, all_namespaces: bool) -> str | None:
    return None if all_namespaces else namespace


NAMESPACE_OPTION = typer.Option(
    "default", "--namespace", "-n", help="Namespace to report on."
)
ALL_NAMESPACES_OPTION = typer.Option(
    False, "--all-namespaces", "-A", help="Report on every namespace."
)
NODE_OPTION = typer.Option(
    None, "--node", help="Only include pods scheduled on this node."
)
REVERSE_OPTION = typer.Option(
    False, "--reverse", help="Sort descending instead of ascending."
)
CSV_OPTION = typer.Option(
    False, "--csv", help="Write the report to a CSV file instead of the terminal."
)
OUTPUT_DIR_OPTION = typer.Option(
    Path("."), "--output-dir", help="Directory for CSV output."
)
KUBECONFIG_OPTION = typer.Option(
    None, "--kubeconfig", help="Path to kubeconfig (defaults to KUBECONFIG)."
)
VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Enable debug logging.")


@app.command("resources")
def resources_command(
    namespace: str = NAMESPACE_OPTION,
    all_namespaces: bool = ALL_NAMESPACES_OPTION,
    node: str | None = NODE_OPTION,
    sort: str = typer.Option(
        "CpuReq",
        "--sort",
        help="Field to sort by (e.g. CpuReq, MemLimit, PercentCpuReq, Name).",
    ),
    reverse: bool = REVERSE_OPTION,
    csv: bool = CSV_OPTION,
    output_dir: Path = OUTPUT_DIR_OPTION,
    kubeconfig: Path | None = KUBECONFIG_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Show container requests and limits against node capacity."""
    try:
        config = _prepare(verbose, kubeconfig)
        execute_resource_usage(
            KubectlInventory(config.kubeconfig),
            namespace=_namespace(namespace, all_namespaces),
            node=node,
            sort_field=sort,
            reverse=reverse,
            csv_dir=output_dir if csv else None,
            console=console,
        )
    except (ValueError, RuntimeError) as exc:  # pragma: no cover
        _handle_error(exc)


@app.command("historical")
def historical_command(
    cpu: bool = typer.Option(False, "--cpu", help="Summarize CPU usage."),
    mem: bool = typer.Option(False, "--mem", help="Summarize memory usage."),
    duration: str = typer.Option(
        "4h",
        "--duration",
        "-d",
        help="Look-back window, e.g. 30m, 4h, 1h30m.",
    ),
    namespace: str = NAMESPACE_OPTION,
    all_namespaces: bool = ALL_NAMESPACES_OPTION,
    node: str | None = NODE_OPTION,
    sort: str = typer.Option(
        "Max",
        "--sort",
        help="Field to sort by (e.g. Max, Min, Avg, Mode, Last, PodName).",
    ),
    reverse: bool = REVERSE_OPTION,
    workers: int | None = typer.Option(
        None,
        "--workers",
        help="Concurrent metric requests (defaults to KRE_WORKERS or 5).",
    ),
    prometheus_url: str | None = typer.Option(
        None,
        "--prometheus-url",
        help="Prometheus base URL (defaults to PROMETHEUS_URL).",
    ),
    csv: bool = CSV_OPTION,
    output_dir: Path = OUTPUT_DIR_OPTION,
    kubeconfig: Path | None = KUBECONFIG_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Summarize historical CPU or memory usage per container."""
    try:
        if cpu == mem:
            raise ValueError("choose exactly one of --cpu or --mem")
        window = parse_duration(duration)
        config = _prepare(
            verbose, kubeconfig, prometheus_url=prometheus_url, workers=workers
        )
        execute_historical(
            config,
            kind=MetricKind.CPU if cpu else MetricKind.MEMORY,
            window=window,
            namespace=_namespace(namespace, all_namespaces),
            node=node,
            sort_field=sort,
            reverse=reverse,
            csv_dir=output_dir if csv else None,
            console=console,
        )
    except (ValueError, RuntimeError) as exc:  # pragma: no cover
        _handle_error(exc)


def main() -> None:
    """Project entrypoint for `kre` script."""
    app()


if __name__ == "__main__":
    main()
