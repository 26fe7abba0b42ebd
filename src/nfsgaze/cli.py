"""Command-line interface for nfsgaze."""

import json
import logging
import signal
import sys
from dataclasses import asdict
from typing import Any, Dict, Optional

import click

from nfsgaze import __version__
from nfsgaze.display import format_iostat, format_simple
from nfsgaze.mountstats import DEFAULT_MOUNTSTATS_PATH, MountstatsParseError, parse_file
from nfsgaze.orchestration import MonitorError, MountMonitor, MountNotFoundError
from nfsgaze.utils.config_validator import (
    ConfigurationError,
    load_config_file,
    validate_and_fix_config,
)

# Configure logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)


def _build_config(
    config_file: Optional[str],
    overrides: Dict[str, Any],
    metrics_overrides: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Load the configuration file (if any) and apply command-line overrides."""
    config = load_config_file(config_file) if config_file else {}
    for section, section_overrides in (("monitor", overrides), ("metrics_config", metrics_overrides)):
        if section_overrides is None:
            continue
        values = dict(config.get(section) or {})
        for key, value in section_overrides.items():
            if value is not None:
                values[key] = value
        config[section] = values
    return config


@click.group()
@click.version_option(version=__version__, prog_name="nfsgaze")
def cli():
    """nfsgaze: NFS client I/O statistics from /proc/self/mountstats."""
    pass


@cli.command()
@click.argument("mount_point", required=False)
@click.option("--interval", "-i", type=float, default=None, help="Update interval in seconds")
@click.option("--count", "-c", type=int, default=None, help="Number of updates (0 = until interrupted)")
@click.option("--ops", "operations", default=None, help="Comma-separated list of operations to show")
@click.option("--attr", "show_attr", is_flag=True, help="Show attribute cache statistics")
@click.option("--bw", "show_bandwidth", is_flag=True, help="Show bandwidth columns")
@click.option("--iostat", "iostat_format", is_flag=True, help="nfsiostat-style output")
@click.option("--clear", "clear_screen", is_flag=True, help="Clear the screen between updates")
@click.option(
    "--file", "-f", "mountstats_path", default=None,
    help=f"Path to the mountstats file (default {DEFAULT_MOUNTSTATS_PATH})"
)
@click.option("--prometheus-port", type=int, default=None,
              help="Serve Prometheus metrics on this port")
@click.option("--config", "config_file", type=click.Path(exists=True), default=None,
              help="YAML or JSON monitor configuration")
@click.option(
    "--log-level", "-l",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    default="WARNING",
    help="Logging level"
)
def monitor(mount_point, interval, count, operations, show_attr, show_bandwidth,
            iostat_format, clear_screen, mountstats_path, prometheus_port, config_file, log_level):
    """Monitor NFS operation rates and latencies."""
    logging.getLogger().setLevel(getattr(logging, log_level))

    overrides = {
        "mount_point": mount_point,
        "interval_s": interval,
        "count": count,
        "operations": operations,
        "mountstats_path": mountstats_path,
        "show_attr": show_attr or None,
        "show_bandwidth": show_bandwidth or None,
        "iostat_format": iostat_format or None,
    }
    metrics_overrides = {
        "enable_prometheus": True if prometheus_port is not None else None,
        "prometheus_port": prometheus_port,
    }

    try:
        config = _build_config(config_file, overrides, metrics_overrides)
    except Exception as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        sys.exit(1)

    try:
        mount_monitor = MountMonitor(config)
        mounts = mount_monitor.start()
    except (ConfigurationError, MonitorError, MountNotFoundError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    settings = mount_monitor.config["monitor"]
    iostat = settings["iostat_format"]
    bandwidth = settings["show_bandwidth"]

    if iostat:
        for report in mount_monitor.initial_report().values():
            if report.deltas:
                click.echo(format_iostat(report.mount, report.deltas))
    else:
        for mount in mounts.values():
            click.echo(f"Monitoring NFS mount: {mount.mount_point} ({mount.device})")
        click.echo(f"Update interval: {mount_monitor.interval_s}s")
        if mount_monitor.serve_prometheus:
            click.echo(f"Prometheus metrics: http://localhost:{mount_monitor.prometheus_port}/metrics")
        if mount_monitor.operations:
            click.echo(f"Filtering operations: {','.join(sorted(mount_monitor.operations))}")

    def on_interval(reports):
        if clear_screen and not iostat:
            click.clear()
        for report in reports.values():
            if iostat:
                click.echo(format_iostat(report.mount, report.deltas, report.attr_cache))
            elif report.deltas:
                click.echo(format_simple(report.mount, report.deltas, bandwidth))

    def handle_signal(signum, frame):
        click.echo("\nCaught signal, exiting...")
        mount_monitor.stop()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    mount_monitor.run(on_interval)


@cli.command()
@click.option("--file", "-f", "mountstats_path", default=DEFAULT_MOUNTSTATS_PATH,
              help="Path to the mountstats file")
@click.option("--json", "as_json", is_flag=True, help="Print the snapshot as JSON")
def snapshot(mountstats_path: str, as_json: bool):
    """Parse the mountstats file once and print what was found."""
    try:
        mounts = parse_file(mountstats_path)
    except (OSError, MountstatsParseError) as e:
        click.echo(f"Error reading mountstats: {e}", err=True)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps({mp: asdict(m) for mp, m in mounts.items()}, indent=2))
        return

    if not mounts:
        click.echo("No NFS mounts found")
        return

    for mp, mount in sorted(mounts.items()):
        click.echo(f"{mount.device} mounted on {mp}")
        click.echo(f"  age: {mount.age}s  read: {mount.bytes_read}  written: {mount.bytes_write}")
        active = sorted(name for name, op in mount.operations.items() if op.ops > 0)
        click.echo(f"  operations: {len(mount.operations)} ({len(active)} active)")


@cli.command()
@click.argument("config_file", type=click.Path(exists=True))
def validate(config_file: str):
    """Validate a monitor configuration file."""
    click.echo(f"Validating configuration: {config_file}")

    try:
        is_valid, errors, _ = validate_and_fix_config(config_file)
    except Exception as e:
        click.echo(click.style(f"Error validating configuration: {e}", fg="red"))
        sys.exit(1)

    if is_valid:
        click.echo(click.style("✓ Configuration is valid", fg="green"))
    else:
        click.echo(click.style(f"✗ Configuration has {len(errors)} errors:", fg="red"))
        for i, error in enumerate(errors[:20], 1):
            click.echo(f"  {i}. {error}")

    sys.exit(0 if is_valid else 1)


if __name__ == "__main__":
    cli()
