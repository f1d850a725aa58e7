#!/usr/bin/env python3
"""Farm Monitor - CLI Entry Point."""
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

import click
from rich.console import Console
from rich.table import Table

from __version__ import __version__

console = Console()

SEVERITY_STYLES = {
    "critical": "bold white on red",
    "high": "bold red",
    "medium": "yellow",
    "low": "blue",
}
STATUS_STYLES = {"active": "red", "acknowledged": "yellow", "resolved": "green"}


def build_components(config, console=None, sync_dispatch=False):
    """Wire thresholds, rules, lifecycle, dispatch and the ingestion pipeline from config."""
    from concurrent.futures import ThreadPoolExecutor
    from alerts.thresholds import ThresholdManager
    from alerts.rules_manager import RulesManager
    from alerts.lifecycle import AlertLifecycleManager
    from alerts.dispatch import NotificationDispatcher
    from alerts.channels import build_channel_handlers
    from alerts.engine import AlertEngine
    from monitor.pipeline import FarmMonitor

    thresholds = ThresholdManager(
        config["thresholds"]["path"],
        policy=config["thresholds"].get("tolerance_policy", "strict"),
    )
    known_sensors = None
    if config["alerts"].get("validate_sensors", True) and thresholds.get_all():
        known_sensors = thresholds.sensor_keys()
    rules = RulesManager(config["alerts"]["rules_path"], known_sensors=known_sensors)

    workers = config["alerts"].get("dispatch_workers", 0)
    executor = None
    if workers and not sync_dispatch:
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="dispatch")
    dispatcher = NotificationDispatcher(build_channel_handlers(config, console=console), executor)

    units = {}
    for t in thresholds.get_all():
        units[t.id] = t.unit
        units[t.name] = t.unit

    lifecycle = AlertLifecycleManager()
    alert_engine = AlertEngine(rules, lifecycle, dispatcher, units=units)
    monitor = FarmMonitor(thresholds, alert_engine)

    return {
        "config": config, "thresholds": thresholds, "rules": rules,
        "lifecycle": lifecycle, "dispatcher": dispatcher,
        "alert_engine": alert_engine, "monitor": monitor,
    }


def _init_components(config_path=None, verbose=False):
    """Lazy initialization of all components."""
    from utils.logger import setup_logging
    from config import load_config

    config = load_config(config_path)
    setup_logging("DEBUG" if verbose else config["logging"].get("level", "INFO"),
                  config["logging"].get("file"))
    return build_components(config, console=console, sync_dispatch=True)


@click.group()
@click.option("--config", "config_path", default=None, help="Path to config YAML")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.version_option(__version__, prog_name="farm-monitor")
@click.pass_context
def cli(ctx, config_path, verbose):
    """Farm Monitor - sensor thresholds, alert rules & alert lifecycle."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose


def _get_components(ctx):
    from models.errors import ConfigurationError

    if "_components" not in ctx.obj:
        try:
            ctx.obj["_components"] = _init_components(ctx.obj.get("config_path"), ctx.obj.get("verbose"))
        except (ConfigurationError, ValueError) as e:
            console.print(f"[red]Configuration error:[/red] {e}")
            ctx.exit(2)
    return ctx.obj["_components"]


def _parse_value(value):
    try:
        return float(value)
    except ValueError:
        raise click.BadParameter(f"{value!r} is not a number", param_hint="VALUE")


def _severity(sev):
    style = SEVERITY_STYLES.get(sev, "")
    return f"[{style}]{sev}[/{style}]" if style else sev


# ──────────────────────────────────────────────────────
# CONFIGURATION VIEWS
# ──────────────────────────────────────────────────────
@cli.command()
@click.pass_context
def rules(ctx):
    """List all configured alert rules."""
    c = _get_components(ctx)
    table = Table(title="Alert Rules", show_header=True)
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("Condition")
    table.add_column("Severity")
    table.add_column("Cooldown")
    table.add_column("Channels")
    table.add_column("Enabled")
    for r in c["rules"].get_all_rules():
        channels = ", ".join(sorted(ch.value for ch in r.channels)) or "-"
        table.add_row(r.id, r.name, r.describe_condition(), _severity(r.severity.value),
                      f"{r.cooldown_minutes:g}m", channels,
                      "[green]✓[/green]" if r.enabled else "[red]✗[/red]")
    console.print(table)


@cli.command()
@click.pass_context
def thresholds(ctx):
    """List sensor target bands."""
    from utils.formatters import format_reading

    c = _get_components(ctx)
    policy = c["thresholds"].policy.value
    table = Table(title=f"Sensor Thresholds (tolerance policy: {policy})", show_header=True)
    table.add_column("ID", style="dim")
    table.add_column("Sensor")
    table.add_column("Target")
    table.add_column("Tolerance")
    table.add_column("Priority")
    table.add_column("Enabled")
    for t in c["thresholds"].get_all():
        table.add_row(t.id, t.name,
                      f"{format_reading(t.min, t.unit)} - {format_reading(t.max, t.unit)}",
                      f"±{format_reading(t.tolerance, t.unit)}", t.priority.value,
                      "[green]✓[/green]" if t.enabled else "[red]✗[/red]")
    console.print(table)


# ──────────────────────────────────────────────────────
# CLASSIFY / TEST
# ──────────────────────────────────────────────────────
@cli.command()
@click.argument("sensor")
@click.argument("value")
@click.pass_context
def classify(ctx, sensor, value):
    """Classify a single reading against its sensor band."""
    from models.alerts import Reading
    from utils.formatters import format_reading

    c = _get_components(ctx)
    status = c["thresholds"].classify_reading(Reading(sensor_key=sensor, value=_parse_value(value)))
    if status is None:
        console.print(f"[red]Unknown sensor:[/red] {sensor}")
        ctx.exit(1)
    color = "green" if status.classification.value == "optimal" else "yellow"
    console.print(f"{status.name}: {format_reading(status.value, status.unit)} "
                  f"[{color}]{status.classification.value.upper()}[/{color}]")


@cli.command("test")
@click.argument("sensor")
@click.argument("value")
@click.pass_context
def test_rules(ctx, sensor, value):
    """Show which rules a reading would fire (ignores cooldowns)."""
    from models.alerts import Reading

    c = _get_components(ctx)
    results = c["alert_engine"].test_rules(Reading(sensor_key=sensor, value=_parse_value(value)))

    table = Table(title="Alert Rules Test", show_header=True)
    table.add_column("Rule")
    table.add_column("Condition")
    table.add_column("Severity")
    table.add_column("Would Fire")
    table.add_column("Enabled")
    for r in results:
        fire_str = "[green]YES[/green]" if r["would_fire"] else "[dim]no[/dim]"
        table.add_row(r["name"], r["condition"], _severity(r["severity"]), fire_str,
                      "✓" if r["enabled"] else "✗")
    console.print(table)


# ──────────────────────────────────────────────────────
# REPLAY
# ──────────────────────────────────────────────────────
@cli.command()
@click.argument("readings_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--search", default=None, help="Filter listed alerts by rule name or sensor")
@click.option("--severity", default=None, type=click.Choice(["low", "medium", "high", "critical"]))
@click.option("--status", default=None, type=click.Choice(["active", "acknowledged", "resolved"]))
@click.option("--ack-by", default=None, help="Acknowledge every alert left active, as this operator")
@click.pass_context
def replay(ctx, readings_file, search, severity, status, ack_by):
    """Feed a JSON-lines file of readings through the alert pipeline."""
    from monitor.pipeline import load_readings
    from utils.formatters import format_timestamp

    c = _get_components(ctx)
    try:
        readings = load_readings(readings_file)
    except ValueError as e:
        console.print(f"[red]Bad readings file:[/red] {e}")
        ctx.exit(1)

    results = c["monitor"].ingest_many(readings)
    warnings = sum(1 for r in results if r.status and r.status.classification.value == "warning")
    fired = [e for r in results for e in r.events]
    console.print(f"Processed {len(readings)} reading(s): {warnings} outside target band, "
                  f"{len(fired)} alert(s) fired")

    if ack_by:
        active = c["lifecycle"].list(status="active")
        for e in active:
            c["lifecycle"].acknowledge(e.id, ack_by)
        console.print(f"Acknowledged {len(active)} alert(s) as {ack_by}")

    events = c["lifecycle"].list(search=search, severity=severity, status=status)
    if not events:
        console.print("[green]All clear - no alerts triggered[/green]")
        return

    table = Table(title="Alert Events", show_header=True)
    table.add_column("ID", style="dim")
    table.add_column("Time", style="dim")
    table.add_column("Rule")
    table.add_column("Severity")
    table.add_column("Status")
    table.add_column("Message")
    for e in events:
        st = STATUS_STYLES.get(e.status.value, "white")
        table.add_row(e.id, format_timestamp(e.timestamp), e.rule_name, _severity(e.severity.value),
                      f"[{st}]{e.status.value}[/{st}]", e.message)
    console.print(table)

    summary = c["lifecycle"].summary()
    console.print(" | ".join(f"{k}: {v}" for k, v in summary.items()))


# ──────────────────────────────────────────────────────
# WEB
# ──────────────────────────────────────────────────────
@cli.command()
@click.option("--port", default=None, type=int, help="Port to bind to")
@click.option("--host", default=None, type=str, help="Host to bind to")
@click.pass_context
def web(ctx, port, host):
    """Launch the JSON API."""
    from web.app import create_app

    c = _get_components(ctx)
    web_cfg = c["config"].get("web", {})
    host = host or web_cfg.get("host", "127.0.0.1")
    port = port or web_cfg.get("port", 5000)

    app = create_app(c["config"], c)
    console.print("\n[bold green]Farm Monitor -- API[/bold green]\n")
    console.print(f"  http://{host}:{port}/api/alerts")
    console.print("\n  Press Ctrl+C to stop.\n")
    app.run(host=host, port=port, debug=False)


if __name__ == "__main__":
    cli()
