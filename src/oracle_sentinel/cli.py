"""Click-based CLI for oracle-sentinel.

Thin wrapper around library modules. Every command opens a ``Sentinel``,
delegates to it, and renders the result with rich.
"""

from __future__ import annotations

import asyncio
import json

import click
from rich.console import Console
from rich.table import Table

console = Console(stderr=True)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run_async(coro):
    """Run an async coroutine from synchronous Click code."""
    return asyncio.run(coro)


def _load_config(ctx: click.Context):
    """Load config lazily, caching on first call."""
    if "config" not in ctx.obj:
        from oracle_sentinel.core import load_config

        ctx.obj["config"] = load_config(config_path=ctx.obj.get("config_path"))
    return ctx.obj["config"]


def _open_sentinel(config):
    from oracle_sentinel.runtime import Sentinel

    return Sentinel(config)


def _resolve_oracle(value: str):
    from oracle_sentinel.core import OracleName

    try:
        return OracleName.parse(value)
    except ValueError:
        choices = ", ".join(o.value for o in OracleName)
        raise click.BadParameter(f"Unknown oracle '{value}'. Choose from: {choices}")


def _format_price(value: float | None) -> str:
    if value is None:
        return "-"
    return f"${value:,.8g}"


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    envvar="ORACLE_SENTINEL_CONFIG",
    default=None,
    help="Path to oracle-sentinel.yml config file.",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Enable verbose output.",
)
@click.version_option(package_name="oracle-sentinel")
@click.pass_context
def cli(ctx: click.Context, config: str | None, verbose: bool) -> None:
    """Oracle Sentinel: multi-oracle crypto price alerts."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose
    ctx.obj["console"] = console
    if verbose:
        from oracle_sentinel.logging_setup import configure_logging

        configure_logging(verbose=True)


# ---------------------------------------------------------------------------
# check / record
# ---------------------------------------------------------------------------


@cli.command()
@click.pass_context
def check(ctx: click.Context) -> None:
    """Run one alert evaluation cycle."""
    config = _load_config(ctx)

    async def _run():
        async with _open_sentinel(config) as sentinel:
            return await sentinel.run_alert_cycle()

    report = _run_async(_run())
    if report is None or report.aborted:
        console.print("[red]Alert cycle aborted: could not load alerts.[/red]")
        raise SystemExit(1)

    console.print(
        f"[green]✓[/green] Checked {report.alerts_loaded} alerts: "
        f"{report.evaluated} evaluated, {report.skipped} skipped, "
        f"{report.triggered} triggered, {report.notifications_sent} notified"
        + (f" ({report.errors} errors)" if report.errors else "")
    )


@cli.command()
@click.pass_context
def record(ctx: click.Context) -> None:
    """Record one price history snapshot."""
    config = _load_config(ctx)

    async def _run():
        async with _open_sentinel(config) as sentinel:
            return await sentinel.run_history_cycle()

    snapshot = _run_async(_run())
    if snapshot is None:
        console.print("[red]Failed to record price history.[/red]")
        raise SystemExit(1)

    active = sum(snapshot.active_count(o) for o in snapshot.by_oracle)
    total = sum(len(records) for records in snapshot.by_oracle.values())
    console.print(
        f"[green]✓[/green] Recorded snapshot at {snapshot.taken_at.isoformat()} "
        f"({active}/{total} prices active)"
    )


# ---------------------------------------------------------------------------
# snapshot / price
# ---------------------------------------------------------------------------


@cli.command()
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["table", "json"], case_sensitive=False),
    default="table",
    help="Output format.",
)
@click.pass_context
def snapshot(ctx: click.Context, output_format: str) -> None:
    """Fetch a live snapshot from every oracle without storing it."""
    config = _load_config(ctx)

    async def _run():
        async with _open_sentinel(config) as sentinel:
            return await sentinel.aggregator.take_snapshot()

    snap = _run_async(_run())
    if output_format == "json":
        click.echo(json.dumps(snap.model_dump(mode="json"), indent=2, default=str))
    else:
        _output_snapshot_table(snap)


def _output_snapshot_table(snap) -> None:
    """Render a snapshot as a Rich table, one column per oracle."""
    oracles = list(snap.by_oracle)
    tickers = sorted({t for records in snap.by_oracle.values() for t in records})

    table = Table(title=f"Oracle Prices ({snap.taken_at:%Y-%m-%d %H:%M:%S} UTC)")
    table.add_column("Asset", style="bold")
    for oracle in oracles:
        table.add_column(str(oracle), justify="right")

    for ticker in tickers:
        row = [ticker]
        for oracle in oracles:
            rec = snap.get(oracle, ticker)
            if rec is None:
                row.append("")
            elif rec.ok:
                row.append(_format_price(rec.price))
            else:
                row.append("[dim]failed[/dim]")
        table.add_row(*row)

    console.print(table)


@cli.command()
@click.argument("oracle")
@click.argument("asset")
@click.pass_context
def price(ctx: click.Context, oracle: str, asset: str) -> None:
    """Fetch one live price, e.g. `price pyth BTC`."""
    name = _resolve_oracle(oracle)
    config = _load_config(ctx)

    async def _run():
        async with _open_sentinel(config) as sentinel:
            adapter = sentinel.adapters.get(name)
            if adapter is None:
                return None
            return await adapter.fetch_one(asset)

    rec = _run_async(_run())
    if rec is None:
        console.print(f"[red]{name} oracle is disabled in config.[/red]")
        raise SystemExit(1)
    if not rec.ok:
        console.print(f"[red]{rec.asset} ({rec.oracle}): {rec.error}[/red]")
        raise SystemExit(1)

    line = f"{rec.asset} ({rec.oracle}): {_format_price(rec.price)}"
    if rec.confidence is not None:
        line += f" ± {rec.confidence:,.6g}"
    click.echo(line)


# ---------------------------------------------------------------------------
# alerts
# ---------------------------------------------------------------------------


@cli.group()
def alerts() -> None:
    """Manage alert definitions."""


@alerts.command("add")
@click.option("--asset", "-a", required=True, help="Ticker, e.g. BTC.")
@click.option(
    "--type",
    "-t",
    "alert_type",
    type=click.Choice(["above", "below"], case_sensitive=False),
    required=True,
    help="Trigger when the price goes above or below the threshold.",
)
@click.option("--threshold", type=float, required=True, help="Price in USD.")
@click.option("--email", "-e", required=True, help="Notification address.")
@click.option("--oracle", "-o", default=None, help="Oracle to watch (default: Chainlink).")
@click.pass_context
def alerts_add(
    ctx: click.Context,
    asset: str,
    alert_type: str,
    threshold: float,
    email: str,
    oracle: str | None,
) -> None:
    """Store a new alert definition."""
    from pydantic import ValidationError

    from oracle_sentinel.core import AlertDefinition, AlertType

    name = _resolve_oracle(oracle) if oracle else None
    kind = AlertType.PRICE_ABOVE if alert_type.lower() == "above" else AlertType.PRICE_BELOW
    doc = {
        "asset": asset,
        "type": str(kind),
        "threshold": threshold,
        "notify": {"email": email},
    }
    if name is not None:
        doc["oracle"] = str(name)
    try:
        alert = AlertDefinition.model_validate({**doc, "id": "pending"})
    except ValidationError as e:
        raise click.BadParameter(str(e))
    doc["asset"] = alert.asset
    doc["oracle"] = str(alert.oracle)

    config = _load_config(ctx)

    async def _run():
        from oracle_sentinel.storage import create_store

        store = await create_store(config.storage)
        try:
            return await store.add_alert(doc)
        finally:
            await store.close()

    alert_id = _run_async(_run())
    console.print(
        f"[green]✓[/green] Created alert {alert_id}: {alert.asset} "
        f"{alert.type} {_format_price(alert.threshold)} ({alert.oracle})"
    )


@alerts.command("list")
@click.pass_context
def alerts_list(ctx: click.Context) -> None:
    """List stored alert definitions."""
    from pydantic import ValidationError

    config = _load_config(ctx)

    async def _run():
        from oracle_sentinel.storage import create_store

        store = await create_store(config.storage)
        try:
            return await store.list_alerts()
        finally:
            await store.close()

    docs = _run_async(_run())
    if not docs:
        console.print("[yellow]No alerts found.[/yellow]")
        return

    from oracle_sentinel.storage import parse_alert

    table = Table(title="Alerts")
    table.add_column("ID", style="bold")
    table.add_column("Asset")
    table.add_column("Oracle")
    table.add_column("Type")
    table.add_column("Threshold", justify="right")
    table.add_column("Email")

    for doc in docs:
        try:
            alert = parse_alert(doc)
        except ValidationError:
            table.add_row(doc.id, "[red]invalid[/red]", "", "", "", "")
            continue
        table.add_row(
            alert.id,
            alert.asset,
            str(alert.oracle),
            str(alert.type),
            _format_price(alert.threshold),
            alert.notify.email or "",
        )

    console.print(table)


# ---------------------------------------------------------------------------
# history
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--alert-id", default=None, help="History of one alert.")
@click.option("--oracle", "-o", default=None, help="Filter by oracle.")
@click.option("--asset", "-a", default=None, help="Filter by ticker.")
@click.option("--limit", "-n", type=int, default=None, help="Maximum entries.")
@click.pass_context
def history(
    ctx: click.Context,
    alert_id: str | None,
    oracle: str | None,
    asset: str | None,
    limit: int | None,
) -> None:
    """Show triggered alert history, newest first."""
    name = _resolve_oracle(oracle) if oracle else None
    config = _load_config(ctx)

    async def _run():
        from oracle_sentinel.storage import create_store

        store = await create_store(config.storage)
        try:
            if alert_id:
                return await store.get_alert_history(alert_id, limit=limit or 10)
            return await store.get_all_alert_history(
                oracle=name, asset=asset, limit=limit or 50
            )
        finally:
            await store.close()

    entries = _run_async(_run())
    if not entries:
        console.print("[yellow]No alert history found.[/yellow]")
        return

    table = Table(title="Alert History")
    table.add_column("Time")
    table.add_column("Alert", style="bold")
    table.add_column("Asset")
    table.add_column("Oracle")
    table.add_column("Type")
    table.add_column("Price", justify="right")
    table.add_column("Threshold", justify="right")

    for e in entries:
        table.add_row(
            e.triggered_at.strftime("%Y-%m-%d %H:%M:%S"),
            e.alert_id,
            e.asset,
            str(e.oracle),
            str(e.type),
            _format_price(e.price),
            _format_price(e.threshold),
        )

    console.print(table)


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------


@cli.command()
@click.pass_context
def run(ctx: click.Context) -> None:
    """Run the alert and price history jobs until interrupted."""
    from oracle_sentinel.logging_setup import configure_logging
    from oracle_sentinel.scheduler import run_forever

    configure_logging(verbose=ctx.obj["verbose"])
    config = _load_config(ctx)

    async def _run():
        async with _open_sentinel(config) as sentinel:
            await run_forever(sentinel, config.scheduler)

    console.print(
        f"Running oracle-sentinel: alerts every "
        f"[bold]{config.scheduler.alert_interval_seconds}s[/bold], "
        f"price history at minute [bold]{config.scheduler.history_minute:02d}[/bold]"
    )
    try:
        _run_async(_run())
    except KeyboardInterrupt:
        console.print("Stopped.")


# ---------------------------------------------------------------------------
# serve
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--host", type=str, default=None, help="Bind address (default from config).")
@click.option("--port", "-p", type=int, default=None, help="Port number (default from config).")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None) -> None:
    """Start the REST API server."""
    try:
        import uvicorn
    except ImportError:
        console.print(
            "[red]uvicorn not installed. Install with: "
            "pip install oracle-sentinel[api][/red]"
        )
        raise SystemExit(1)

    from oracle_sentinel.api.app import create_app
    from oracle_sentinel.logging_setup import configure_logging

    configure_logging(verbose=ctx.obj["verbose"])
    config = _load_config(ctx)
    host = host or config.api.host
    port = port or config.api.port

    console.print(f"Starting oracle-sentinel API on [bold]{host}:{port}[/bold]")
    console.print(f"API docs: http://{host}:{port}/docs")

    uvicorn.run(create_app(config), host=host, port=port)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
