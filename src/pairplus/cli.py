"""Typer CLI for PairPlus."""

import asyncio

import typer
from rich.console import Console

app = typer.Typer(name="pairplus", help="PairPlus: subscription entitlement sync for paired accounts")
console = Console()


async def _with_store(action):
    """Run ``action`` against the configured store, opening the DB if needed."""
    from pairplus.common.config import get_settings
    from pairplus.deps import get_db

    settings = get_settings()
    db = None
    if settings.store_backend == "sql":
        db = get_db()
        await db.init()
        await db.create_all()
    try:
        return await action()
    finally:
        if db is not None:
            await db.close()


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind host"),
    port: int = typer.Option(8080, help="Bind port"),
):
    """Start the PairPlus API server."""
    import uvicorn
    from pairplus.app import create_app
    from pairplus.common.config import get_settings
    from pairplus.common.logging import setup_logging

    setup_logging(get_settings().log_level)
    console.print(f"[bold green]Starting PairPlus on {host}:{port}[/bold green]")
    uvicorn.run(create_app(), host=host, port=port)


@app.command()
def reconcile(
    pair_id: str = typer.Argument(..., help="Pair document id"),
):
    """Recompute a pair's shared Plus state from its members."""
    from pairplus.deps import get_reconciler

    written = asyncio.run(_with_store(lambda: get_reconciler().reconcile(pair_id)))
    if written:
        console.print(f"[bold green]UPDATED[/bold green] — pair {pair_id} reconciled")
    else:
        console.print(f"[bold]UNCHANGED[/bold] — pair {pair_id} already consistent or missing")


@app.command("sync-user")
def sync_user(
    uid: str = typer.Argument(..., help="User document id"),
    plus: bool = typer.Option(..., "--plus/--no-plus", help="Entitlement flag to store"),
):
    """Set a user's Plus flag and reconcile their pair."""
    from pairplus.deps import get_sync_service

    asyncio.run(_with_store(lambda: get_sync_service().sync(uid, plus)))
    console.print(f"[bold green]SYNCED[/bold green] — {uid} isPlus={plus}")


@app.command()
def health(
    url: str = typer.Option("http://localhost:8080", help="Server URL"),
):
    """Check PairPlus server health."""
    import httpx

    try:
        resp = httpx.get(f"{url}/health", timeout=5)
        data = resp.json()
        console.print(f"[bold green]{data['status']}[/bold green] — v{data['version']}")
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
