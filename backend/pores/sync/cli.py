# Overview: Command-line entry point for pushing a terminal's offline queue.

# backend/pores/sync/cli.py
# Commands Legend:
# - pores-sync run --server http://localhost:5000 --store-id 1 [--token ...] [--db pores-offline.sqlite3]
#   Push queued sales/credits, then refresh the worker and product caches.
# - pores-sync status --db pores-offline.sqlite3
#   Show pending counts and the last sync result.

import logging

import click
import httpx

from .manager import SyncManager
from .store import OfflineStore


@click.group()
@click.option('--log-level', default='INFO', help='Logging level')
def main(log_level):
    """Offline sync for merchant terminals."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@main.command('run')
@click.option('--server', required=True, envvar='PORES_SERVER_URL', help='API base URL')
@click.option('--store-id', type=int, required=True, envvar='PORES_STORE_ID', help='Store ID')
@click.option('--token', default=None, envvar='PORES_STORE_TOKEN', help='Store token (needed for the product cache)')
@click.option('--db', 'db_path', default='pores-offline.sqlite3', show_default=True, help='Offline database path')
@click.option('--timeout', type=float, default=10.0, show_default=True, help='HTTP timeout in seconds')
def run_sync(server, store_id, token, db_path, timeout):
    """Push the offline queue and refresh local caches."""
    store = OfflineStore(db_path)
    try:
        with httpx.Client(base_url=server, timeout=timeout) as client:
            manager = SyncManager(store, client, store_id, token)
            result = manager.perform_full_sync()
            workers = manager.sync_workers_from_server()
            products = manager.refresh_product_cache()
    finally:
        store.close()

    click.echo(
        f"Sales: {result.sales_synced} synced, {result.sales_failed} failed | "
        f"Credits: {result.credits_synced} synced, {result.credits_failed} failed"
    )
    click.echo(f"Pending: {result.pending_sales} sales, {result.pending_credits} credits")
    if workers >= 0:
        click.echo(f"Workers cached: {workers}")
    if products >= 0:
        click.echo(f"Products cached: {products}")
    if result.error:
        raise click.ClickException(f"Sync error: {result.error}")


@main.command('status')
@click.option('--db', 'db_path', default='pores-offline.sqlite3', show_default=True, help='Offline database path')
def sync_status(db_path):
    """Show the local sync state."""
    store = OfflineStore(db_path)
    try:
        state = store.get_sync_state()
        pending_sales, pending_credits = store.pending_counts()
    finally:
        store.close()

    click.echo(f"Pending sales:   {pending_sales}")
    click.echo(f"Pending credits: {pending_credits}")
    click.echo(f"Last sync (ms):  {state['last_sync_time'] or 'never'}")
    if state["last_error"]:
        click.echo(f"Last error:      {state['last_error']}")
