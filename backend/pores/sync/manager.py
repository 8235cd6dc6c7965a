# Overview: Pushes offline sales and credits to the server and refreshes local caches.

"""
Sync Manager

Replays queued work against the PORES API once the client is back online.

- Sales and credits are sent oldest first (by local id).
- A 2xx response marks the local record synced with the server's id.
  Each record is marked in its own commit, so a crash mid-run never
  resends what the server already accepted.
- Any other response, or a transport error, leaves the record queued for
  the next run.
- Only one full sync runs at a time; an overlapping call is skipped.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import asdict, dataclass
from typing import Callable, Optional

import httpx

from pores.time_utils import epoch_ms

from .store import OfflineStore

logger = logging.getLogger(__name__)

DEFAULT_SYNC_DELAY = 5.0


def _json_object(resp: httpx.Response) -> dict:
    """Response body as a dict; {} when it is not a JSON object."""
    try:
        body = resp.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _json_list(resp: httpx.Response) -> Optional[list]:
    try:
        body = resp.json()
    except ValueError:
        return None
    return body if isinstance(body, list) else None


@dataclass
class SyncResult:
    skipped: Optional[str] = None
    sales_synced: int = 0
    sales_failed: int = 0
    credits_synced: int = 0
    credits_failed: int = 0
    pending_sales: int = 0
    pending_credits: int = 0
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


class SyncManager:
    def __init__(
        self,
        store: OfflineStore,
        client: httpx.Client,
        store_id: int,
        token: Optional[str] = None,
        *,
        online: bool = True,
    ):
        self.store = store
        self.client = client
        self.store_id = int(store_id)
        self.token = token

        self._online = online
        self._sync_lock = threading.Lock()
        self._listeners: list[Callable[[bool], None]] = []
        self._timer: Optional[threading.Timer] = None
        self._timer_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Connectivity
    # ------------------------------------------------------------------

    @property
    def is_online(self) -> bool:
        return self._online

    def set_online(self, online: bool) -> Optional[SyncResult]:
        """
        Record a connectivity change.

        Listeners hear every change. Coming back online triggers a full sync,
        whose result is returned.
        """
        was_online = self._online
        self._online = bool(online)
        if was_online == self._online:
            return None

        logger.info("Network status changed: %s", "online" if self._online else "offline")
        for listener in list(self._listeners):
            listener(self._online)

        if self._online:
            return self.perform_full_sync()
        return None

    def on_network_change(self, callback: Callable[[bool], None]) -> Callable[[], None]:
        """Register a listener. Returns a callable that unsubscribes it."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    def _headers(self) -> dict:
        headers = {"x-store-id": str(self.store_id)}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    # ------------------------------------------------------------------
    # Pushing queued work
    # ------------------------------------------------------------------

    def sync_sales(self) -> tuple[int, int]:
        """Push unsynced sales. Returns (synced, failed)."""
        synced = failed = 0
        for sale in self.store.unsynced_sales():
            try:
                resp = self.client.post("/api/sales", json=sale.to_payload(), headers=self._headers())
            except httpx.HTTPError as e:
                logger.warning("Sale %s not synced: %s", sale.id, e)
                failed += 1
                continue

            if not resp.is_success:
                logger.warning("Sale %s rejected: HTTP %s %s", sale.id, resp.status_code, resp.text[:200])
                failed += 1
                continue

            sale_body = _json_object(resp).get("sale")
            server_id = sale_body.get("id") if isinstance(sale_body, dict) else None
            self.store.mark_sale_synced(sale.id, server_id)
            synced += 1
        return synced, failed

    def sync_credits(self) -> tuple[int, int]:
        """Push unsynced credits. Returns (synced, failed)."""
        synced = failed = 0
        for credit in self.store.unsynced_credits():
            try:
                resp = self.client.post("/api/credits", json=credit.to_payload(), headers=self._headers())
            except httpx.HTTPError as e:
                logger.warning("Credit %s not synced: %s", credit.id, e)
                failed += 1
                continue

            if not resp.is_success:
                logger.warning("Credit %s rejected: HTTP %s %s", credit.id, resp.status_code, resp.text[:200])
                failed += 1
                continue

            self.store.mark_credit_synced(credit.id, _json_object(resp).get("id"))
            synced += 1
        return synced, failed

    def perform_full_sync(self) -> SyncResult:
        if not self._online:
            return SyncResult(skipped="offline")
        if not self._sync_lock.acquire(blocking=False):
            logger.info("Sync already in progress; skipping")
            return SyncResult(skipped="in_progress")

        result = SyncResult()
        try:
            try:
                result.sales_synced, result.sales_failed = self.sync_sales()
                result.credits_synced, result.credits_failed = self.sync_credits()
            except Exception as e:
                # Unexpected failures are recorded in sync_state for the UI
                logger.exception("Sync failed")
                result.error = str(e)

            pending_sales, pending_credits = self.store.pending_counts()
            result.pending_sales = pending_sales
            result.pending_credits = pending_credits
            self.store.update_sync_state(
                last_sync_time=epoch_ms(),
                pending_sales=pending_sales,
                pending_credits=pending_credits,
                last_error=result.error,
            )
        finally:
            self._sync_lock.release()

        logger.info(
            "Sync complete: sales %s ok / %s failed, credits %s ok / %s failed, pending %s/%s",
            result.sales_synced, result.sales_failed,
            result.credits_synced, result.credits_failed,
            result.pending_sales, result.pending_credits,
        )
        return result

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def schedule_sync(self, delay: float = DEFAULT_SYNC_DELAY) -> None:
        """Run a full sync after `delay` seconds, replacing any pending run."""
        with self._timer_lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(delay, self._run_scheduled)
            self._timer.daemon = True
            self._timer.start()

    def cancel_scheduled_sync(self) -> None:
        with self._timer_lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def _run_scheduled(self) -> None:
        with self._timer_lock:
            self._timer = None
        if self._online:
            self.perform_full_sync()

    # ------------------------------------------------------------------
    # Caches
    # ------------------------------------------------------------------

    def sync_workers_from_server(self) -> int:
        """Replace the worker cache from GET /api/workers. Returns the count, or -1 on failure."""
        if not self._online:
            return -1
        try:
            resp = self.client.get("/api/workers", headers=self._headers())
        except httpx.HTTPError as e:
            logger.warning("Worker refresh failed: %s", e)
            return -1
        if not resp.is_success:
            logger.warning("Worker refresh rejected: HTTP %s", resp.status_code)
            return -1
        workers = _json_list(resp)
        if workers is None:
            logger.warning("Worker refresh returned an unreadable body")
            return -1
        return self.store.cache_workers(workers)

    def refresh_product_cache(self) -> int:
        """
        Replace the product cache, zero-stock items included.

        The products endpoint needs a store token; without one the cache is
        left as is. Returns the count, or -1 when nothing was refreshed.
        """
        if not self._online:
            return -1
        if not self.token:
            logger.info("No store token; product cache not refreshed")
            return -1
        try:
            resp = self.client.get(
                "/api/products",
                params={"include_zero_stock": "true"},
                headers=self._headers(),
            )
        except httpx.HTTPError as e:
            logger.warning("Product refresh failed: %s", e)
            return -1
        if not resp.is_success:
            logger.warning("Product refresh rejected: HTTP %s", resp.status_code)
            return -1
        products = _json_list(resp)
        if products is None:
            logger.warning("Product refresh returned an unreadable body")
            return -1
        return self.store.cache_products(products)

    def get_sync_status(self) -> dict:
        status = self.store.get_sync_state()
        pending_sales, pending_credits = self.store.pending_counts()
        status.update(
            pending_sales=pending_sales,
            pending_credits=pending_credits,
            is_online=self._online,
            is_syncing=self._sync_lock.locked(),
        )
        return status
