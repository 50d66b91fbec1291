"""Refresh engine -- fetch, apply or fall back, then re-arm on a timer.

State machine per cycle:

    IDLE -> FETCHING -> APPLIED      fetch succeeded, price written and cached
                     -> FALLEN_BACK  fetch failed, cache consulted
                     -> UNCHANGED    cycle skipped, another one still in flight

The startup cycle runs immediately. Periodic ticks are armed once, after
startup, at a fixed rate of config.update_interval seconds. Each tick runs in
its own task so a slow or failing cycle never delays or cancels later ticks;
a tick that lands while the previous cycle is still running is skipped.
"""

import asyncio

from livebtc.context import SyncContext
from livebtc.models import CycleOutcome, CycleReport, EngineState, FetchFailure, FetchResult


def format_delta(delta: int | float) -> str:
    """Render a price change with an explicit sign for increases."""
    return f"+{delta}" if delta > 0 else str(delta)


class RefreshEngine:
    """Keeps the tracked item's price in sync with the remote API.

    Args:
        context: Item, config, logger, cache and fetcher for this process.
    """

    def __init__(self, context: SyncContext) -> None:
        self._ctx = context
        self._state = EngineState.IDLE
        self._cycle_lock = asyncio.Lock()
        self._tick_task: asyncio.Task | None = None  # type: ignore[type-arg]
        self._cycle_tasks: set[asyncio.Task] = set()  # type: ignore[type-arg]
        self._last_report: CycleReport | None = None

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def last_report(self) -> CycleReport | None:
        return self._last_report

    @property
    def is_scheduled(self) -> bool:
        return self._tick_task is not None

    # ──────────────────────────────────────────────
    # Lifecycle
    # ──────────────────────────────────────────────

    async def start(self) -> CycleReport:
        """Run the startup cycle, then arm periodic updates if enabled.

        The first fetch never waits for a timer tick. On failure the cache
        fallback completes before the schedule is armed.
        """
        ctx = self._ctx
        ctx.logger.info("live_price_sync_initialized", item_id=ctx.item.id, game_mode="pve")
        ctx.logger.info("current_price", price=ctx.item.price)
        ctx.logger.info("startup_fetch_starting")

        report = await self.run_cycle()
        if report.outcome is CycleOutcome.APPLIED:
            ctx.logger.info("startup_price_updated", price=ctx.item.price)
        else:
            ctx.logger.warn("startup_fetch_failed", price=ctx.item.price)

        if ctx.config.enable_periodic_updates:
            self.schedule()
        return report

    def schedule(self) -> None:
        """Arm the periodic tick loop. Only the first call has any effect."""
        if self._tick_task is not None:
            return
        interval = self._ctx.config.update_interval
        self._tick_task = asyncio.create_task(self._tick_loop(interval))
        self._ctx.logger.info("updates_scheduled", every_minutes=interval / 60)

    async def stop(self) -> None:
        """Cancel the tick loop and any cycle still in flight."""
        tasks = list(self._cycle_tasks)
        if self._tick_task is not None:
            tasks.append(self._tick_task)
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tick_task = None
        self._cycle_tasks.clear()
        self._state = EngineState.IDLE

    # ──────────────────────────────────────────────
    # Cycle
    # ──────────────────────────────────────────────

    async def run_cycle(self) -> CycleReport:
        """Run one fetch -> apply-or-fallback cycle.

        Returns an UNCHANGED report without fetching if another cycle holds
        the lock.
        """
        item = self._ctx.item
        if self._cycle_lock.locked():
            self._ctx.logger.warn("refresh_cycle_skipped", reason="previous_cycle_in_flight")
            return self._finish(
                CycleReport(CycleOutcome.UNCHANGED, item.price, item.price),
                EngineState.UNCHANGED,
            )

        async with self._cycle_lock:
            self._state = EngineState.FETCHING
            try:
                result = await self._ctx.fetcher.fetch_price()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self._ctx.logger.error("refresh_cycle_error", error=str(e) or type(e).__name__)
                result = FetchResult.failed(FetchFailure.NETWORK, str(e) or type(e).__name__)
            if result.ok:
                return self.apply_price(result)
            return self.fall_back(result)

    def apply_price(self, result: FetchResult) -> CycleReport:
        """Write a fetched price into the item, log the delta and cache it."""
        ctx = self._ctx
        if result.price is None:
            return self.fall_back(result)
        old_price = ctx.item.price
        ctx.item.price = result.price
        delta = ctx.item.price - old_price
        ctx.logger.info(
            "price_applied",
            old=old_price,
            new=ctx.item.price,
            delta=format_delta(delta),
            currency="RUB",
        )
        ctx.cache.save(ctx.item.price)
        return self._finish(
            CycleReport(CycleOutcome.APPLIED, old_price, ctx.item.price, result),
            EngineState.APPLIED,
        )

    def fall_back(self, result: FetchResult | None = None) -> CycleReport:
        """Replace the live price with a valid cached one, if it differs."""
        ctx = self._ctx
        old_price = ctx.item.price
        cached = ctx.cache.load()

        if cached is not None and cached != old_price:
            ctx.item.price = cached
            ctx.logger.info("price_fallback_to_cache", old=old_price, new=cached, currency="RUB")
        elif cached is not None:
            ctx.logger.info("price_matches_cache", price=old_price)
        else:
            ctx.logger.warn("no_valid_cache_keeping_current_price", price=old_price)

        return self._finish(
            CycleReport(CycleOutcome.FALLEN_BACK, old_price, ctx.item.price, result),
            EngineState.FALLEN_BACK,
        )

    # ──────────────────────────────────────────────
    # Scheduling internals
    # ──────────────────────────────────────────────

    async def _tick_loop(self, interval: float) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time() + interval
        while True:
            await asyncio.sleep(max(0.0, next_tick - loop.time()))
            next_tick += interval
            task = asyncio.create_task(self._scheduled_cycle())
            self._cycle_tasks.add(task)
            task.add_done_callback(self._cycle_tasks.discard)

    async def _scheduled_cycle(self) -> None:
        logger = self._ctx.logger
        logger.info("scheduled_price_update_starting")
        try:
            report = await self.run_cycle()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("refresh_cycle_error", error=str(e))
            return
        if report.outcome is CycleOutcome.FALLEN_BACK:
            logger.info("scheduled_update_failed", price=report.new_price)

    def _finish(self, report: CycleReport, state: EngineState) -> CycleReport:
        self._last_report = report
        self._state = state
        return report
