"""
Resilient paginated fetcher.

Pulls every page of one logical resource (trades, activity, positions, ...)
from an offset-paginated upstream that rate-limits without documentation.

Flow per fetch:
1. Launch pages in index order, in parallel windows: page 0 alone, then one
   page wider after every window that came back full, up to the shared
   adaptive batch size
2. Stop launching once a short page (end of data) has been seen
3. On HTTP 429 shrink the batch and back off exponentially
4. Retry failed pages individually, then record them as missing
5. Reassemble pages by index, dropping anything past the terminal page

The fetcher never raises for upstream failures; it returns whatever it got
plus a completeness signal.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

from clients.polymarket import PageFunction, UpstreamError, UpstreamRateLimited
from config.settings import settings
from pnl.models import FetchResult

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass
class FetchThrottle:
    """
    Adaptive batch size and backoff, shared by every fetch in the process.

    Built once at startup and passed to the fetcher, so a 429 seen by one
    request slows down all concurrent requests against the same upstream.
    """
    min_batch_size: int = 5
    max_batch_size: int = 15
    shrink_factor: float = 0.7
    backoff_initial: float = 0.1
    backoff_max: float = 5.0
    growth_after: int = 3
    batch_size: int = 15
    backoff: float = 0.1
    clean_batches: int = 0
    rate_limited_total: int = 0

    @classmethod
    def from_settings(cls) -> "FetchThrottle":
        return cls(
            min_batch_size=settings.FETCH_MIN_BATCH_SIZE,
            max_batch_size=settings.FETCH_MAX_BATCH_SIZE,
            shrink_factor=settings.FETCH_BATCH_SHRINK_FACTOR,
            backoff_initial=settings.FETCH_BACKOFF_INITIAL_SECONDS,
            backoff_max=settings.FETCH_BACKOFF_MAX_SECONDS,
            growth_after=settings.FETCH_GROWTH_AFTER_CLEAN_BATCHES,
            batch_size=settings.FETCH_INITIAL_BATCH_SIZE,
            backoff=settings.FETCH_BACKOFF_INITIAL_SECONDS,
        )

    def on_rate_limited(self) -> float:
        """Shrink the batch, double the backoff; returns the delay to wait now."""
        delay = self.backoff
        previous = self.batch_size
        self.batch_size = max(self.min_batch_size, int(self.batch_size * self.shrink_factor))
        self.backoff = min(self.backoff * 2, self.backoff_max)
        self.clean_batches = 0
        self.rate_limited_total += 1
        if self.batch_size != previous:
            logger.warning(f"🐢 Rate limited: batch size {previous} → {self.batch_size}, backoff {self.backoff:.1f}s")
        return delay

    def on_clean_batch(self) -> None:
        self.clean_batches += 1
        if self.clean_batches < self.growth_after:
            return
        self.clean_batches = 0
        self.backoff = self.backoff_initial
        if self.batch_size < self.max_batch_size:
            self.batch_size += 1
            logger.debug(f"Throttle: batch size grown to {self.batch_size}")


@dataclass
class PageOutcome:
    index: int
    records: Optional[List[dict]] = None
    rate_limited: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.records is not None


@dataclass
class _FetchState:
    page_size: int
    pages: Dict[int, List[dict]] = field(default_factory=dict)
    terminal: Optional[int] = None
    missing: List[int] = field(default_factory=list)
    fetched: int = 0
    rate_limited: int = 0

    def record(self, outcome: PageOutcome) -> None:
        if outcome.rate_limited:
            self.rate_limited += 1
        if not outcome.ok:
            return
        self.fetched += 1
        self.pages[outcome.index] = outcome.records
        if len(outcome.records) < self.page_size and (self.terminal is None or outcome.index < self.terminal):
            self.terminal = outcome.index

    def before_terminal(self, index: int) -> bool:
        return self.terminal is None or index < self.terminal


class ResilientFetcher:
    """Paginated retrieval over registered page sources."""

    def __init__(
        self,
        sources: Dict[str, PageFunction],
        throttle: Optional[FetchThrottle] = None,
        max_offset: Optional[int] = None,
        page_retries: Optional[int] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.sources = dict(sources)
        self.throttle = throttle or FetchThrottle.from_settings()
        self.max_offset = settings.MAX_OFFSET if max_offset is None else max_offset
        self.page_retries = settings.FETCH_PAGE_RETRIES if page_retries is None else page_retries
        self._sleep = sleep

    def register(self, resource: str, page_fn: PageFunction) -> None:
        self.sources[resource] = page_fn

    async def fetch(self, resource: str, subject: str, page_size: int, max_pages: int) -> FetchResult:
        """
        Fetch all pages of a resource for a subject.

        Args:
            resource: Registered resource name (e.g. "trades")
            subject: Wallet address
            page_size: Records requested per page
            max_pages: Hard cap on pages requested

        Returns:
            FetchResult with records in page order; complete is True only
            when a short (terminal) page was observed
        """
        if resource not in self.sources:
            raise ValueError(f"Unknown resource: {resource}")
        if page_size <= 0:
            raise ValueError("page_size must be positive")

        page_fn = self.sources[resource]
        page_limit = min(max_pages, self.max_offset // page_size + 1)
        state = _FetchState(page_size=page_size)
        next_page = 0
        window = 1

        while state.terminal is None and next_page < page_limit:
            width = min(window, self.throttle.batch_size)
            batch = range(next_page, min(next_page + width, page_limit))
            outcomes = await self._run_batch(page_fn, subject, batch, state)
            next_page = batch.stop

            if any(o.rate_limited for o in outcomes):
                await self._sleep(self.throttle.on_rate_limited())
            elif all(o.ok for o in outcomes):
                self.throttle.on_clean_batch()
                # Pages past the end of data are only ever launched within one window
                window = width + 1

            failed = [o.index for o in outcomes if not o.ok and state.before_terminal(o.index)]
            recovered = await self._retry_pages(page_fn, subject, failed, state)

            if outcomes and not any(o.ok for o in outcomes) and not recovered:
                logger.error(f"❌ {resource}: every page of batch {batch.start}-{batch.stop - 1} failed, stopping")
                break

        records: List[dict] = []
        for index in sorted(state.pages):
            if state.before_terminal(index) or index == state.terminal:
                records.extend(state.pages[index])

        missing = sorted(i for i in state.missing if state.before_terminal(i))
        complete = state.terminal is not None
        if not complete:
            logger.warning(
                f"⚠️ {resource} for {subject[:10]}...: no terminal page within {page_limit} pages, "
                f"result may be truncated"
            )
        if missing:
            logger.warning(f"⚠️ {resource} for {subject[:10]}...: missing pages {missing}")

        logger.info(
            f"📥 {resource}: {len(records)} records from {state.fetched} pages "
            f"(complete={complete}, 429s={state.rate_limited})"
        )
        return FetchResult(
            records=records,
            complete=complete,
            pages_fetched=state.fetched,
            missing_pages=missing,
            rate_limited=state.rate_limited,
        )

    async def _run_batch(
        self,
        page_fn: PageFunction,
        subject: str,
        indexes: Sequence[int],
        state: _FetchState,
    ) -> List[PageOutcome]:
        """Launch a window of pages in order, stopping new launches once a short page is seen."""
        tasks: List[asyncio.Task] = []
        for index in indexes:
            if self._terminal_seen(tasks, state):
                break
            tasks.append(asyncio.ensure_future(self._fetch_page(page_fn, subject, index, state.page_size)))
            # Let the page start (and finish, if it can) before deciding on the next one
            await asyncio.sleep(0)

        outcomes = list(await asyncio.gather(*tasks))
        for outcome in outcomes:
            state.record(outcome)
        return outcomes

    @staticmethod
    def _terminal_seen(tasks: List[asyncio.Task], state: _FetchState) -> bool:
        if state.terminal is not None:
            return True
        for task in tasks:
            if task.done():
                outcome = task.result()
                if outcome.ok and len(outcome.records) < state.page_size:
                    return True
        return False

    async def _fetch_page(self, page_fn: PageFunction, subject: str, index: int, page_size: int) -> PageOutcome:
        offset = index * page_size
        try:
            records = await page_fn(subject, offset, page_size)
        except UpstreamRateLimited as e:
            logger.debug(f"Page {index} (offset {offset}) rate limited: {e}")
            return PageOutcome(index=index, rate_limited=True, error=str(e))
        except (UpstreamError, asyncio.TimeoutError) as e:
            logger.debug(f"Page {index} (offset {offset}) failed: {e}")
            return PageOutcome(index=index, error=str(e))
        except Exception as e:
            logger.warning(f"⚠️ Page {index} (offset {offset}) raised unexpectedly: {e}", exc_info=True)
            return PageOutcome(index=index, error=str(e))
        return PageOutcome(index=index, records=list(records or []))

    async def _retry_pages(
        self,
        page_fn: PageFunction,
        subject: str,
        indexes: Sequence[int],
        state: _FetchState,
    ) -> int:
        """Retry failed pages one at a time. Returns how many were recovered."""
        recovered = 0
        for index in indexes:
            outcome = None
            for _ in range(self.page_retries):
                if not state.before_terminal(index):
                    break
                await self._sleep(self.throttle.backoff)
                outcome = await self._fetch_page(page_fn, subject, index, state.page_size)
                state.record(outcome)
                if outcome.ok:
                    recovered += 1
                    break
                if outcome.rate_limited:
                    self.throttle.on_rate_limited()

            if (outcome is None or not outcome.ok) and state.before_terminal(index):
                state.missing.append(index)
        return recovered
