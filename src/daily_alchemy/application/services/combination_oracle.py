"""Combination oracle: cached, single-flight access to the combination source."""

import asyncio
from typing import Callable, Dict, Optional

from daily_alchemy.application.interfaces import ICombinationSource, ILoggingService, SourceElement
from daily_alchemy.domain.errors import AlchemyError, CombinationRefused, InvalidArgument, SourceTransientError
from daily_alchemy.domain.models import (
    CombinationKey,
    CombinationResult,
    Element,
    ElementKind,
    ElementSource,
    canonical_name,
    grapheme_count,
)
from daily_alchemy.domain.models.element import DEFAULT_GLYPH, MAX_GLYPH_CLUSTERS

from .json_repository import JsonRepository
from .logging_service import timing_decorator
from .timing_service import TimingService

MEMO_KEY = "alchemy_combination_cache"


class CombinationOracle:
    """
    Answers "what do these two elements make?".

    - Results (including "cannot combine") are memoised by canonical key and
      persisted as one JSON blob, so an answer never changes once given.
    - At most one source call per key is in flight; concurrent callers for the
      same key await the same task and see `cached=True`.
    - Transient source failures are retried with backoff inside a wall-clock
      budget and end as a TRANSIENT result that leaves the memo untouched.
    """

    def __init__(
        self,
        source: ICombinationSource,
        repository: JsonRepository,
        logging_service: ILoggingService,
        timing_service: TimingService,
        name_lookup: Optional[Callable[[str], Optional[Element]]] = None,
    ):
        """
        Initialize the oracle.

        Args:
            source: External producer of combination outcomes
            repository: JSON persistence for the memo blob
            logging_service: Service for logging operations
            timing_service: Backoff policy and sleeping
            name_lookup: Finds an already-known element by name (the player's bank),
                used to keep the first-seen casing of product names
        """
        self.source = source
        self.repository = repository
        self.logger = logging_service
        self.timing = timing_service
        self._name_lookup = name_lookup

        self._memo: Dict[str, Optional[Element]] = {}
        self._known: Dict[str, Element] = {}
        self._inflight: Dict[str, asyncio.Future] = {}

        self._dirty = False
        self._flush_task: Optional[asyncio.Future] = None

        self._source_calls = 0
        self._cache_hits = 0
        self._joined_inflight = 0
        self._flush_failures = 0

    @timing_decorator("Combination cache load")
    async def load(self) -> int:
        """Load the persisted memo; malformed entries are skipped. Returns entries loaded."""
        data = await self.repository.load_model(MEMO_KEY, _require_mapping, default={})
        loaded = 0

        for raw_key, value in data.items():
            try:
                key = str(CombinationKey.parse(raw_key))
                if value is None:
                    self._memo[key] = None
                else:
                    product = Element(name=value["name"], glyph=value.get("glyph") or DEFAULT_GLYPH)
                    self._memo[key] = self._remember(product)
                loaded += 1
            except (AlchemyError, KeyError, TypeError, AttributeError) as e:
                self.logger.warning(f"⚠️ Skipping malformed cache entry {raw_key!r}: {e}")

        self.logger.info(f"📥 Combination cache loaded: {loaded} entries ({self.blocked_count} blocked)")
        return loaded

    @property
    def memo_size(self) -> int:
        return len(self._memo)

    @property
    def blocked_count(self) -> int:
        return sum(1 for product in self._memo.values() if product is None)

    def lookup(self, name_a: str, name_b: str) -> Optional[CombinationResult]:
        """Cached answer for a pair without calling the source, or None."""
        key = CombinationKey.of(name_a, name_b)
        text = str(key)
        if text not in self._memo:
            return None
        product = self._memo[text]
        if product is None:
            return CombinationResult.blocked(key, cached=True)
        return CombinationResult.product_of(key, product, cached=True)

    async def combine(self, a: Element, b: Element) -> CombinationResult:
        """Combine two elements; never raises for source failures."""
        cached = self.lookup(a.name, b.name)
        if cached is not None:
            self._cache_hits += 1
            self.logger.debug(f"💾 Cache hit {cached.key}")
            return cached

        key = CombinationKey.for_elements(a, b)
        text = str(key)
        task = self._inflight.get(text)
        if task is not None:
            self._joined_inflight += 1
            self.logger.debug(f"🔗 Joining in-flight combine {text}")
            result = await self._await_task(key, task)
            return result if result.is_transient else result.as_cached()

        task = asyncio.ensure_future(self._compute(key, a.name, b.name))
        self._inflight[text] = task
        task.add_done_callback(lambda done, text=text: self._settle(text, done))
        return await self._await_task(key, task)

    def _settle(self, text: str, task: asyncio.Future) -> None:
        if self._inflight.get(text) is task:
            del self._inflight[text]

    @staticmethod
    async def _await_task(key: CombinationKey, task: asyncio.Future) -> CombinationResult:
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if task.cancelled():
                return CombinationResult.transient(key, "cancelled")
            raise

    async def _compute(self, key: CombinationKey, name_a: str, name_b: str) -> CombinationResult:
        budget = self.timing.policy.time_budget
        try:
            return await asyncio.wait_for(self._call_with_retries(key, name_a, name_b), timeout=budget)
        except asyncio.TimeoutError:
            self.logger.warning(f"⏰ Combine {key} exceeded its {budget}s budget")
            return CombinationResult.transient(key, f"timed out after {budget}s")

    async def _call_with_retries(self, key: CombinationKey, name_a: str, name_b: str) -> CombinationResult:
        retries = 0
        while True:
            try:
                self._source_calls += 1
                response = await self.source.combine(name_a, name_b)
            except CombinationRefused:
                self._memo[str(key)] = None
                self._schedule_flush()
                self.logger.info(f"🚫 {key} does not combine")
                return CombinationResult.blocked(key)
            except SourceTransientError as e:
                failure = str(e) or "transient source failure"
            except Exception as e:
                # The source is opaque; anything it raises besides a refusal is retryable.
                failure = f"{type(e).__name__}: {e}"
            else:
                try:
                    product = self._product_from(response, name_a, name_b)
                except InvalidArgument as e:
                    self.logger.warning(f"⚠️ Source answered {key} with an unusable element: {e}")
                    return CombinationResult.transient(key, f"unusable product: {e}")
                self._memo[str(key)] = product
                self._schedule_flush()
                flag = " 🌟 first discovery" if response.is_global_first_discovery else ""
                self.logger.info(f"✨ {key} → {product.display_name}{flag}")
                return CombinationResult.product_of(
                    key, product, cached=False, first_discovery=response.is_global_first_discovery
                )

            if retries >= self.timing.policy.max_retries:
                self.logger.warning(f"❌ Combine {key} failed after {retries + 1} attempts: {failure}")
                return CombinationResult.transient(key, failure)

            retries += 1
            self.logger.warning(f"🔄 Combine {key} failed ({failure}); retrying")
            await self.timing.wait_before_retry(retries, str(key))

    def _product_from(self, response: SourceElement, name_a: str, name_b: str) -> Element:
        known = self._known_element(response.name)
        name = known.name if known else response.name.strip()

        glyph = response.glyph
        if not glyph or not 1 <= grapheme_count(glyph) <= MAX_GLYPH_CLUSTERS:
            self.logger.warning(f"⚠️ Source glyph {glyph!r} for {name} is unusable; using {DEFAULT_GLYPH}")
            glyph = known.glyph if known else DEFAULT_GLYPH

        product = Element(
            name=name,
            glyph=glyph,
            source=ElementSource(kind=ElementKind.COMBINATION, parents=(name_a, name_b)),
        )
        return self._remember(product)

    def _known_element(self, name: str) -> Optional[Element]:
        if self._name_lookup is not None:
            found = self._name_lookup(name)
            if found is not None:
                return found
        return self._known.get(canonical_name(name))

    def _remember(self, product: Element) -> Element:
        """Keep the first-seen casing for every product name."""
        existing = self._known.get(product.canonical)
        if existing is not None and existing.name != product.name:
            product = product.renamed(existing.name)
        self._known.setdefault(product.canonical, product)
        return product

    def _snapshot(self) -> dict:
        return {
            key: None if product is None else {"name": product.name, "glyph": product.glyph}
            for key, product in sorted(self._memo.items())
        }

    def _schedule_flush(self) -> None:
        self._dirty = True
        if self._flush_task is None or self._flush_task.done():
            self._flush_task = asyncio.ensure_future(self._flush_loop())

    async def _flush_loop(self) -> None:
        while self._dirty:
            self._dirty = False
            try:
                await self.repository.save(MEMO_KEY, self._snapshot())
                self.logger.debug(f"💾 Combination cache flushed ({len(self._memo)} entries)")
            except AlchemyError as e:
                self._dirty = True
                self._flush_failures += 1
                self.logger.warning(f"⚠️ Combination cache flush failed, will retry on next write: {e}")
                return

    async def flush(self) -> None:
        """Wait for pending memo writes, retrying a failed one."""
        if self._flush_task is not None and not self._flush_task.done():
            await self._flush_task
        if self._dirty:
            await self._flush_loop()

    async def close(self) -> None:
        """Cancel in-flight source calls and persist the memo."""
        for task in list(self._inflight.values()):
            task.cancel()
        if self._inflight:
            await asyncio.gather(*self._inflight.values(), return_exceptions=True)
        await self.flush()
        await self.source.close()
        if self.logger.is_enabled("DEBUG"):
            summary = ", ".join(f"{name}={value}" for name, value in self.stats().items())
            self.logger.debug(f"📊 Combination oracle closed: {summary}")

    def stats(self) -> Dict[str, int]:
        return {
            "memo_size": self.memo_size,
            "blocked": self.blocked_count,
            "source_calls": self._source_calls,
            "cache_hits": self._cache_hits,
            "joined_inflight": self._joined_inflight,
            "inflight": len(self._inflight),
            "flush_failures": self._flush_failures,
        }


def _require_mapping(data) -> dict:
    if not isinstance(data, dict):
        raise TypeError(f"expected an object, got {type(data).__name__}")
    return data
