"""
Aggregation Engine — Cached multi-level rollups of product metrics.

Flow:
  records → HierarchyManager (role scope + level filter)
          → CacheManager (hit? return)
          → compute_metrics (miss: compute + store)

Cache keys are ``agg_{level.id}_{level.type}``. Callers below national
scope get their scope appended to the key so a zonal user's view of
"national" never answers a national user's request.

Usage:
    engine = AggregationEngine(cache=CacheManager(), hierarchy=HierarchyManager(directory))
    results = await engine.aggregate_hierarchy(records, levels, caller_role="zonal",
                                               caller_scope=CallerScope(zone_id="Z1"))
    # → {"Z1": AggregatedMetrics(...), "national": AggregatedMetrics(...)}
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Sequence

import structlog

from analytics.cache import CacheManager, CacheStats
from analytics.hierarchy import AggregationLevel, CallerScope, HierarchyManager
from analytics.metrics import AggregatedMetrics, compute_metrics
from analytics.roles import get_role_scope
from inventory.records import ProductRecord

logger = structlog.get_logger()

MetricsCalculator = Callable[[Sequence[ProductRecord]], AggregatedMetrics]


def build_cache_key(level: AggregationLevel, scope_key: str | None = None) -> str:
    key = f"agg_{level.id}_{level.type}"
    if scope_key:
        key = f"{key}_{scope_key}"
    return key


class AggregationEngine:
    def __init__(
        self,
        cache: CacheManager,
        hierarchy: HierarchyManager | None = None,
        calculator: MetricsCalculator = compute_metrics,
        ttl: float | None = None,
    ):
        self.cache = cache
        self.hierarchy = hierarchy or HierarchyManager()
        self.calculator = calculator
        self.ttl = ttl

    async def aggregate_by_level(
        self,
        records: Sequence[ProductRecord],
        level: AggregationLevel,
        use_cache: bool = True,
        scope_key: str | None = None,
    ) -> AggregatedMetrics:
        cache_key = build_cache_key(level, scope_key)

        if use_cache:
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.debug("aggregation.cache_hit", cache_key=cache_key)
                return cached

        start = time.perf_counter()
        metrics = self.calculator(records)
        logger.debug(
            "aggregation.computed",
            level_id=level.id,
            level_type=level.type,
            n_records=len(records),
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )

        if use_cache:
            self.cache.set(cache_key, metrics, self.ttl)
        return metrics

    async def aggregate_hierarchy(
        self,
        records: Sequence[ProductRecord],
        levels: Sequence[AggregationLevel],
        caller_role: str = "national",
        caller_scope: CallerScope | None = None,
        use_cache: bool = True,
    ) -> dict[str, AggregatedMetrics]:
        """
        Aggregate every level concurrently.

        Returns exactly one entry per level id. ``caller_role`` defaults to
        national for trusted internal callers.
        """
        caller_scope = caller_scope or CallerScope()
        grouped = self.hierarchy.group_by_level(records, levels, caller_role, caller_scope)
        scope_key = None if get_role_scope(caller_role) == "national" else caller_scope.cache_key(caller_role)

        metrics = await asyncio.gather(
            *(
                self.aggregate_by_level(grouped.get(level.id, []), level, use_cache=use_cache, scope_key=scope_key)
                for level in levels
            )
        )
        results = {level.id: level_metrics for level, level_metrics in zip(levels, metrics)}

        logger.info(
            "aggregation.hierarchy_completed",
            n_levels=len(results),
            n_records=len(records),
            caller_role=caller_role,
        )
        return results

    def clear_cache(self, level_id: str | None = None) -> int:
        """Drop every cached level, or every scope's entry for one level id."""
        if level_id is None:
            return self.cache.clear()
        return self.cache.clear(f"agg_{level_id}_")

    def get_cache_stats(self) -> CacheStats:
        return self.cache.get_stats()
