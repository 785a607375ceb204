"""
Route selection over the pool graph.

Uses a NetworkX multigraph where nodes are asset symbols and every pool
is an edge, then picks the cheapest usable 3-pool cycle through the
base asset.
"""

import logging
from collections.abc import Sequence

import networkx as nx

from triarb.core.errors import NoRouteFound
from triarb.core.types import FeeEstimate, Pool, Route, RouteLeg
from triarb.strategy.fees import PoolFeeEstimator


logger = logging.getLogger(__name__)


def build_pool_graph(pools: Sequence[Pool]) -> nx.MultiGraph:
    """
    Build an undirected multigraph of pools.

    Parallel edges keep several pools for the same pair apart, keyed by
    pool name.
    """
    graph: nx.MultiGraph = nx.MultiGraph()
    for pool in pools:
        graph.add_edge(pool.asset_a.symbol, pool.asset_b.symbol, key=pool.name, pool=pool)
    return graph


def pools_between(graph: nx.MultiGraph, a: str, b: str) -> list[Pool]:
    """Get all pools pairing two assets, in insertion order."""
    edges = graph.get_edge_data(a, b)
    if not edges:
        return []
    return [attrs["pool"] for attrs in edges.values()]


class RouteSelector:
    """
    Selects the 3-pool cycle to evaluate.

    Candidate pools are those pairing the base asset with anything other
    than the quote asset. They are ranked by estimated fee (stable sort,
    so equal fees keep input order) and the first candidate whose counter
    asset X has exactly one pool against the quote asset wins:

        base -> quote -> X -> base
    """

    def __init__(self, fee_estimator: PoolFeeEstimator) -> None:
        """
        Initialize route selector.

        Args:
            fee_estimator: Source of per-pool fee signals.
        """
        self._fee_estimator = fee_estimator

    async def select_route(
        self,
        base_asset: str,
        quote_asset: str,
        pools: Sequence[Pool],
    ) -> Route:
        """
        Pick the cheapest usable cycle.

        Args:
            base_asset: Asset the cycle starts and ends in.
            quote_asset: Asset the first leg swaps into.
            pools: Configured pools, in tie-break order.

        Returns:
            Route with continuity already validated.

        Raises:
            NoRouteFound: If no candidate forms a unique cycle.
        """
        graph = build_pool_graph(pools)

        base_pools = [pool for pool in pools if pool.contains(base_asset)]
        entry_pools = [pool for pool in base_pools if pool.other(base_asset).symbol == quote_asset]
        candidates = [pool for pool in base_pools if pool.other(base_asset).symbol != quote_asset]

        if not entry_pools:
            raise NoRouteFound(f"No pool pairs {base_asset} with {quote_asset}")
        if not candidates:
            raise NoRouteFound(f"No return pool for {base_asset} besides {quote_asset}")

        estimates = await self._fee_estimator.estimate_fees(base_pools)
        by_pool = {estimate.pool: estimate for estimate in estimates}

        entry = min((by_pool[pool] for pool in entry_pools), key=lambda e: e.fee)
        ranked = sorted((by_pool[pool] for pool in candidates), key=lambda e: e.fee)

        for estimate in ranked:
            route = self._try_candidate(graph, base_asset, quote_asset, entry, estimate)
            if route is not None:
                logger.info(
                    f"Selected route {route.id} via "
                    f"{' > '.join(pool.name for pool in route.pools)} "
                    f"(return fee estimate {estimate.fee:.8f})"
                )
                return route

        raise NoRouteFound(
            f"No candidate among {[pool.name for pool in candidates]} "
            f"has a unique {quote_asset} pairing"
        )

    def _try_candidate(
        self,
        graph: nx.MultiGraph,
        base_asset: str,
        quote_asset: str,
        entry: FeeEstimate,
        candidate: FeeEstimate,
    ) -> Route | None:
        """Build the cycle through a candidate, or None if it is ambiguous."""
        middle = candidate.pool.other(base_asset)
        bridges = pools_between(graph, middle.symbol, quote_asset)

        if len(bridges) != 1:
            logger.debug(
                f"Skipping {candidate.pool.name}: {len(bridges)} pools pair "
                f"{middle.symbol} with {quote_asset}"
            )
            return None

        entry_pool = entry.pool
        bridge = bridges[0]
        return Route(
            base_asset=base_asset,
            legs=(
                RouteLeg(entry_pool, entry_pool.asset(base_asset), entry_pool.asset(quote_asset)),
                RouteLeg(bridge, bridge.asset(quote_asset), middle),
                RouteLeg(candidate.pool, middle, candidate.pool.asset(base_asset)),
            ),
        )
