# ==============================================================================
# Price Variation Analyzer
# ==============================================================================
"""
Per-product price spread over every distinct observed price.

Observations are distinct (product_id, price, category_id, brand) tuples, so
a product keeps one observation per historical price point. Non-positive
prices are split off beforehand with split_price_anomalies(); the analyzer
itself refuses to divide by a non-positive minimum.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence
from decimal import ROUND_HALF_UP, Decimal

from clickfunnel.core.exceptions import ComputationError
from clickfunnel.core.models import Event, PriceObservation, PriceVariation
from clickfunnel.core.partitioning import map_partitions, partition

logger = logging.getLogger(__name__)

_HUNDRED = Decimal(100)
_TWO_PLACES = Decimal("0.01")


def split_price_anomalies(events: Iterable[Event]) -> tuple[list[Event], list[Event]]:
    """
    Separate events with a usable price from those priced at zero or below.

    Events without a price are treated as priced at zero.

    Returns:
        Tuple of (priced events, price anomalies)
    """
    priced: list[Event] = []
    anomalies: list[Event] = []
    for event in events:
        if event.price is None or event.price <= 0:
            anomalies.append(event)
        else:
            priced.append(event)
    if anomalies:
        logger.info("Split off %d events with non-positive prices", len(anomalies))
    return priced, anomalies


def collect_observations(events: Iterable[Event]) -> set[PriceObservation]:
    """Distinct price observations; events without a product id are ignored."""
    return {
        PriceObservation(
            product_id=e.product_id,
            price=e.price,
            category_id=e.category_id,
            brand=e.brand,
        )
        for e in events
        if e.product_id is not None and e.price is not None
    }


class PriceVariationAnalyzer:
    """
    Computes min, max and percentage variation per product.

    Args:
        partitions: Number of product_id shards computed independently
        workers: Threads used to compute shards
    """

    def __init__(self, partitions: int = 1, workers: int = 1):
        self.partitions = max(1, partitions)
        self.workers = max(1, workers)

    @staticmethod
    def variation(product_id: int, prices: Iterable[Decimal]) -> PriceVariation:
        """
        Price spread for one product.

        Raises:
            ComputationError: If the minimum price is zero or negative
        """
        prices = list(prices)
        min_price = min(prices)
        max_price = max(prices)
        if min_price <= 0:
            raise ComputationError(
                f"Product {product_id} has non-positive minimum price {min_price}",
                product_id=product_id,
            )
        pct = ((max_price - min_price) / min_price * _HUNDRED).quantize(
            _TWO_PLACES, rounding=ROUND_HALF_UP
        )
        return PriceVariation(
            product_id=product_id, min_price=min_price, max_price=max_price, variation_pct=pct
        )

    def _analyze_partition(self, observations: Sequence[PriceObservation]) -> list[PriceVariation]:
        prices: dict[int, list[Decimal]] = defaultdict(list)
        for obs in observations:
            prices[obs.product_id].append(obs.price)
        return [self.variation(pid, values) for pid, values in prices.items()]

    def analyze(self, observations: Iterable[PriceObservation]) -> list[PriceVariation]:
        """
        Compute variations for every product in the observations.

        Args:
            observations: Distinct price observations with price > 0

        Returns:
            PriceVariation list sorted by product_id

        Raises:
            ComputationError: If any product has a non-positive minimum price
        """
        buckets = partition(observations, lambda o: o.product_id, self.partitions)
        results: list[PriceVariation] = []
        for fragment in map_partitions(self._analyze_partition, buckets, self.workers):
            results.extend(fragment)
        results.sort(key=lambda v: v.product_id)
        logger.info("Computed price variation for %d products", len(results))
        return results
