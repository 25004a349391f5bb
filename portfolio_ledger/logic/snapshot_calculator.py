# portfolio_ledger/logic/snapshot_calculator.py

import logging
import time
from typing import Any, Callable, Iterable, Mapping, Optional

from portfolio_ledger.core.models.reconciliation import AssetSummary
from portfolio_ledger.core.models.snapshot import Position, PriceQuote, Snapshot

logger = logging.getLogger(__name__)

# Live balance and reconciled ledger quantity may differ by this much before a position is flagged.
RECONCILE_TOLERANCE = 1e-8


def _free_quantity(balance: Any) -> float:
    """Balances arrive either as a bare number or as {free: n}."""
    if isinstance(balance, Mapping):
        balance = balance.get("free")
    try:
        return float(balance or 0)
    except (TypeError, ValueError):
        return 0.0


def _price_quote(quote: Any) -> PriceQuote:
    if quote is None:
        return PriceQuote()
    if isinstance(quote, PriceQuote):
        return quote
    if isinstance(quote, Mapping):
        return PriceQuote.model_validate(quote)
    return PriceQuote(price=float(quote))


class SnapshotCalculator:
    """
    Turns live balances, live prices and the reconciled ledger into a valued,
    weighted portfolio snapshot. Pure apart from the injected clock.
    """
    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock

    def compute_snapshot(
        self,
        balances: Mapping[str, Any],
        prices: Mapping[str, Any],
        summaries: Optional[Mapping[str, AssetSummary]] = None,
        ref_fiat: str = "USD",
        min_usd_ignore: float = 10.0,
        always_include: Optional[Iterable[str]] = None,
    ) -> Snapshot:
        """
        Values every asset with a positive free balance.

        - Assets without a known price are skipped unless forced into the snapshot
          through `always_include` (then valued at 0).
        - Positions worth less than `min_usd_ignore` are dropped unless forced.
        - `total_change_24h_pct` weights each known `day_pct` by position value;
          positions without `day_pct` add nothing to the numerator but still count
          in the total value.
        """
        summaries = summaries or {}
        include_set = {str(symbol or "").upper() for symbol in (always_include or [])}
        positions: list[Position] = []
        total_value = 0.0
        weighted_day_numerator = 0.0

        for symbol in sorted(balances):
            free = _free_quantity(balances[symbol])
            if free <= 0:
                continue
            quote = _price_quote(prices.get(symbol))
            price = quote.price
            must_include = str(symbol).upper() in include_set
            if price is None and not must_include:
                continue

            value = free * price if price is not None else 0.0

            summary = summaries.get(symbol)
            avg_cost = float(summary.avg_cost_usd) if summary is not None and summary.avg_cost_usd is not None else 0.0
            reconciled_qty = float(summary.total_qty) if summary is not None else 0.0
            pnl_pct = (price / avg_cost - 1) * 100 if avg_cost > 0 and price is not None else None
            unreconciled = abs(reconciled_qty - free) > RECONCILE_TOLERANCE

            if not must_include and value < float(min_usd_ignore or 0):
                continue

            positions.append(Position(
                symbol=symbol,
                free=free,
                price=price,
                value=value,
                day_pct=quote.day_pct,
                pnl_pct=pnl_pct,
                unreconciled=unreconciled,
            ))
            total_value += value
            if quote.day_pct is not None:
                weighted_day_numerator += value * quote.day_pct

        total_change_24h_pct = weighted_day_numerator / total_value if total_value > 0 else 0.0
        positions.sort(key=lambda p: p.value, reverse=True)

        logger.debug(f"SnapshotCalculator: {len(positions)} position(s), total {total_value:.2f} {ref_fiat}.")
        return Snapshot(
            time=int(self._clock()),
            ref_fiat=ref_fiat,
            total_value_usd=total_value,
            total_change_24h_pct=total_change_24h_pct,
            positions=positions,
        )
