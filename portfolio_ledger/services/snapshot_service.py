# portfolio_ledger/services/snapshot_service.py

import logging
from typing import Any, Iterable, Mapping, Optional

from portfolio_ledger.core.models.candle import Candle
from portfolio_ledger.core.models.snapshot import PriceQuote, Snapshot
from portfolio_ledger.logic.snapshot_calculator import SnapshotCalculator
from portfolio_ledger.services.ledger_repository import LedgerRepository
from portfolio_ledger.storage.history_store import SnapshotHistoryStore

logger = logging.getLogger(__name__)


def day_pct_from_bar(bar: Candle) -> Optional[float]:
    """Open-to-close change of a daily bar, in percent."""
    if not bar.open:
        return None
    return (bar.close / bar.open - 1) * 100


class SnapshotService:
    """
    Orchestrates valuation: reconciled ledger summaries from the repository,
    balances and prices from the caller, results appended to the bounded history.
    """
    def __init__(
        self,
        repository: LedgerRepository,
        history_store: SnapshotHistoryStore,
        calculator: Optional[SnapshotCalculator] = None,
        ref_fiat: str = "USD",
        min_usd_ignore: float = 10.0,
    ):
        self._repository = repository
        self._history_store = history_store
        self._calculator = calculator or SnapshotCalculator()
        self._ref_fiat = ref_fiat
        self._min_usd_ignore = min_usd_ignore

    def compute(
        self,
        balances: Mapping[str, Any],
        prices: Mapping[str, Any],
        always_include: Optional[Iterable[str]] = None,
        min_usd_ignore: Optional[float] = None,
    ) -> Snapshot:
        return self._calculator.compute_snapshot(
            balances,
            prices,
            summaries=self._repository.summaries(),
            ref_fiat=self._ref_fiat,
            min_usd_ignore=self._min_usd_ignore if min_usd_ignore is None else min_usd_ignore,
            always_include=always_include,
        )

    def capture(
        self,
        balances: Mapping[str, Any],
        prices: Mapping[str, Any],
        always_include: Optional[Iterable[str]] = None,
        min_usd_ignore: Optional[float] = None,
    ) -> Snapshot:
        """Computes a snapshot from live data and appends it to the history."""
        snapshot = self.compute(balances, prices, always_include, min_usd_ignore)
        self._history_store.append(snapshot)
        logger.info(f"Captured snapshot: {len(snapshot.positions)} position(s), {snapshot.total_value_usd:.2f} {snapshot.ref_fiat}.")
        return snapshot

    def latest(self) -> Optional[Snapshot]:
        return self._history_store.latest()

    def history(self, n: int) -> list[Snapshot]:
        return self._history_store.tail(n)

    def latest_prices(self) -> dict[str, float]:
        """Prices of the most recent snapshot, used to value the ledger view."""
        latest = self.latest()
        return latest.price_map() if latest is not None else {}

    def backfill(
        self,
        balances: Mapping[str, Any],
        daily_candles: Mapping[str, list[Candle]],
        days: int = 180,
    ) -> list[Snapshot]:
        """
        Seeds an empty history with one snapshot per daily bar of the last `days`
        days, priced at each bar's close with its open-to-close change. Snapshot
        time is the bar time. Does nothing if the history already holds data.
        """
        if self._history_store.latest() is not None:
            logger.info("History already populated; skipping backfill.")
            return []

        bars_by_asset = {
            asset: {bar.ts: bar for bar in bars}
            for asset, bars in daily_candles.items()
        }
        timeline = sorted({ts for bars in bars_by_asset.values() for ts in bars})[-days:] if days > 0 else []
        summaries = self._repository.summaries()

        snapshots: list[Snapshot] = []
        for ts in timeline:
            prices = {
                asset: PriceQuote(price=bars[ts].close, day_pct=day_pct_from_bar(bars[ts]))
                for asset, bars in bars_by_asset.items()
                if ts in bars
            }
            snapshot = self._calculator.compute_snapshot(
                balances,
                prices,
                summaries=summaries,
                ref_fiat=self._ref_fiat,
                min_usd_ignore=self._min_usd_ignore,
            )
            snapshots.append(snapshot.model_copy(update={"time": ts // 1000}))

        if snapshots:
            self._history_store.extend(snapshots)
        logger.info(f"Backfilled {len(snapshots)} snapshot(s).")
        return snapshots
