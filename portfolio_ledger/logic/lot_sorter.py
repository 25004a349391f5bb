# portfolio_ledger/logic/lot_sorter.py

from datetime import datetime
from typing import Iterable

from portfolio_ledger.core.models.lot import Lot
from portfolio_ledger.core.timestamps import parse_timestamp, EPOCH_MIN


def lot_sort_key(lot: Lot) -> tuple[datetime, str]:
    """Chronological key: parsed timestamp first, id as the tie-break."""
    return (parse_timestamp(lot.ts) or EPOCH_MIN, lot.id)


class LotSorter:
    """
    Responsible for grouping lots by asset and ordering them
    according to the chronological processing rules.
    """

    def group_by_asset(self, lots: Iterable[Lot]) -> dict[str, list[Lot]]:
        """Partitions lots by their asset, keeping their relative order."""
        grouped: dict[str, list[Lot]] = {}
        for lot in lots:
            grouped.setdefault(lot.asset, []).append(lot)
        return grouped

    def sort_lots(self, lots_by_asset: dict[str, list[Lot]]) -> dict[str, list[Lot]]:
        """
        Returns a new mapping with every asset's lots sorted.

        Sorting Rules:
        1. Assets are keyed in ascending symbol order.
        2. Within an asset: timestamp ascending, then id ascending.

        Empty partitions are dropped. The input mapping and its lists are not modified.
        """
        return {
            asset: sorted(lots_by_asset[asset], key=lot_sort_key)
            for asset in sorted(lots_by_asset)
            if lots_by_asset[asset]
        }
