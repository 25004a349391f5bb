# portfolio_ledger/api/v1/dependencies.py

from fastapi import Depends

from portfolio_ledger.core.config.settings import settings
from portfolio_ledger.logic.baseline_pricing import BaselinePricer, CandleProvider
from portfolio_ledger.logic.disposition_engine import DispositionEngine
from portfolio_ledger.logic.market_change import MarketChangeCalculator
from portfolio_ledger.logic.snapshot_calculator import SnapshotCalculator
from portfolio_ledger.logic.ttl_cache import TTLCache
from portfolio_ledger.services.ledger_repository import LedgerRepository
from portfolio_ledger.services.snapshot_service import SnapshotService
from portfolio_ledger.storage.history_store import SnapshotHistoryStore
from portfolio_ledger.storage.lots_storage import create_lots_storage


def get_ledger_repository() -> LedgerRepository:
    """
    Provides a LedgerRepository over the configured data directory and backend.
    Instances are cheap; all state lives in the files.
    """
    storage = create_lots_storage(
        settings.DATA_DIR,
        backend=settings.STORAGE_BACKEND,
        keep_backup=settings.KEEP_BACKUP,
    )
    return LedgerRepository(storage=storage, disposition_engine=DispositionEngine())


def get_history_store() -> SnapshotHistoryStore:
    return SnapshotHistoryStore(
        settings.DATA_DIR,
        max_history=settings.MAX_HISTORY,
        keep_backup=settings.KEEP_BACKUP,
    )


def get_snapshot_service(
    repository: LedgerRepository = Depends(get_ledger_repository),
    history_store: SnapshotHistoryStore = Depends(get_history_store),
) -> SnapshotService:
    return SnapshotService(
        repository=repository,
        history_store=history_store,
        calculator=SnapshotCalculator(),
        ref_fiat=settings.REF_FIAT,
        min_usd_ignore=settings.MIN_USD_IGNORE,
    )


def build_baseline_pricer(candle_provider: CandleProvider) -> BaselinePricer:
    """Baseline pricing over an exchange candle source, in the configured BASELINE_MODE."""
    return BaselinePricer(candle_provider, default_mode=settings.BASELINE_MODE)


def build_market_change_calculator(candle_provider: CandleProvider) -> MarketChangeCalculator:
    return MarketChangeCalculator(
        candle_provider,
        cache=TTLCache(ttl_seconds=settings.MARKET_CHANGE_CACHE_TTL_SECONDS),
    )
