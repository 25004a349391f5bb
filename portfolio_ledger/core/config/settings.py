# portfolio_ledger/core/config/settings.py

from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path
from portfolio_ledger.core.enums.storage_backend import StorageBackend
from portfolio_ledger.core.enums.baseline_mode import BaselineMode

class Settings(BaseSettings):
    """
    Application settings loaded from environment variables or .env file.
    Includes general app settings, storage location and valuation defaults.
    """
    # General App Settings
    APP_NAME: str = "Portfolio Ledger API"
    APP_VERSION: str = "0.1.0"
    DEBUG_MODE: bool = False # Set to True for development, False for production

    # API Specific Settings
    API_V1_STR: str = "/api/v1"

    # Logging Settings
    LOG_LEVEL: str = "INFO" # e.g., DEBUG, INFO, WARNING, ERROR, CRITICAL

    # Storage Settings
    DATA_DIR: Path = Path("data")
    STORAGE_BACKEND: StorageBackend = StorageBackend.JSON
    KEEP_BACKUP: bool = True # Keep a single rolling .bak copy of every rewritten file

    # Valuation Settings
    REF_FIAT: str = "USD"
    MIN_USD_IGNORE: float = 10.0
    MAX_HISTORY: int = 400 # Room for ~1 snapshot/day backfill plus live samples
    BASELINE_MODE: BaselineMode = BaselineMode.CLOSE
    MARKET_CHANGE_CACHE_TTL_SECONDS: float = 300.0
    DECIMAL_PRECISION: int = 28

    # Pydantic-settings configuration
    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).parent.parent.parent.parent / ".env"),
        env_file_encoding='utf-8',
        case_sensitive=False, # Allows env vars like APP_NAME or app_name
        extra='ignore' # Ignore extra environment variables not defined in the model
    )

settings = Settings()
