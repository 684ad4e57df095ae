import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@dataclass
class Settings:
    # API settings
    api_host: str = os.getenv("API_HOST", "127.0.0.1")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    api_key: str = os.getenv("API_KEY", "super-secret-key")

    # Database settings
    database_file: str = os.getenv("LIBRARY_DB_FILE", "office_library.db")

    # Lending rules
    loan_period_days: int = int(os.getenv("LOAN_PERIOD_DAYS", "14"))
    max_active_borrowings: int = int(os.getenv("MAX_ACTIVE_BORROWINGS", "3"))
    # Seconds between background overdue sweeps; 0 disables the loop
    overdue_sweep_interval: int = int(os.getenv("OVERDUE_SWEEP_INTERVAL", "0"))

    # Application settings
    app_name: str = os.getenv("APP_NAME", "Office Library")
    app_version: str = os.getenv("APP_VERSION", "1.0.0")
    debug: bool = _env_flag("DEBUG", "False")
    environment: str = os.getenv("ENVIRONMENT", "development")
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Feature flags
    enable_wine_tracker: bool = _env_flag("ENABLE_WINE_TRACKER", "True")


settings = Settings()
