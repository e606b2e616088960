from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Logging
    log_level: str = "INFO"
    log_dir: str = "logs"
    log_to_file: bool = False

    # Forecasting
    forecast_days: int = 30

    # Cost-per-guest anomaly window (daily records)
    anomaly_lookback_days: int = 30

    # Evidence strings
    currency_symbol: str = "€"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "REVENUE_SENTRY_",
        "extra": "ignore",
    }


settings = Settings()
