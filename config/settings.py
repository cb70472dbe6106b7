from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # App
    APP_NAME: str = "Day-Ahead Clearing"
    DEBUG: bool = False  # Safe default for production; set DEBUG=True in .env for local dev

    # Price scale (EUR/MWh); bids outside are dropped before clearing
    MINIMUM_PRICE: float = -500.0
    MAXIMUM_PRICE: float = 3000.0

    HOURS_PER_DAY: int = 24

    # Block bid removal per feasibility round: max(limit, int(percentage * candidates))
    BLOCK_REMOVAL_LIMIT: int = 1
    BLOCK_REMOVAL_PERCENTAGE: float = 0.10
    BLOCK_ALWAYS_IN_MARKET: bool = False

    # Second pass: drop profitable blocks that keep must-clear supply out of the market
    EXOGENOUS_ACCEPT_ALL: bool = True
    MUST_CLEAR_CATEGORIES: list[str] = ["RENEWABLE", "EXCHANGE", "STORAGE"]

    # Volumes (MWh)
    VOLUME_TOLERANCE: float = 1e-6
    BALANCE_TOLERANCE: float = 0.5

    INCREMENTAL_CURVE_ADAPTATION: bool = False
    CLEARING_WORKERS: int = 1


settings = Settings()
