from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    database_url: str = "sqlite+aiosqlite:///./chronicle.db"
    environment: str = "local"
    debug: bool = True
    # Echo SQL statements to the log.
    sql_echo: bool = False
    log_level: str = "INFO"

    # Upper bounds for a single dice term (e.g. 100d1000).
    dice_max_count: int = 1000
    dice_max_sides: int = 1_000_000

    # How many results list endpoints return.
    dice_roll_result_list_limit: int = 100
    dice_roll_recent_results: int = 50


settings = Settings()
