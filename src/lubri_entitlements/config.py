from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    server_host: str = "0.0.0.0"
    server_port: int = 8080
    # Optional full database URL override (useful for tests)
    database_url: str = ""
    db_host: str = "db"
    db_port: int = 5432
    db_user: str = "postgres"
    db_password: str = "postgres"
    db_name: str = "lubricentros"
    db_pool_size: int = 20
    db_max_overflow: int = 30
    db_pool_recycle: int = 3600  # Recycle connections after 1 hour
    db_pool_pre_ping: bool = True
    # "sql" or "memory"; memory is only meant for local development
    store_backend: str = "sql"
    # Every tenant store call is bounded by this timeout; a timeout is a denial
    store_timeout_seconds: float = 5.0
    # Compare-and-swap attempts for a single usage increment
    increment_max_attempts: int = 5
    # Trial tier
    trial_days: int = 7
    trial_services: int = 10
    trial_users: int = 2
    # Reporting windows (days)
    payment_due_warning_days: int = 7
    expiring_warning_days: int = 7
    # Optional JSON file replacing the built-in plan table, read once at startup
    plan_catalog_file: str = ""
    # Background expiration sweep; 0 disables the loop
    sweep_interval_seconds: int = 3600
    # Bearer tokens are issued by the identity provider; we only decode them
    jwt_secret: str = "changeme"
    jwt_algorithm: str = "HS256"


# module-level settings instance for convenience across the app
settings = Settings()
