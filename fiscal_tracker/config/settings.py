from pydantic import Field, AliasChoices
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Read env from container + optionally from files
    model_config = SettingsConfigDict(
        env_file=(".env", ".env.docker"),
        extra="ignore",
        case_sensitive=False,
    )

    # App
    ENVIRONMENT: str = Field(default="dev", validation_alias=AliasChoices("ENVIRONMENT", "environment"))
    APP_NAME: str = Field(default="fiscal_tracker", validation_alias=AliasChoices("APP_NAME", "app_name"))
    LOG_LEVEL: str = Field(default="INFO", validation_alias=AliasChoices("LOG_LEVEL", "log_level"))
    DEBUG: bool = Field(default=False, validation_alias=AliasChoices("DEBUG", "debug"))
    PORT: int = Field(default=8000, validation_alias=AliasChoices("PORT", "port"))

    # Infrastructure
    DATABASE_URL: str = Field(
        default="postgresql+asyncpg://postgres:postgres@db:5432/fiscal_tracker",
        validation_alias=AliasChoices("DATABASE_URL", "database_url"),
    )
    # Managed Postgres providers (Neon, Supabase) require TLS
    DATABASE_SSL: bool = Field(default=False, validation_alias=AliasChoices("DATABASE_SSL", "database_ssl"))

    # Calendar: "today" is computed in this zone at the API edge
    TIMEZONE: str = Field(default="Europe/Paris", validation_alias=AliasChoices("TIMEZONE", "timezone"))
    DEFAULT_TVA_DEADLINE_DAY: int = Field(
        default=21,
        ge=15,
        le=25,
        validation_alias=AliasChoices("DEFAULT_TVA_DEADLINE_DAY", "default_tva_deadline_day"),
    )

    # Dashboard list caps
    LATE_LIST_LIMIT: int = Field(default=10, ge=1, validation_alias=AliasChoices("LATE_LIST_LIMIT", "late_list_limit"))
    NEAR_TERM_LIST_LIMIT: int = Field(
        default=6,
        ge=1,
        validation_alias=AliasChoices("NEAR_TERM_LIST_LIMIT", "near_term_list_limit"),
    )


settings = Settings()
