from functools import lru_cache
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_DEFAULT_CORS = ",".join(f"http://localhost:{port}" for port in range(3000, 3008))


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",  # Ignore extra fields in .env file
    )

    # Supabase Configuration - both must be set for the primary credit store
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    credits_table: str = "user_credits"
    credit_transactions_table: str = "credit_transactions"

    # Credits Configuration
    default_starting_credits: int = 5
    personal_look_credit_cost: int = 2
    remix_look_credit_cost: int = 1
    store_write_retries: int = 3

    # Application Configuration
    api_prefix: str = "/api"
    cors_origins: str = _DEFAULT_CORS
    server_host: str = "0.0.0.0"
    server_port: int = 4000
    log_level: str = "INFO"
    environment: str = "development"

    @field_validator("default_starting_credits", mode="after")
    @classmethod
    def clamp_starting_credits(cls, v: int) -> int:
        return max(v, 0)

    @field_validator("personal_look_credit_cost", "remix_look_credit_cost", "store_write_retries", mode="after")
    @classmethod
    def clamp_at_least_one(cls, v: int) -> int:
        return max(v, 1)

    @property
    def cors_origin_list(self) -> List[str]:
        # Split comma-separated string and strip whitespace
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_role_key)


@lru_cache
def get_settings() -> Settings:
    return Settings()
