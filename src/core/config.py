import os
import re

from dotenv import load_dotenv
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .prefect_secrets import env_or_prefect_secret

load_dotenv()

_RPC_ENV_PATTERN = re.compile(r"^RPC_CHAIN_URL_(\d+)$")


class Settings(BaseSettings):
    # App Settings
    APP_NAME: str = "Yearn Forward APY"
    DEBUG: bool = False

    # Data sources
    KONG_GQL_URL: str = "https://kong.yearn.farm/api/gql"
    YDAEMON_BASE_URL: str = "https://ydaemon.yearn.fi"
    CURVE_API_BASE_URL: str = "https://api.curve.finance/api"
    FRAX_POOLS_URL: str = "https://frax.convexfinance.com/api/frax/pools"

    HTTP_TIMEOUT_SECONDS: float = 30.0
    RPC_TIMEOUT_SECONDS: int = 20

    # Chain id -> RPC endpoint. Accepts JSON (`{"1": "https://..."}`); every
    # `RPC_CHAIN_URL_<chainId>` env var is folded in as well.
    RPC_CHAIN_URLS: dict[int, str] = Field(default_factory=dict)

    # Shared secret for the Kong webhook signature (`kong-signature` header).
    KONG_SECRET: str | None = Field(
        env_or_prefect_secret("KONG_SECRET", "kong-secret"),
        alias="KONG_SECRET",
    )

    # Prefect Settings
    PREFECT_API_URL: str | None = os.getenv('PREFECT_API_URL')
    PREFECT_API_KEY: str | None = os.getenv('PREFECT_API_KEY')

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("RPC_CHAIN_URLS", mode="before")
    @classmethod
    def _coerce_rpc_keys(cls, value):
        if isinstance(value, dict):
            return {int(k): str(v).strip() for k, v in value.items() if v}
        return value

    @model_validator(mode="after")
    def _collect_rpc_env(self) -> "Settings":
        for key, value in os.environ.items():
            match = _RPC_ENV_PATTERN.match(key)
            if match and value.strip():
                self.RPC_CHAIN_URLS.setdefault(int(match.group(1)), value.strip())
        return self


# Singleton instance to be imported across the app
settings = Settings()
