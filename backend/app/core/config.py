from functools import lru_cache
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from pydantic import AnyUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


OPENSEA_API_URLS: dict[int, str] = {
    1: "https://api.opensea.io",
    4: "https://testnets-api.opensea.io",
    5: "https://testnets-api.opensea.io",
}

SEAPORT_CHAIN_NAMES: dict[int, str] = {
    1: "ethereum",
    4: "rinkeby",
    5: "goerli",
}


def _ensure_sqlalchemy_postgres_scheme(value: str) -> str:
    if not value.lower().startswith("postgres"):
        return value

    parsed = urlparse(value)
    scheme = parsed.scheme.lower()

    if scheme == "postgres":
        scheme = "postgresql"

    if scheme == "postgresql":
        scheme = "postgresql+psycopg"

    if scheme not in {"postgresql+psycopg", "postgresql+asyncpg"}:
        scheme = "postgresql+psycopg"

    query_params = dict(parse_qsl(parsed.query, keep_blank_values=True))
    query_params.setdefault("target_session_attrs", "read-write")
    new_query = urlencode(query_params, doseq=True)

    return urlunparse(parsed._replace(scheme=scheme, query=new_query))


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    debug: bool = Field(False, description="Enable FastAPI debug mode")
    environment: str = Field(
        default="development",
        description="Runtime environment (development|staging|production)",
    )
    database_url: AnyUrl | str = Field(
        default="sqlite:///../data/relayer.db",
        description="SQLAlchemy compatible database URL",
    )
    chain_id: int = Field(1, description="EVM chain the relayer syncs orders for")
    opensea_base_url: AnyUrl | str | None = Field(
        default=None,
        description="Override for the OpenSea API base URL (derived from chain_id when unset)",
    )
    opensea_orders_path: str = Field(
        default="/wyvern/v1/orders",
        description="Relative path of the Wyvern v2.3 orders endpoint",
    )
    seaport_listings_path: str | None = Field(
        default=None,
        description="Relative path of the Seaport listings endpoint (derived from chain_id when unset)",
    )
    realtime_opensea_api_key: str | None = Field(
        default=None, description="API key used by realtime Wyvern syncs"
    )
    backfill_opensea_api_key: str | None = Field(
        default=None, description="API key used by backfill Wyvern syncs"
    )
    seaport_api_key: str | None = Field(
        default=None, description="Optional API key sent with Seaport listing requests"
    )
    seaport_user_agent: str = Field(
        default="Mozilla/5.0 (X11; Fedora; Linux x86_64; rv:89.0) Gecko/20100101 Firefox/89.0",
        description="User agent presented to the Seaport listings endpoint",
    )
    sync_page_size: int = Field(50, description="Orders requested per page", ge=1)
    sync_parse_concurrency: int = Field(
        20, description="Maximum in-flight order parses per page", ge=1
    )
    realtime_max_orders: int = Field(
        1000,
        description="Orders fetched by one realtime sync before handing back to the scheduler",
        ge=1,
    )
    sync_rate_limit_seconds: float = Field(
        1.0, description="Pause between page fetches outside one-shot mode", ge=0
    )
    opensea_request_timeout: float = Field(10.0, description="Wyvern page timeout (seconds)", gt=0)
    seaport_request_timeout: float = Field(20.0, description="Seaport page timeout (seconds)", gt=0)
    relay_delay_seconds: int = Field(
        default=60,
        description="Delay applied to relay jobs enqueued with delayed=True",
        ge=0,
    )
    order_source: str = Field(default="opensea", description="Source tag stored on every order row")

    @field_validator("database_url", mode="before")
    @classmethod
    def _normalize_postgres_urls(cls, value: Any) -> Any:
        if value is None or not isinstance(value, str):
            return value
        if value.startswith("postgres://"):
            return "postgresql://" + value[len("postgres://") :]
        return value

    @field_validator("seaport_listings_path", "opensea_orders_path")
    @classmethod
    def _require_leading_slash(cls, value: str | None) -> str | None:
        if value is not None and not value.startswith("/"):
            raise ValueError("endpoint paths must start with '/'")
        return value

    @property
    def resolved_database_url(self) -> str:
        return _ensure_sqlalchemy_postgres_scheme(str(self.database_url))

    @property
    def resolved_opensea_base_url(self) -> str:
        if self.opensea_base_url:
            return str(self.opensea_base_url).rstrip("/")
        try:
            return OPENSEA_API_URLS[self.chain_id]
        except KeyError:
            raise ValueError(f"No OpenSea API known for chain {self.chain_id}") from None

    @property
    def resolved_seaport_listings_path(self) -> str:
        if self.seaport_listings_path:
            return self.seaport_listings_path
        chain_name = SEAPORT_CHAIN_NAMES.get(self.chain_id)
        if chain_name is None:
            raise ValueError(f"No Seaport listings endpoint known for chain {self.chain_id}")
        return f"/v2/orders/{chain_name}/seaport/listings"

    def opensea_api_key(self, *, backfill: bool) -> str | None:
        """Return the Wyvern API key for the sync mode; testnets reject keys."""

        if self.chain_id != 1:
            return None
        return self.backfill_opensea_api_key if backfill else self.realtime_opensea_api_key


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
