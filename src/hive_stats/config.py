"""Configuration helpers and Settings container.

This module provides a small `Settings` dataclass and `get_settings` which
reads environment variables. HiveSQL credentials are only checked by the
commands that talk to HiveSQL (see `Settings.require_hivesql`).
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from dotenv import load_dotenv

# Explicitly load .env from project root
PROJECT_ROOT = Path(__file__).resolve().parents[2]
load_dotenv(PROJECT_ROOT / ".env")

DEFAULT_MONGO_URI = "mongodb://localhost:27017,localhost:27018,localhost:27019/?replicaSet=rs0"
DEFAULT_PRICE_API_URL = "https://min-api.cryptocompare.com/data/v2/histoday"


def _env_flag(name: str, default: bool) -> bool:
    """Read a boolean flag such as ``MONGO_TLS=false`` from the environment."""
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Container for pipeline configuration read from the environment.

    Attributes:
        mongo_uri: MongoDB connection URI.
        mongo_db: Target MongoDB database name.
        mongo_tls: Whether to connect to MongoDB over TLS (Atlas).
        mongo_transactions: Write each upsert batch inside a transaction.
            Requires a replica set; disable for a standalone server.
        hivesql_server: HiveSQL host.
        hivesql_port: HiveSQL port.
        hivesql_database: HiveSQL database name.
        hivesql_username: HiveSQL login (may be empty until required).
        hivesql_password: HiveSQL password (may be empty until required).
        hivesql_timeout: Query timeout in seconds; yearly queries are slow.
        price_api_url: CryptoCompare daily history endpoint.
    """
    mongo_uri: str
    mongo_db: str
    mongo_tls: bool
    mongo_transactions: bool
    hivesql_server: str
    hivesql_port: int
    hivesql_database: str
    hivesql_username: str
    hivesql_password: str
    hivesql_timeout: int
    price_api_url: str

    def require_hivesql(self) -> None:
        """Raise if the HiveSQL credentials are missing.

        Raises:
            RuntimeError: if `HIVESQL_USERNAME` or `HIVESQL_PASSWORD` is unset.
        """
        for name, value in (
            ("HIVESQL_USERNAME", self.hivesql_username),
            ("HIVESQL_PASSWORD", self.hivesql_password),
        ):
            if not value:
                raise RuntimeError(
                    f"{name} is required. Set it in .env "
                    "(HiveSQL credentials are issued per Hive account)."
                )


def get_settings() -> Settings:
    """Read environment variables and return a frozen `Settings` object."""
    return Settings(
        mongo_uri=os.getenv("MONGO_URI", DEFAULT_MONGO_URI),
        mongo_db=os.getenv("MONGO_DB", "hive_stats"),
        mongo_tls=_env_flag("MONGO_TLS", True),
        mongo_transactions=_env_flag("MONGO_TRANSACTIONS", True),
        hivesql_server=os.getenv("HIVESQL_SERVER", "vip.hivesql.io"),
        hivesql_port=int(os.getenv("HIVESQL_PORT", "1433")),
        hivesql_database=os.getenv("HIVESQL_DATABASE", "DBHive"),
        hivesql_username=os.getenv("HIVESQL_USERNAME", "").strip(),
        hivesql_password=os.getenv("HIVESQL_PASSWORD", "").strip(),
        hivesql_timeout=int(os.getenv("HIVESQL_TIMEOUT", "600")),
        price_api_url=os.getenv("CRYPTOCOMPARE_URL", DEFAULT_PRICE_API_URL),
    )
