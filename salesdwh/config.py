"""
Configuration module for the SalesDwh warehouse jobs.

Reads environment variables and provides configuration values for the
PostgreSQL connection, the bronze source directory and bulk-load settings.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

# Local development reads a .env at the project root; real environment
# variables always win.
env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(dotenv_path=env_path, override=False)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "y", "on")


class Config:
    """
    Configuration class that reads environment variables for the warehouse jobs.
    """

    # Warehouse connection
    DWH_HOST: str = os.getenv("DWH_HOST", "localhost")
    DWH_PORT: str = os.getenv("DWH_PORT", "5432")
    DWH_DATABASE: str = os.getenv("DWH_DATABASE", "salesdwh")
    DWH_USER: str = os.getenv("DWH_USER", "")
    DWH_PASSWORD: str = os.getenv("DWH_PASSWORD", "")
    DWH_SECRET_ARN: str = os.getenv("DWH_SECRET_ARN", "")
    MAINTENANCE_DATABASE: str = "postgres"
    CONNECT_TIMEOUT: int = 10

    # Layered warehouse
    BRONZE_SCHEMA: str = "bronze"
    SILVER_SCHEMA: str = "silver"
    GOLD_SCHEMA: str = "gold"
    LOAD_LOG_TABLE: str = "load_log"

    # Bronze loading
    SOURCE_DIR: str = os.getenv("DWH_SOURCE_DIR", "")
    SOURCE_ENCODING: str = os.getenv("DWH_SOURCE_ENCODING", "utf-8")
    MAX_ERRORS: str = os.getenv("DWH_MAX_ERRORS", "10")
    LOG_TO_TABLE: bool = _env_bool("DWH_LOG_TO_TABLE", True)

    # Lazy-loaded secret cache
    _secret_cache: Dict[str, Any] = {}

    @classmethod
    def schemas(cls) -> tuple:
        """Schemas of the layered warehouse, raw to modeled."""
        return (cls.BRONZE_SCHEMA, cls.SILVER_SCHEMA, cls.GOLD_SCHEMA)

    @classmethod
    def get_max_errors(cls) -> int:
        """
        Malformed-row threshold above which a bulk load is aborted.

        Raises:
            ValueError: If DWH_MAX_ERRORS is not a non-negative integer.
        """
        try:
            max_errors = int(cls.MAX_ERRORS)
        except ValueError:
            raise ValueError(
                f"DWH_MAX_ERRORS must be an integer, got {cls.MAX_ERRORS!r}"
            )
        if max_errors < 0:
            raise ValueError("DWH_MAX_ERRORS must not be negative")
        return max_errors

    @classmethod
    def _load_secret(cls) -> Dict[str, Any]:
        """
        Retrieve and cache the warehouse secret from AWS Secrets Manager.

        Returns:
            Dict containing the secret payload.
        """
        if not cls._secret_cache:
            import boto3

            secrets_client = boto3.client("secretsmanager")
            try:
                response = secrets_client.get_secret_value(SecretId=cls.DWH_SECRET_ARN)
                cls._secret_cache = json.loads(response["SecretString"])
            except Exception as e:
                raise ValueError(
                    f"Failed to retrieve warehouse secret from Secrets Manager: {e}"
                )
        return cls._secret_cache

    @classmethod
    def get_connection_details(cls, database: Optional[str] = None) -> Dict[str, Any]:
        """
        Provide psycopg2 connection parameters.

        Environment variables take precedence; user and password fall back to
        the Secrets Manager secret when DWH_SECRET_ARN is set.

        Args:
            database: Database to connect to, defaults to DWH_DATABASE.

        Returns:
            Dict containing host, port, dbname, user, password and connect_timeout.
        """
        user = cls.DWH_USER
        password = cls.DWH_PASSWORD
        if cls.DWH_SECRET_ARN and not password:
            secret = cls._load_secret()
            user = user or secret.get("username", "")
            password = secret.get("password", "")

        if not user or not password:
            raise ValueError(
                "Missing warehouse credentials. Set DWH_USER and DWH_PASSWORD "
                "(or DWH_SECRET_ARN)"
            )

        return {
            "host": cls.DWH_HOST,
            "port": int(cls.DWH_PORT),
            "dbname": database or cls.DWH_DATABASE,
            "user": user,
            "password": password,
            "connect_timeout": cls.CONNECT_TIMEOUT,
        }

    @classmethod
    def validate(cls) -> None:
        """
        Validate that required configuration values are present.

        Raises:
            ValueError: If any required configuration is missing or invalid.
        """
        required_vars = [
            ("DWH_HOST", cls.DWH_HOST),
            ("DWH_DATABASE", cls.DWH_DATABASE),
            ("DWH_USER", cls.DWH_USER or cls.DWH_SECRET_ARN),
            ("DWH_PASSWORD", cls.DWH_PASSWORD or cls.DWH_SECRET_ARN),
        ]

        missing = [name for name, value in required_vars if not value]
        if missing:
            raise ValueError(
                f"Missing required environment variables: {', '.join(missing)}"
            )

        if not cls.DWH_PORT.isdigit():
            raise ValueError(f"DWH_PORT must be numeric, got {cls.DWH_PORT!r}")

        cls.get_max_errors()
