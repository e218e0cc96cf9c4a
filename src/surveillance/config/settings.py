"""
Configuration loader for the signal triage pipeline.

Configuration is resolved in three layers: built-in defaults, an optional
YAML file, then environment variables. A ``.env`` file at the repository
root is loaded into the process environment when present; variables that
are already set take precedence.
"""

import copy
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from ..core.exceptions import ConfigError


logger = logging.getLogger(__name__)
_DOTENV_LOADED = False

PROVIDER_AZURE_OPENAI = "azure_openai"
PROVIDER_OPENAI_COMPATIBLE = "openai_compatible"

DISMISS_MODE_DELETE = "delete"
DISMISS_MODE_SOFT = "soft"


def _load_dotenv_if_present() -> None:
    """
    Load .env into process env for local runs.

    Existing shell environment variables take precedence.
    """
    global _DOTENV_LOADED
    if _DOTENV_LOADED:
        return

    # settings.py -> config -> surveillance -> src -> repo root
    env_path = Path(__file__).resolve().parents[3] / ".env"
    if not env_path.exists():
        _DOTENV_LOADED = True
        return

    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip("'").strip('"')
        if key and os.environ.get(key) is None:
            os.environ[key] = value

    _DOTENV_LOADED = True


def _default_config() -> Dict[str, Any]:
    """Return default configuration."""
    return {
        "providers": [
            {
                "name": "azure-openai",
                "kind": PROVIDER_AZURE_OPENAI,
                "endpoint": None,
                "api_key": None,
                "deployment": None,
                "api_version": "2024-02-15-preview",
                "timeout_seconds": 30,
            },
            {
                "name": "ai-gateway",
                "kind": PROVIDER_OPENAI_COMPATIBLE,
                "endpoint": "https://ai.gateway.lovable.dev/v1/chat/completions",
                "api_key": None,
                "model": "google/gemini-3-flash-preview",
                "timeout_seconds": 30,
            },
        ],
        "rate_limit": {
            "max_requests": 100,
            "window_seconds": 60,
        },
        "triage": {
            "default_batch_size": 50,
            "max_batch_size": 100,
            "throttle_seconds": 0.2,
            "temperature": 0.2,
            "max_tokens": 300,
            "dismiss_mode": DISMISS_MODE_DELETE,
        },
        "analysis": {
            "temperature": 0.3,
            "max_tokens": 1000,
        },
        "archive": {
            "default_batch_size": 500,
            "max_batch_size": 1000,
            "archive_age_days": 7,
            "delete_after_sync": False,
            "backend": "sqlserver",
            "path": "local/archive/signals_archive.db",
            "host": None,
            "port": 1433,
            "database": None,
            "user": None,
            "password": None,
            "driver": "ODBC Driver 18 for SQL Server",
            "schema": "dbo",
        },
        "store": {
            "backend": "sqlserver",
            "path": "local/state/signals.db",
            "connection_string": None,
            "host": "localhost",
            "port": 1433,
            "database": "Surveillance",
            "user": "sa",
            "password": None,
            "driver": "ODBC Driver 18 for SQL Server",
            "schema": "dbo",
        },
        "dedupe": {
            "delete_batch_size": 100,
        },
        "logging": {
            "level": "INFO",
            "structured": False,
        },
    }


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


# (env var, section, key, converter)
_ENV_OVERRIDES = [
    ("SIGNAL_STORE_BACKEND", "store", "backend", str.lower),
    ("SIGNAL_SQLITE_PATH", "store", "path", str),
    ("SIGNAL_SQLSERVER_CONN_STR", "store", "connection_string", str),
    ("SIGNAL_SQLSERVER_HOST", "store", "host", str),
    ("SIGNAL_SQLSERVER_PORT", "store", "port", int),
    ("SIGNAL_SQLSERVER_DATABASE", "store", "database", str),
    ("SIGNAL_SQLSERVER_USER", "store", "user", str),
    ("SIGNAL_SQLSERVER_PASSWORD", "store", "password", str),
    ("SIGNAL_SQLSERVER_DRIVER", "store", "driver", str),
    ("SIGNAL_SQLSERVER_SCHEMA", "store", "schema", str),
    ("ARCHIVE_STORE_BACKEND", "archive", "backend", str.lower),
    ("ARCHIVE_SQLITE_PATH", "archive", "path", str),
    ("ARCHIVE_SQLSERVER_HOST", "archive", "host", str),
    ("ARCHIVE_SQLSERVER_PORT", "archive", "port", int),
    ("ARCHIVE_SQLSERVER_DATABASE", "archive", "database", str),
    ("ARCHIVE_SQLSERVER_USER", "archive", "user", str),
    ("ARCHIVE_SQLSERVER_PASSWORD", "archive", "password", str),
    ("ARCHIVE_SQLSERVER_DRIVER", "archive", "driver", str),
    ("ARCHIVE_SQLSERVER_SCHEMA", "archive", "schema", str),
    ("TRIAGE_DISMISS_MODE", "triage", "dismiss_mode", str.lower),
    ("TRIAGE_THROTTLE_SECONDS", "triage", "throttle_seconds", float),
    ("RATE_LIMIT_MAX_REQUESTS", "rate_limit", "max_requests", int),
    ("RATE_LIMIT_WINDOW_SECONDS", "rate_limit", "window_seconds", float),
    ("LOG_LEVEL", "logging", "level", str.upper),
    ("LOG_STRUCTURED", "logging", "structured", _as_bool),
]

# (env var, provider kind, key)
_PROVIDER_ENV_OVERRIDES = [
    ("AZURE_OPENAI_ENDPOINT", PROVIDER_AZURE_OPENAI, "endpoint"),
    ("AZURE_OPENAI_API_KEY", PROVIDER_AZURE_OPENAI, "api_key"),
    ("AZURE_OPENAI_DEPLOYMENT", PROVIDER_AZURE_OPENAI, "deployment"),
    ("AZURE_OPENAI_API_VERSION", PROVIDER_AZURE_OPENAI, "api_version"),
    ("AI_GATEWAY_URL", PROVIDER_OPENAI_COMPATIBLE, "endpoint"),
    ("AI_GATEWAY_API_KEY", PROVIDER_OPENAI_COMPATIBLE, "api_key"),
    ("AI_GATEWAY_MODEL", PROVIDER_OPENAI_COMPATIBLE, "model"),
]


@dataclass
class ProviderConfig:
    """
    Connection settings for one chat-completion provider.

    Attributes:
        name: Display name used in logs and decisions
        kind: azure_openai or openai_compatible
        endpoint: Base URL (Azure resource) or full chat-completions URL
        api_key: Credential sent with every request
        deployment: Azure deployment identifier
        api_version: Azure API version query parameter
        model: Model identifier for OpenAI-compatible gateways
        timeout_seconds: Request timeout
    """
    name: str
    kind: str
    endpoint: Optional[str] = None
    api_key: Optional[str] = None
    deployment: Optional[str] = None
    api_version: Optional[str] = None
    model: Optional[str] = None
    timeout_seconds: float = 30

    @property
    def is_configured(self) -> bool:
        if not self.endpoint or not self.api_key:
            return False
        if self.kind == PROVIDER_AZURE_OPENAI and not self.deployment:
            return False
        return True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProviderConfig":
        return cls(
            name=data.get("name") or data["kind"],
            kind=data["kind"],
            endpoint=data.get("endpoint"),
            api_key=data.get("api_key"),
            deployment=data.get("deployment"),
            api_version=data.get("api_version"),
            model=data.get("model"),
            timeout_seconds=data.get("timeout_seconds", 30),
        )


@dataclass
class SqlServerConnectionConfig:
    """SQL Server connection parameters for pyodbc."""
    host: Optional[str] = None
    port: int = 1433
    database: Optional[str] = None
    user: Optional[str] = None
    password: Optional[str] = None
    driver: str = "ODBC Driver 18 for SQL Server"
    schema: str = "dbo"
    connection_string: Optional[str] = None
    encrypt: bool = True

    def missing_fields(self) -> List[str]:
        if self.connection_string:
            return []
        return [
            name for name in ("host", "database", "user", "password")
            if not getattr(self, name)
        ]

    def get_connection_string(self) -> str:
        """Build the ODBC connection string."""
        if self.connection_string:
            return self.connection_string

        if self.encrypt:
            tls = "Encrypt=yes;TrustServerCertificate=no"
        else:
            tls = "Encrypt=no;TrustServerCertificate=yes"
        return (
            f"Driver={{{self.driver}}};"
            f"Server={self.host},{self.port};"
            f"Database={self.database};"
            f"UID={self.user};"
            f"PWD={self.password};"
            f"{tls}"
        )


class SurveillanceConfig:
    """
    Configuration for the triage pipeline.

    Loads an optional YAML file over built-in defaults and applies
    environment variable overrides.

    Example:
        >>> config = SurveillanceConfig(Path("config/surveillance.yaml"))
        >>> config.get("triage.max_batch_size")
        100
    """

    def __init__(
        self,
        config_path: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
    ):
        """
        Initialize configuration.

        Args:
            config_path: Path to YAML config file (optional)
            env: Environment mapping to read overrides from (defaults to os.environ)
        """
        self.config_path = Path(config_path) if config_path else None
        if env is None:
            _load_dotenv_if_present()
            env = os.environ
        self.env = env

        self.config = _default_config()
        if self.config_path:
            _deep_merge(self.config, self._load_config())
        self._apply_env_overrides()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file."""
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        logger.info(f"Loading config from: {self.config_path}")

        with open(self.config_path, "r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f)

        return copy.deepcopy(loaded) if loaded else {}

    def _apply_env_overrides(self) -> None:
        """Apply environment variable overrides to loaded config."""
        for env_key, section, key, convert in _ENV_OVERRIDES:
            value = self.env.get(env_key)
            if value is None or value.strip() == "":
                continue
            try:
                self.config.setdefault(section, {})[key] = convert(value)
            except ValueError:
                raise ConfigError(f"Invalid value for {env_key}: {value!r}", missing=[env_key])

        providers = self.config.setdefault("providers", [])
        for env_key, kind, key in _PROVIDER_ENV_OVERRIDES:
            value = self.env.get(env_key)
            if value is None or value.strip() == "":
                continue
            for provider in providers:
                if provider.get("kind") == kind:
                    provider[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by dotted key."""
        value = self.config
        for k in key.split("."):
            if isinstance(value, dict):
                value = value.get(k)
            else:
                return default
        return value if value is not None else default

    def get_section(self, name: str) -> Dict[str, Any]:
        return dict(self.config.get(name) or {})

    def get_provider_configs(self) -> List[ProviderConfig]:
        """Return the ordered provider chain, leaving out providers without credentials."""
        chain = []
        for entry in self.config.get("providers") or []:
            provider = ProviderConfig.from_dict(entry)
            if provider.is_configured:
                chain.append(provider)
            else:
                logger.debug(f"Provider {provider.name} not configured; left out of chain")
        return chain

    def require_provider_configs(self) -> List[ProviderConfig]:
        chain = self.get_provider_configs()
        if not chain:
            raise ConfigError(
                "No AI provider configured (set AZURE_OPENAI_* or AI_GATEWAY_* variables)",
                missing=["providers"],
            )
        return chain

    def get_store_connection(self) -> SqlServerConnectionConfig:
        store = self.get_section("store")
        return SqlServerConnectionConfig(
            host=store.get("host"),
            port=int(store.get("port") or 1433),
            database=store.get("database"),
            user=store.get("user"),
            password=store.get("password"),
            driver=store.get("driver") or "ODBC Driver 18 for SQL Server",
            schema=store.get("schema") or "dbo",
            connection_string=store.get("connection_string"),
        )

    def get_archive_connection(self) -> SqlServerConnectionConfig:
        archive = self.get_section("archive")
        return SqlServerConnectionConfig(
            host=archive.get("host"),
            port=int(archive.get("port") or 1433),
            database=archive.get("database"),
            user=archive.get("user"),
            password=archive.get("password"),
            driver=archive.get("driver") or "ODBC Driver 18 for SQL Server",
            schema=archive.get("schema") or "dbo",
            encrypt=True,
        )

    def require_archive_connection(self) -> SqlServerConnectionConfig:
        """
        Return archive connection parameters, failing fast when any are missing.

        Raises:
            ConfigError: If host, database, user or password is not set
        """
        connection = self.get_archive_connection()
        missing = connection.missing_fields()
        if missing:
            raise ConfigError(
                f"Archive store credentials not configured: missing {', '.join(missing)}",
                missing=missing,
            )
        return connection

    @property
    def dismiss_mode(self) -> str:
        mode = self.get("triage.dismiss_mode", DISMISS_MODE_DELETE)
        if mode not in (DISMISS_MODE_DELETE, DISMISS_MODE_SOFT):
            raise ConfigError(f"Unknown dismiss_mode: {mode}", missing=["triage.dismiss_mode"])
        return mode

    @property
    def log_level(self) -> int:
        return getattr(logging, str(self.get("logging.level", "INFO")).upper(), logging.INFO)
