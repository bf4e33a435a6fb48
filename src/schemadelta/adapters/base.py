"""
Adapter protocol definitions and connection configuration.
"""

from __future__ import annotations

import os
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator, Protocol, Sequence
from urllib.parse import parse_qs, urlparse

from ..dialects.base import Dialect


class AdapterError(RuntimeError):
    """Base error for adapter-related failures."""


class AdapterConfigurationError(AdapterError):
    """Raised when configuration or required dependencies are invalid."""


class AdapterConnectionError(AdapterError):
    """Raised when establishing or using a connection fails."""


class AdapterExecutionError(AdapterError):
    """Raised when SQL execution or parameter validation fails."""


_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_bool(value: str, *, key: str) -> bool:
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise AdapterConfigurationError(f"Invalid boolean value for '{key}': {value!r}")


def _parse_float(value: str, *, key: str) -> float:
    try:
        return float(value)
    except ValueError as exc:
        raise AdapterConfigurationError(f"Invalid float value for '{key}': {value!r}") from exc


@dataclass
class ConnectionConfig:
    """
    Normalized connection configuration for the revision state store.
    """

    url: str
    autocommit: bool = False
    timeout: float | None = None
    options: dict[str, Any] = field(default_factory=dict)
    source: str | None = None

    @property
    def scheme(self) -> str:
        return urlparse(self.url).scheme.split("+", 1)[0]

    @classmethod
    def from_dsn(cls, dsn: str, **kwargs: Any) -> "ConnectionConfig":
        """
        Build a connection config, lifting ``autocommit`` and ``timeout`` out
        of the DSN query string. Other query parameters become driver options.
        """
        parsed = urlparse(dsn)
        if not parsed.scheme:
            raise AdapterConfigurationError(f"DSN is missing a scheme: {dsn!r}")
        query = {k: v[0] for k, v in parse_qs(parsed.query).items()}
        autocommit = kwargs.pop("autocommit", None)
        if "autocommit" in query:
            parsed_autocommit = _parse_bool(query.pop("autocommit"), key="autocommit")
            if autocommit is None:
                autocommit = parsed_autocommit
        timeout = kwargs.pop("timeout", None)
        if "timeout" in query:
            parsed_timeout = _parse_float(query.pop("timeout"), key="timeout")
            if timeout is None:
                timeout = parsed_timeout
        options = dict(query)
        options.update(kwargs.pop("options", None) or {})
        return cls(
            url=dsn,
            autocommit=bool(autocommit),
            timeout=timeout,
            options=options,
            **kwargs,
        )

    @classmethod
    def from_env(cls, env_var: str, **kwargs: Any) -> "ConnectionConfig":
        """
        Build a config from an environment variable containing a DSN.
        """
        value = os.getenv(env_var)
        if not value:
            raise AdapterConfigurationError(f"Environment variable {env_var} is not set")
        return cls.from_dsn(value, source=env_var, **kwargs)

    def connection_url(self) -> str:
        """
        The DSN without its query string; query parameters travel in ``options``.
        """
        return urlparse(self.url)._replace(query="").geturl()

    def redacted_dsn(self) -> str:
        """
        Return the DSN with the password replaced, safe for logging.
        """
        parsed = urlparse(self.url)
        if not parsed.password:
            return self.url
        netloc = parsed.netloc.replace(f":{parsed.password}@", ":***@", 1)
        return parsed._replace(netloc=netloc).geturl()

    def descriptive_label(self) -> str:
        redacted = self.redacted_dsn()
        if self.source:
            return f"{self.source} ({redacted})"
        return redacted


class DatabaseAdapter(Protocol):
    """
    What the revision store and generated migration modules need from a
    database connection.
    """

    dialect: Dialect

    def connect(self, config: ConnectionConfig) -> Any: ...

    def close(self) -> None: ...

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> Any: ...

    def table_exists(self, name: str) -> bool: ...

    def begin(self) -> None: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


@contextmanager
def transaction(adapter: DatabaseAdapter) -> Iterator[None]:
    """
    Commit when the block succeeds, roll back and re-raise when it fails.
    """
    adapter.begin()
    try:
        yield
    except Exception:
        adapter.rollback()
        raise
    else:
        adapter.commit()


_SENSITIVE_TOKENS = ("password", "secret", "token")


def redact_params(params: Sequence[Any]) -> list[Any]:
    redacted = []
    for value in params:
        if isinstance(value, str) and any(token in value.lower() for token in _SENSITIVE_TOKENS):
            redacted.append("***")
        else:
            redacted.append(value)
    return redacted
