"""
Runtime settings resolved from the environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping, Optional

from .dialects import Dialect, dialect_for_url, get_dialect

DSN_ENV = "SCHEMADELTA_DSN"
MIGRATIONS_DIR_ENV = "SCHEMADELTA_MIGRATIONS_DIR"
DIALECT_ENV = "SCHEMADELTA_DIALECT"

DEFAULT_DSN = "sqlite:///schemadelta.db"
DEFAULT_MIGRATIONS_DIR = "migrations"


@dataclass(frozen=True)
class Settings:
    dsn: str = DEFAULT_DSN
    migrations_dir: Path = Path(DEFAULT_MIGRATIONS_DIR)
    dialect_name: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            dsn=env.get(DSN_ENV) or DEFAULT_DSN,
            migrations_dir=Path(env.get(MIGRATIONS_DIR_ENV) or DEFAULT_MIGRATIONS_DIR),
            dialect_name=env.get(DIALECT_ENV) or None,
        )

    def override(self, **values: Any) -> "Settings":
        """
        Apply explicitly given values (``None`` means "not given").
        """
        given = {key: value for key, value in values.items() if value is not None}
        if "migrations_dir" in given:
            given["migrations_dir"] = Path(given["migrations_dir"])
        return replace(self, **given)

    def dialect(self) -> Dialect:
        """
        The dialect migrations are rendered for: explicit name, else the DSN's.
        """
        if self.dialect_name:
            return get_dialect(self.dialect_name)
        return dialect_for_url(self.dsn)
