from __future__ import annotations
"""
inheritance.config - configuration for the inheritance custody vault

Covers:
- Inactivity thresholds (check-in period, grace period) and the length of one
  time unit in seconds (default: one day)
- Informational token decimals of the custodied asset (6, a USD stablecoin)
- Default SQLite path used by the CLI

Environment overrides (all optional; sensible defaults provided):

  INHERITANCE_CHECK_IN_PERIOD_UNITS=90
  INHERITANCE_GRACE_PERIOD_UNITS=30
  INHERITANCE_TIME_UNIT_SECONDS=86400
  INHERITANCE_TOKEN_DECIMALS=6
  INHERITANCE_DB=inheritance.db

You can also load from a JSON or YAML file via
`INHERITANCE_CONFIG_FILE=/path/to/config.(json|yaml|yml)`.
File values override defaults; environment overrides the file.

Thresholds are captured into each vault when it is created and persisted with
it, so changing configuration never retimes an existing vault.
"""


from dataclasses import asdict, dataclass, field
from functools import lru_cache
from typing import Any, Dict, Mapping, Optional
import json
import os
from pathlib import Path

import yaml


DAY_SECONDS = 86_400


# -------------------------- Data classes --------------------------


@dataclass(frozen=True)
class TimingConfig:
    """Inactivity thresholds, in units of `time_unit_seconds`."""
    check_in_period_units: int = 90
    grace_period_units: int = 30
    time_unit_seconds: int = DAY_SECONDS

    @property
    def check_in_period(self) -> int:
        """Check-in period in seconds."""
        return self.check_in_period_units * self.time_unit_seconds

    @property
    def grace_period(self) -> int:
        """Grace period in seconds."""
        return self.grace_period_units * self.time_unit_seconds

    @property
    def verification_after(self) -> int:
        """Seconds since last check-in after which WARNING escalates (cumulative)."""
        return self.check_in_period + self.grace_period

    def validate(self) -> None:
        if self.check_in_period_units <= 0:
            raise ValueError("check_in_period_units must be positive.")
        if self.grace_period_units < 0:
            raise ValueError("grace_period_units must be non-negative.")
        if self.time_unit_seconds <= 0:
            raise ValueError("time_unit_seconds must be positive.")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "TimingConfig":
        base = cls()
        t = cls(
            check_in_period_units=int(d.get("check_in_period_units", base.check_in_period_units)),
            grace_period_units=int(d.get("grace_period_units", base.grace_period_units)),
            time_unit_seconds=int(d.get("time_unit_seconds", base.time_unit_seconds)),
        )
        t.validate()
        return t


@dataclass(frozen=True)
class ProtocolConfig:
    """Top-level configuration container."""
    timing: TimingConfig = field(default_factory=TimingConfig)
    token_decimals: int = 6  # informational
    db_path: str = "inheritance.db"

    def validate(self) -> None:
        self.timing.validate()
        if not (0 <= self.token_decimals <= 36):
            raise ValueError("token_decimals must be between 0 and 36.")
        if not self.db_path:
            raise ValueError("db_path must be non-empty.")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# -------------------------- Loaders --------------------------


def _getenv_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    try:
        return int(str(v).replace("_", ""))
    except ValueError as e:
        raise ValueError(f"Invalid int for {name}: {v!r}") from e


def from_env(base: Optional[ProtocolConfig] = None, prefix: str = "INHERITANCE_") -> ProtocolConfig:
    """
    Build a ProtocolConfig from environment variables, optionally layering on top of `base`.
    """
    cfg = base or ProtocolConfig()

    timing = TimingConfig(
        check_in_period_units=_getenv_int(f"{prefix}CHECK_IN_PERIOD_UNITS", cfg.timing.check_in_period_units),
        grace_period_units=_getenv_int(f"{prefix}GRACE_PERIOD_UNITS", cfg.timing.grace_period_units),
        time_unit_seconds=_getenv_int(f"{prefix}TIME_UNIT_SECONDS", cfg.timing.time_unit_seconds),
    )
    new_cfg = ProtocolConfig(
        timing=timing,
        token_decimals=_getenv_int(f"{prefix}TOKEN_DECIMALS", cfg.token_decimals),
        db_path=os.getenv(f"{prefix}DB") or cfg.db_path,
    )
    new_cfg.validate()
    return new_cfg


def from_file(path: str | os.PathLike[str]) -> ProtocolConfig:
    """
    Load configuration from a JSON or YAML file.

    Layout:
        timing:
          check_in_period_units: 90
          grace_period_units: 30
          time_unit_seconds: 86400
        token_decimals: 6
        db_path: inheritance.db
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(p)

    text = p.read_text(encoding="utf-8")
    if p.suffix.lower() in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text or "{}")
    if not isinstance(data, dict):
        raise ValueError(f"config file {p} must contain a mapping at top level")

    defaults = ProtocolConfig()
    cfg = ProtocolConfig(
        timing=TimingConfig.from_dict(data.get("timing") or {}),
        token_decimals=int(data.get("token_decimals", defaults.token_decimals)),
        db_path=str(data.get("db_path", defaults.db_path)),
    )
    cfg.validate()
    return cfg


def load() -> ProtocolConfig:
    """
    Load configuration using the following precedence:
      1) File at $INHERITANCE_CONFIG_FILE (JSON/YAML)
      2) Environment variables (INHERITANCE_*), applied on top of defaults or file values
    """
    file_path = os.getenv("INHERITANCE_CONFIG_FILE")
    base = from_file(file_path) if file_path else ProtocolConfig()
    return from_env(base=base)


@lru_cache(maxsize=1)
def load_config() -> ProtocolConfig:
    """Cached `load()`; call `load_config.cache_clear()` after changing the environment."""
    return load()


def pretty(cfg: Optional[ProtocolConfig] = None) -> str:
    """Return a human-readable JSON string of the current config."""
    obj = (cfg or load()).to_dict()
    return json.dumps(obj, indent=2, sort_keys=True)


__all__ = [
    "DAY_SECONDS",
    "TimingConfig",
    "ProtocolConfig",
    "from_env",
    "from_file",
    "load",
    "load_config",
    "pretty",
]
