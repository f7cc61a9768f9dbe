"""Runtime settings read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Tuple

ENV_PREFIX = "POCKET_LEDGER_"

_TRUTHY = {"1", "true", "yes", "on"}


def _flag(value: Optional[str]) -> bool:
    return value is not None and value.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class Settings:
    data_dir: Path = Path("data")
    strict_balance: bool = False
    log_level: str = "WARNING"
    environment: str = "prod"
    allowed_origins: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_development(self) -> bool:
        return self.environment in {"dev", "development"}

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        origins = env.get(f"{ENV_PREFIX}ALLOWED_ORIGINS", "")
        return cls(
            data_dir=Path(env.get(f"{ENV_PREFIX}DATA_DIR") or "data"),
            strict_balance=_flag(env.get(f"{ENV_PREFIX}STRICT_BALANCE")),
            log_level=(env.get(f"{ENV_PREFIX}LOG_LEVEL") or "WARNING").upper(),
            environment=(env.get(f"{ENV_PREFIX}ENV") or "prod").lower(),
            allowed_origins=tuple(origin.strip() for origin in origins.split(",") if origin.strip()),
        )
