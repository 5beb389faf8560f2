"""
Ledger configuration.

Sources, later ones win:
1. `LedgerConfig` defaults
2. an optional YAML mapping (`load_config(path)`)
3. environment overrides:
   - MINAMM_ADMIN
   - MINAMM_FEE_RATE
   - MINAMM_CUSTODY_ACCOUNT
   - MINAMM_LOG_LEVEL

Invalid values fail closed with ValueError rather than falling back to defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import yaml

from ..core.errors import AmmError
from ..core.fees import DEFAULT_FEE_RATE_PPT, validate_fee_rate
from ..core.ledger import PoolLedger
from ..log import configure_logging, parse_level
from ..state.balances import DEFAULT_CUSTODY_ACCOUNT


_KNOWN_KEYS = ("admin", "fee_rate", "custody_account", "log_level")


@dataclass(frozen=True)
class LedgerConfig:
    admin: str = "admin"
    fee_rate: int = DEFAULT_FEE_RATE_PPT
    custody_account: str = DEFAULT_CUSTODY_ACCOUNT
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        for name in ("admin", "custody_account"):
            v = getattr(self, name)
            if not isinstance(v, str) or not v.strip():
                raise ValueError(f"{name} must be a non-empty string")
        try:
            validate_fee_rate(self.fee_rate)
        except AmmError as exc:
            raise ValueError(f"fee_rate: {exc}") from exc
        parse_level(self.log_level)


def _env_str(env: Mapping[str, str], name: str) -> Optional[str]:
    raw = env.get(name)
    if raw is None:
        return None
    v = raw.strip()
    return v if v else None


def _env_int(env: Mapping[str, str], name: str) -> Optional[int]:
    raw = _env_str(env, name)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def config_from_mapping(obj: Mapping[str, Any], *, base: LedgerConfig = LedgerConfig()) -> LedgerConfig:
    if not isinstance(obj, Mapping):
        raise ValueError("config must be a mapping")
    unknown = sorted(set(obj.keys()) - set(_KNOWN_KEYS))
    if unknown:
        raise ValueError(f"unknown config keys: {unknown}")
    fee_rate = obj.get("fee_rate", base.fee_rate)
    if not isinstance(fee_rate, int) or isinstance(fee_rate, bool):
        raise ValueError("fee_rate must be an int")
    return replace(
        base,
        admin=obj.get("admin", base.admin),
        fee_rate=fee_rate,
        custody_account=obj.get("custody_account", base.custody_account),
        log_level=obj.get("log_level", base.log_level),
    )


def load_config(
    path: Optional[Union[str, Path]] = None,
    *,
    env: Optional[Mapping[str, str]] = None,
) -> LedgerConfig:
    """
    Build a LedgerConfig from an optional YAML file plus environment overrides.
    """
    env = os.environ if env is None else env
    config = LedgerConfig()

    if path is not None:
        p = Path(path)
        obj = yaml.safe_load(p.read_text(encoding="utf-8"))
        if obj is None:
            obj = {}
        if not isinstance(obj, Mapping):
            raise ValueError(f"{p}: config YAML must be a mapping")
        config = config_from_mapping(obj, base=config)

    overrides: dict = {}
    admin = _env_str(env, "MINAMM_ADMIN")
    if admin is not None:
        overrides["admin"] = admin
    fee_rate = _env_int(env, "MINAMM_FEE_RATE")
    if fee_rate is not None:
        overrides["fee_rate"] = fee_rate
    custody = _env_str(env, "MINAMM_CUSTODY_ACCOUNT")
    if custody is not None:
        overrides["custody_account"] = custody
    log_level = _env_str(env, "MINAMM_LOG_LEVEL")
    if log_level is not None:
        overrides["log_level"] = log_level

    return replace(config, **overrides) if overrides else config


def build_ledger(config: LedgerConfig, transfers, *, setup_logging: bool = False) -> PoolLedger:
    """
    Construct a PoolLedger from `config`.

    The transfer service's operator account must be the configured custody account.
    """
    operator = getattr(transfers, "operator", None)
    if operator is not None and operator != config.custody_account:
        raise ValueError(
            f"transfer service operator {operator!r} != custody_account {config.custody_account!r}"
        )
    if setup_logging:
        configure_logging(config.log_level)
    return PoolLedger(
        admin=config.admin,
        transfers=transfers,
        fee_rate=config.fee_rate,
        custody_account=config.custody_account,
    )
