from __future__ import annotations

import json
import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from dotenv import load_dotenv
from web3 import Web3

from .constants import (
    BASE_DIR,
    CONFIRMATIONS_ENV,
    CROWDSALE_ABI_PATH_ENV,
    CROWDSALE_ADDRESS_ENV,
    CROWDSALE_CONTRACT,
    CURRENCY_UNIT_ENV,
    DEFAULT_CONFIRMATIONS,
    DEFAULT_CURRENCY_UNIT,
    DEFAULT_ENV_FILE,
    DEFAULT_GAS_PRICE_GWEI,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_TX_TIMEOUT,
    DEPLOYMENT_FILE_ENV,
    FINALIZE_AGENT_ADDRESS_ENV,
    FINALIZE_AGENT_CONTRACT,
    GAS_LIMIT_ENV,
    GAS_PRICE_GWEI_ENV,
    MAX_FEE_GWEI_ENV,
    PLACEHOLDER_MARKERS,
    POLL_INTERVAL_ENV,
    PRIORITY_FEE_GWEI_ENV,
    PRIVATE_KEY_ENV,
    RPC_URL_ENV,
    TOKEN_ABI_PATH_ENV,
    TOKEN_ADDRESS_ENV,
    TOKEN_CONTRACT,
    TX_TIMEOUT_ENV,
)
from .errors import ConfigError

# Map canonical env names to alternative aliases that may appear in a .env file
ENV_ALIASES: Dict[str, list[str]] = {
    RPC_URL_ENV: ["RPC_URL"],
    TOKEN_ADDRESS_ENV: ["TOKEN_ADDRESS"],
    FINALIZE_AGENT_ADDRESS_ENV: ["FINALIZE_AGENT"],
}


@dataclass
class ContractSettings:
    name: str
    address: Optional[str] = None
    abi: Optional[list[dict[str, Any]]] = None
    abi_path: Optional[str] = None


@dataclass
class OperatorConfig:
    rpc_url: Optional[str]
    private_key: Optional[str]
    token: ContractSettings
    crowdsale: ContractSettings
    finalize_agent_address: Optional[str]
    currency_unit: str = DEFAULT_CURRENCY_UNIT
    gas_limit: Optional[int] = None
    gas_price_gwei: str = DEFAULT_GAS_PRICE_GWEI
    priority_fee_gwei: Optional[str] = None
    max_fee_gwei: Optional[str] = None
    tx_timeout: float = DEFAULT_TX_TIMEOUT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    confirmations: int = DEFAULT_CONFIRMATIONS

    def require_chain(self) -> None:
        """Raise ``ConfigError`` unless everything needed to reach the contracts is set."""
        problems = []
        if not self.rpc_url:
            problems.append(RPC_URL_ENV)
        for settings, address_env, abi_env in (
            (self.token, TOKEN_ADDRESS_ENV, TOKEN_ABI_PATH_ENV),
            (self.crowdsale, CROWDSALE_ADDRESS_ENV, CROWDSALE_ABI_PATH_ENV),
        ):
            if not settings.address:
                problems.append(address_env)
            if settings.abi is None:
                problems.append(abi_env)
        if not self.finalize_agent_address:
            problems.append(FINALIZE_AGENT_ADDRESS_ENV)
        if problems:
            raise ConfigError("missing configuration: " + ", ".join(problems))


def is_placeholder(value: str) -> bool:
    upper_value = value.upper()
    return any(marker in upper_value for marker in PLACEHOLDER_MARKERS)


def resolve_env_value(name: str, env: Mapping[str, str]) -> Optional[str]:
    """Return the value for ``name`` (or one of its aliases), ignoring placeholders."""
    for key in [name, *ENV_ALIASES.get(name, [])]:
        value = env.get(key)
        if value and not is_placeholder(value):
            return value.strip()
    return None


def resolve_path(path_str: str) -> Path:
    p = Path(path_str).expanduser()
    if not p.is_absolute():
        p = BASE_DIR / p
    return p.resolve()


def load_abi_file(abi_path: str) -> list[dict[str, Any]]:
    """Load a contract ABI JSON from disk.

    Accepts a raw ABI list or a compiler artifact wrapping it under ``abi``.
    Relative paths resolve from the repository root.
    """
    p = resolve_path(abi_path)
    if not p.is_file():
        raise ConfigError(f"ABI file not found: {p}")
    text = p.read_text(encoding="utf-8")
    if not text.strip():
        raise ConfigError(f"ABI file is empty: {p}")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigError(f"ABI file is not valid JSON: {p} - {e}") from e
    # Some artifact JSONs wrap the ABI under an "abi" key
    if isinstance(data, dict) and isinstance(data.get("abi"), list):
        return data["abi"]
    if isinstance(data, list):
        return data
    raise ConfigError(
        f"ABI file does not contain a valid ABI (expected dict with 'abi' key or list): {p}"
    )


def load_deployment_file(path_str: str) -> Dict[str, Dict[str, Any]]:
    """Read a deployment record mapping contract names to ``{address, abi}``.

    The record may hold the entries at the top level or under ``contracts``.
    """
    p = resolve_path(path_str)
    if not p.is_file():
        raise ConfigError(f"deployment file not found: {p}")
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigError(f"deployment file is not valid JSON: {p} - {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"deployment file must contain a JSON object: {p}")
    contracts = data.get("contracts", data)
    if not isinstance(contracts, dict):
        raise ConfigError(f"deployment file has no contract entries: {p}")
    # Record keys may be paths such as "contracts/MyToken.sol"; index by bare name too
    records: Dict[str, Dict[str, Any]] = {}
    for key, entry in contracts.items():
        if not isinstance(entry, dict):
            continue
        records[key] = entry
        bare = Path(key).stem
        records.setdefault(bare, entry)
        if entry.get("name"):
            records.setdefault(str(entry["name"]), entry)
    return records


def _parse_int(value: Optional[str], name: str) -> Optional[int]:
    if not value:
        return None
    try:
        return int(value, 0)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from exc


def _parse_float(value: Optional[str], name: str, default: float) -> float:
    if not value:
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {value!r}") from exc


def _parse_gwei(value: Optional[str], name: str) -> Optional[str]:
    if not value:
        return None
    try:
        Decimal(value)
    except InvalidOperation as exc:
        raise ConfigError(f"{name} must be a number of gwei, got {value!r}") from exc
    return value


def _parse_unit(value: Optional[str]) -> str:
    unit = value or DEFAULT_CURRENCY_UNIT
    try:
        Web3.to_wei(1, unit)
    except ValueError as exc:
        raise ConfigError(f"{CURRENCY_UNIT_ENV} is not a known currency unit: {unit!r}") from exc
    return unit


def _contract_settings(
    name: str,
    address_env: str,
    abi_env: Optional[str],
    env: Mapping[str, str],
    records: Mapping[str, Dict[str, Any]],
) -> ContractSettings:
    record = records.get(name, {})
    settings = ContractSettings(name=name)
    settings.address = resolve_env_value(address_env, env) or record.get("address")
    if settings.address and not str(settings.address).startswith("0x"):
        settings.address = "0x" + str(settings.address)
    abi_path = resolve_env_value(abi_env, env) if abi_env else None
    if abi_path:
        settings.abi_path = abi_path
        settings.abi = load_abi_file(abi_path)
    elif isinstance(record.get("abi"), list):
        settings.abi = record["abi"]
    return settings


def load_config(
    env: Optional[Mapping[str, str]] = None,
    env_file: Optional[Path] = DEFAULT_ENV_FILE,
) -> OperatorConfig:
    """Build the operator configuration.

    When ``env`` is omitted, ``env_file`` is loaded into ``os.environ`` first
    (existing variables win) and the process environment is used.
    """
    if env is None:
        if env_file is not None and Path(env_file).exists():
            load_dotenv(env_file, override=False)
        env = os.environ

    deployment_file = resolve_env_value(DEPLOYMENT_FILE_ENV, env)
    records = load_deployment_file(deployment_file) if deployment_file else {}

    token = _contract_settings(TOKEN_CONTRACT, TOKEN_ADDRESS_ENV, TOKEN_ABI_PATH_ENV, env, records)
    crowdsale = _contract_settings(
        CROWDSALE_CONTRACT, CROWDSALE_ADDRESS_ENV, CROWDSALE_ABI_PATH_ENV, env, records
    )
    finalize_agent = _contract_settings(
        FINALIZE_AGENT_CONTRACT, FINALIZE_AGENT_ADDRESS_ENV, None, env, records
    )

    confirmations = _parse_int(env.get(CONFIRMATIONS_ENV), CONFIRMATIONS_ENV)
    if confirmations is not None and confirmations < 1:
        raise ConfigError(f"{CONFIRMATIONS_ENV} must be at least 1")

    return OperatorConfig(
        rpc_url=resolve_env_value(RPC_URL_ENV, env),
        private_key=resolve_env_value(PRIVATE_KEY_ENV, env),
        token=token,
        crowdsale=crowdsale,
        finalize_agent_address=finalize_agent.address,
        currency_unit=_parse_unit(resolve_env_value(CURRENCY_UNIT_ENV, env)),
        gas_limit=_parse_int(env.get(GAS_LIMIT_ENV), GAS_LIMIT_ENV),
        gas_price_gwei=_parse_gwei(env.get(GAS_PRICE_GWEI_ENV), GAS_PRICE_GWEI_ENV)
        or DEFAULT_GAS_PRICE_GWEI,
        priority_fee_gwei=_parse_gwei(env.get(PRIORITY_FEE_GWEI_ENV), PRIORITY_FEE_GWEI_ENV),
        max_fee_gwei=_parse_gwei(env.get(MAX_FEE_GWEI_ENV), MAX_FEE_GWEI_ENV),
        tx_timeout=_parse_float(env.get(TX_TIMEOUT_ENV), TX_TIMEOUT_ENV, DEFAULT_TX_TIMEOUT),
        poll_interval=_parse_float(
            env.get(POLL_INTERVAL_ENV), POLL_INTERVAL_ENV, DEFAULT_POLL_INTERVAL
        ),
        confirmations=confirmations or DEFAULT_CONFIRMATIONS,
    )
