"""Configuration checks for the crowdsale operator."""
from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Optional

from .config import is_placeholder, load_abi_file, resolve_env_value
from .constants import (
    CROWDSALE_ABI_PATH_ENV,
    CROWDSALE_ADDRESS_ENV,
    CROWDSALE_REQUIRED_FUNCTIONS,
    DEPLOYMENT_FILE_ENV,
    FINALIZE_AGENT_ADDRESS_ENV,
    PRIVATE_KEY_ENV,
    RPC_URL_ENV,
    TOKEN_ABI_PATH_ENV,
    TOKEN_ADDRESS_ENV,
    TOKEN_REQUIRED_FUNCTIONS,
)
from .errors import ConfigError

REQUIRED_VARS = {
    RPC_URL_ENV: "JSON-RPC endpoint",
    TOKEN_ADDRESS_ENV: "MyToken contract address",
    CROWDSALE_ADDRESS_ENV: "Crowdsale contract address",
    FINALIZE_AGENT_ADDRESS_ENV: "FinalizeAgent contract address",
    TOKEN_ABI_PATH_ENV: "Path to MyToken ABI JSON file",
    CROWDSALE_ABI_PATH_ENV: "Path to Crowdsale ABI JSON file",
}

OPTIONAL_VARS = {
    PRIVATE_KEY_ENV: "Private key for signing transactions",
    DEPLOYMENT_FILE_ENV: "Deployment record with addresses and ABIs",
}


def mask_value(name: str, value: str) -> str:
    if "KEY" in name or "PRIVATE" in name:
        return f"{value[:8]}...{value[-4:]}" if len(value) > 12 else "***"
    if "URL" in name:
        return value[:40] + "..." if len(value) > 40 else value
    return value


def abi_function_names(abi: Iterable[Mapping[str, Any]]) -> List[str]:
    return [entry["name"] for entry in abi if entry.get("type") == "function" and entry.get("name")]


def missing_functions(abi: Iterable[Mapping[str, Any]], expected: Iterable[str]) -> List[str]:
    found = set(abi_function_names(abi))
    return [name for name in expected if name not in found]


def check_environment(env: Mapping[str, str]) -> List[str]:
    """Print a report on ``env`` and return the issues found."""
    issues: List[str] = []
    has_deployment = bool(resolve_env_value(DEPLOYMENT_FILE_ENV, env))

    print("\n--- Required Variables ---")
    for var, desc in REQUIRED_VARS.items():
        value = resolve_env_value(var, env)
        if value:
            print(f"  ✓ {var:30} = {mask_value(var, value)}")
        elif has_deployment and var != RPC_URL_ENV:
            print(f"  ○ {var:30} = from {DEPLOYMENT_FILE_ENV}")
        else:
            print(f"  ✗ {var:30} = NOT SET")
            issues.append(f"Missing required variable: {var} ({desc})")

    print("\n--- Optional Variables ---")
    for var, desc in OPTIONAL_VARS.items():
        value = resolve_env_value(var, env)
        if value:
            print(f"  ✓ {var:30} = {mask_value(var, value)}")
        else:
            print(f"  ○ {var:30} = not set (optional)")

    for var_name, expected in (
        (TOKEN_ABI_PATH_ENV, TOKEN_REQUIRED_FUNCTIONS),
        (CROWDSALE_ABI_PATH_ENV, CROWDSALE_REQUIRED_FUNCTIONS),
    ):
        issue = check_abi(var_name, resolve_env_value(var_name, env), expected)
        if issue:
            issues.append(issue)
    return issues


def check_abi(var_name: str, abi_path: Optional[str], expected: Iterable[str]) -> Optional[str]:
    if not abi_path or is_placeholder(abi_path):
        return None
    print(f"\n  Checking {var_name}: {abi_path}")
    try:
        abi = load_abi_file(abi_path)
    except ConfigError as exc:
        print(f"    ✗ {exc}")
        return str(exc)
    print(f"    ✓ Valid ABI found ({len(abi)} entries)")
    missing = missing_functions(abi, expected)
    for name in expected:
        print(f"      {'⚠️ ' if name in missing else '✓'} {name}")
    if missing:
        return f"{var_name} is missing functions: {', '.join(missing)}"
    return None
