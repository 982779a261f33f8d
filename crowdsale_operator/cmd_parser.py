from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Callable, List, Optional, Sequence, Tuple

from web3 import Web3

from .constants import ADDRESS_PATTERN
from .errors import UsageError


def split_argv(argv: Sequence[str]) -> Tuple[Optional[str], List[str]]:
    """Return ``(command, args)`` from the arguments following the program name."""
    if not argv:
        return None, []
    return argv[0], list(argv[1:])


def parse_int(token: str) -> Optional[int]:
    if not token:
        return None
    try:
        if token.startswith("0x") or token.startswith("0X"):
            return int(token, 16)
        sanitized = token.replace("_", "")
        return int(sanitized, 10)
    except ValueError:
        return None


def to_int(token: str) -> int:
    value = parse_int(token)
    if value is None or value < 0:
        raise UsageError(f"expected a non-negative integer, got {token!r}")
    return value


def to_amount(token: str) -> Decimal:
    try:
        value = Decimal(token.replace("_", ""))
    except InvalidOperation as exc:
        raise UsageError(f"expected a numeric amount, got {token!r}") from exc
    if not value.is_finite() or value <= 0:
        raise UsageError(f"amount must be greater than zero, got {token!r}")
    return value


def to_address(token: str) -> str:
    if not ADDRESS_PATTERN.match(token):
        raise UsageError(f"expected a 0x-prefixed 20-byte address, got {token!r}")
    return Web3.to_checksum_address(token)


def convert_args(
    command: str,
    args: Sequence[str],
    params: Sequence[Tuple[str, Callable[[str], object]]],
) -> List[object]:
    """Check the argument count for ``command`` and convert each argument."""
    if len(args) != len(params):
        expected = " ".join(f"<{name}>" for name, _ in params)
        raise UsageError(f"usage: {command} {expected}".rstrip())
    return [convert(arg) for arg, (_, convert) in zip(args, params)]
