from __future__ import annotations

import json
from decimal import Decimal
from typing import Any, Dict, Optional

from hexbytes import HexBytes
from web3 import Web3

from .errors import UsageError


def supports_eip1559(w3: Web3) -> bool:
    try:
        latest = w3.eth.get_block("latest")
        return "baseFeePerGas" in latest and latest["baseFeePerGas"] is not None
    except Exception:
        return False


def fee_params(
    w3: Web3,
    gas_price_gwei: str,
    priority_fee_gwei: Optional[str] = None,
    max_fee_gwei: Optional[str] = None,
) -> Dict[str, int]:
    """Return fee params for tx: EIP-1559 when supported; otherwise legacy gasPrice."""
    if supports_eip1559(w3):
        latest = w3.eth.get_block("latest")
        base = int(latest["baseFeePerGas"])  # wei
        prio = Web3.to_wei(Decimal(priority_fee_gwei or "1"), "gwei")
        max_fee = base * 2 + prio
        if max_fee_gwei:
            max_fee = Web3.to_wei(Decimal(max_fee_gwei), "gwei")
        return {"maxFeePerGas": max_fee, "maxPriorityFeePerGas": prio}
    return {"gasPrice": Web3.to_wei(Decimal(gas_price_gwei), "gwei")}


def _hex(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return HexBytes(value).to_0x_hex()
    return value


def format_receipt(receipt: Any) -> dict[str, Any]:
    if receipt is None:
        return {"status": "pending"}
    logs = []
    for entry in receipt.get("logs") or []:
        logs.append(
            {
                "address": entry.get("address"),
                "topics": [_hex(topic) for topic in entry.get("topics") or []],
                "data": _hex(entry.get("data")),
                "logIndex": entry.get("logIndex"),
            }
        )
    return {
        "transactionHash": _hex(receipt.get("transactionHash")),
        "status": receipt.get("status"),
        "blockNumber": receipt.get("blockNumber"),
        "blockHash": _hex(receipt.get("blockHash")),
        "from": receipt.get("from"),
        "to": receipt.get("to"),
        "gasUsed": receipt.get("gasUsed"),
        "cumulativeGasUsed": receipt.get("cumulativeGasUsed"),
        "logs": logs,
    }


def receipt_json(receipt: dict[str, Any]) -> str:
    return json.dumps(receipt, indent=2, default=_json_default)


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (bytes, bytearray)):
        return HexBytes(value).to_0x_hex()
    return str(value)


def extract_revert_reason(w3: Web3, tx: Dict[str, Any], receipt: Any) -> Optional[str]:
    """Replay a reverted transaction at its block and return the revert message."""
    block_number = receipt.get("blockNumber")
    if block_number is None:
        return None

    call_tx = {
        key: tx[key] for key in ("from", "to", "data", "value", "input") if tx.get(key) is not None
    }
    if "input" in call_tx:
        call_tx.setdefault("data", call_tx.pop("input"))
    call_tx.setdefault("to", receipt.get("to"))
    try:
        w3.eth.call(call_tx, block_identifier=block_number)
    except Exception as exc:  # expected: call will raise with revert data
        message = str(exc)
        if message in {
            "execution reverted",
            "execution reverted: no data",
            "('execution reverted', 'no data')",
        }:
            return None
        if "revert reason:" in message:
            return message.split("revert reason:", 1)[1].strip()
        if "execution reverted:" in message:
            return message.split("execution reverted:", 1)[1].strip()
        return message or None
    return None


def to_base_units(amount: Decimal, unit: str) -> int:
    """Convert ``amount`` of ``unit`` to wei, refusing amounts wei cannot represent."""
    value = Decimal(str(amount))
    base_units = Web3.to_wei(value, unit)
    if base_units <= 0 or Decimal(Web3.from_wei(base_units, unit)) != value:
        raise UsageError(f"amount {amount} {unit} is not a whole number of wei")
    return base_units
