from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable

from web3 import Web3

from .chain_client import ChainClient, Web3ChainClient, get_web3_client
from .config import OperatorConfig
from .constants import DEFAULT_CONFIRMATIONS, DEFAULT_CURRENCY_UNIT


@dataclass
class OperatorContext:
    """Contract handles and settings shared by every workflow of one run."""

    client: ChainClient
    token: Any
    crowdsale: Any
    finalize_agent: str
    currency_unit: str = DEFAULT_CURRENCY_UNIT
    confirmations: int = DEFAULT_CONFIRMATIONS
    gas_limit: int | None = None
    clock: Callable[[], float] = field(default=time.time)

    @property
    def crowdsale_address(self) -> str:
        return self.crowdsale.address


def build_context(config: OperatorConfig) -> OperatorContext:
    config.require_chain()
    w3 = get_web3_client(config.rpc_url)
    client = Web3ChainClient(
        w3,
        private_key=config.private_key,
        gas_price_gwei=config.gas_price_gwei,
        priority_fee_gwei=config.priority_fee_gwei,
        max_fee_gwei=config.max_fee_gwei,
        tx_timeout=config.tx_timeout,
        poll_interval=config.poll_interval,
    )
    return OperatorContext(
        client=client,
        token=client.contract(config.token.address, config.token.abi),
        crowdsale=client.contract(config.crowdsale.address, config.crowdsale.abi),
        finalize_agent=Web3.to_checksum_address(config.finalize_agent_address),
        currency_unit=config.currency_unit,
        confirmations=config.confirmations,
        gas_limit=config.gas_limit,
    )
