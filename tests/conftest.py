from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Dict, Optional

import pytest

from crowdsale_operator.chain_client import PendingTransaction, epoch_to_datetime
from crowdsale_operator.context import OperatorContext

TOKEN_ADDRESS = "0x" + "11" * 20
CROWDSALE_ADDRESS = "0x" + "22" * 20
FINALIZE_AGENT_ADDRESS = "0x" + "33" * 20
INVESTOR_ADDRESS = "0x" + "44" * 20
OTHER_ADDRESS = "0x" + "55" * 20
NOW = 1_700_000_000


@dataclass
class FakeContract:
    name: str
    address: str


@dataclass
class Submission:
    contract: str
    method: str
    args: tuple
    amount: Optional[Decimal]
    unit: str
    gas_limit: Optional[int]
    sender: Optional[str]
    confirmations: list = field(default_factory=list)


class FakeChainClient:
    """In-memory chain client keyed by ``(contract, method[, args])``.

    ``effects`` maps ``(contract, method)`` to a callable applied to the stored
    values whenever that method is submitted.
    """

    def __init__(
        self,
        values: Optional[Dict[tuple, Any]] = None,
        effects: Optional[Dict[tuple, Callable[[dict, tuple], None]]] = None,
        receipt_status: int = 1,
        confirm_error: Optional[Exception] = None,
    ) -> None:
        self.values: Dict[tuple, Any] = dict(values or {})
        self.effects = dict(effects or {})
        self.receipt_status = receipt_status
        self.confirm_error = confirm_error
        self.reads: list[tuple] = []
        self.submissions: list[Submission] = []

    def _lookup(self, contract, method, args):
        key = (contract.name, method, tuple(args or ()))
        if key in self.values:
            value = self.values[key]
        else:
            value = self.values[(contract.name, method)]
        if isinstance(value, Exception):
            raise value
        return value

    def read(self, contract, method, args=None):
        self.reads.append((contract.name, method, tuple(args or ())))
        return self._lookup(contract, method, args)

    def read_as(self, contract, decode, method, args=None):
        return decode(self.read(contract, method, args))

    def read_date(self, contract, field):
        return epoch_to_datetime(self.read(contract, field))

    def read_currency(self, contract, unit, field, args=None):
        return Decimal(str(self.read(contract, field, args)))

    def submit(self, contract, method, args=None, *, amount=None, unit="ether", gas_limit=None, sender=None):
        submission = Submission(
            contract=contract.name,
            method=method,
            args=tuple(args or ()),
            amount=amount,
            unit=unit,
            gas_limit=gas_limit,
            sender=sender,
        )
        self.submissions.append(submission)
        effect = self.effects.get((contract.name, method))
        if effect is not None:
            effect(self.values, submission.args)
        tx_id = "0x%064x" % len(self.submissions)

        def _confirm(n: int) -> dict:
            submission.confirmations.append(n)
            if self.confirm_error is not None:
                raise self.confirm_error
            return {"transactionHash": tx_id, "status": self.receipt_status, "blockNumber": 100, "logs": []}

        return PendingTransaction(tx_id, _confirm)

    def methods(self) -> list[str]:
        return [s.method for s in self.submissions]


def make_context(client: FakeChainClient, **overrides: Any) -> OperatorContext:
    params: Dict[str, Any] = dict(
        client=client,
        token=FakeContract("MyToken", TOKEN_ADDRESS),
        crowdsale=FakeContract("Crowdsale", CROWDSALE_ADDRESS),
        finalize_agent=FINALIZE_AGENT_ADDRESS,
        currency_unit="ether",
        confirmations=1,
        clock=lambda: NOW,
    )
    params.update(overrides)
    return OperatorContext(**params)


@pytest.fixture
def client() -> FakeChainClient:
    return FakeChainClient()


@pytest.fixture
def ctx(client: FakeChainClient) -> OperatorContext:
    return make_context(client)
