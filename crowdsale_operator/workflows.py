"""Crowdsale workflows.

Each workflow takes the run's ``OperatorContext``, issues its reads and writes
in program order and blocks on every confirmation before moving on.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional, Sequence

from .constants import END_NOW_FUDGE_SECONDS, INVEST_GAS_LIMIT
from .context import OperatorContext
from .errors import AlreadyFinalizedError
from .logging_utils import get_operator_logger, log_section
from .states import state_name
from .tx_helpers import receipt_json

logger = get_operator_logger()


def _same_address(a: Any, b: Any) -> bool:
    return str(a).lower() == str(b).lower()


def _send_and_confirm(
    ctx: OperatorContext,
    label: str,
    contract: Any,
    method: str,
    args: Optional[Sequence[Any]] = None,
    *,
    amount: Optional[Decimal] = None,
    gas_limit: Optional[int] = None,
    sender: Optional[str] = None,
) -> dict[str, Any]:
    tx = ctx.client.submit(
        contract,
        method,
        args,
        amount=amount,
        unit=ctx.currency_unit,
        gas_limit=gas_limit or ctx.gas_limit,
        sender=sender,
    )
    logger.info("confirming %s: %s", label, tx.id)
    receipt = tx.confirm(ctx.confirmations)
    log_section(logger, f"{label} receipt", receipt_json(receipt))
    return receipt


def show_info(ctx: OperatorContext) -> None:
    client = ctx.client
    print("token supply:", client.read(ctx.token, "totalSupply"))
    print("crowdsale state:", client.read_as(ctx.crowdsale, state_name, "getState"))
    print("crowdsale start date:", client.read_date(ctx.crowdsale, "startsAt"))
    print("crowdsale end date:", client.read_date(ctx.crowdsale, "endsAt"))
    print("investor count:", client.read(ctx.crowdsale, "investorCount"))
    print(
        f"{ctx.currency_unit} raised:",
        client.read_currency(ctx.crowdsale, ctx.currency_unit, "weiRaised"),
    )
    print("tokens sold:", client.read(ctx.crowdsale, "tokensSold"))
    print(
        "minimum funding goal:",
        client.read_currency(ctx.crowdsale, ctx.currency_unit, "minimumFundingGoal"),
    )
    print("minimum goal reached:", client.read(ctx.crowdsale, "isMinimumGoalReached"))


def setup_crowdsale(ctx: OperatorContext) -> int:
    """Configure the crowdsale so it is ready for funding.

    Every step is skipped when the contract already holds the wanted value, so
    running this again after a success (or a partial failure) is safe. Returns
    the number of transactions sent.
    """
    client = ctx.client
    writes = 0

    # the finalize agent releases the token once the sale is over
    if not _same_address(client.read(ctx.token, "releaseAgent"), ctx.finalize_agent):
        _send_and_confirm(ctx, "mytoken.setReleaseAgent", ctx.token, "setReleaseAgent", [ctx.finalize_agent])
        writes += 1
    logger.info("releaseAgent configured")

    if not _same_address(client.read(ctx.crowdsale, "finalizeAgent"), ctx.finalize_agent):
        _send_and_confirm(
            ctx, "crowdsale.setFinalizeAgent", ctx.crowdsale, "setFinalizeAgent", [ctx.finalize_agent]
        )
        writes += 1
    logger.info("finalizeAgent configured")

    # the crowdsale contract must be allowed to mint
    if client.read(ctx.token, "mintAgents", [ctx.crowdsale_address]) is not True:
        _send_and_confirm(
            ctx, "mytoken.setMintAgent", ctx.token, "setMintAgent", [ctx.crowdsale_address, True]
        )
        writes += 1
    logger.info("mintAgents configured")

    return writes


def invest(ctx: OperatorContext, address: str, amount: Decimal) -> dict[str, Any]:
    """Invest ``amount`` (in the configured currency unit) on behalf of ``address``."""
    logger.info("invest %s %s", address, amount)
    tx = ctx.client.submit(
        ctx.crowdsale,
        "invest",
        [address],
        amount=amount,
        unit=ctx.currency_unit,
        gas_limit=INVEST_GAS_LIMIT,
    )
    logger.info("invest txid %s", tx.id)
    receipt = tx.confirm(ctx.confirmations)
    print("invest receipt:")
    print(receipt_json(receipt))
    return receipt


def invested_by(ctx: OperatorContext, address: str) -> None:
    amount = ctx.client.read_currency(
        ctx.crowdsale, ctx.currency_unit, "investedAmountOf", [address]
    )
    print("invested by:", address)
    print(f"amount ({ctx.currency_unit}):", amount)
    print("token balance:", ctx.client.read(ctx.token, "balanceOf", [address]))


def preallocate(ctx: OperatorContext, receiver: str, tokens: int, price: int) -> dict[str, Any]:
    """Allocate presale tokens to ``receiver`` at ``price`` without attached value."""
    logger.info("preallocate %s %s %s", receiver, tokens, price)
    tx = ctx.client.submit(
        ctx.crowdsale,
        "preallocate",
        [receiver, tokens, price],
        unit=ctx.currency_unit,
        gas_limit=ctx.gas_limit,
    )
    logger.info("preallocate txid %s", tx.id)
    receipt = tx.confirm(ctx.confirmations)
    print("preallocate receipt:")
    print(receipt_json(receipt))
    return receipt


def finalize(ctx: OperatorContext) -> dict[str, Any]:
    if ctx.client.read(ctx.crowdsale, "finalized"):
        raise AlreadyFinalizedError()
    return _send_and_confirm(ctx, "crowdsale.finalize", ctx.crowdsale, "finalize")


def end_crowdsale_now(ctx: OperatorContext) -> dict[str, Any]:
    # a minute ahead to absorb clock skew against the chain
    ends_at = int(ctx.clock()) + END_NOW_FUDGE_SECONDS
    logger.info("setting endsAt to %s", ends_at)
    return _send_and_confirm(ctx, "crowdsale.setEndsAt", ctx.crowdsale, "setEndsAt", [ends_at])


def load_refund(ctx: OperatorContext) -> Decimal:
    """Top the crowdsale up so every investor can be refunded.

    Returns the amount loaded; zero when nothing was missing.
    """
    raised = ctx.client.read_currency(ctx.crowdsale, ctx.currency_unit, "weiRaised")
    loaded = ctx.client.read_currency(ctx.crowdsale, ctx.currency_unit, "loadedRefund")
    amount_to_load = raised - loaded
    if amount_to_load <= 0:
        logger.info("refund already loaded (raised %s, loaded %s)", raised, loaded)
        return Decimal(0)

    logger.info("loading refund of %s %s", amount_to_load, ctx.currency_unit)
    _send_and_confirm(ctx, "crowdsale.loadRefund", ctx.crowdsale, "loadRefund", amount=amount_to_load)
    return amount_to_load


def refund(ctx: OperatorContext, address: str) -> dict[str, Any]:
    return _send_and_confirm(ctx, "crowdsale.refund", ctx.crowdsale, "refund", sender=address)


def log_state(ctx: OperatorContext) -> dict[str, Any]:
    # logState is a transaction: it emits the state as an event
    return _send_and_confirm(ctx, "crowdsale.logState", ctx.crowdsale, "logState")


def balance_of(ctx: OperatorContext, address: str) -> Any:
    balance = ctx.client.read(ctx.token, "balanceOf", [address])
    print("balance of", address, ":", balance)
    return balance


def transfer(ctx: OperatorContext, from_addr: str, to_addr: str, amount: int) -> dict[str, Any]:
    logger.info("transfer %s tokens from %s to %s", amount, from_addr, to_addr)
    return _send_and_confirm(
        ctx, "mytoken.transfer", ctx.token, "transfer", [to_addr, amount], sender=from_addr
    )
