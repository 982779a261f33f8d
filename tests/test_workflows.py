from decimal import Decimal

import pytest

from crowdsale_operator import workflows
from crowdsale_operator.constants import INVEST_GAS_LIMIT
from crowdsale_operator.errors import AlreadyFinalizedError

from conftest import (
    CROWDSALE_ADDRESS,
    FINALIZE_AGENT_ADDRESS,
    INVESTOR_ADDRESS,
    NOW,
    OTHER_ADDRESS,
    FakeChainClient,
    make_context,
)

NULL_ADDRESS = "0x" + "00" * 20


def _setup_effects():
    def set_release_agent(values, args):
        values[("MyToken", "releaseAgent")] = args[0]

    def set_finalize_agent(values, args):
        values[("Crowdsale", "finalizeAgent")] = args[0]

    def set_mint_agent(values, args):
        values[("MyToken", "mintAgents", (args[0],))] = args[1]

    return {
        ("MyToken", "setReleaseAgent"): set_release_agent,
        ("Crowdsale", "setFinalizeAgent"): set_finalize_agent,
        ("MyToken", "setMintAgent"): set_mint_agent,
    }


def _unconfigured_client():
    return FakeChainClient(
        values={
            ("MyToken", "releaseAgent"): NULL_ADDRESS,
            ("Crowdsale", "finalizeAgent"): NULL_ADDRESS,
            ("MyToken", "mintAgents", (CROWDSALE_ADDRESS,)): False,
        },
        effects=_setup_effects(),
    )


class TestShowInfo:
    def _client(self):
        return FakeChainClient(
            values={
                ("MyToken", "totalSupply"): 5000,
                ("Crowdsale", "getState"): 3,
                ("Crowdsale", "startsAt"): 1_600_000_000,
                ("Crowdsale", "endsAt"): 1_700_000_000,
                ("Crowdsale", "investorCount"): 2,
                ("Crowdsale", "weiRaised"): "12.5",
                ("Crowdsale", "tokensSold"): 1250,
                ("Crowdsale", "minimumFundingGoal"): "10",
                ("Crowdsale", "isMinimumGoalReached"): True,
            }
        )

    def test_prints_every_field(self, capsys):
        client = self._client()
        workflows.show_info(make_context(client))
        out = capsys.readouterr().out
        assert "token supply: 5000" in out
        assert "crowdsale state: Funding" in out
        assert "crowdsale start date: 2020-09-13 12:26:40+00:00" in out
        assert "crowdsale end date: 2023-11-14 22:13:20+00:00" in out
        assert "investor count: 2" in out
        assert "ether raised: 12.5" in out
        assert "tokens sold: 1250" in out
        assert "minimum funding goal: 10" in out
        assert "minimum goal reached: True" in out
        assert client.submissions == []

    def test_read_failure_aborts_remaining_output(self, capsys):
        client = self._client()
        client.values[("Crowdsale", "startsAt")] = ConnectionError("rpc down")
        with pytest.raises(ConnectionError):
            workflows.show_info(make_context(client))
        out = capsys.readouterr().out
        assert "crowdsale state: Funding" in out
        assert "investor count" not in out

    def test_unknown_state_code_propagates(self):
        client = self._client()
        client.values[("Crowdsale", "getState")] = 8
        with pytest.raises(ValueError):
            workflows.show_info(make_context(client))


class TestSetup:
    def test_first_run_configures_all_three_agents(self):
        client = _unconfigured_client()
        writes = workflows.setup_crowdsale(make_context(client))
        assert writes == 3
        assert client.methods() == ["setReleaseAgent", "setFinalizeAgent", "setMintAgent"]
        assert client.submissions[0].args == (FINALIZE_AGENT_ADDRESS,)
        assert client.submissions[1].args == (FINALIZE_AGENT_ADDRESS,)
        assert client.submissions[2].args == (CROWDSALE_ADDRESS, True)
        assert all(s.confirmations == [1] for s in client.submissions)

    def test_second_run_issues_no_writes(self):
        client = _unconfigured_client()
        ctx = make_context(client)
        workflows.setup_crowdsale(ctx)
        assert workflows.setup_crowdsale(ctx) == 0
        assert len(client.submissions) == 3

    def test_address_comparison_ignores_checksum_case(self):
        agent = "0x" + "ab" * 20
        client = FakeChainClient(
            values={
                ("MyToken", "releaseAgent"): agent.upper().replace("0X", "0x"),
                ("Crowdsale", "finalizeAgent"): agent,
                ("MyToken", "mintAgents", (CROWDSALE_ADDRESS,)): True,
            }
        )
        assert workflows.setup_crowdsale(make_context(client, finalize_agent=agent)) == 0

    def test_resumes_after_partial_setup(self):
        client = _unconfigured_client()
        client.values[("MyToken", "releaseAgent")] = FINALIZE_AGENT_ADDRESS
        assert workflows.setup_crowdsale(make_context(client)) == 2
        assert client.methods() == ["setFinalizeAgent", "setMintAgent"]

    def test_failed_step_stops_the_sequence(self):
        client = _unconfigured_client()
        client.values[("Crowdsale", "finalizeAgent")] = TimeoutError("rpc timeout")
        with pytest.raises(TimeoutError):
            workflows.setup_crowdsale(make_context(client))
        assert client.methods() == ["setReleaseAgent"]


def test_invest_attaches_amount_and_gas_ceiling(ctx, client, capsys):
    receipt = workflows.invest(ctx, INVESTOR_ADDRESS, Decimal("1.5"))
    (submission,) = client.submissions
    assert submission.method == "invest"
    assert submission.args == (INVESTOR_ADDRESS,)
    assert submission.amount == Decimal("1.5")
    assert submission.gas_limit == INVEST_GAS_LIMIT
    assert submission.confirmations == [1]
    assert receipt["status"] == 1
    out = capsys.readouterr().out
    assert "invest receipt:" in out
    assert '"blockNumber": 100' in out


def test_invested_by_reads_amount_and_balance(ctx, client, capsys):
    client.values[("Crowdsale", "investedAmountOf", (INVESTOR_ADDRESS,))] = "2.25"
    client.values[("MyToken", "balanceOf", (INVESTOR_ADDRESS,))] = 225
    workflows.invested_by(ctx, INVESTOR_ADDRESS)
    out = capsys.readouterr().out
    assert f"invested by: {INVESTOR_ADDRESS}" in out
    assert "amount (ether): 2.25" in out
    assert "token balance: 225" in out
    assert client.submissions == []


def test_preallocate_sends_without_value(ctx, client):
    workflows.preallocate(ctx, INVESTOR_ADDRESS, 1000, 5)
    (submission,) = client.submissions
    assert submission.method == "preallocate"
    assert submission.args == (INVESTOR_ADDRESS, 1000, 5)
    assert submission.amount is None


class TestFinalize:
    def test_already_finalized_is_refused_without_submission(self, ctx, client):
        client.values[("Crowdsale", "finalized")] = True
        with pytest.raises(AlreadyFinalizedError):
            workflows.finalize(ctx)
        assert client.submissions == []

    def test_not_finalized_submits_once(self, ctx, client):
        client.values[("Crowdsale", "finalized")] = False
        workflows.finalize(ctx)
        assert client.methods() == ["finalize"]
        assert client.submissions[0].confirmations == [1]


def test_end_now_sets_end_a_minute_ahead(ctx, client):
    workflows.end_crowdsale_now(ctx)
    (submission,) = client.submissions
    assert submission.method == "setEndsAt"
    assert submission.args == (NOW + 60,)


class TestLoadRefund:
    def test_loads_the_missing_amount(self, ctx, client):
        client.values[("Crowdsale", "weiRaised")] = 1000
        client.values[("Crowdsale", "loadedRefund")] = 400
        assert workflows.load_refund(ctx) == Decimal(600)
        (submission,) = client.submissions
        assert submission.method == "loadRefund"
        assert submission.args == ()
        assert submission.amount == Decimal(600)

    @pytest.mark.parametrize("loaded", [1000, 1200])
    def test_nothing_to_load(self, ctx, client, loaded):
        client.values[("Crowdsale", "weiRaised")] = 1000
        client.values[("Crowdsale", "loadedRefund")] = loaded
        assert workflows.load_refund(ctx) == 0
        assert client.submissions == []

    def test_fractional_amounts(self, ctx, client):
        client.values[("Crowdsale", "weiRaised")] = "1.3"
        client.values[("Crowdsale", "loadedRefund")] = "0.1"
        workflows.load_refund(ctx)
        assert client.submissions[0].amount == Decimal("1.2")


def test_refund_is_sent_from_investor(ctx, client):
    workflows.refund(ctx, INVESTOR_ADDRESS)
    (submission,) = client.submissions
    assert submission.method == "refund"
    assert submission.sender == INVESTOR_ADDRESS
    assert submission.args == ()


def test_log_state_is_a_transaction(ctx, client):
    workflows.log_state(ctx)
    assert client.methods() == ["logState"]


def test_balance_of(ctx, client, capsys):
    client.values[("MyToken", "balanceOf", (OTHER_ADDRESS,))] = 42
    assert workflows.balance_of(ctx, OTHER_ADDRESS) == 42
    assert "42" in capsys.readouterr().out


def test_transfer_sends_from_owner(ctx, client):
    workflows.transfer(ctx, INVESTOR_ADDRESS, OTHER_ADDRESS, 7)
    (submission,) = client.submissions
    assert submission.contract == "MyToken"
    assert submission.method == "transfer"
    assert submission.args == (OTHER_ADDRESS, 7)
    assert submission.sender == INVESTOR_ADDRESS


def test_context_gas_limit_and_confirmations_are_used(client):
    ctx = make_context(client, gas_limit=200000, confirmations=3)
    workflows.log_state(ctx)
    (submission,) = client.submissions
    assert submission.gas_limit == 200000
    assert submission.confirmations == [3]
