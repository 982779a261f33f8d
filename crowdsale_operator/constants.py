from __future__ import annotations

from pathlib import Path
import re


BASE_DIR = Path(__file__).resolve().parent.parent
DEFAULT_ENV_FILE = BASE_DIR / ".env"

PLACEHOLDER_MARKERS = ("YOUR", "REPLACE", "<", ">")
ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")

# Contract names used in deployment records
TOKEN_CONTRACT = "MyToken"
CROWDSALE_CONTRACT = "Crowdsale"
FINALIZE_AGENT_CONTRACT = "FinalizeAgent"

# Environment keys
RPC_URL_ENV = "CROWDSALE_RPC_URL"
PRIVATE_KEY_ENV = "PRIVATE_KEY"
TOKEN_ADDRESS_ENV = "MYTOKEN_ADDRESS"
CROWDSALE_ADDRESS_ENV = "CROWDSALE_ADDRESS"
FINALIZE_AGENT_ADDRESS_ENV = "FINALIZE_AGENT_ADDRESS"
TOKEN_ABI_PATH_ENV = "MYTOKEN_ABI_PATH"
CROWDSALE_ABI_PATH_ENV = "CROWDSALE_ABI_PATH"
DEPLOYMENT_FILE_ENV = "CROWDSALE_DEPLOYMENT_FILE"
CURRENCY_UNIT_ENV = "CROWDSALE_CURRENCY_UNIT"
GAS_LIMIT_ENV = "CROWDSALE_GAS_LIMIT"
GAS_PRICE_GWEI_ENV = "CROWDSALE_GAS_PRICE_GWEI"
PRIORITY_FEE_GWEI_ENV = "CROWDSALE_PRIORITY_FEE_GWEI"
MAX_FEE_GWEI_ENV = "CROWDSALE_MAX_FEE_GWEI"
TX_TIMEOUT_ENV = "CROWDSALE_TX_TIMEOUT"
POLL_INTERVAL_ENV = "CROWDSALE_POLL_INTERVAL"
CONFIRMATIONS_ENV = "CROWDSALE_CONFIRMATIONS"
DEBUG_ENV = "DEBUG"

DEFAULT_CURRENCY_UNIT = "ether"
DEFAULT_GAS_PRICE_GWEI = "1"
DEFAULT_TX_TIMEOUT = 120.0
DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_CONFIRMATIONS = 1

# Workflow constants
INVEST_GAS_LIMIT = 300000
END_NOW_FUDGE_SECONDS = 60

STATE_NAMES = (
    "Unknown",
    "Preparing",
    "PreFunding",
    "Funding",
    "Success",
    "Failure",
    "Finalized",
    "Refunding",
)

# Functions each ABI must expose for the workflows to run
TOKEN_REQUIRED_FUNCTIONS = (
    "totalSupply",
    "balanceOf",
    "releaseAgent",
    "mintAgents",
    "setReleaseAgent",
    "setMintAgent",
    "transfer",
)
CROWDSALE_REQUIRED_FUNCTIONS = (
    "getState",
    "startsAt",
    "endsAt",
    "investorCount",
    "weiRaised",
    "tokensSold",
    "minimumFundingGoal",
    "isMinimumGoalReached",
    "finalizeAgent",
    "finalized",
    "loadedRefund",
    "investedAmountOf",
    "setFinalizeAgent",
    "invest",
    "preallocate",
    "finalize",
    "setEndsAt",
    "loadRefund",
    "refund",
    "logState",
)


__all__ = [
    "BASE_DIR",
    "DEFAULT_ENV_FILE",
    "PLACEHOLDER_MARKERS",
    "ADDRESS_PATTERN",
    "TOKEN_CONTRACT",
    "CROWDSALE_CONTRACT",
    "FINALIZE_AGENT_CONTRACT",
    "INVEST_GAS_LIMIT",
    "END_NOW_FUDGE_SECONDS",
    "STATE_NAMES",
    "TOKEN_REQUIRED_FUNCTIONS",
    "CROWDSALE_REQUIRED_FUNCTIONS",
]
