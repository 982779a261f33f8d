"""Crowdsale lifecycle states.

- Preparing: contract initialization calls and variables have not been set yet
- PreFunding: the start time has not passed yet
- Funding: active crowdsale
- Success: minimum funding goal reached
- Failure: minimum funding goal not reached before the end time
- Finalized: ``finalize`` has been called and executed successfully
- Refunding: refunds are loaded on the contract for reclaim
"""
from __future__ import annotations

from enum import IntEnum

from .constants import STATE_NAMES
from .errors import UnknownStateError


class CrowdsaleState(IntEnum):
    UNKNOWN = 0
    PREPARING = 1
    PREFUNDING = 2
    FUNDING = 3
    SUCCESS = 4
    FAILURE = 5
    FINALIZED = 6
    REFUNDING = 7


def state_name(code: int) -> str:
    """Return the display name for an on-chain state code.

    Raises ``UnknownStateError`` for codes outside 0-7, including negatives.
    """
    if isinstance(code, bool) or not isinstance(code, int):
        raise UnknownStateError(code)
    if code < 0 or code >= len(STATE_NAMES):
        raise UnknownStateError(code)
    return STATE_NAMES[code]
