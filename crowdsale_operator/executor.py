from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from dotenv import load_dotenv

from .cmd_parser import convert_args, split_argv, to_address, to_amount, to_int
from .config import load_config
from .constants import DEBUG_ENV, DEFAULT_ENV_FILE
from .context import OperatorContext, build_context
from .errors import ConfigError, GuardViolation, UsageError
from .logging_utils import get_operator_logger
from . import workflows

logger = get_operator_logger()


class ResultKind(IntEnum):
    """Outcome of one dispatched command; the value is the process exit code."""

    OK = 0
    CHAIN_ERROR = 1
    USAGE_ERROR = 2
    UNKNOWN_COMMAND = 3
    GUARD_VIOLATION = 4
    CONFIG_ERROR = 5


@dataclass
class CommandResult:
    kind: ResultKind
    error: Optional[BaseException] = None
    value: Any = None

    @property
    def exit_code(self) -> int:
        return int(self.kind)


@dataclass(frozen=True)
class Command:
    name: str
    handler: Callable[..., Any]
    params: Tuple[Tuple[str, Callable[[str], object]], ...] = ()
    summary: str = ""


_COMMAND_LIST = (
    Command("info", workflows.show_info, summary="show token and crowdsale state"),
    Command("setup", workflows.setup_crowdsale, summary="configure release, finalize and mint agents"),
    Command(
        "preallocate",
        workflows.preallocate,
        (("receiver", to_address), ("tokens", to_int), ("price", to_int)),
        "allocate presale tokens",
    ),
    Command(
        "invest",
        workflows.invest,
        (("address", to_address), ("amount", to_amount)),
        "invest currency on behalf of an address",
    ),
    Command("investedBy", workflows.invested_by, (("address", to_address),), "show an investor's stake"),
    Command("finalize", workflows.finalize, summary="finalize the crowdsale"),
    Command("endnow", workflows.end_crowdsale_now, summary="end the crowdsale a minute from now"),
    Command("loadRefund", workflows.load_refund, summary="load the missing refund amount"),
    Command("refund", workflows.refund, (("address", to_address),), "claim a refund as an investor"),
    Command("state", workflows.log_state, summary="emit the crowdsale state as an event"),
    Command("balanceOf", workflows.balance_of, (("address", to_address),), "show a token balance"),
    Command(
        "transfer",
        workflows.transfer,
        (("from", to_address), ("to", to_address), ("amount", to_int)),
        "transfer tokens between addresses",
    ),
)

COMMANDS: Dict[str, Command] = {command.name: command for command in _COMMAND_LIST}


def usage() -> str:
    lines = ["usage: crowdsale-operator <command> [args...]", "", "commands:"]
    for command in _COMMAND_LIST:
        signature = " ".join([command.name, *(f"<{name}>" for name, _ in command.params)])
        lines.append(f"  {signature:<40} {command.summary}")
    lines.append(f"  {'help':<40} show this message")
    return "\n".join(lines)


def execute_command(
    argv: Sequence[str],
    context_factory: Callable[[], OperatorContext],
    *,
    debug: bool = False,
) -> CommandResult:
    """Run the workflow named by ``argv[0]`` and classify the outcome.

    The context is only built once the command and its arguments are known to
    be valid, so unknown commands never touch the network.
    """
    cmd, args = split_argv(argv)

    if debug:
        print("argv", list(argv))
        print("cmd", cmd)

    if cmd is None:
        print(usage())
        return CommandResult(ResultKind.USAGE_ERROR)
    if cmd in ("help", "-h", "--help"):
        print(usage())
        return CommandResult(ResultKind.OK)

    command = COMMANDS.get(cmd)
    if command is None:
        print("unrecognized command", cmd)
        return CommandResult(ResultKind.UNKNOWN_COMMAND)

    try:
        call_args = convert_args(cmd, args, command.params)
        ctx = context_factory()
        value = command.handler(ctx, *call_args)
    except UsageError as exc:
        logger.error("%s", exc)
        return CommandResult(ResultKind.USAGE_ERROR, exc)
    except ConfigError as exc:
        logger.error("configuration error: %s", exc)
        return CommandResult(ResultKind.CONFIG_ERROR, exc)
    except GuardViolation as exc:
        logger.error("refused: %s", exc)
        return CommandResult(ResultKind.GUARD_VIOLATION, exc)
    except Exception as exc:  # pylint: disable=broad-except
        logger.error("err %r", exc)
        logger.debug("traceback", exc_info=True)
        return CommandResult(ResultKind.CHAIN_ERROR, exc)

    return CommandResult(ResultKind.OK, value=value)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    if DEFAULT_ENV_FILE.exists():
        load_dotenv(DEFAULT_ENV_FILE, override=False)

    def _context() -> OperatorContext:
        return build_context(load_config(env_file=None))

    debug = bool(os.environ.get(DEBUG_ENV))
    get_operator_logger(debug)
    result = execute_command(args, _context, debug=debug)
    return result.exit_code
