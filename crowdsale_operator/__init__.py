from __future__ import annotations

from .constants import BASE_DIR, DEFAULT_ENV_FILE, STATE_NAMES
from .cmd_parser import split_argv
from .executor import COMMANDS, CommandResult, ResultKind, execute_command, main
from .states import CrowdsaleState, state_name
