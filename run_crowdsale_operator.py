#!/usr/bin/env python3
"""Thin wrapper to run a crowdsale operator command.

Parsing, dispatch and the workflows themselves live in the
``crowdsale_operator`` package.
"""

from __future__ import annotations

from crowdsale_operator import main


if __name__ == "__main__":
    raise SystemExit(main())
