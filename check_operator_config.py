#!/usr/bin/env python3
"""Diagnostic script to check crowdsale operator configuration."""

import os
from pathlib import Path

from dotenv import load_dotenv

from crowdsale_operator.diagnostics import check_environment


def main():
    print("=" * 60)
    print("Crowdsale Operator Configuration Diagnostic")
    print("=" * 60)

    repo_root = Path(__file__).parent
    env_path = repo_root / ".env"

    if env_path.exists():
        print(f"\n✓ Found .env file: {env_path}")
        load_dotenv(env_path)
    else:
        print(f"\n○ No .env file at {env_path}; using the process environment")

    issues = check_environment(os.environ)

    print("\n" + "=" * 60)
    print("Summary")
    print("=" * 60)

    if issues:
        print(f"\n⚠️  Found {len(issues)} issue(s) to fix:\n")
        for i, issue in enumerate(issues, 1):
            print(f"  {i}. {issue}")
        print("\nPaths should be relative to the repository root or absolute.")
        return 1

    print("\n✅ All checks passed! Run `crowdsale-operator info` to query the sale.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
