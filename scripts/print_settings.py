#!/usr/bin/env python3
"""Print the effective configuration (secrets masked). Run from repo root: python scripts/print_settings.py"""
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))

from meeting_agents.core.config import settings

SECRET_FIELDS = {"openai_api_key"}


def mask(value: str) -> str:
    """Keep the last 4 characters of a secret; empty stays empty."""
    if not value:
        return "(not set)"
    if len(value) <= 8:
        return "*" * 8
    return "*" * (len(value) - 4) + value[-4:]


def main():
    print("Meeting agents settings")
    print("-----------------------")
    for name, value in settings.model_dump().items():
        shown = mask(value) if name in SECRET_FIELDS else value
        print(f"  {name.upper():<26} = {shown}")
    print("")
    print(f"  Remote AI available        = {settings.remote_configured()}")
    print("Env: see .env.example")


if __name__ == "__main__":
    main()
