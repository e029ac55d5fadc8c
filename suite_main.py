"""
Perft Harness — suite entry point.

Usage:
    uv run python suite_main.py perftsuite.epd [--max-depth N]

Wires together:  config → suite file → one driver session per case → CLI table
"""

from __future__ import annotations

from perftharness.cli.suite_app import main

if __name__ == "__main__":
    main()
