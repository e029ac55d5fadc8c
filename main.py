"""
Perft Harness — entry point.

Usage:
    uv run python main.py <depth> "<fen>" [moves ...]

Wires together:  config → request → session driver → stdout
"""

from __future__ import annotations

from perftharness.cli.app import main

if __name__ == "__main__":
    main()
