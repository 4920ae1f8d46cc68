"""Band Sync: shared availability and events for band members."""

from __future__ import annotations

__version__ = "1.0.0"


def main() -> int:
    from .cli import main as cli_main

    return cli_main()
