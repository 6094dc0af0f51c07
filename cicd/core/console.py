"""Levelled console output shared by the CI entry points."""
from __future__ import annotations

import sys


class Console:
    """Simple console output handler with configurable log level.

    Levels: error < info < debug
    Default: 'info'

    ``error`` is the quietest level, so errors are always shown. ``fatal`` and
    ``success`` mark how a run ended and are printed at every level.
    """

    LEVELS = {
        "error": 1,
        "info": 2,
        "debug": 3,
    }

    def __init__(self, level: str = "info"):
        if level not in self.LEVELS:
            raise ValueError(f"Unknown log level '{level}'. Expected one of: {', '.join(self.LEVELS)}")
        self.level_name = level
        self.level = self.LEVELS[level]

    def info(self, message: str) -> None:
        if self.level >= self.LEVELS["info"]:
            print(f"[INFO] {message}")

    def error(self, message: str) -> None:
        if self.level >= self.LEVELS["error"]:
            print(f"[ERROR] {message}", file=sys.stderr)

    def fatal(self, message: str) -> None:
        print(f"[FATAL] {message}", file=sys.stderr)

    def success(self, message: str) -> None:
        print(f"[SUCCESS] {message}")

    def debug(self, message: str) -> None:
        if self.level >= self.LEVELS["debug"]:
            print(f"[DEBUG] {message}")
