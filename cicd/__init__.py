"""CI entry points for building the repository and running its integration smoke tests."""
from __future__ import annotations

from .smoke_tests import main

__all__ = ["main"]
