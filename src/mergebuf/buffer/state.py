"""Coordinate types shared by buffer services."""

from __future__ import annotations

from typing import Tuple

Position = Tuple[int, int]  # (line, char)

__all__ = ["Position"]
