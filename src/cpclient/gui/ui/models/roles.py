"""Role identifiers shared by the list models."""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Dict, Mapping, Optional, Sequence

from PySide6.QtCore import Qt

_USER_ROLE = int(Qt.ItemDataRole.UserRole)

# Column roles follow the synthetic ones in column order.
COLUMN_ROLE_BASE = _USER_ROLE + 16


class Roles(IntEnum):
    """Synthetic roles exposed by every list model."""

    SELECTED = _USER_ROLE + 1
    INDEX = _USER_ROLE + 2


def column_role(position: int) -> int:
    """Return the role of the column at *position*."""
    return COLUMN_ROLE_BASE + position


def column_for_role(role: int, columns: Sequence[str]) -> Optional[str]:
    """Return the column name behind *role*, or ``None`` for other roles."""
    position = role - COLUMN_ROLE_BASE
    if 0 <= position < len(columns):
        return columns[position]
    return None


def role_names(base: Mapping[int, Any], columns: Sequence[str]) -> Dict[int, Any]:
    """Merge Qt's default role names with the column and synthetic roles."""

    names: Dict[int, Any] = {}
    for role, name in base.items():
        names[int(role)] = name
    for position, column in enumerate(columns):
        names[column_role(position)] = column.encode("utf-8")
    names[int(Roles.SELECTED)] = b"selected"
    names[int(Roles.INDEX)] = b"index"
    return names


__all__ = ["COLUMN_ROLE_BASE", "Roles", "column_for_role", "column_role", "role_names"]
