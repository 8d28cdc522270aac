"""
Duty module: correction ledger and the engine that owns duty log state.
"""

from .engine import DutyLogEngine, create_engine
from .ledger import (
    build_adjustment_entry,
    purge_admin,
    validate_adjustment,
    validate_admin,
)

__all__ = [
    "DutyLogEngine",
    "create_engine",
    "build_adjustment_entry",
    "purge_admin",
    "validate_adjustment",
    "validate_admin",
]
