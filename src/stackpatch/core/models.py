#!/usr/bin/env python3
"""
STACKPATCH CORE MODELS
----------------------
Defines the fundamental data structures used across the StackPatch engine.
These models describe where things live inside a compose document; they
never hold document text themselves.

Author: StackPatch Team
Date: 2026-10-18
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Placement(str, Enum):
    """Where a block goes relative to its anchor key."""
    AFTER = "after"     # first child of the anchor key
    BEFORE = "before"   # right above the anchor key line


class Stage(str, Enum):
    """
    States of the upsert orchestrator.

    Transitions are linear; FAIL is reachable from any state.
    """
    LOAD_DOCUMENT = "load"
    LOCATE_EXISTING = "locate"
    REMOVE_IF_PRESENT = "remove"
    INSERT_NEW = "insert"
    ENSURE_SCALAR = "ensure_scalar"
    VALIDATE = "validate"
    PERSIST_ATOMIC = "persist"
    DONE = "done"
    FAIL = "fail"


@dataclass(frozen=True)
class BlockRange:
    """
    Half-open line range [start, end) covering one block.

    Trailing blank lines of the block are part of the range.
    """
    start: int
    end: int

    def __len__(self) -> int:
        return self.end - self.start


@dataclass(frozen=True)
class Anchor:
    """A root-level key used as the insertion reference point."""
    key: str
    placement: Placement = Placement.BEFORE

    @classmethod
    def for_key(cls, key: str, parent_key: Optional[str]) -> "Anchor":
        """
        Anchoring at the parent key itself means 'first child of it';
        any other root key means 'right before it'.
        """
        if parent_key is not None and key == parent_key:
            return cls(key=key, placement=Placement.AFTER)
        return cls(key=key, placement=Placement.BEFORE)


@dataclass(frozen=True)
class EngineSettings:
    """Knobs shared by the locator, inserter and engine."""
    parent_key: Optional[str] = "services"  # root key holding service blocks
    indent: int = 2                         # offset of block headers under the parent key
    validate: bool = True                   # ruamel.yaml check before persisting
    backup: bool = False                    # copy the original aside before replacing it
