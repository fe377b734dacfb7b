#!/usr/bin/env python3
"""
STACKPATCH UPSERT CONTEXT
-------------------------
The working record of one upsert: the untouched original, the in-memory
copy being transformed, and the states the orchestrator walked through.

Author: StackPatch Team
Date: 2026-10-18
"""

from dataclasses import dataclass, field
from typing import List, Optional

from stackpatch.core.document import Document
from stackpatch.core.models import Anchor, BlockRange, Stage


@dataclass
class UpsertContext:
    """
    Maintains the state of a single upsert session.

    Created by the engine, then enriched by each pipeline stage in turn.
    Nothing here touches the filesystem.
    """
    original_text: str                          # Text as read from disk
    block_name: Optional[str] = None            # Service header to upsert, if any
    block_text: Optional[str] = None            # None means pure removal
    anchor: Optional[Anchor] = None             # Where the new block goes
    scalar_key: Optional[str] = None            # Root key for a companion entry
    scalar_entry: Optional[str] = None          # The companion entry line
    discard_scalar: bool = False                # Drop the entry instead of ensuring it
    document: Optional[Document] = None         # In-memory copy being transformed
    located: Optional[BlockRange] = None        # Existing block range, if found
    loaded_lines: List[str] = field(default_factory=list)
    states: List[Stage] = field(default_factory=list)

    def enter(self, stage: Stage):
        self.states.append(stage)

    @property
    def stage(self) -> Optional[Stage]:
        return self.states[-1] if self.states else None

    @property
    def result_text(self) -> str:
        # Untouched lines keep the original bytes, mixed line endings included
        if self.document is None or self.document.lines == self.loaded_lines:
            return self.original_text
        return self.document.to_text()

    @property
    def changed(self) -> bool:
        return self.result_text != self.original_text
