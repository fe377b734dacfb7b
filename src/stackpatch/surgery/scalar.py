#!/usr/bin/env python3
"""
STACKPATCH SCALAR - Bare Key Declarations
-----------------------------------------
Ensures (or drops) a single bare-key line such as a named volume under a
root key. Matching ignores surrounding whitespace, so a commented-out
declaration never counts as present.

Author: StackPatch Team
Date: 2026-10-18
"""

import logging

from stackpatch.core.document import Document
from stackpatch.core.errors import BlockDefinitionError
from stackpatch.core.models import Stage
from stackpatch.surgery.locator import BlockLocator

logger = logging.getLogger("stackpatch.scalar")


class ScalarEnsurer:

    def __init__(self, locator: BlockLocator):
        self.locator = locator

    def _entry_line(self, entry: str) -> str:
        entry = entry.rstrip()
        if entry[:1].isspace():
            return entry
        return self.locator.pad(entry)

    def ensure(self, doc: Document, root_key: str, entry: str) -> Document:
        """Insert `entry` as the first child of `root_key` unless it is already there."""
        if not entry.strip():
            raise BlockDefinitionError("Scalar entry must not be blank",
                                       stage=Stage.ENSURE_SCALAR, subject=root_key)

        key_index = self.locator.require_root_key(doc, root_key, Stage.ENSURE_SCALAR)
        if self.locator.find_entry(doc, root_key, entry):
            return doc

        lines = list(doc.lines)
        lines.insert(key_index + 1, self._entry_line(entry))
        logger.debug(f"Declared '{entry.strip()}' under '{root_key}:'")
        return doc.copy_with(lines)

    def discard(self, doc: Document, root_key: str, entry: str) -> Document:
        """Drop every declaration of `entry` under `root_key`. Missing key or entry is a no-op."""
        if self.locator.find_root_key(doc, root_key) is None:
            return doc

        hits = set(self.locator.find_entry(doc, root_key, entry))
        if not hits:
            return doc

        lines = [line for i, line in enumerate(doc.lines) if i not in hits]
        logger.debug(f"Dropped {len(hits)} declaration(s) of '{entry.strip()}' under '{root_key}:'")
        return doc.copy_with(lines)
