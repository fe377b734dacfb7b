#!/usr/bin/env python3
"""
STACKPATCH INSERTER - Block Placement
-------------------------------------
Places a service definition under the parent key, re-indented so its
header lines up with sibling service headers.

Seam spacing is normalized to exactly one blank line on each side of the
inserted block. Together with the remover taking a block's trailing blank
lines, this makes remove-then-insert reproduce the same bytes on every run.

Author: StackPatch Team
Date: 2026-10-18
"""

import logging
import re
import textwrap
from typing import List

from stackpatch.core.document import Document, indent_of, is_blank
from stackpatch.core.errors import BlockDefinitionError, MalformedAnchor
from stackpatch.core.models import Anchor, Placement, Stage
from stackpatch.surgery.locator import BlockLocator

logger = logging.getLogger("stackpatch.inserter")


class BlockInserter:
    """
    Inserts block content at an anchor. Never deduplicates: callers remove
    an existing block of the same name first.
    """

    def __init__(self, locator: BlockLocator):
        self.locator = locator

    def prepare(self, name: str, block_text: str) -> List[str]:
        """
        Normalize block text into column-0 lines.

        Already-indented definitions are dedented; surrounding blank lines
        are dropped. The first line must be the `<name>:` header.
        """
        lines = textwrap.dedent(block_text.replace('\r\n', '\n')).split('\n')
        while lines and is_blank(lines[0]):
            lines.pop(0)
        while lines and is_blank(lines[-1]):
            lines.pop()

        if not lines:
            raise BlockDefinitionError("Block definition is empty",
                                       stage=Stage.INSERT_NEW, subject=name)

        header = re.compile(rf'^{re.escape(name)}:\s*$')
        if not header.match(lines[0]):
            raise BlockDefinitionError(
                f"Block definition must start with '{name}:' but starts with '{lines[0].strip()}'",
                stage=Stage.INSERT_NEW, subject=name
            )

        stray = [line for line in lines[1:] if not is_blank(line) and indent_of(line) == 0]
        if stray:
            raise BlockDefinitionError(
                f"Block definition has a second top-level line: '{stray[0].strip()}'",
                stage=Stage.INSERT_NEW, subject=name
            )
        return [line.rstrip() for line in lines]

    def _insert_position(self, doc: Document, anchor: Anchor) -> int:
        anchor_index = self.locator.require_root_key(doc, anchor.key, Stage.INSERT_NEW)
        if anchor.placement == Placement.AFTER:
            return anchor_index + 1

        parent_key = self.locator.parent_key
        if parent_key is None or parent_key == anchor.key:
            return anchor_index

        # The block must land inside the parent section, so the parent has
        # to be the section directly above the anchor (comments aside).
        parent_index = self.locator.require_root_key(doc, parent_key, Stage.INSERT_NEW)
        position = self.locator.region_end(doc, parent_index)
        between = doc.lines[position:anchor_index]
        if parent_index > anchor_index or any(
            not is_blank(line) and not line.lstrip().startswith('#') for line in between
        ):
            raise MalformedAnchor(
                f"Anchor '{anchor.key}:' does not directly follow the '{parent_key}:' section",
                stage=Stage.INSERT_NEW, subject=anchor.key
            )
        return position

    def insert(self, doc: Document, name: str, block_text: str, anchor: Anchor) -> Document:
        """Return a new document with the block placed at `anchor`."""
        block = [self.locator.pad(line) for line in self.prepare(name, block_text)]
        position = self._insert_position(doc, anchor)

        head = doc.lines[:position]
        tail = doc.lines[position:]
        while head and is_blank(head[-1]):
            head.pop()
        while tail and is_blank(tail[0]):
            tail.pop(0)

        lines = head + ([""] if head else []) + block
        if tail:
            lines += [""] + tail

        logger.debug(f"Inserted '{name}' ({len(block)} lines) {anchor.placement.value} '{anchor.key}:'")
        return doc.copy_with(lines)
