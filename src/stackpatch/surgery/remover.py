#!/usr/bin/env python3
"""
STACKPATCH REMOVER - Block Excision
-----------------------------------
Cuts a located block out of a document. Every other line survives verbatim
and in order.

Author: StackPatch Team
Date: 2026-10-18
"""

import logging
from typing import Optional

from stackpatch.core.document import Document, is_blank
from stackpatch.core.models import BlockRange

logger = logging.getLogger("stackpatch.remover")


class BlockRemover:

    def remove(self, doc: Document, block: Optional[BlockRange]) -> Document:
        """
        Excise `block` from `doc`. A missing block is a no-op.

        When the cut leaves a blank line right before end of document,
        that single blank line is collapsed.
        """
        if block is None:
            return doc

        lines = doc.lines[:block.start] + doc.lines[block.end:]
        if block.start == len(lines) and lines and is_blank(lines[-1]):
            lines.pop()

        logger.debug(f"Removed lines {block.start + 1}-{block.end} ({len(block)} lines)")
        return doc.copy_with(lines)
