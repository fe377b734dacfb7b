#!/usr/bin/env python3
"""
STACKPATCH LOCATOR - The Surveyor
---------------------------------
Single source of truth for every indentation and header rule. The remover,
inserter and scalar ensurer never scan lines themselves; they ask the
locator where things are.

Author: StackPatch Team
Date: 2026-10-18
"""

import re
from typing import List, Optional

from stackpatch.core.document import Document, indent_of, is_blank
from stackpatch.core.errors import AmbiguousMatch, MalformedAnchor
from stackpatch.core.models import BlockRange, Stage


class BlockLocator:
    """
    Finds root keys, their nested regions, and named blocks.

    A block header is `<indent spaces><name>:` followed only by whitespace.
    """

    def __init__(self, indent: int = 2, parent_key: Optional[str] = "services"):
        if indent < 1:
            raise ValueError(f"Block indentation must be positive, got {indent}")
        self.indent = indent
        self.parent_key = parent_key

    @staticmethod
    def _root_pattern(key: str) -> "re.Pattern[str]":
        return re.compile(rf'^{re.escape(key)}:\s*$')

    def _header_pattern(self, name: str) -> "re.Pattern[str]":
        # Exact indentation and exact key: 'db' never matches '  db_admin:'
        return re.compile(rf'^ {{{self.indent}}}{re.escape(name)}:\s*$')

    def find_root_key(self, doc: Document, key: str) -> Optional[int]:
        """Line index of `<key>:` at column 0, or None."""
        pattern = self._root_pattern(key)
        matches = [i for i, line in enumerate(doc.lines) if pattern.match(line)]
        if len(matches) > 1:
            raise AmbiguousMatch(
                f"Root key declared {len(matches)} times (lines "
                f"{', '.join(str(i + 1) for i in matches)})",
                stage=Stage.LOCATE_EXISTING, subject=key
            )
        return matches[0] if matches else None

    def require_root_key(self, doc: Document, key: str, stage: Stage) -> int:
        index = self.find_root_key(doc, key)
        if index is None:
            raise MalformedAnchor(f"Root key '{key}:' not found in document",
                                  stage=stage, subject=key)
        return index

    @staticmethod
    def _is_comment(line: str) -> bool:
        return line.lstrip().startswith('#')

    def _span_end(self, doc: Document, start: int, base_indent: int) -> int:
        """
        End of the span opened by the line at `start`.

        Blank and comment lines never close a span. Comment lines at or
        above `base_indent` that trail the span belong to whatever follows
        it; blank lines trailing the content stay with the span.
        """
        hard_end = start + 1
        while hard_end < len(doc.lines):
            line = doc.lines[hard_end]
            if not is_blank(line) and not self._is_comment(line) and indent_of(line) <= base_indent:
                break
            hard_end += 1

        end = hard_end
        while end - 1 > start:
            line = doc.lines[end - 1]
            if is_blank(line) or (self._is_comment(line) and indent_of(line) <= base_indent):
                end -= 1
            else:
                break
        while end < hard_end and is_blank(doc.lines[end]):
            end += 1
        return end

    def region_end(self, doc: Document, key_index: int) -> int:
        """First index after the nested region of the root key at `key_index`."""
        return self._span_end(doc, key_index, 0)

    def root_region(self, doc: Document, key: str) -> Optional[BlockRange]:
        """Lines nested under a root key, excluding the key line itself."""
        index = self.find_root_key(doc, key)
        if index is None:
            return None
        return BlockRange(index + 1, self.region_end(doc, index))

    def _scope(self, doc: Document) -> Optional[BlockRange]:
        if self.parent_key is None:
            return BlockRange(0, len(doc.lines))
        return self.root_region(doc, self.parent_key)

    def block_end(self, doc: Document, start: int) -> int:
        """First line after the block: a non-blank line at or above the header's indentation."""
        return self._span_end(doc, start, indent_of(doc.lines[start]))

    def locate(self, doc: Document, name: str) -> Optional[BlockRange]:
        """
        Range of the block named `name`, or None when it is not there.

        Raises AmbiguousMatch when the header appears more than once
        within the parent key's region.
        """
        scope = self._scope(doc)
        if scope is None:
            return None

        pattern = self._header_pattern(name)
        starts: List[int] = [
            i for i in range(scope.start, scope.end) if pattern.match(doc.lines[i])
        ]
        if not starts:
            return None
        if len(starts) > 1:
            raise AmbiguousMatch(
                f"Block header matched {len(starts)} times (lines "
                f"{', '.join(str(i + 1) for i in starts)})",
                stage=Stage.LOCATE_EXISTING, subject=name
            )

        start = starts[0]
        return BlockRange(start, min(self.block_end(doc, start), scope.end))

    def find_entry(self, doc: Document, key: str, entry: str) -> List[int]:
        """Indices of lines under `key` equal to `entry` ignoring surrounding whitespace."""
        region = self.root_region(doc, key)
        if region is None:
            return []
        wanted = entry.strip()
        return [i for i in range(region.start, region.end) if doc.lines[i].strip() == wanted]

    def pad(self, line: str) -> str:
        """Shift one line by the configured offset. Blank lines stay empty."""
        return (' ' * self.indent + line) if line.strip() else ""
