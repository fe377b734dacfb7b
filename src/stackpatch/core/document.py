#!/usr/bin/env python3
"""
STACKPATCH DOCUMENT - Line Model
--------------------------------
Holds a compose file as an ordered list of lines plus the formatting facts
needed to write it back byte-for-byte: newline style, final newline and
a leading BOM.

Author: StackPatch Team
Date: 2026-10-18
"""

import re
from dataclasses import dataclass, field
from typing import List

LINE_BREAK = re.compile(r"\r?\n")


def indent_of(line: str) -> int:
    """Leading whitespace width. Tabs count as two spaces."""
    expanded = line.replace('\t', '  ')
    return len(expanded) - len(expanded.lstrip())


def is_blank(line: str) -> bool:
    return not line.strip()


@dataclass
class Document:
    """
    A compose document treated as text.

    Lines never carry their newline characters. A file with mixed line
    endings is written back with the ending it uses most.
    """
    lines: List[str] = field(default_factory=list)
    newline: str = "\n"
    trailing_newline: bool = True
    bom: bool = False

    @classmethod
    def from_text(cls, text: str) -> "Document":
        # Byte Order Mark is set aside and restored by to_text
        bom = text.startswith('\ufeff')
        text = text.lstrip('\ufeff')

        crlf = text.count("\r\n")
        newline = "\r\n" if crlf and crlf * 2 >= text.count("\n") else "\n"
        if not text:
            return cls(lines=[], newline=newline, trailing_newline=False, bom=bom)

        trailing = text.endswith("\n")
        body = text
        if trailing:
            body = text[:-2] if text.endswith("\r\n") else text[:-1]
        return cls(lines=LINE_BREAK.split(body), newline=newline,
                   trailing_newline=trailing, bom=bom)

    def to_text(self) -> str:
        prefix = '\ufeff' if self.bom else ""
        if not self.lines:
            return prefix
        text = self.newline.join(self.lines)
        return prefix + (text + self.newline if self.trailing_newline else text)

    def copy_with(self, lines: List[str]) -> "Document":
        """New document sharing this one's formatting."""
        return Document(lines=list(lines), newline=self.newline,
                        trailing_newline=self.trailing_newline or not self.lines,
                        bom=self.bom)

    def __len__(self) -> int:
        return len(self.lines)
