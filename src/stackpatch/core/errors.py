#!/usr/bin/env python3
"""
STACKPATCH ERRORS
-----------------
Every failure names the stage it happened in and the block or key involved,
so the CLI can tell the user exactly where an upsert stopped.

Author: StackPatch Team
Date: 2026-10-18
"""

from typing import Optional, Union

from stackpatch.core.models import Stage


class StackPatchError(Exception):
    """Base class for every failure raised by StackPatch."""

    def __init__(self, message: str, stage: Union[Stage, str, None] = None,
                 subject: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.stage = stage.value if isinstance(stage, Stage) else stage
        self.subject = subject

    def __str__(self) -> str:
        prefix = f"[{self.stage}] " if self.stage else ""
        target = f" ({self.subject})" if self.subject else ""
        return f"{prefix}{self.message}{target}"


class NotFound(StackPatchError):
    """Document or block definition file does not exist."""


class MalformedAnchor(StackPatchError):
    """The anchor or root key is absent from the document."""


class AmbiguousMatch(StackPatchError):
    """A header or root key pattern matched more than one line."""


class IOFailure(StackPatchError):
    """Reading, temp write, rename or backup failed."""


class BlockDefinitionError(StackPatchError):
    """The new block text does not describe the named block."""


class ValidationFailure(StackPatchError):
    """The transformed document no longer loads as YAML."""


class RenderError(StackPatchError):
    """Template missing or placeholders left unresolved."""
