#!/usr/bin/env python3
"""
STACKPATCH VALIDATOR - The Judge
--------------------------------
The Validator is the final safety gate before the engine persists anything.
Edits are done on text, never on a parsed tree; ruamel.yaml is only used
here to confirm that the text still means what it should.

Author: StackPatch Team
Date: 2026-10-18
"""

import logging
import textwrap
from typing import Any, List

from ruamel.yaml import YAML, YAMLError

from stackpatch.core.errors import BlockDefinitionError, ValidationFailure
from stackpatch.core.models import Stage

logger = logging.getLogger("stackpatch.validator")


class ComposeValidator:
    """
    Structural checks for block definitions and whole compose documents.
    """

    def __init__(self):
        self.yaml = YAML(typ='rt')
        self.yaml.preserve_quotes = True

    @staticmethod
    def _describe(error: YAMLError) -> str:
        mark = getattr(error, 'problem_mark', None) or getattr(error, 'context_mark', None)
        problem = getattr(error, 'problem', None) or str(error).splitlines()[0]
        if mark is not None:
            return f"line {mark.line + 1}, column {mark.column + 1}: {problem}"
        return str(problem)

    def _load_all(self, text: str) -> List[Any]:
        return [doc for doc in self.yaml.load_all(text) if doc is not None]

    def validate_block(self, name: str, block_text: str) -> Any:
        """
        A block definition must be a mapping with exactly one key: `name`.

        Returns the parsed body of that key.
        """
        try:
            docs = self._load_all(textwrap.dedent(block_text))
        except YAMLError as e:
            raise BlockDefinitionError(f"Block definition is not valid YAML ({self._describe(e)})",
                                       stage=Stage.INSERT_NEW, subject=name)

        if len(docs) != 1 or not isinstance(docs[0], dict):
            raise BlockDefinitionError("Block definition must be a single mapping",
                                       stage=Stage.INSERT_NEW, subject=name)

        keys = [str(key) for key in docs[0].keys()]
        if keys != [name]:
            raise BlockDefinitionError(
                f"Block definition must declare only '{name}', found: {', '.join(keys) or 'nothing'}",
                stage=Stage.INSERT_NEW, subject=name
            )
        return docs[0][name]

    def validate_document(self, text: str) -> bool:
        """The transformed document must still load as YAML."""
        try:
            self._load_all(text)
        except YAMLError as e:
            logger.error(f"Transformed document failed to load: {self._describe(e)}")
            raise ValidationFailure(f"Transformed document is not valid YAML ({self._describe(e)})",
                                    stage=Stage.VALIDATE)
        return True
