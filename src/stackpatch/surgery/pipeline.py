#!/usr/bin/env python3
"""
STACKPATCH UPSERT PIPELINE - The Orchestrator
---------------------------------------------
Runs the in-memory part of an upsert as a strictly linear sequence:

    LOAD_DOCUMENT -> LOCATE_EXISTING -> REMOVE_IF_PRESENT -> INSERT_NEW
                  -> ENSURE_SCALAR -> VALIDATE

Persisting is left to the engine, which only does it after every stage
here succeeded. Any failure moves the context to FAIL and re-raises.

Author: StackPatch Team
Date: 2026-10-18
"""

import logging
from typing import Optional

from stackpatch.core.document import Document
from stackpatch.core.errors import MalformedAnchor, StackPatchError
from stackpatch.core.models import EngineSettings, Stage
from stackpatch.surgery.context import UpsertContext
from stackpatch.surgery.inserter import BlockInserter
from stackpatch.surgery.locator import BlockLocator
from stackpatch.surgery.remover import BlockRemover
from stackpatch.surgery.scalar import ScalarEnsurer
from stackpatch.validator.validator import ComposeValidator

logger = logging.getLogger("stackpatch.pipeline")


class UpsertPipeline:
    """
    Wires the locator, remover, inserter, scalar ensurer and validator
    together. Each stage reads and replaces `context.document`.
    """

    def __init__(self, settings: Optional[EngineSettings] = None):
        self.settings = settings or EngineSettings()
        self.locator = BlockLocator(indent=self.settings.indent, parent_key=self.settings.parent_key)
        self.remover = BlockRemover()
        self.inserter = BlockInserter(self.locator)
        self.scalars = ScalarEnsurer(self.locator)
        self.validator = ComposeValidator()

    def run(self, context: UpsertContext) -> UpsertContext:
        try:
            self._load(context)
            if context.block_name is not None:
                self._locate(context)
                self._remove(context)
                if context.block_text is not None:
                    self._insert(context)
            if context.scalar_key is not None and context.scalar_entry is not None:
                self._scalar(context)
            if self.settings.validate:
                self._validate(context)
        except StackPatchError as e:
            context.enter(Stage.FAIL)
            logger.error(f"Upsert failed: {e}")
            raise
        return context

    # --- STAGES ---

    def _load(self, context: UpsertContext):
        context.enter(Stage.LOAD_DOCUMENT)
        context.document = Document.from_text(context.original_text)
        context.loaded_lines = list(context.document.lines)

    def _locate(self, context: UpsertContext):
        context.enter(Stage.LOCATE_EXISTING)
        context.located = self.locator.locate(context.document, context.block_name)
        if context.located:
            logger.info(f"Found existing '{context.block_name}' at lines "
                        f"{context.located.start + 1}-{context.located.end}")

    def _remove(self, context: UpsertContext):
        context.enter(Stage.REMOVE_IF_PRESENT)
        context.document = self.remover.remove(context.document, context.located)

    def _insert(self, context: UpsertContext):
        context.enter(Stage.INSERT_NEW)
        if context.anchor is None:
            raise MalformedAnchor("No anchor key given for insertion",
                                  stage=Stage.INSERT_NEW, subject=context.block_name)
        # Definition must parse before the layout is touched
        self.validator.validate_block(context.block_name, context.block_text)
        context.document = self.inserter.insert(
            context.document, context.block_name, context.block_text, context.anchor
        )

    def _scalar(self, context: UpsertContext):
        context.enter(Stage.ENSURE_SCALAR)
        if context.discard_scalar:
            context.document = self.scalars.discard(
                context.document, context.scalar_key, context.scalar_entry)
        else:
            context.document = self.scalars.ensure(
                context.document, context.scalar_key, context.scalar_entry)

    def _validate(self, context: UpsertContext):
        context.enter(Stage.VALIDATE)
        if context.changed:
            self.validator.validate_document(context.result_text.lstrip('\ufeff'))
