#!/usr/bin/env python3
"""
STACKPATCH ENGINE - The Operator
--------------------------------
The UpsertEngine owns the filesystem boundary: it reads the compose file,
hands the text to the UpsertPipeline, and only when every in-memory stage
succeeded replaces the original atomically (temp file, then rename).

Author: StackPatch Team
Date: 2026-10-18
"""

import os
import shutil
import time
import logging
from pathlib import Path
from typing import Dict, Any, List, Optional, Union

from stackpatch.core.errors import IOFailure, NotFound
from stackpatch.core.models import Anchor, EngineSettings, Stage
from stackpatch.surgery.context import UpsertContext
from stackpatch.surgery.pipeline import UpsertPipeline

logger = logging.getLogger("stackpatch.engine")

PathLike = Union[str, Path]

TEMP_SUFFIX = ".stackpatch.tmp"
BACKUP_SUFFIX = ".stackpatch.bak"


def load_block_definition(path: PathLike) -> str:
    """Read a block definition file (usually a rendered service template)."""
    source = Path(path)
    if not source.is_file():
        raise NotFound(f"Block definition not found: {source}",
                       stage=Stage.LOAD_DOCUMENT, subject=str(source))
    try:
        return source.read_text(encoding='utf-8-sig')
    except (OSError, UnicodeDecodeError) as e:
        raise IOFailure(f"Unable to read block definition: {e}",
                        stage=Stage.LOAD_DOCUMENT, subject=str(source))


def read_document(path: PathLike) -> str:
    """
    Read a compose document exactly as stored. The BOM stays in the text
    and newline="" keeps CRLF line endings intact.
    """
    source = Path(path)
    if not source.is_file():
        raise NotFound(f"Document not found: {source}",
                       stage=Stage.LOAD_DOCUMENT, subject=str(source))
    try:
        with open(source, "r", encoding="utf-8", newline="") as handle:
            return handle.read()
    except (OSError, UnicodeDecodeError) as e:
        raise IOFailure(f"Unable to read document: {e}",
                        stage=Stage.LOAD_DOCUMENT, subject=str(source))


class UpsertEngine:
    """
    File-level entry point for block upserts and scalar declarations.

    Every public operation returns a report dictionary and raises a
    StackPatchError subclass on failure, leaving the document untouched.
    """

    def __init__(self, settings: Optional[EngineSettings] = None):
        self.settings = settings or EngineSettings()
        self.pipeline = UpsertPipeline(self.settings)

    # --- PUBLIC OPERATIONS ---

    def upsert_block(self, document_path: PathLike, block_name: str,
                     new_block_text: Optional[str], anchor_key: Optional[str] = None,
                     dry_run: bool = False) -> Dict[str, Any]:
        """
        Remove `block_name` if present, then insert `new_block_text` at
        `anchor_key`. With `new_block_text=None` this is a pure removal.
        """
        return self._execute(document_path, dry_run,
                             block_name=block_name, block_text=new_block_text,
                             anchor=self._anchor(new_block_text, anchor_key))

    def remove_block(self, document_path: PathLike, block_name: str,
                     dry_run: bool = False) -> Dict[str, Any]:
        return self.upsert_block(document_path, block_name, None, dry_run=dry_run)

    def ensure_scalar(self, document_path: PathLike, root_key: str, entry_text: str,
                      dry_run: bool = False) -> Dict[str, Any]:
        """Declare `entry_text` under `root_key` unless it is already declared."""
        return self._execute(document_path, dry_run,
                             scalar_key=root_key, scalar_entry=entry_text)

    def discard_scalar(self, document_path: PathLike, root_key: str, entry_text: str,
                       dry_run: bool = False) -> Dict[str, Any]:
        return self._execute(document_path, dry_run,
                             scalar_key=root_key, scalar_entry=entry_text, discard_scalar=True)

    def upsert_service(self, document_path: PathLike, block_name: str,
                       new_block_text: Optional[str], anchor_key: Optional[str] = None,
                       volume_key: str = "volumes", volume_entry: Optional[str] = None,
                       dry_run: bool = False) -> Dict[str, Any]:
        """
        Block upsert plus its companion volume declaration in one atomic
        write. Removing the block also drops the volume declaration.
        """
        return self._execute(
            document_path, dry_run,
            block_name=block_name, block_text=new_block_text,
            anchor=self._anchor(new_block_text, anchor_key),
            scalar_key=volume_key if volume_entry else None,
            scalar_entry=volume_entry,
            discard_scalar=new_block_text is None,
        )

    # --- LIFECYCLE ---

    def _anchor(self, new_block_text: Optional[str], anchor_key: Optional[str]) -> Optional[Anchor]:
        """Pure removals need no anchor. An omitted key means the parent key."""
        key = anchor_key or self.settings.parent_key
        if new_block_text is None or not key:
            return None
        return Anchor.for_key(key, self.settings.parent_key)

    def _execute(self, document_path: PathLike, dry_run: bool, **request) -> Dict[str, Any]:
        path = Path(document_path)
        context = UpsertContext(original_text=read_document(path), **request)
        self.pipeline.run(context)

        result = {
            "document_path": str(path),
            "block_name": context.block_name,
            "changed": context.changed,
            "status": self._derive_status(context.changed, dry_run),
            "written": False,
            "backup_created": None,
            "states": [stage.value for stage in context.states],
            "content": context.result_text,
            "timestamp": time.time(),
        }

        if context.changed and not dry_run:
            context.enter(Stage.PERSIST_ATOMIC)
            if self.settings.backup:
                result["backup_created"] = str(self._create_backup(path))
            self._atomic_write(path, context.result_text)
            result["written"] = True
            logger.info(f"Updated {path}")

        context.enter(Stage.DONE)
        result["states"] = [stage.value for stage in context.states]
        return result

    def _derive_status(self, changed: bool, dry: bool) -> str:
        if not changed: return "UNCHANGED"
        if dry: return "PREVIEW"
        return "UPDATED"

    def _atomic_write(self, target_path: Path, content: str):
        if not os.access(target_path.parent, os.W_OK):
            raise IOFailure(f"No write access to {target_path.parent}",
                            stage=Stage.PERSIST_ATOMIC, subject=str(target_path))
        temp_file = target_path.with_name(target_path.name + TEMP_SUFFIX)
        try:
            # newline='' keeps the document's own line endings
            with open(temp_file, 'w', encoding='utf-8', newline='') as handle:
                handle.write(content)
            shutil.copymode(target_path, temp_file)
            os.replace(temp_file, target_path)
        except OSError as e:
            if temp_file.exists(): temp_file.unlink()
            raise IOFailure(f"Atomic write failed: {e}",
                            stage=Stage.PERSIST_ATOMIC, subject=str(target_path))

    def _create_backup(self, target_path: Path) -> Path:
        backup_path = target_path.with_name(target_path.name + BACKUP_SUFFIX)
        counter = 1
        while backup_path.exists():
            backup_path = target_path.with_name(f"{target_path.name}-{counter}{BACKUP_SUFFIX}")
            counter += 1
        try:
            shutil.copy2(target_path, backup_path)
        except OSError as e:
            raise IOFailure(f"Backup failed: {e}",
                            stage=Stage.PERSIST_ATOMIC, subject=str(target_path))
        return backup_path

    def generate_summary(self, reports: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Totals for the CLI report panel."""
        return {
            "total_operations": len(reports),
            "changed": sum(1 for r in reports if r.get('changed')),
            "written_to_disk": sum(1 for r in reports if r.get('written')),
            "backups_created": sum(1 for r in reports if r.get('backup_created')),
            "summary_timestamp": time.strftime("%Y-%m-%d %H:%M:%S"),
        }
