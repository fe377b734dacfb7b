#!/usr/bin/env python3
"""
STACKPATCH CHAOS & EDGE CASE SUITE
----------------------------------
Filesystem edge cases around the atomic write:
1. Zero-Byte / Empty Files
2. Binary Garbage (Invalid Encoding)
3. Permission Denied (Sabotage Test)
4. Rename Failure (Ghost File Check)

Author: StackPatch Team
Date: 2026-10-18
"""

import os
import stat

import pytest

from samples import TRAEFIK_BLOCK
from stackpatch.core import engine as engine_module
from stackpatch.core.engine import TEMP_SUFFIX, UpsertEngine
from stackpatch.core.errors import IOFailure, MalformedAnchor

running_as_root = hasattr(os, "geteuid") and os.geteuid() == 0


def test_empty_file_has_no_anchor(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")

    with pytest.raises(MalformedAnchor):
        UpsertEngine().upsert_block(path, "traefik", TRAEFIK_BLOCK, "services")
    assert path.read_bytes() == b""


def test_empty_file_removal_is_a_noop(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")

    report = UpsertEngine().remove_block(path, "traefik")
    assert report["status"] == "UNCHANGED"
    assert path.read_bytes() == b""


def test_binary_garbage_is_an_io_failure(tmp_path):
    path = tmp_path / "garbage.yaml"
    garbage = b"\xff\xfe\x00\x80services:\x9f\n"
    path.write_bytes(garbage)

    with pytest.raises(IOFailure) as excinfo:
        UpsertEngine().upsert_block(path, "traefik", TRAEFIK_BLOCK, "services")
    assert excinfo.value.stage == "load"
    assert path.read_bytes() == garbage


@pytest.mark.skipif(running_as_root, reason="root ignores directory permissions")
def test_read_only_directory_leaves_original(tmp_path, compose_text):
    locked = tmp_path / "locked"
    locked.mkdir()
    path = locked / "compose.yaml"
    path.write_text(compose_text)
    os.chmod(locked, stat.S_IRUSR | stat.S_IXUSR)

    try:
        with pytest.raises(IOFailure) as excinfo:
            UpsertEngine().upsert_block(path, "traefik", TRAEFIK_BLOCK, "services")
        assert excinfo.value.stage == "persist"
        assert path.read_text() == compose_text
        assert not list(locked.glob(f"*{TEMP_SUFFIX}"))
    finally:
        # Reset permissions so tmp_path can be cleaned up
        os.chmod(locked, stat.S_IRWXU)


def test_failed_rename_leaves_no_ghost_file(tmp_path, compose_text, monkeypatch):
    path = tmp_path / "compose.yaml"
    path.write_text(compose_text)

    def sabotage(src, dst):
        raise OSError("device busy")

    monkeypatch.setattr(engine_module.os, "replace", sabotage)

    with pytest.raises(IOFailure) as excinfo:
        UpsertEngine().upsert_block(path, "traefik", TRAEFIK_BLOCK, "services")

    assert "device busy" in str(excinfo.value)
    assert path.read_text() == compose_text
    assert not list(tmp_path.glob(f"*{TEMP_SUFFIX}"))


def test_file_mode_survives_replacement(tmp_path, compose_text):
    path = tmp_path / "compose.yaml"
    path.write_text(compose_text)
    os.chmod(path, 0o640)

    UpsertEngine().upsert_block(path, "traefik", TRAEFIK_BLOCK, "services")
    assert stat.S_IMODE(path.stat().st_mode) == 0o640
