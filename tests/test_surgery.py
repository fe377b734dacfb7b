#!/usr/bin/env python3
"""
STACKPATCH SURGERY SUITE
------------------------
Remover, inserter and scalar ensurer on in-memory documents.
"""

import pytest

from samples import TRAEFIK_BLOCK, PGADMIN_BLOCK
from stackpatch.core.document import Document
from stackpatch.core.errors import BlockDefinitionError, MalformedAnchor
from stackpatch.core.models import Anchor, Placement
from stackpatch.surgery.inserter import BlockInserter
from stackpatch.surgery.locator import BlockLocator
from stackpatch.surgery.remover import BlockRemover
from stackpatch.surgery.scalar import ScalarEnsurer


@pytest.fixture
def locator():
    return BlockLocator()


@pytest.fixture
def inserter(locator):
    return BlockInserter(locator)


# --- REMOVER ---

def test_remove_keeps_neighbours_verbatim(compose_doc, locator):
    result = BlockRemover().remove(compose_doc, locator.locate(compose_doc, "db"))
    text = result.to_text()

    assert "\n  db:\n" not in text
    assert "    image: postgres:16\n" not in text
    assert '  db_admin:\n    image: adminer\n    ports:\n      - "8081:8080"\n' in text
    assert "      db:\n        condition: service_healthy\n\n  db_admin:\n" in text
    assert text.endswith("volumes:\n  db_data:\n")


def test_remove_missing_block_is_noop(compose_doc):
    assert BlockRemover().remove(compose_doc, None) is compose_doc


def test_remove_last_block_collapses_dangling_blank(locator):
    doc = Document.from_text("services:\n  a:\n    image: x\n\n  b:\n    image: y\n")
    result = BlockRemover().remove(doc, locator.locate(doc, "b"))
    assert result.to_text() == "services:\n  a:\n    image: x\n"


# --- INSERTER ---

def test_insert_first_under_parent_key(inserter):
    doc = Document.from_text("services:\n  backend:\n    image: b\n\nvolumes:\n")
    result = inserter.insert(doc, "traefik", TRAEFIK_BLOCK, Anchor("services", Placement.AFTER))

    assert result.to_text() == (
        "services:\n"
        "\n"
        "  traefik:\n"
        "    image: foo\n"
        "\n"
        "  backend:\n"
        "    image: b\n"
        "\n"
        "volumes:\n"
    )


def test_insert_before_anchor_key(compose_doc, inserter):
    result = inserter.insert(compose_doc, "pgadmin", PGADMIN_BLOCK, Anchor("volumes", Placement.BEFORE))
    text = result.to_text()

    assert text.endswith(
        '      - "8081:8080"\n'
        "\n"
        "  pgadmin:\n"
        "    image: dpage/pgadmin4\n"
        "    volumes:\n"
        "      - pgadmin_data:/var/lib/pgadmin\n"
        "\n"
        "volumes:\n"
        "  db_data:\n"
    )


def test_insert_accepts_pre_indented_definition(inserter):
    doc = Document.from_text("services:\n  app:\n    image: a\nvolumes:\n")
    indented = "\n  pgadmin:\n    image: p\n\n"
    result = inserter.insert(doc, "pgadmin", indented, Anchor("volumes"))

    assert result.lines == ["services:", "  app:", "    image: a", "", "  pgadmin:", "    image: p", "", "volumes:"]


def test_insert_missing_anchor_is_fatal(inserter):
    doc = Document.from_text("services:\n  app:\n    image: a\n")
    with pytest.raises(MalformedAnchor) as excinfo:
        inserter.insert(doc, "pgadmin", PGADMIN_BLOCK, Anchor("volumes"))
    assert excinfo.value.subject == "volumes"
    assert excinfo.value.stage == "insert"


def test_insert_refuses_anchor_outside_parent_section(inserter):
    """
    A 'before volumes' insertion must land inside services; with another
    section in between it would silently become a network definition.
    """
    doc = Document.from_text(
        "services:\n"
        "  app:\n"
        "    image: a\n"
        "networks:\n"
        "  default:\n"
        "volumes:\n"
    )
    with pytest.raises(MalformedAnchor):
        inserter.insert(doc, "pgadmin", PGADMIN_BLOCK, Anchor("volumes"))


def test_insert_keeps_section_comment_with_its_key(inserter):
    doc = Document.from_text("services:\n  app:\n    image: a\n\n# data\nvolumes:\n")
    result = inserter.insert(doc, "pgadmin", "pgadmin:\n  image: p\n", Anchor("volumes"))

    assert result.to_text() == (
        "services:\n  app:\n    image: a\n\n  pgadmin:\n    image: p\n\n# data\nvolumes:\n"
    )


def test_insert_at_end_of_document_adds_no_trailing_blank(inserter):
    doc = Document.from_text("services:\n")
    result = inserter.insert(doc, "traefik", TRAEFIK_BLOCK, Anchor("services", Placement.AFTER))
    assert result.to_text() == "services:\n\n  traefik:\n    image: foo\n"


@pytest.mark.parametrize("bad_text", [
    "",
    "\n\n",
    "traefik_v2:\n  image: foo\n",
    "  image: foo\ntraefik:\n",
    "traefik:\n  image: foo\nother:\n  image: bar\n",
])
def test_insert_rejects_foreign_definitions(inserter, bad_text):
    doc = Document.from_text("services:\n")
    with pytest.raises(BlockDefinitionError):
        inserter.insert(doc, "traefik", bad_text, Anchor("services", Placement.AFTER))


def test_anchor_for_key_placement():
    assert Anchor.for_key("services", "services").placement == Placement.AFTER
    assert Anchor.for_key("volumes", "services").placement == Placement.BEFORE
    assert Anchor.for_key("volumes", None).placement == Placement.BEFORE


# --- SCALARS ---

def test_ensure_scalar_is_additive_once(locator):
    scalars = ScalarEnsurer(locator)
    doc = Document.from_text("services:\n  app:\n    image: a\nvolumes:\n  db_data:\n")

    once = scalars.ensure(doc, "volumes", "  pgadmin_data:")
    twice = scalars.ensure(once, "volumes", "  pgadmin_data:")

    assert once.lines[-2:] == ["  pgadmin_data:", "  db_data:"]
    assert twice.to_text() == once.to_text()
    assert twice.lines.count("  pgadmin_data:") == 1


def test_ensure_scalar_pads_bare_entry(locator):
    doc = Document.from_text("volumes:\n")
    result = ScalarEnsurer(locator).ensure(doc, "volumes", "pgadmin_data:")
    assert result.to_text() == "volumes:\n  pgadmin_data:\n"


def test_ensure_scalar_ignores_commented_declaration(locator):
    doc = Document.from_text("volumes:\n#  pgadmin_data:\n")
    result = ScalarEnsurer(locator).ensure(doc, "volumes", "pgadmin_data:")
    assert result.lines == ["volumes:", "  pgadmin_data:", "#  pgadmin_data:"]


def test_ensure_scalar_only_looks_under_its_root_key(locator):
    doc = Document.from_text("services:\n  pgadmin_data:\nvolumes:\n")
    result = ScalarEnsurer(locator).ensure(doc, "volumes", "pgadmin_data:")
    assert result.lines == ["services:", "  pgadmin_data:", "volumes:", "  pgadmin_data:"]


def test_ensure_scalar_missing_root_key_is_fatal(locator):
    with pytest.raises(MalformedAnchor):
        ScalarEnsurer(locator).ensure(Document.from_text("services:\n"), "volumes", "x:")


def test_discard_scalar(locator):
    scalars = ScalarEnsurer(locator)
    doc = Document.from_text("volumes:\n  pgadmin_data:\n  db_data:\n")

    assert scalars.discard(doc, "volumes", "pgadmin_data:").to_text() == "volumes:\n  db_data:\n"
    assert scalars.discard(doc, "volumes", "other:") is doc
    assert scalars.discard(doc, "networks", "pgadmin_data:") is doc
