#!/usr/bin/env python3
"""
STACKPATCH CLI SUITE
--------------------
Exit codes and terminal output of the command line front end.
"""

import io

import pytest
from rich.console import Console

from samples import COMPOSE_SAMPLE, PGADMIN_BLOCK
from stackpatch.cli.main import StackPatchCLI


@pytest.fixture
def output():
    return io.StringIO()


@pytest.fixture
def cli(output):
    return StackPatchCLI(Console(file=output, width=200, color_system=None))


@pytest.fixture
def definition(tmp_path):
    path = tmp_path / "pgadmin-service.yaml"
    path.write_text(PGADMIN_BLOCK)
    return path


def test_upsert_with_volume(cli, output, compose_file, definition):
    code = cli.run(["upsert", str(compose_file), "pgadmin", "--from", str(definition),
                    "--anchor", "volumes", "--volume", "pgadmin_data:"])

    assert code == 0
    text = compose_file.read_text()
    assert "\n  pgadmin:\n" in text
    assert text.endswith("volumes:\n  pgadmin_data:\n  db_data:\n")
    assert "UPDATED" in output.getvalue()


def test_remove_with_volume_restores_document(cli, compose_file, definition):
    cli.run(["upsert", str(compose_file), "pgadmin", "--from", str(definition),
             "--anchor", "volumes", "--volume", "pgadmin_data:"])
    code = cli.run(["remove", str(compose_file), "pgadmin", "--volume", "pgadmin_data:"])

    assert code == 0
    assert compose_file.read_text() == COMPOSE_SAMPLE


def test_dry_run_with_diff(cli, output, compose_file, definition):
    code = cli.run(["upsert", str(compose_file), "pgadmin", "--from", str(definition),
                    "--anchor", "volumes", "--dry-run", "--diff"])

    assert code == 0
    assert compose_file.read_text() == COMPOSE_SAMPLE
    rendered = output.getvalue()
    assert "+  pgadmin:" in rendered
    assert "PREVIEW" in rendered
    assert "Dry Run Mode" in rendered


def test_scalar_commands(cli, compose_file):
    assert cli.run(["ensure-scalar", str(compose_file), "volumes", "cache:"]) == 0
    assert compose_file.read_text().endswith("volumes:\n  cache:\n  db_data:\n")

    assert cli.run(["drop-scalar", str(compose_file), "volumes", "cache:"]) == 0
    assert compose_file.read_text() == COMPOSE_SAMPLE


def test_missing_anchor_exits_non_zero(cli, output, compose_file, definition):
    code = cli.run(["upsert", str(compose_file), "pgadmin", "--from", str(definition), "--anchor", "networks"])

    assert code == 1
    assert compose_file.read_text() == COMPOSE_SAMPLE
    assert "Failed during insert" in output.getvalue()
    assert "networks" in output.getvalue()


def test_missing_definition_exits_non_zero(cli, output, compose_file, tmp_path):
    code = cli.run(["upsert", str(compose_file), "pgadmin", "--from", str(tmp_path / "absent.yaml")])

    assert code == 1
    assert "Block definition not found" in output.getvalue()


def test_sync_without_render(cli, tmp_path):
    (tmp_path / ".env.dev").write_text("MINIAPP_TRAEFIK_ENABLED=false\nMINIAPP_PGADMIN_ENABLED=true\n")
    (tmp_path / "podman-compose-dev.yaml").write_text(COMPOSE_SAMPLE)
    template = tmp_path / "pgadmin/templates/pgadmin-service.yaml.template"
    template.parent.mkdir(parents=True)
    template.write_text(PGADMIN_BLOCK)

    code = cli.run(["sync", str(tmp_path), "--skip-render", "--no-socket-check"])

    assert code == 0
    compose = (tmp_path / "podman-compose-dev.yaml").read_text()
    assert "\n  pgadmin:\n" in compose
    assert "\n  traefik:\n" not in compose
    assert (tmp_path / "pgadmin/pgadmin-service.yaml").exists()


def test_no_arguments_prints_help(cli, output, capsys):
    assert cli.run([]) == 0
    assert "StackPatch v" in output.getvalue()
    assert "usage: stackpatch" in capsys.readouterr().out


def test_undecodable_document_exits_non_zero(cli, output, tmp_path):
    path = tmp_path / "compose.yaml"
    garbage = b"\xff\xfe\x00\x80services:\n"
    path.write_bytes(garbage)

    assert cli.run(["remove", str(path), "x"]) == 1
    assert "Unable to read document" in output.getvalue()
    assert path.read_bytes() == garbage
