#!/usr/bin/env python3
"""
STACKPATCH CLI
--------------
Command line front end for the upsert engine and the optional-service
toggles of the dev stack.

    stackpatch upsert podman-compose-dev.yaml traefik --from traefik/traefik-service.yaml --anchor services
    stackpatch remove podman-compose-dev.yaml pgadmin --volume pgadmin_data:
    stackpatch ensure-scalar podman-compose-dev.yaml volumes "  pgadmin_data:"
    stackpatch sync . --env-file .env.dev

Author: StackPatch Team
Date: 2026-10-18
"""

import sys
import logging
import argparse
from pathlib import Path
from typing import Any, Dict, List, Optional

from rich.console import Console

from stackpatch.cli.formatter import ReportFormatter
from stackpatch.core.engine import UpsertEngine, load_block_definition, read_document
from stackpatch.core.errors import StackPatchError
from stackpatch.core.models import EngineSettings
from stackpatch.render.config import DEFAULT_COMPOSE_FILE, DEFAULT_ENV_FILE, StackConfig
from stackpatch.stack.catalog import generate_stack
from stackpatch.stack.services import ServiceToggler

VERSION = "0.1.0"

# Global console for consistent styling across the application
console = Console()


class StackPatchCLI:
    """
    Translates user commands into engine calls and renders the outcome.
    """

    def __init__(self, console: Console = console):
        self.console = console
        self.formatter = ReportFormatter(console)
        self.parser = argparse.ArgumentParser(
            prog="stackpatch",
            description="StackPatch - idempotent service block upserts for compose files",
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        self._setup_args()

    def _setup_args(self):
        """Configures the command-line flags and subcommands."""
        self.parser.add_argument("--version", action="version", version=f"stackpatch v{VERSION}")

        common = argparse.ArgumentParser(add_help=False)
        common.add_argument("--dry-run", action="store_true", help="Preview results without writing")
        common.add_argument("--diff", action="store_true", help="Show a unified diff of the changes")
        common.add_argument("--backup", action="store_true", help="Keep a copy of the original document")
        common.add_argument("--no-validate", action="store_true", help="Skip the YAML load check before writing")
        common.add_argument("--indent", type=int, default=2, help="Offset of service headers (default: 2)")
        common.add_argument("--parent-key", default="services", help="Root key holding service blocks")
        common.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

        subparsers = self.parser.add_subparsers(dest="command", metavar="Command")

        upsert = subparsers.add_parser("upsert", parents=[common], help="Insert or replace a service block")
        upsert.add_argument("document", help="Compose file to modify")
        upsert.add_argument("name", help="Service name (block header)")
        upsert.add_argument("--from", dest="source", required=True, help="File holding the block definition")
        upsert.add_argument("--anchor", default=None,
                            help="Root key to place the block against (default: the parent key)")
        upsert.add_argument("--volume", default=None, help="Named volume entry to declare with the block")

        remove = subparsers.add_parser("remove", parents=[common], help="Remove a service block")
        remove.add_argument("document", help="Compose file to modify")
        remove.add_argument("name", help="Service name (block header)")
        remove.add_argument("--volume", default=None, help="Named volume entry to drop with the block")

        ensure = subparsers.add_parser("ensure-scalar", parents=[common], help="Declare a bare key under a root key")
        ensure.add_argument("document", help="Compose file to modify")
        ensure.add_argument("root_key", help="Root key, e.g. volumes")
        ensure.add_argument("entry", help="Entry line, e.g. 'pgadmin_data:'")

        drop = subparsers.add_parser("drop-scalar", parents=[common], help="Remove a bare key under a root key")
        drop.add_argument("document", help="Compose file to modify")
        drop.add_argument("root_key", help="Root key, e.g. volumes")
        drop.add_argument("entry", help="Entry line, e.g. 'pgadmin_data:'")

        sync = subparsers.add_parser("sync", parents=[common],
                                     help="Render the stack and toggle optional services from the env file")
        sync.add_argument("root", nargs="?", default=".", help="Stack root directory")
        sync.add_argument("--env-file", default=DEFAULT_ENV_FILE, help=f"Env file (default: {DEFAULT_ENV_FILE})")
        sync.add_argument("--compose-file", default=DEFAULT_COMPOSE_FILE,
                          help=f"Compose file (default: {DEFAULT_COMPOSE_FILE})")
        sync.add_argument("--skip-render", action="store_true", help="Only toggle optional services")
        sync.add_argument("--no-socket-check", action="store_true",
                          help="Do not require the podman user socket for the reverse proxy")

    def _engine(self, args: argparse.Namespace) -> UpsertEngine:
        return UpsertEngine(EngineSettings(
            parent_key=args.parent_key or None,
            indent=args.indent,
            validate=not args.no_validate,
            backup=args.backup,
        ))

    def _dispatch(self, args: argparse.Namespace, engine: UpsertEngine) -> List[Dict[str, Any]]:
        if args.command == "upsert":
            block_text = load_block_definition(args.source)
            if args.volume:
                return [engine.upsert_service(args.document, args.name, block_text, anchor_key=args.anchor,
                                              volume_entry=args.volume, dry_run=args.dry_run)]
            return [engine.upsert_block(args.document, args.name, block_text, args.anchor, dry_run=args.dry_run)]

        if args.command == "remove":
            if args.volume:
                return [engine.upsert_service(args.document, args.name, None,
                                              volume_entry=args.volume, dry_run=args.dry_run)]
            return [engine.remove_block(args.document, args.name, dry_run=args.dry_run)]

        if args.command == "ensure-scalar":
            return [engine.ensure_scalar(args.document, args.root_key, args.entry, dry_run=args.dry_run)]

        if args.command == "drop-scalar":
            return [engine.discard_scalar(args.document, args.root_key, args.entry, dry_run=args.dry_run)]

        # sync
        config = StackConfig.load(args.root, env_file=args.env_file, compose_file=args.compose_file)
        if not args.skip_render and not args.dry_run:
            generate_stack(config)
        toggler = ServiceToggler(config, engine, verify_sockets=not args.no_socket_check, dry_run=args.dry_run)
        return toggler.sync()

    def _document_of(self, args: argparse.Namespace) -> Path:
        if args.command == "sync":
            return Path(args.root) / args.compose_file
        return Path(args.document)

    def run(self, argv: Optional[List[str]] = None) -> int:
        """Primary routing entry point. Returns the process exit status."""
        argv = sys.argv[1:] if argv is None else argv
        if not argv:
            self.formatter.print_header("Compose Block Upserts", VERSION)
            self.parser.print_help()
            return 0

        args = self.parser.parse_args(argv)
        if not args.command:
            self.parser.print_help()
            return 0

        logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

        document = self._document_of(args)
        engine = self._engine(args)
        try:
            original = read_document(document) if document.is_file() else ""
            reports = self._dispatch(args, engine)
        except StackPatchError as e:
            self.formatter.print_error(e)
            return 1

        if args.diff:
            base = original
            for report in reports:
                self.formatter.display_diff(base, report["content"], document.name)
                if report.get("written"):
                    base = report["content"]

        self.formatter.print_final_table(reports, engine.generate_summary(reports), args.dry_run)
        return 0


def main():
    """Application entry point with interrupt handling."""
    try:
        sys.exit(StackPatchCLI().run())
    except KeyboardInterrupt:
        console.print("\n[bold red]Terminated by user.[/bold red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
