#!/usr/bin/env python3
"""
STACKPATCH OPTIONAL SERVICES
----------------------------
The dev stack has two services that can be switched on and off from the
env file: the reverse proxy and the database admin UI. Enabling one renders
its service template, upserts the block into the compose file and declares
its volume. Every template is rendered before the compose file is
touched, so a missing or broken template leaves the stack as it was.
Disabling removes all of that again, generated files included.

Author: StackPatch Team
Date: 2026-10-18
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from stackpatch.core.engine import UpsertEngine
from stackpatch.core.errors import IOFailure, NotFound, RenderError
from stackpatch.core.models import Stage
from stackpatch.render.config import StackConfig
from stackpatch.render.templates import render
from stackpatch.stack.catalog import TemplateSpec

logger = logging.getLogger("stackpatch.services")


@dataclass(frozen=True)
class OptionalService:
    name: str                                   # service header in the compose file
    enable_flag: str                            # env-file variable holding true/false
    block: TemplateSpec                         # the service definition template
    anchor_key: str                             # root key the block is placed against
    volume: Optional[str] = None                # named volume declared alongside
    extras: List[TemplateSpec] = field(default_factory=list)
    private_files: List[str] = field(default_factory=list)  # created empty, mode 0600
    socket_variable: Optional[str] = None       # variable naming a socket that must exist

    def generated_files(self) -> List[str]:
        return [self.block.target] + [spec.target for spec in self.extras] + list(self.private_files)


TRAEFIK = OptionalService(
    name="traefik",
    enable_flag="MINIAPP_TRAEFIK_ENABLED",
    block=TemplateSpec("traefik/templates/traefik-service.yaml.template", "traefik/traefik-service.yaml"),
    anchor_key="services",
    extras=[
        TemplateSpec("traefik/templates/traefik.yml.template", "traefik/traefik.yml", tokens={
            "TRAEFIK_HTTP_PORT": "${MINIAPP_TRAEFIK_HTTP_PORT}",
            "TRAEFIK_HTTPS_PORT": "${MINIAPP_TRAEFIK_HTTPS_PORT}",
        }),
        TemplateSpec("traefik/templates/dynamic.yml.template", "traefik/dynamic.yml",
                     required=False, verbatim=True),
    ],
    private_files=["traefik/acme.json"],
    socket_variable="MINIAPP_TRAEFIK_PODMAN_SOCK",
)

PGADMIN = OptionalService(
    name="pgadmin",
    enable_flag="MINIAPP_PGADMIN_ENABLED",
    block=TemplateSpec("pgadmin/templates/pgadmin-service.yaml.template", "pgadmin/pgadmin-service.yaml",
                       verbatim=True),
    anchor_key="volumes",
    volume="pgadmin_data",
)

OPTIONAL_SERVICES = [TRAEFIK, PGADMIN]


class ServiceToggler:
    """
    Applies the enabled/disabled state of optional services to a stack.
    """

    def __init__(self, config: StackConfig, engine: Optional[UpsertEngine] = None,
                 verify_sockets: bool = True, dry_run: bool = False):
        self.config = config
        self.engine = engine or UpsertEngine()
        self.verify_sockets = verify_sockets
        self.dry_run = dry_run

    def _render_spec(self, service: OptionalService, spec: TemplateSpec) -> Optional[str]:
        """Render one template in memory. An optional template that is missing gives None."""
        source = self.config.root / spec.source
        if not source.is_file():
            if not spec.required:
                return None
            raise RenderError(f"Service template missing: {source}", stage="render", subject=service.name)

        try:
            text = source.read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as e:
            raise RenderError(f"Unable to read {source}: {e}", stage="render", subject=service.name)
        if spec.verbatim:
            return text
        render_config = self.config.render_config()
        return render(text, render_config.resolve(spec.tokens), strict=render_config.strict)

    def _render_all(self, service: OptionalService) -> List[Tuple[TemplateSpec, str]]:
        """
        Every file the service needs, rendered before the compose file is
        touched. The service block comes first.
        """
        rendered = []
        for spec in [service.block] + list(service.extras):
            text = self._render_spec(service, spec)
            if text is not None:
                rendered.append((spec, text))
        return rendered

    def _check_socket(self, service: OptionalService):
        if not (self.verify_sockets and service.socket_variable):
            return
        socket_path = Path(self.config.values.get(service.socket_variable, ""))
        if not socket_path.is_socket():
            raise NotFound(f"Socket not found: {socket_path}. Is the podman user service running?",
                           stage=Stage.LOAD_DOCUMENT, subject=service.name)

    def _write_support_files(self, service: OptionalService, rendered: List[Tuple[TemplateSpec, str]]):
        root = self.config.root
        try:
            for spec, text in rendered:
                target = root / spec.target
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_text(text, encoding='utf-8')
                if spec.mode is not None:
                    target.chmod(spec.mode)

            for relative in service.private_files:
                private = root / relative
                private.parent.mkdir(parents=True, exist_ok=True)
                private.touch(exist_ok=True)
                private.chmod(0o600)
        except OSError as e:
            raise IOFailure(f"Unable to write support files: {e}",
                            stage=Stage.PERSIST_ATOMIC, subject=service.name)

    def _remove_support_files(self, service: OptionalService) -> List[str]:
        removed = []
        for relative in service.generated_files():
            path = self.config.root / relative
            if path.is_file():
                path.unlink()
                removed.append(relative)
        return removed

    def enable(self, service: OptionalService) -> Dict[str, Any]:
        self._check_socket(service)
        rendered = self._render_all(service)

        report = self.engine.upsert_service(
            self.config.compose_file, service.name, rendered[0][1],
            anchor_key=service.anchor_key,
            volume_entry=f"{service.volume}:" if service.volume else None,
            dry_run=self.dry_run,
        )
        if not self.dry_run:
            self._write_support_files(service, rendered)
        logger.info(f"{service.name}: enabled ({report['status']})")
        report["service"] = service.name
        report["enabled"] = True
        return report

    def disable(self, service: OptionalService) -> Dict[str, Any]:
        report = self.engine.upsert_service(
            self.config.compose_file, service.name, None,
            volume_entry=f"{service.volume}:" if service.volume else None,
            dry_run=self.dry_run,
        )
        report["removed_files"] = [] if self.dry_run else self._remove_support_files(service)
        logger.info(f"{service.name}: disabled ({report['status']})")
        report["service"] = service.name
        report["enabled"] = False
        return report

    def apply(self, service: OptionalService, enabled: Optional[bool] = None) -> Dict[str, Any]:
        """Enable or disable `service`; by default as the env file says."""
        if enabled is None:
            enabled = self.config.flag(service.enable_flag)
        return self.enable(service) if enabled else self.disable(service)

    def sync(self, services: Optional[List[OptionalService]] = None) -> List[Dict[str, Any]]:
        return [self.apply(service) for service in (services or OPTIONAL_SERVICES)]
