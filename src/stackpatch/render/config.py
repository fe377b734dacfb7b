#!/usr/bin/env python3
"""
STACKPATCH STACK CONFIG
-----------------------
Loads the stack's env file (`.env.dev` by default) once, and exposes it as
an explicit object. Rendering and service toggles receive this object
instead of reading the process environment.

Author: StackPatch Team
Date: 2026-10-18
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Union

from dotenv import dotenv_values

from stackpatch.core.errors import NotFound
from stackpatch.core.models import Stage
from stackpatch.render.templates import RenderConfig

DEFAULT_ENV_FILE = ".env.dev"
DEFAULT_COMPOSE_FILE = "podman-compose-dev.yaml"

TRUTHY = {"1", "true", "yes", "on"}


def rootless_podman_socket(uid: Optional[int] = None) -> str:
    """User socket of a rootless podman, which the reverse proxy watches."""
    if uid is None:
        uid = os.getuid()
    return f"/run/user/{uid}/podman/podman.sock"


@dataclass
class StackConfig:
    root: Path
    compose_file: Path
    values: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def load(cls, root: Union[str, Path] = ".", env_file: str = DEFAULT_ENV_FILE,
             compose_file: str = DEFAULT_COMPOSE_FILE) -> "StackConfig":
        root = Path(root).resolve()
        env_path = root / env_file
        if not env_path.is_file():
            raise NotFound(f"Env file not found: {env_path}",
                           stage=Stage.LOAD_DOCUMENT, subject=str(env_path))

        values = {key: value for key, value in dotenv_values(env_path).items() if value is not None}
        values.setdefault("MINIAPP_TRAEFIK_PODMAN_SOCK", rootless_podman_socket())
        return cls(root=root, compose_file=root / compose_file, values=values)

    def flag(self, name: str) -> bool:
        return self.values.get(name, "").strip().lower() in TRUTHY

    def render_config(self, strict: bool = True) -> RenderConfig:
        return RenderConfig(variables=dict(self.values), strict=strict)
