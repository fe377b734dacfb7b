#!/usr/bin/env python3
"""
STACKPATCH STACK CATALOG
------------------------
The files the dev stack generates from its templates, and the directory
skeleton they live in. Token expressions reference env-file variables with
`${NAME}`.

Author: StackPatch Team
Date: 2026-10-18
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from stackpatch.core.errors import IOFailure
from stackpatch.render.config import StackConfig
from stackpatch.render.templates import copy_template, render_file

logger = logging.getLogger("stackpatch.catalog")

EXECUTABLE = 0o755

STACK_DIRECTORIES = [
    "config", "backend", "backend/templates", "backend/app",
    "frontend", "frontend/templates", "pgadmin", "pgadmin/templates",
    "traefik", "traefik/certs", "traefik/templates",
    "logs", "db", "db/pgadmin", "db/templates", "instructions",
]


@dataclass(frozen=True)
class TemplateSpec:
    source: str                                 # relative to the stack root
    target: str
    tokens: Optional[Dict[str, str]] = None     # None: every variable by its own name
    mode: Optional[int] = None
    required: bool = True
    verbatim: bool = False                      # copied as is, placeholders untouched


def _copy(source: str, target: str, **kwargs) -> TemplateSpec:
    """A template copied without substitution."""
    return TemplateSpec(source=source, target=target, verbatim=True, **kwargs)


CORE_TEMPLATES: List[TemplateSpec] = [
    TemplateSpec("db/templates/Dockerfile.template", "db/Dockerfile",
                 tokens={"POSTGRES_VERSION": "${MINIAPP_SW_VERSION_TAG}"}),
    _copy("db/templates/entrypoint.sh.template", "db/entrypoint.sh", mode=EXECUTABLE),
    TemplateSpec("backend/templates/Dockerfile.template", "backend/Dockerfile",
                 tokens={"BACKEND_PORT": "${MINIAPP_BACKEND_PORT}"}),
    TemplateSpec("backend/templates/main.py.template", "backend/app/main.py", tokens={
        "FRONTEND_DOMAIN": "${MINIAPP_FRONTEND_DOMAIN}",
        "API_DOMAIN": "${MINIAPP_TRAEFIK_API_DOMAIN}",
        "FRONTEND_HTTPS": "https://${MINIAPP_FRONTEND_DOMAIN}:${MINIAPP_TRAEFIK_HTTPS_PORT}",
        "API_HTTPS": "https://${MINIAPP_TRAEFIK_API_DOMAIN}:${MINIAPP_TRAEFIK_HTTPS_PORT}",
        "TRAEFIK_HTTPS": "https://traefik.${MINIAPP_FRONTEND_DOMAIN}:${MINIAPP_TRAEFIK_HTTPS_PORT}",
        "BACKENDPORT_ORIGIN": "${MINIAPP_BACKEND_PORT}",
    }),
    TemplateSpec("backend/templates/db.py.template", "backend/app/db.py", tokens={
        "DB_HOST": "${MINIAPP_DB_HOST}",
        "DB_NAME": "${MINIAPP_DB_NAME}",
        "DB_USER": "${MINIAPP_DB_USER}",
        "DB_PASSWORD": "${MINIAPP_DB_PASSWORD}",
    }),
    TemplateSpec("backend/templates/wait-for-db.sh.template", "backend/wait-for-db.sh", tokens={
        "DB_HOST": "${MINIAPP_DB_HOST}",
        "DB_PORT": "${MINIAPP_DB_PORT}",
        "DB_USER": "${MINIAPP_DB_USER}",
    }, mode=EXECUTABLE),
    TemplateSpec("frontend/templates/index.html.template", "frontend/index.html",
                 tokens={"BACKEND_API_URL_HTTPS": "${MINIAPP_BACKEND_API_URL_TLS}"}),
    _copy("frontend/templates/nginx.conf.template", "frontend/nginx.conf"),
]

# Written as is; no template behind them
STATIC_FILES: Dict[str, str] = {
    "backend/app/__init__.py": "",
    "backend/requirements.txt": (
        "fastapi\n"
        "uvicorn[standard]\n"
        "psycopg2-binary\n"
    ),
    "db/init.sql": (
        "CREATE TABLE IF NOT EXISTS users (\n"
        "  id SERIAL PRIMARY KEY,\n"
        "  username TEXT UNIQUE NOT NULL,\n"
        "  email TEXT NOT NULL,\n"
        "  created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP\n"
        ");\n"
        "CREATE TABLE IF NOT EXISTS messages (\n"
        "  id SERIAL PRIMARY KEY,\n"
        "  user_id INTEGER REFERENCES users(id),\n"
        "  content TEXT NOT NULL,\n"
        "  created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP\n"
        ");\n"
    ),
}

# Regenerated on every run; a stale copy is removed first
STALE_FILES = [spec.target for spec in CORE_TEMPLATES] + ["db/init.sql"]


def scaffold(root: Path, directories: List[str] = STACK_DIRECTORIES) -> List[Path]:
    """Create the stack's directory skeleton. Existing directories are left alone."""
    created = []
    for relative in directories:
        path = root / relative
        if not path.is_dir():
            path.mkdir(parents=True, exist_ok=True)
            created.append(path)
    if created:
        logger.info(f"Created {len(created)} stack directories under {root}")
    return created


def render_templates(config: StackConfig, specs: List[TemplateSpec] = CORE_TEMPLATES,
                     strict: bool = True) -> List[Path]:
    """Render each template of `specs` under the stack root. Optional missing sources are skipped."""
    render_config = config.render_config(strict=strict)
    written = []
    for spec in specs:
        source = config.root / spec.source
        if not spec.required and not source.is_file():
            logger.debug(f"Skipping optional template {spec.source}")
            continue
        target = config.root / spec.target
        if spec.verbatim:
            written.append(copy_template(source, target, mode=spec.mode))
        else:
            written.append(render_file(source, target, render_config,
                                       tokens=spec.tokens, mode=spec.mode))
    return written


def clean_generated(root: Path, targets: List[str] = STALE_FILES) -> List[Path]:
    """Remove previously generated files so nothing stale survives a template change."""
    removed = []
    for relative in targets:
        path = root / relative
        try:
            if path.is_file():
                path.unlink()
                removed.append(path)
        except OSError as e:
            raise IOFailure(f"Unable to remove {path}: {e}", stage="render", subject=relative)
    if removed:
        logger.debug(f"Removed {len(removed)} stale generated files")
    return removed


def write_static_files(root: Path, files: Dict[str, str] = STATIC_FILES) -> List[Path]:
    """Write fixed-content files. Empty ones are only touched, never truncated."""
    written = []
    for relative, content in files.items():
        path = root / relative
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            if content:
                path.write_text(content, encoding='utf-8')
            else:
                path.touch(exist_ok=True)
        except OSError as e:
            raise IOFailure(f"Unable to write {path}: {e}", stage="render", subject=relative)
        written.append(path)
    return written


def generate_stack(config: StackConfig, strict: bool = True) -> List[Path]:
    """
    Full regeneration of the stack's derived files: directory skeleton,
    stale file cleanup, rendered templates and static files.
    """
    scaffold(config.root)
    clean_generated(config.root)
    written = render_templates(config, strict=strict)
    written += write_static_files(config.root)
    logger.info(f"Generated {len(written)} stack files under {config.root}")
    return written
