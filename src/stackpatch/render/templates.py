#!/usr/bin/env python3
"""
STACKPATCH RENDERER - Placeholder Substitution
----------------------------------------------
Stack templates carry `%%TOKEN%%` placeholders. Rendering replaces each one
with a value from an explicit RenderConfig; nothing is read from the process
environment here.

A token value may itself reference stack variables with `${NAME}`, so a
token like FRONTEND_HTTPS can be built from a domain and a port.

Author: StackPatch Team
Date: 2026-10-18
"""

import os
import shutil
import re
import logging
from dataclasses import dataclass, field
from pathlib import Path
from string import Template
from typing import Dict, Mapping, Optional, Union

from stackpatch.core.errors import RenderError

logger = logging.getLogger("stackpatch.render")

TOKEN_PATTERN = re.compile(r'%%([A-Za-z_][A-Za-z0-9_]*)%%')


def render(template: str, variables: Mapping[str, str], strict: bool = False) -> str:
    """
    Replace every `%%NAME%%` whose NAME is in `variables`.

    Unknown placeholders are left as they are and logged; with `strict`
    they raise RenderError instead.
    """
    missing = sorted({name for name in TOKEN_PATTERN.findall(template) if name not in variables})
    if missing:
        if strict:
            raise RenderError(f"Unresolved placeholders: {', '.join(missing)}", stage="render")
        logger.warning(f"Leaving unresolved placeholders: {', '.join(missing)}")

    return TOKEN_PATTERN.sub(
        lambda m: str(variables[m.group(1)]) if m.group(1) in variables else m.group(0),
        template
    )


@dataclass
class RenderConfig:
    """
    Everything a render needs: the stack variables and the strictness.
    """
    variables: Dict[str, str] = field(default_factory=dict)
    strict: bool = True

    def resolve(self, tokens: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        """
        Build the token table for one template.

        With no token map, every stack variable is usable as a token under
        its own name. Token expressions use `${NAME}` to pull in variables.
        """
        if tokens is None:
            return dict(self.variables)

        resolved = {}
        for token, expression in tokens.items():
            try:
                resolved[token] = Template(expression).substitute(self.variables)
            except KeyError as e:
                raise RenderError(f"Variable {e.args[0]} is not set", stage="render", subject=token)
            except ValueError as e:
                raise RenderError(f"Bad token expression '{expression}': {e}", stage="render", subject=token)
        return resolved


def render_file(template_path: Union[str, Path], output_path: Union[str, Path],
                config: RenderConfig, tokens: Optional[Mapping[str, str]] = None,
                mode: Optional[int] = None) -> Path:
    """Render one template file to `output_path`, creating parent directories."""
    source = Path(template_path)
    target = Path(output_path)
    if not source.is_file():
        raise RenderError(f"Template missing: {source}", stage="render", subject=str(source))

    try:
        text = source.read_text(encoding='utf-8')
        rendered = render(text, config.resolve(tokens), strict=config.strict)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(rendered, encoding='utf-8')
        if mode is not None:
            os.chmod(target, mode)
    except OSError as e:
        raise RenderError(f"Unable to render {source} -> {target}: {e}", stage="render", subject=str(target))

    logger.info(f"Rendered {source} -> {target}")
    return target


def copy_template(template_path: Union[str, Path], output_path: Union[str, Path],
                  mode: Optional[int] = None) -> Path:
    """Copy a template that needs no substitution."""
    source = Path(template_path)
    target = Path(output_path)
    if not source.is_file():
        raise RenderError(f"Template missing: {source}", stage="render", subject=str(source))

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, target)
        if mode is not None:
            os.chmod(target, mode)
    except OSError as e:
        raise RenderError(f"Unable to copy {source} -> {target}: {e}", stage="render", subject=str(target))

    logger.info(f"Copied {source} -> {target}")
    return target
