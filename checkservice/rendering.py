"""Rendering helpers for the watcher's systemd unit file."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"
UNIT_TEMPLATE = "checkservice.service.j2"


@dataclass
class UnitSpec:
    """Values substituted into the unit template."""

    description: str
    exec_start: str
    working_dir: Path
    log_file: Path
    user: str = "root"
    group: str = "root"


class UnitRenderer:
    """Renders systemd unit files from Jinja templates."""

    def __init__(self, template_dir: Optional[Path] = None) -> None:
        self.template_dir = template_dir or TEMPLATE_DIR
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )

    def render(self, spec: UnitSpec) -> str:
        template = self.env.get_template(UNIT_TEMPLATE)
        return template.render(unit=spec)

    def write(self, spec: UnitSpec, target: Path) -> Path:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.render(spec))
        target.chmod(0o644)
        return target
