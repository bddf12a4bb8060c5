from __future__ import annotations
from pathlib import Path
from typing import Any, Dict

from jinja2 import Environment, FileSystemLoader, select_autoescape


TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"

_env = Environment(
	loader=FileSystemLoader(TEMPLATE_DIR),
	autoescape=select_autoescape(["html"]),
)


def render_template(template_name: str, data: Dict[str, Any]) -> str:
	return _env.get_template(template_name).render(**data)
