"""
Email template rendering (Jinja2).

Templates live in menuca/templates/emails/ and are rendered with
autoescaping on.
"""

from functools import lru_cache
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

TEMPLATE_DIR = Path(__file__).resolve().parents[2] / "templates" / "emails"


@lru_cache()
def get_environment() -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=select_autoescape(["html"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["money"] = lambda value: f"${float(value or 0):.2f}"
    return env


def render_email(template_name: str, **context) -> str:
    return get_environment().get_template(template_name).render(**context)
