from importlib import resources
from typing import Any, Mapping, Optional

from jinja2 import Environment, StrictUndefined

_jinja = Environment(
    autoescape=False,
    undefined=StrictUndefined,
    keep_trailing_newline=True,
    trim_blocks=True,
    lstrip_blocks=True,
)


def load_template(name: str) -> str:
    with resources.files(__package__).joinpath(f"data/{name}").open("r", encoding="utf-8") as fh:
        return fh.read()


def render_template(
    text: str, context: Mapping[str, Any], variables: Optional[Mapping[str, Any]] = None
) -> str:
    # Generated context wins over free-form template variables of the same name.
    replacements = {str(k): v for k, v in (variables or {}).items()}
    replacements.update(context)
    return _jinja.from_string(text).render(**replacements)
