"""Prompt template loader.

Templates live next to this module in templates/<name>.txt and use
string.Template ($var) placeholders, so JSON braces in the text need no
escaping. Substituted values go in raw.
"""

from functools import lru_cache
from pathlib import Path
from string import Template

_TEMPLATES_DIR = Path(__file__).parent / "templates"

# Shared snippets a template may reference without the caller passing them
_SHARED = {"brand_context": "brand"}


@lru_cache(maxsize=32)
def _template(name: str) -> Template:
    path = _TEMPLATES_DIR / f"{name}.txt"
    if not path.exists():
        raise FileNotFoundError(f"Prompt template not found: {path}")
    return Template(path.read_text(encoding="utf-8"))


@lru_cache(maxsize=8)
def _snippet(name: str) -> str:
    path = _TEMPLATES_DIR / f"{name}.txt"
    return path.read_text(encoding="utf-8").strip() if path.exists() else ""


def render(name: str, **kwargs: str) -> str:
    """Render a prompt template.

    Args:
        name: Template filename without extension (e.g. "ideas")
        **kwargs: Template variables to substitute

    Returns:
        Rendered prompt string

    Raises:
        FileNotFoundError: If template file doesn't exist
        KeyError: If a required placeholder has no value provided
    """
    template = _template(name)
    for variable, snippet in _SHARED.items():
        if variable not in kwargs and f"${variable}" in template.template:
            kwargs[variable] = _snippet(snippet)
    return template.substitute(**kwargs)
