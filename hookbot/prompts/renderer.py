"""Prompt template rendering.

Templates use ``{{name}}`` placeholders, where ``name`` is a run of word
characters optionally surrounded by whitespace (``{{ name }}``). Rendering
is a single pass: substituted values are never re-scanned for placeholders.
"""

import re
from typing import Any, List, Mapping, Optional

from hookbot.errors import MissingTemplateValue

PLACEHOLDER_PATTERN = re.compile(r"{{\s*(\w+)\s*}}")


def find_placeholders(template: str) -> List[str]:
    """Return placeholder names in order of first appearance."""
    seen: List[str] = []
    for match in PLACEHOLDER_PATTERN.finditer(template):
        name = match.group(1)
        if name not in seen:
            seen.append(name)
    return seen


def render(
    template: str,
    values: Optional[Mapping[str, Any]],
    strict: bool = False,
) -> str:
    """Substitute placeholder values into a template.

    In the default lenient mode a placeholder without a value (missing key
    or None) is replaced with an empty string, which allows optional
    template sections. Lenient rendering never raises.

    Args:
        template: Template text with ``{{name}}`` placeholders.
        values: Mapping of placeholder name to value; non-string values are
            converted with ``str()``.
        strict: Raise instead of substituting empty text for missing values.

    Returns:
        The rendered text.

    Raises:
        MissingTemplateValue: In strict mode, when any placeholder has no
            value.
    """
    if not isinstance(template, str):
        return ""
    values = values or {}

    if strict:
        missing = [
            name for name in find_placeholders(template) if values.get(name) is None
        ]
        if missing:
            raise MissingTemplateValue(missing)

    def _substitute(match: "re.Match[str]") -> str:
        value = values.get(match.group(1))
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)

    return PLACEHOLDER_PATTERN.sub(_substitute, template)
