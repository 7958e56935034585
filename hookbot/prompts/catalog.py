"""Prompt template catalog.

Maps template ids to template text. Built-in templates cover mentions on
issues and on pull requests; a directory of ``*.md`` files can add templates
or override the built-ins (the file stem is the template id).
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from hookbot.errors import UnknownTemplate
from hookbot.prompts.models import PromptRequest
from hookbot.prompts.renderer import find_placeholders, render

logger = logging.getLogger(__name__)

ISSUE_MENTION_TEMPLATE = "issue_mention"
PULL_REQUEST_MENTION_TEMPLATE = "pull_request_mention"

BUILTIN_TEMPLATES: Dict[str, str] = {
    ISSUE_MENTION_TEMPLATE: """You are {{bot_name}}, a GitHub App that helps maintain the repository {{repository}}.

@{{sender}} mentioned you on issue #{{number}} ("{{title}}") with the following request:

{{command}}

Work out what is being asked, inspect the repository at {{clone_url}} as needed,
and respond with a concise plan or the changes required to resolve the issue.
""",
    PULL_REQUEST_MENTION_TEMPLATE: """You are {{bot_name}}, a GitHub App that reviews and updates pull requests in {{repository}}.

@{{sender}} mentioned you on pull request #{{number}} ("{{title}}") with the following request:

{{command}}

Address the request in the context of the pull request's changes. The repository
can be cloned from {{clone_url}}. Reply with the review feedback or code changes needed.
""",
}


class TemplateCatalog:
    """Registry of prompt templates.

    Attributes:
        strict: Whether rendering fails on placeholders without values.
    """

    def __init__(
        self,
        templates: Optional[Mapping[str, str]] = None,
        strict: bool = False,
        include_builtins: bool = True,
    ) -> None:
        self._templates: Dict[str, str] = {}
        if include_builtins:
            self._templates.update(BUILTIN_TEMPLATES)
        if templates:
            self._templates.update(templates)
        self.strict = strict

    @classmethod
    def from_directory(
        cls,
        directory: Union[str, Path],
        strict: bool = False,
    ) -> "TemplateCatalog":
        """Load ``*.md`` templates from a directory over the built-ins.

        Raises:
            FileNotFoundError: If the directory does not exist.
        """
        path = Path(directory)
        if not path.is_dir():
            raise FileNotFoundError(f"Template directory not found: {path}")

        templates: Dict[str, str] = {}
        for template_file in sorted(path.glob("*.md")):
            templates[template_file.stem] = template_file.read_text(encoding="utf-8")

        logger.info(
            "Loaded %d prompt templates from %s",
            len(templates),
            path,
        )
        return cls(templates=templates, strict=strict)

    @property
    def template_ids(self) -> List[str]:
        return sorted(self._templates)

    def __contains__(self, template_id: object) -> bool:
        return template_id in self._templates

    def get(self, template_id: str) -> str:
        """Return the template text for an id.

        Raises:
            UnknownTemplate: If no template has this id.
        """
        try:
            return self._templates[template_id]
        except KeyError:
            raise UnknownTemplate(template_id) from None

    def placeholders(self, template_id: str) -> List[str]:
        """List the placeholder names a template uses."""
        return find_placeholders(self.get(template_id))

    def render(self, template_id: str, values: Mapping[str, Any]) -> PromptRequest:
        """Render a catalog template into a PromptRequest.

        Raises:
            UnknownTemplate: If no template has this id.
            MissingTemplateValue: In strict mode, for unresolved placeholders.
        """
        template = self.get(template_id)
        string_values = {
            name: value if isinstance(value, str) else str(value)
            for name, value in values.items()
            if value is not None
        }
        rendered = render(template, string_values, strict=self.strict)
        return PromptRequest(
            template_id=template_id,
            values=string_values,
            rendered_text=rendered,
        )
