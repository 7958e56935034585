"""Prompt templates for the LLM collaborator.

This module turns an extracted bot command into the final LLM input:
- render: ``{{name}}`` placeholder substitution
- TemplateCatalog: template id to template text registry
- PromptRequest: the rendered, immutable result
"""

from hookbot.prompts.catalog import (
    BUILTIN_TEMPLATES,
    ISSUE_MENTION_TEMPLATE,
    PULL_REQUEST_MENTION_TEMPLATE,
    TemplateCatalog,
)
from hookbot.prompts.models import PromptRequest
from hookbot.prompts.renderer import PLACEHOLDER_PATTERN, find_placeholders, render

__all__ = [
    "BUILTIN_TEMPLATES",
    "ISSUE_MENTION_TEMPLATE",
    "PLACEHOLDER_PATTERN",
    "PULL_REQUEST_MENTION_TEMPLATE",
    "PromptRequest",
    "TemplateCatalog",
    "find_placeholders",
    "render",
]
