"""Prompt request model."""

from typing import Dict

from pydantic import BaseModel, ConfigDict, Field


class PromptRequest(BaseModel):
    """A rendered prompt ready for the LLM collaborator.

    Attributes:
        template_id: Catalog id of the template that was rendered.
        values: Placeholder values used for rendering.
        rendered_text: The final prompt text.
    """

    model_config = ConfigDict(frozen=True)

    template_id: str = Field(..., min_length=1)

    values: Dict[str, str] = Field(default_factory=dict)

    rendered_text: str
