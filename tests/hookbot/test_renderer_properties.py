"""Property-based tests for prompt template rendering.

Testing Configuration:
- Library: Hypothesis (Python)
- Minimum iterations: 100 per property test
"""

import string

import pytest
from hypothesis import given, settings, strategies as st

from hookbot.errors import MissingTemplateValue
from hookbot.prompts.renderer import PLACEHOLDER_PATTERN, find_placeholders, render


names = st.text(alphabet=string.ascii_letters + "_", min_size=1, max_size=12)
# Literal text that cannot form a placeholder
literals = st.text(alphabet=string.ascii_letters + string.digits + " .,\n", max_size=30)
values = st.text(max_size=40)


@st.composite
def template_with_values(draw: st.DrawFn):
    """Build a template from literal chunks and placeholders plus its values."""
    placeholder_names = draw(st.lists(names, min_size=1, max_size=5))
    parts = []
    for name in placeholder_names:
        parts.append(draw(literals))
        parts.append("{{" + name + "}}")
    parts.append(draw(literals))
    mapping = {name: draw(values) for name in placeholder_names}
    return "".join(parts), placeholder_names, mapping


class TestRenderExamples:
    """Behaviour on representative templates."""

    def test_substitutes_values(self):
        assert render("Hi {{name}}", {"name": "Ada"}) == "Hi Ada"

    def test_whitespace_inside_braces(self):
        assert render("Hi {{  name }}!", {"name": "Ada"}) == "Hi Ada!"

    def test_missing_value_renders_empty(self):
        assert render("Hi {{name}}", {}) == "Hi "

    def test_none_value_renders_empty(self):
        assert render("[{{x}}]", {"x": None}) == "[]"

    def test_non_string_values_are_stringified(self):
        assert render("#{{number}}", {"number": 42}) == "#42"

    def test_values_are_not_rescanned(self):
        assert render("{{a}}", {"a": "{{b}}", "b": "x"}) == "{{b}}"

    def test_single_braces_are_literal(self):
        assert render("{a} {{ }}", {"a": "x"}) == "{a} {{ }}"

    def test_none_values_mapping(self):
        assert render("Hi {{name}}", None) == "Hi "

    def test_non_string_template_renders_empty(self):
        assert render(None, {"a": "b"}) == ""

    def test_strict_names_every_missing_key(self):
        with pytest.raises(MissingTemplateValue) as exc_info:
            render("{{a}} {{b}} {{a}} {{c}}", {"b": "x"}, strict=True)
        assert exc_info.value.names == ["a", "c"]

    def test_strict_renders_when_complete(self):
        assert render("{{a}}-{{b}}", {"a": "1", "b": "2"}, strict=True) == "1-2"

    def test_find_placeholders_in_order(self):
        assert find_placeholders("{{b}} {{ a }} {{b}}") == ["b", "a"]


class TestRenderProperties:
    """Properties that hold for all templates."""

    @given(data=template_with_values())
    @settings(max_examples=100)
    def test_all_placeholders_replaced(self, data):
        template, placeholder_names, mapping = data
        rendered = render(template, mapping)

        expected = template
        for name in placeholder_names:
            expected = expected.replace("{{" + name + "}}", mapping[name])
        # Values may themselves contain braces, so compare with a sequential
        # substitution only when no value looks like a placeholder
        if not any(PLACEHOLDER_PATTERN.search(v) for v in mapping.values()):
            assert rendered == expected

    @given(data=template_with_values())
    @settings(max_examples=100)
    def test_lenient_with_no_values_leaves_only_literals(self, data):
        template, _, _ = data
        rendered = render(template, {})
        assert PLACEHOLDER_PATTERN.search(rendered) is None

    @given(text=literals)
    @settings(max_examples=100)
    def test_template_without_placeholders_is_unchanged(self, text):
        assert render(text, {"anything": "x"}) == text

    @given(data=template_with_values())
    @settings(max_examples=100)
    def test_strict_and_lenient_agree_when_complete(self, data):
        template, _, mapping = data
        assert render(template, mapping, strict=True) == render(template, mapping)
