from __future__ import annotations

import pytest

from app.services.prompt_store import get_prompt, render_prompt


def test_render_prompt_substitutes_template_values():
    prompt = render_prompt("web.system", today="2026-02-21")
    assert "Today's date is 2026-02-21." in prompt


def test_list_prompts_are_joined_with_newlines():
    prompt = get_prompt("academic.system")
    assert len(prompt.splitlines()) == 3


def test_render_prompt_raises_for_missing_value():
    with pytest.raises(KeyError, match="query"):
        render_prompt("academic.analysis", excerpts="", repositories="")


def test_render_prompt_raises_for_unknown_key():
    with pytest.raises(KeyError):
        render_prompt("missing.prompt.key")
