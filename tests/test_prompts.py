"""Tests for contentformer.prompts."""

from __future__ import annotations

import pytest

from contentformer.models import ContentIdea, VideoScript
from contentformer.prompts import render
from contentformer.prompts.builder import (
    build_ideas_prompt,
    build_linkedin_prompt,
    build_refine_prompt,
    build_regenerate_prompt,
    build_script_prompt,
)


@pytest.fixture
def idea() -> ContentIdea:
    return ContentIdea(id="idea-1", title="Data before models", description="Clean data first.")


@pytest.fixture
def script() -> VideoScript:
    return VideoScript(id="script-1", idea_id="idea-1", title="Data before models", script="Hi all.")


class TestIdeasPrompt:
    def test_contains_transcript_and_format_directive(self) -> None:
        prompt = build_ideas_prompt("the transcript body")
        assert "the transcript body" in prompt
        assert "STRICTLY as a valid JSON array" in prompt
        assert "'title' and 'description'" in prompt

    def test_brand_context_injected(self) -> None:
        assert "an AI consulting company" in build_ideas_prompt("t")

    def test_blank_instructions_omit_section(self) -> None:
        assert "ADDITIONAL INSTRUCTIONS" not in build_ideas_prompt("t", "   ")

    def test_instructions_section_included(self) -> None:
        prompt = build_ideas_prompt("t", "Focus on pricing")
        assert "ADDITIONAL INSTRUCTIONS: Focus on pricing" in prompt

    def test_values_inserted_verbatim(self) -> None:
        """Dollar signs and braces in user text are not treated as placeholders."""
        transcript = 'It costs $price and {"a": 1} ${x}'
        assert transcript in build_ideas_prompt(transcript)


class TestScriptPrompts:
    def test_script_prompt(self, idea) -> None:
        prompt = build_script_prompt(idea, "transcript text", "Keep it short")
        assert "Title: Data before models" in prompt
        assert "Description: Clean data first." in prompt
        assert "transcript text" in prompt
        assert "ADDITIONAL INSTRUCTIONS: Keep it short" in prompt
        assert "first person" in prompt

    def test_refine_prompt(self, script) -> None:
        prompt = build_refine_prompt(script, "Add a joke")
        assert "ORIGINAL SCRIPT:\nHi all." in prompt
        assert "REFINEMENT INSTRUCTIONS:\nAdd a joke" in prompt

    def test_regenerate_prompt(self, idea) -> None:
        prompt = build_regenerate_prompt(idea, "transcript text", "Make it funnier")
        assert "completely new" in prompt
        assert "SPECIFIC INSTRUCTIONS:\nMake it funnier" in prompt
        assert "transcript text" in prompt


class TestLinkedInPrompt:
    def test_linkedin_prompt(self, script) -> None:
        prompt = build_linkedin_prompt(script)
        assert "VIDEO TITLE: Data before models" in prompt
        assert "Hi all." in prompt
        assert "hashtags" in prompt


class TestRender:
    def test_missing_template(self) -> None:
        with pytest.raises(FileNotFoundError):
            render("does_not_exist")

    def test_missing_variable(self) -> None:
        with pytest.raises(KeyError):
            render("refine", script="x")
