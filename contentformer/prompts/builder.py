"""Prompt builders for each generation stage.

Pure functions: transcript, idea, script and instructions are interpolated
into the stage templates verbatim, with no escaping.
"""

from ..models import ContentIdea, VideoScript
from .loader import render

CONNECTION_TEST_PROMPT = "Return the text 'API connection successful' as a response."


def _instructions_section(instructions: str) -> str:
    if not instructions or not instructions.strip():
        return ""
    return f"\nADDITIONAL INSTRUCTIONS: {instructions}\n"


def build_ideas_prompt(transcript: str, instructions: str = "") -> str:
    """Prompt asking for a JSON array of ``{title, description}`` ideas."""
    return render(
        "ideas",
        transcript=transcript,
        instructions_section=_instructions_section(instructions),
    )


def build_script_prompt(idea: ContentIdea, transcript: str, instructions: str = "") -> str:
    return render(
        "script",
        idea_title=idea.title,
        idea_description=idea.description,
        transcript=transcript,
        instructions_section=_instructions_section(instructions),
    )


def build_refine_prompt(script: VideoScript, instructions: str) -> str:
    return render("refine", script=script.script, instructions=instructions)


def build_regenerate_prompt(idea: ContentIdea, transcript: str, instructions: str) -> str:
    return render(
        "regenerate",
        idea_title=idea.title,
        idea_description=idea.description,
        transcript=transcript,
        instructions=instructions,
    )


def build_linkedin_prompt(script: VideoScript) -> str:
    return render("linkedin", title=script.title, script=script.script)
