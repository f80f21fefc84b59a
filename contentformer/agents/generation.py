"""Generation stages: one prompt, one model call, one record.

Each function builds the stage prompt, runs it through the invoker and
wraps the answer in the stage record type.
"""

import logging
import time

from ..models import ApiConfig, ContentIdea, LinkedInPost, VideoScript, new_id
from ..prompts.builder import (
    build_ideas_prompt,
    build_linkedin_prompt,
    build_refine_prompt,
    build_regenerate_prompt,
    build_script_prompt,
)
from .interpreter import parse_ideas, passthrough_text
from .invoker import ModelInvoker

logger = logging.getLogger(__name__)


async def generate_content_ideas(
    invoker: ModelInvoker,
    config: ApiConfig,
    transcript: str,
    instructions: str = "",
) -> list[ContentIdea]:
    """Generate content ideas from a transcript."""
    t0 = time.time()
    logger.info("[IDEAS] Generating ideas from transcript (%d chars)", len(transcript))
    text = await invoker.invoke(config, build_ideas_prompt(transcript, instructions), stage="ideas")
    ideas = parse_ideas(text)
    logger.info("[IDEAS] Done in %.1fs: %d ideas", time.time() - t0, len(ideas))
    return ideas


async def generate_video_script(
    invoker: ModelInvoker,
    config: ApiConfig,
    idea: ContentIdea,
    transcript: str,
    instructions: str = "",
) -> VideoScript:
    """Write a video script for one idea."""
    t0 = time.time()
    logger.info("[SCRIPT] Generating script for idea %s (%s)", idea.id, idea.title)
    text = await invoker.invoke(
        config, build_script_prompt(idea, transcript, instructions), stage="script"
    )
    script = VideoScript(
        id=new_id("script"),
        idea_id=idea.id,
        title=idea.title,
        script=passthrough_text(text),
    )
    logger.info("[SCRIPT] Done in %.1fs: %s", time.time() - t0, script.id)
    return script


async def refine_video_script(
    invoker: ModelInvoker,
    config: ApiConfig,
    script: VideoScript,
    instructions: str,
) -> VideoScript:
    """Rewrite a script per the instructions, keeping its id and idea."""
    logger.info(
        "[REFINE] Refining script %s (instructions: %d chars)", script.id, len(instructions)
    )
    text = await invoker.invoke(config, build_refine_prompt(script, instructions), stage="refine")
    return VideoScript(
        id=script.id,
        idea_id=script.idea_id,
        title=script.title,
        script=passthrough_text(text),
    )


async def regenerate_video_script(
    invoker: ModelInvoker,
    config: ApiConfig,
    idea: ContentIdea,
    transcript: str,
    instructions: str,
) -> VideoScript:
    """Write a brand-new script for an idea; the result gets a fresh id."""
    logger.info(
        "[REGENERATE] Regenerating script for idea %s (transcript: %d chars)",
        idea.id,
        len(transcript),
    )
    text = await invoker.invoke(
        config,
        build_regenerate_prompt(idea, transcript, instructions),
        stage="regenerate",
    )
    return VideoScript(
        id=new_id("script"),
        idea_id=idea.id,
        title=idea.title,
        script=passthrough_text(text),
    )


async def generate_linkedin_post(
    invoker: ModelInvoker,
    config: ApiConfig,
    script: VideoScript,
) -> LinkedInPost:
    """Write a LinkedIn post promoting a script."""
    logger.info("[LINKEDIN] Generating post for script %s", script.id)
    text = await invoker.invoke(config, build_linkedin_prompt(script), stage="linkedin")
    return LinkedInPost(
        id=new_id("linkedin"),
        script_id=script.id,
        post=passthrough_text(text),
    )
