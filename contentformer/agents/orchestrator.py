"""Orchestrator for the transcript → ideas → scripts → LinkedIn pipeline.

Manages one session at a time:
1. Generate content ideas from the transcript
2. Generate a video script per idea (run-all) or for the selected idea (step)
3. Generate a LinkedIn post for the first or selected script
4. Refine / regenerate scripts on request

All calls are sequential. Session state lives in an explicit PipelineSession
that callers pass in and get back; the orchestrator keeps no session state of
its own.
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional

from ..exceptions import ContentformerError, SelectionError
from ..models import ApiConfig, ContentIdea, LinkedInPost, VideoScript
from .generation import (
    generate_content_ideas,
    generate_linkedin_post,
    generate_video_script,
    refine_video_script,
    regenerate_video_script,
)
from .invoker import ModelInvoker

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    """Pipeline stages."""

    IDLE = "idle"
    IDEAS = "ideas"
    SCRIPTS = "scripts"
    LINKEDIN = "linkedin"
    COMPLETE = "complete"


STEP_ORDER = (Stage.IDEAS, Stage.SCRIPTS, Stage.LINKEDIN)

# Cosmetic progress marks at stage boundaries
IDEAS_START = 10
SCRIPTS_START = 40
SCRIPTS_SPAN = 30
LINKEDIN_START = 80
DONE = 100


def _step_flags(value=False) -> dict:
    return {stage.value: value for stage in STEP_ORDER}


@dataclass
class PipelineState:
    """Stage, progress and per-step bookkeeping for one session."""

    stage: Stage = Stage.IDLE
    progress: float = 0
    paused: bool = False
    completed_steps: dict[str, bool] = field(default_factory=_step_flags)
    step_prompts: dict[str, str] = field(default_factory=lambda: _step_flags(""))
    message: str = ""
    last_error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "stage": self.stage.value,
            "progress": round(self.progress, 2),
            "paused": self.paused,
            "completedSteps": dict(self.completed_steps),
            "stepPrompts": dict(self.step_prompts),
            "message": self.message,
            "lastError": self.last_error,
        }


@dataclass
class PipelineSession:
    """Everything one user's run owns: inputs, state, and generated records."""

    transcript: str = ""
    instructions: str = ""
    mode: str = "all"  # "all" | "step"
    state: PipelineState = field(default_factory=PipelineState)
    ideas: list[ContentIdea] = field(default_factory=list)
    scripts: list[VideoScript] = field(default_factory=list)
    posts: list[LinkedInPost] = field(default_factory=list)
    selected_idea_id: Optional[str] = None
    selected_script_id: Optional[str] = None

    def find_idea(self, idea_id: Optional[str]) -> Optional[ContentIdea]:
        return next((i for i in self.ideas if i.id == idea_id), None)

    def find_script(self, script_id: Optional[str]) -> Optional[VideoScript]:
        return next((s for s in self.scripts if s.id == script_id), None)

    def script_for_idea(self, idea_id: str) -> Optional[VideoScript]:
        return next((s for s in self.scripts if s.idea_id == idea_id), None)

    def post_for_script(self, script_id: Optional[str]) -> Optional[LinkedInPost]:
        return next((p for p in self.posts if p.script_id == script_id), None)

    def drop_orphans(self) -> None:
        """Remove scripts whose idea is gone and posts whose script is gone."""
        idea_ids = {i.id for i in self.ideas}
        self.scripts = [s for s in self.scripts if s.idea_id in idea_ids]
        script_ids = {s.id for s in self.scripts}
        self.posts = [p for p in self.posts if p.script_id in script_ids]
        if self.selected_script_id not in script_ids:
            self.selected_script_id = None

    def to_dict(self) -> dict:
        return {
            "mode": self.mode,
            "state": self.state.to_dict(),
            "ideas": [i.to_dict() for i in self.ideas],
            "scripts": [s.to_dict() for s in self.scripts],
            "posts": [p.to_dict() for p in self.posts],
            "selectedIdeaId": self.selected_idea_id,
            "selectedScriptId": self.selected_script_id,
        }


class Orchestrator:
    """
    Drives a PipelineSession through its stages.

    Two modes:
    - run_all: ideas, then one script per idea, then a post for the first
      script; a pause flag is checked before each script.
    - run_step: one stage per call, returning to the caller between stages
      so the user can review, edit, select and set per-step instructions.
    """

    def __init__(self, invoker: ModelInvoker):
        self.invoker = invoker

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def start(
        self, session: PipelineSession, transcript: str, instructions: str = ""
    ) -> PipelineSession:
        """Begin a new transcript run: clear results and return to idle."""
        session.transcript = transcript
        session.instructions = instructions
        self._reset(session)
        return session

    def _reset(self, session: PipelineSession) -> None:
        session.state = PipelineState()
        session.ideas = []
        session.scripts = []
        session.posts = []
        session.selected_idea_id = None
        session.selected_script_id = None

    def pause(self, session: PipelineSession) -> PipelineSession:
        session.state.paused = True
        logger.info("[PIPELINE] Pause requested")
        return session

    def resume(self, session: PipelineSession) -> PipelineSession:
        session.state.paused = False
        logger.info("[PIPELINE] Resumed")
        return session

    def _set_stage(self, session: PipelineSession, stage: Stage, progress: float) -> None:
        state = session.state
        state.stage = stage
        state.progress = max(state.progress, min(progress, DONE))
        state.message = "Complete" if stage is Stage.COMPLETE else f"Processing {stage.value}..."

    def _mark_complete(self, session: PipelineSession, step: Stage) -> None:
        index = STEP_ORDER.index(step)
        if index and not session.state.completed_steps[STEP_ORDER[index - 1].value]:
            raise SelectionError(
                f"Cannot complete {step.value} before {STEP_ORDER[index - 1].value}"
            )
        session.state.completed_steps[step.value] = True

    def _require_transcript(self, session: PipelineSession) -> None:
        if not session.transcript.strip():
            raise ValueError("A transcript is required before generating content")

    # ------------------------------------------------------------------
    # Run-all mode
    # ------------------------------------------------------------------

    async def run_all(self, session: PipelineSession, config: ApiConfig) -> PipelineSession:
        """Run every stage in order, stopping cleanly if paused between scripts.

        Raises:
            ContentformerError: A stage failed; earlier results stay in the session
        """
        self._require_transcript(session)
        self._reset(session)
        session.mode = "all"

        logger.info("=" * 60)
        logger.info("[PIPELINE] Run-all started (transcript: %d chars)", len(session.transcript))

        try:
            self._set_stage(session, Stage.IDEAS, IDEAS_START)
            ideas = await generate_content_ideas(
                self.invoker, config, session.transcript, session.instructions
            )
            session.ideas = ideas
            if ideas:
                session.selected_idea_id = ideas[0].id
            self._mark_complete(session, Stage.IDEAS)

            self._set_stage(session, Stage.SCRIPTS, SCRIPTS_START)
            await self._generate_remaining(session, config)
        except ContentformerError as e:
            session.state.last_error = e.message
            logger.error("[PIPELINE] Run-all halted at %s: %s", session.state.stage.value, e.message)
            raise

        return session

    async def resume_all(self, session: PipelineSession, config: ApiConfig) -> PipelineSession:
        """Clear the pause flag and continue a paused run-all where it stopped."""
        self.resume(session)
        if not session.state.completed_steps[Stage.IDEAS.value]:
            return await self.run_all(session, config)

        try:
            await self._generate_remaining(session, config)
        except ContentformerError as e:
            session.state.last_error = e.message
            raise
        return session

    async def _generate_remaining(self, session: PipelineSession, config: ApiConfig) -> None:
        """Scripts for ideas that lack one, then the post for the first script."""
        ideas = session.ideas
        if not ideas:
            logger.warning("[PIPELINE] No ideas generated; nothing to script")
            return

        for i, idea in enumerate(ideas):
            if session.state.paused:
                logger.info("[PIPELINE] Paused after %d/%d scripts", i, len(ideas))
                return
            if session.script_for_idea(idea.id):
                continue

            script = await generate_video_script(
                self.invoker, config, idea, session.transcript, session.instructions
            )
            session.scripts.append(script)
            self._set_stage(
                session, Stage.SCRIPTS, SCRIPTS_START + (i + 1) * (SCRIPTS_SPAN / len(ideas))
            )

        if not session.scripts or session.state.paused:
            return

        self._mark_complete(session, Stage.SCRIPTS)
        first_script = session.scripts[0]
        session.selected_script_id = first_script.id

        self._set_stage(session, Stage.LINKEDIN, LINKEDIN_START)
        if not session.post_for_script(first_script.id):
            post = await generate_linkedin_post(self.invoker, config, first_script)
            session.posts.append(post)
        self._mark_complete(session, Stage.LINKEDIN)
        self._set_stage(session, Stage.COMPLETE, DONE)
        logger.info("[PIPELINE] Run-all complete: %d ideas, %d scripts", len(ideas), len(session.scripts))

    # ------------------------------------------------------------------
    # Step mode
    # ------------------------------------------------------------------

    def configure_step(
        self, session: PipelineSession, prompt: str, stage: Optional[str] = None
    ) -> PipelineSession:
        """Store per-step instructions for the given (default: current) stage."""
        key = stage or session.state.stage.value
        if key not in session.state.step_prompts:
            raise ValueError(f"No step to configure for stage '{key}'")
        session.state.step_prompts[key] = prompt
        return session

    async def run_step(self, session: PipelineSession, config: ApiConfig) -> PipelineSession:
        """Advance exactly one stage, then hand control back to the caller.

        From idle the first call only moves to the ideas checkpoint so the
        caller can collect per-step instructions; no model call is made.

        Raises:
            SelectionError: The next stage's idea/script has not been selected
            ContentformerError: The stage's generation failed
        """
        self._require_transcript(session)
        session.mode = "step"
        stage = session.state.stage

        try:
            if stage in (Stage.IDLE, Stage.COMPLETE):
                self._begin_step_run(session)
            elif stage is Stage.IDEAS:
                await self._step_ideas(session, config)
            elif stage is Stage.SCRIPTS:
                await self._step_script(session, config)
            elif stage is Stage.LINKEDIN:
                await self._step_linkedin(session, config)
        except ContentformerError as e:
            session.state.last_error = e.message
            logger.error("[PIPELINE] Step %s failed: %s", stage.value, e.message)
            raise

        session.state.last_error = None
        return session

    def _begin_step_run(self, session: PipelineSession) -> None:
        state = session.state
        if state.stage is Stage.COMPLETE or state.completed_steps[Stage.LINKEDIN.value]:
            # Previous run finished; start a fresh one with the same results on hand
            prompts = dict(state.step_prompts)
            session.state = PipelineState(step_prompts=prompts)
        session.state.stage = Stage.IDEAS
        session.state.message = "Waiting for ideas instructions"

    async def _step_ideas(self, session: PipelineSession, config: ApiConfig) -> None:
        self._set_stage(session, Stage.IDEAS, IDEAS_START)
        instructions = session.state.step_prompts[Stage.IDEAS.value] or session.instructions
        ideas = await generate_content_ideas(self.invoker, config, session.transcript, instructions)

        session.ideas = ideas
        session.selected_idea_id = ideas[0].id if ideas else None
        session.drop_orphans()
        self._mark_complete(session, Stage.IDEAS)
        self._set_stage(session, Stage.SCRIPTS, SCRIPTS_START)

    async def _step_script(self, session: PipelineSession, config: ApiConfig) -> None:
        if not session.selected_idea_id:
            raise SelectionError("Please select and finalize a content idea first")
        idea = session.find_idea(session.selected_idea_id)
        if idea is None:
            raise SelectionError("Selected idea not found")

        step_prompt = session.state.step_prompts[Stage.SCRIPTS.value] or session.instructions
        instructions = (
            f"Use this content idea as basis: {idea.title}\n{idea.description}\n\n{step_prompt}"
        )
        script = await generate_video_script(
            self.invoker, config, idea, session.transcript, instructions
        )

        session.scripts.append(script)
        session.selected_script_id = script.id
        self._mark_complete(session, Stage.SCRIPTS)
        self._set_stage(session, Stage.LINKEDIN, LINKEDIN_START)

    async def _step_linkedin(self, session: PipelineSession, config: ApiConfig) -> None:
        if not session.selected_script_id:
            raise SelectionError("Please select and finalize a video script first")
        script = session.find_script(session.selected_script_id)
        if script is None:
            raise SelectionError("Selected script not found")

        post = await generate_linkedin_post(self.invoker, config, script)
        session.posts.append(post)
        self._mark_complete(session, Stage.LINKEDIN)
        self._set_stage(session, Stage.IDLE, DONE)
        session.state.message = "Complete"

    # ------------------------------------------------------------------
    # Selection and editing
    # ------------------------------------------------------------------

    def select_idea(self, session: PipelineSession, idea_id: str) -> PipelineSession:
        """Select an idea, and its existing script if there is one."""
        if session.find_idea(idea_id) is None:
            raise SelectionError("Selected idea not found")
        session.selected_idea_id = idea_id

        existing = session.script_for_idea(idea_id)
        if existing:
            session.selected_script_id = existing.id
        return session

    def select_script(self, session: PipelineSession, script_id: str) -> PipelineSession:
        script = session.find_script(script_id)
        if script is None:
            raise SelectionError("Selected script not found")
        session.selected_script_id = script_id
        session.selected_idea_id = script.idea_id
        return session

    async def ensure_post_for_selection(
        self, session: PipelineSession, config: ApiConfig
    ) -> Optional[LinkedInPost]:
        """Generate the LinkedIn post for the selected script if it has none yet."""
        script = session.find_script(session.selected_script_id)
        if script is None:
            return None
        existing = session.post_for_script(script.id)
        if existing:
            return existing

        post = await generate_linkedin_post(self.invoker, config, script)
        session.posts.append(post)
        return post

    def update_idea(self, session: PipelineSession, idea: ContentIdea) -> ContentIdea:
        """Replace an idea in place by id."""
        index = next((i for i, item in enumerate(session.ideas) if item.id == idea.id), None)
        if index is None:
            raise SelectionError(f"Idea not found: {idea.id}")
        session.ideas[index] = idea
        return idea

    def update_script(self, session: PipelineSession, script: VideoScript) -> VideoScript:
        """Replace a script in place by id; its idea link is kept."""
        index = next((i for i, item in enumerate(session.scripts) if item.id == script.id), None)
        if index is None:
            raise SelectionError(f"Script not found: {script.id}")
        updated = replace(script, idea_id=session.scripts[index].idea_id)
        session.scripts[index] = updated
        return updated

    # ------------------------------------------------------------------
    # Refine / regenerate
    # ------------------------------------------------------------------

    async def refine(
        self,
        session: PipelineSession,
        config: ApiConfig,
        script_id: str,
        instructions: str,
    ) -> VideoScript:
        """Rewrite a stored script per the instructions; id and idea are kept."""
        script = session.find_script(script_id)
        if script is None:
            raise SelectionError("Selected script not found")

        refined = await refine_video_script(self.invoker, config, script, instructions)
        return self.update_script(session, refined)

    async def regenerate(
        self,
        session: PipelineSession,
        config: ApiConfig,
        idea_id: str,
        instructions: str,
    ) -> VideoScript:
        """Write a new script for an idea, replacing any prior script for it."""
        idea = session.find_idea(idea_id)
        if idea is None:
            raise SelectionError("Selected idea not found")

        script = await regenerate_video_script(
            self.invoker, config, idea, session.transcript, instructions
        )

        replaced_ids = {s.id for s in session.scripts if s.idea_id == idea_id}
        position = next(
            (i for i, s in enumerate(session.scripts) if s.idea_id == idea_id),
            len(session.scripts),
        )
        session.scripts = [s for s in session.scripts if s.idea_id != idea_id]
        session.scripts.insert(position, script)
        # Posts of replaced scripts would point at ids that no longer exist
        session.posts = [p for p in session.posts if p.script_id not in replaced_ids]

        if session.selected_script_id in replaced_ids or session.selected_idea_id == idea_id:
            session.selected_script_id = script.id
        logger.info(
            "[PIPELINE] Regenerated script for idea %s: %s replaces %s",
            idea_id,
            script.id,
            ", ".join(sorted(replaced_ids)) or "nothing",
        )
        return script
