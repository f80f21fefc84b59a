"""Pydantic request/response models for the web API.

Field names follow the camelCase wire format the browser client sends.
"""

from typing import Optional

from pydantic import BaseModel, field_validator

from ..models import ApiConfig, ContentIdea, LinkedInPost, VideoScript


class ApiConfigFields(BaseModel):
    """ApiConfig fields a request may carry alongside its payload."""

    anthropicApiKey: str = ""
    openaiApiKey: str = ""
    preferredProvider: str = "anthropic"

    def to_config(self) -> ApiConfig:
        return ApiConfig(
            anthropic_api_key=self.anthropicApiKey,
            openai_api_key=self.openaiApiKey,
            preferred_provider=self.preferredProvider,
        )


class CredentialsRequest(ApiConfigFields):
    """Request body for /api/set-credentials."""


class ContentIdeaModel(BaseModel):
    id: str
    title: str
    description: str

    def to_record(self) -> ContentIdea:
        return ContentIdea(id=self.id, title=self.title, description=self.description)

    @classmethod
    def from_record(cls, idea: ContentIdea) -> "ContentIdeaModel":
        return cls(**idea.to_dict())


class VideoScriptModel(BaseModel):
    id: str
    ideaId: str
    title: str
    script: str

    def to_record(self) -> VideoScript:
        return VideoScript(id=self.id, idea_id=self.ideaId, title=self.title, script=self.script)

    @classmethod
    def from_record(cls, script: VideoScript) -> "VideoScriptModel":
        return cls(**script.to_dict())


class LinkedInPostModel(BaseModel):
    id: str
    scriptId: str
    post: str

    @classmethod
    def from_record(cls, post: LinkedInPost) -> "LinkedInPostModel":
        return cls(**post.to_dict())


class _TranscriptRequest(ApiConfigFields):
    transcript: str
    instructions: str = ""

    @field_validator("transcript")
    @classmethod
    def validate_transcript(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("transcript must not be empty")
        return v


class GenerateIdeasRequest(_TranscriptRequest):
    """Request body for /api/generate-ideas."""


class GenerateScriptRequest(_TranscriptRequest):
    """Request body for /api/generate-script."""

    idea: ContentIdeaModel


class RegenerateScriptRequest(_TranscriptRequest):
    """Request body for /api/regenerate-script."""

    idea: ContentIdeaModel


class RefineScriptRequest(ApiConfigFields):
    """Request body for /api/refine-script."""

    script: VideoScriptModel
    instructions: str


class LinkedInPostRequest(ApiConfigFields):
    """Request body for /api/generate-linkedin-post."""

    script: VideoScriptModel


class ConnectionResponse(BaseModel):
    success: bool
    message: str
    provider: Optional[str] = None


class ErrorResponse(BaseModel):
    success: bool = False
    message: str


# Pipeline session models


class StartPipelineRequest(BaseModel):
    transcript: str
    instructions: str = ""


class StepPromptRequest(BaseModel):
    prompt: str
    stage: Optional[str] = None


class SelectIdeaRequest(ApiConfigFields):
    ideaId: str
    generatePost: bool = False


class SelectScriptRequest(BaseModel):
    scriptId: str


class UpdateIdeaRequest(BaseModel):
    idea: ContentIdeaModel


class UpdateScriptRequest(BaseModel):
    script: VideoScriptModel


class PipelineRefineRequest(ApiConfigFields):
    scriptId: str
    instructions: str


class PipelineRegenerateRequest(ApiConfigFields):
    ideaId: str
    instructions: str
