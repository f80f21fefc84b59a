"""FastAPI web application for Contentformer."""

import logging
import os
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from .credentials import CredentialResolver, PayloadConfigStore, write_credential_cookies
from .models import (
    ApiConfigFields,
    ConnectionResponse,
    ContentIdeaModel,
    CredentialsRequest,
    ErrorResponse,
    GenerateIdeasRequest,
    GenerateScriptRequest,
    LinkedInPostModel,
    LinkedInPostRequest,
    PipelineRefineRequest,
    PipelineRegenerateRequest,
    RefineScriptRequest,
    RegenerateScriptRequest,
    SelectIdeaRequest,
    SelectScriptRequest,
    StartPipelineRequest,
    StepPromptRequest,
    UpdateIdeaRequest,
    UpdateScriptRequest,
    VideoScriptModel,
)
from .sessions import SessionStore, get_session_store, session_id_for
from ..agents.generation import (
    generate_content_ideas,
    generate_linkedin_post,
    generate_video_script,
    refine_video_script,
    regenerate_video_script,
)
from ..agents.invoker import ModelInvoker, check_connection
from ..agents.orchestrator import Orchestrator, PipelineSession
from ..config.settings import Settings, settings
from ..exceptions import ContentformerError
from ..models import ApiConfig

logger = logging.getLogger(__name__)

app = FastAPI(title="Contentformer")

# Signed cookie holding the pipeline session id
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.secret_key,
    session_cookie=settings.session_cookie,
    max_age=settings.session_max_age,
    same_site="lax",
    https_only=settings.is_production,
)


def get_settings() -> Settings:
    return settings


def get_invoker() -> ModelInvoker:
    return ModelInvoker(settings)


def resolve_config(request: Request, body: Optional[ApiConfigFields] = None) -> ApiConfig:
    """Config for this request: env, then credential cookies, then the request body."""
    payload = body.to_config() if body is not None else None
    resolver = CredentialResolver(
        cookies=request.cookies,
        client_store=PayloadConfigStore(payload),
    )
    return resolver.get_config()


def _error_body(message: str) -> dict:
    return ErrorResponse(message=message).model_dump()


def _error_response(e: Exception, action: str) -> JSONResponse:
    if isinstance(e, ContentformerError):
        logger.warning("%s failed: %s", action, e.message)
        return JSONResponse(status_code=e.status_code, content=_error_body(e.message))
    if isinstance(e, ValueError):
        return JSONResponse(status_code=400, content=_error_body(str(e)))

    logger.exception("%s failed", action)
    return JSONResponse(status_code=500, content=_error_body(str(e) or f"Error {action}"))


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok"}


# ============================================================================
# Credentials
# ============================================================================


@app.post("/api/set-credentials")
async def set_credentials(body: CredentialsRequest, app_settings: Settings = Depends(get_settings)):
    """Store the API configuration in httponly cookies."""
    response = JSONResponse(content={"success": True})
    write_credential_cookies(response, body.to_config(), app_settings)
    logger.info("API credentials stored (preferred provider: %s)", body.preferredProvider)
    return response


@app.post("/api/test-connection", response_model=ConnectionResponse)
async def connection_test(
    request: Request,
    body: ApiConfigFields,
    invoker: ModelInvoker = Depends(get_invoker),
):
    """Send a tiny prompt to the preferred provider."""
    result = await check_connection(invoker, resolve_config(request, body))
    if not result.success:
        return JSONResponse(status_code=result.status_code, content=result.to_dict())
    return ConnectionResponse(**result.to_dict())


# ============================================================================
# Single-shot generation
# ============================================================================


@app.post("/api/generate-ideas", response_model=list[ContentIdeaModel])
async def generate_ideas(
    request: Request,
    body: GenerateIdeasRequest,
    invoker: ModelInvoker = Depends(get_invoker),
):
    """Generate content ideas from a transcript."""
    try:
        ideas = await generate_content_ideas(
            invoker, resolve_config(request, body), body.transcript, body.instructions
        )
    except Exception as e:
        return _error_response(e, "generating content ideas")
    return [ContentIdeaModel.from_record(i) for i in ideas]


@app.post("/api/generate-script", response_model=VideoScriptModel)
async def generate_script(
    request: Request,
    body: GenerateScriptRequest,
    invoker: ModelInvoker = Depends(get_invoker),
):
    """Write a video script for one idea."""
    try:
        script = await generate_video_script(
            invoker,
            resolve_config(request, body),
            body.idea.to_record(),
            body.transcript,
            body.instructions,
        )
    except Exception as e:
        return _error_response(e, "generating video script")
    return VideoScriptModel.from_record(script)


@app.post("/api/refine-script", response_model=VideoScriptModel)
async def refine_script(
    request: Request,
    body: RefineScriptRequest,
    invoker: ModelInvoker = Depends(get_invoker),
):
    try:
        script = await refine_video_script(
            invoker, resolve_config(request, body), body.script.to_record(), body.instructions
        )
    except Exception as e:
        return _error_response(e, "refining video script")
    return VideoScriptModel.from_record(script)


@app.post("/api/regenerate-script", response_model=VideoScriptModel)
async def regenerate_script(
    request: Request,
    body: RegenerateScriptRequest,
    invoker: ModelInvoker = Depends(get_invoker),
):
    try:
        script = await regenerate_video_script(
            invoker,
            resolve_config(request, body),
            body.idea.to_record(),
            body.transcript,
            body.instructions,
        )
    except Exception as e:
        return _error_response(e, "regenerating video script")
    return VideoScriptModel.from_record(script)


@app.post("/api/generate-linkedin-post", response_model=LinkedInPostModel)
async def generate_linkedin(
    request: Request,
    body: LinkedInPostRequest,
    invoker: ModelInvoker = Depends(get_invoker),
):
    try:
        post = await generate_linkedin_post(
            invoker, resolve_config(request, body), body.script.to_record()
        )
    except Exception as e:
        return _error_response(e, "generating LinkedIn post")
    return LinkedInPostModel.from_record(post)


# ============================================================================
# Pipeline sessions
# ============================================================================


def _session(request: Request, store: SessionStore) -> PipelineSession:
    return store.get_or_create(session_id_for(request))


@app.get("/api/pipeline/state")
async def pipeline_state(request: Request, store: SessionStore = Depends(get_session_store)):
    return _session(request, store).to_dict()


@app.post("/api/pipeline/start")
async def pipeline_start(
    request: Request,
    body: StartPipelineRequest,
    store: SessionStore = Depends(get_session_store),
    invoker: ModelInvoker = Depends(get_invoker),
):
    """Load a transcript into the session and reset its results."""
    try:
        session = Orchestrator(invoker).start(
            _session(request, store), body.transcript, body.instructions
        )
    except Exception as e:
        return _error_response(e, "starting pipeline")
    return session.to_dict()


@app.post("/api/pipeline/run-all")
async def pipeline_run_all(
    request: Request,
    body: ApiConfigFields,
    store: SessionStore = Depends(get_session_store),
    invoker: ModelInvoker = Depends(get_invoker),
):
    """Run ideas, every script and the first post in one go."""
    session = _session(request, store)
    try:
        await Orchestrator(invoker).run_all(session, resolve_config(request, body))
    except Exception as e:
        return _error_response(e, "running pipeline")
    return session.to_dict()


@app.post("/api/pipeline/resume-all")
async def pipeline_resume_all(
    request: Request,
    body: ApiConfigFields,
    store: SessionStore = Depends(get_session_store),
    invoker: ModelInvoker = Depends(get_invoker),
):
    """Continue a paused run-all from where it stopped."""
    session = _session(request, store)
    try:
        await Orchestrator(invoker).resume_all(session, resolve_config(request, body))
    except Exception as e:
        return _error_response(e, "resuming pipeline")
    return session.to_dict()


@app.post("/api/pipeline/next-step")
async def pipeline_next_step(
    request: Request,
    body: ApiConfigFields,
    store: SessionStore = Depends(get_session_store),
    invoker: ModelInvoker = Depends(get_invoker),
):
    """Advance the session by one stage."""
    session = _session(request, store)
    try:
        await Orchestrator(invoker).run_step(session, resolve_config(request, body))
    except Exception as e:
        return _error_response(e, "running pipeline step")
    return session.to_dict()


@app.post("/api/pipeline/step-prompt")
async def pipeline_step_prompt(
    request: Request,
    body: StepPromptRequest,
    store: SessionStore = Depends(get_session_store),
    invoker: ModelInvoker = Depends(get_invoker),
):
    """Set the instructions used by a step-mode stage."""
    try:
        session = Orchestrator(invoker).configure_step(
            _session(request, store), body.prompt, body.stage
        )
    except Exception as e:
        return _error_response(e, "saving step prompt")
    return session.to_dict()


@app.post("/api/pipeline/pause")
async def pipeline_pause(
    request: Request,
    store: SessionStore = Depends(get_session_store),
    invoker: ModelInvoker = Depends(get_invoker),
):
    return Orchestrator(invoker).pause(_session(request, store)).to_dict()


@app.post("/api/pipeline/resume")
async def pipeline_resume(
    request: Request,
    store: SessionStore = Depends(get_session_store),
    invoker: ModelInvoker = Depends(get_invoker),
):
    return Orchestrator(invoker).resume(_session(request, store)).to_dict()


@app.post("/api/pipeline/select-idea")
async def pipeline_select_idea(
    request: Request,
    body: SelectIdeaRequest,
    store: SessionStore = Depends(get_session_store),
    invoker: ModelInvoker = Depends(get_invoker),
):
    """Select an idea; optionally make sure its script has a LinkedIn post."""
    session = _session(request, store)
    orchestrator = Orchestrator(invoker)
    try:
        orchestrator.select_idea(session, body.ideaId)
        if body.generatePost:
            await orchestrator.ensure_post_for_selection(session, resolve_config(request, body))
    except Exception as e:
        return _error_response(e, "selecting idea")
    return session.to_dict()


@app.post("/api/pipeline/select-script")
async def pipeline_select_script(
    request: Request,
    body: SelectScriptRequest,
    store: SessionStore = Depends(get_session_store),
    invoker: ModelInvoker = Depends(get_invoker),
):
    try:
        session = Orchestrator(invoker).select_script(_session(request, store), body.scriptId)
    except Exception as e:
        return _error_response(e, "selecting script")
    return session.to_dict()


@app.post("/api/pipeline/update-idea")
async def pipeline_update_idea(
    request: Request,
    body: UpdateIdeaRequest,
    store: SessionStore = Depends(get_session_store),
    invoker: ModelInvoker = Depends(get_invoker),
):
    """Save a user's edits to an idea."""
    session = _session(request, store)
    try:
        Orchestrator(invoker).update_idea(session, body.idea.to_record())
    except Exception as e:
        return _error_response(e, "updating idea")
    return session.to_dict()


@app.post("/api/pipeline/update-script")
async def pipeline_update_script(
    request: Request,
    body: UpdateScriptRequest,
    store: SessionStore = Depends(get_session_store),
    invoker: ModelInvoker = Depends(get_invoker),
):
    """Save a user's edits to a script."""
    session = _session(request, store)
    try:
        Orchestrator(invoker).update_script(session, body.script.to_record())
    except Exception as e:
        return _error_response(e, "updating script")
    return session.to_dict()


@app.post("/api/pipeline/refine")
async def pipeline_refine(
    request: Request,
    body: PipelineRefineRequest,
    store: SessionStore = Depends(get_session_store),
    invoker: ModelInvoker = Depends(get_invoker),
):
    session = _session(request, store)
    try:
        await Orchestrator(invoker).refine(
            session, resolve_config(request, body), body.scriptId, body.instructions
        )
    except Exception as e:
        return _error_response(e, "refining video script")
    return session.to_dict()


@app.post("/api/pipeline/regenerate")
async def pipeline_regenerate(
    request: Request,
    body: PipelineRegenerateRequest,
    store: SessionStore = Depends(get_session_store),
    invoker: ModelInvoker = Depends(get_invoker),
):
    session = _session(request, store)
    try:
        await Orchestrator(invoker).regenerate(
            session, resolve_config(request, body), body.ideaId, body.instructions
        )
    except Exception as e:
        return _error_response(e, "regenerating video script")
    return session.to_dict()


if __name__ == "__main__":
    port = int(os.environ.get("PORT", settings.port))
    uvicorn.run(
        "contentformer.app.main:app",
        host="0.0.0.0",
        port=port,
    )
