"""Password reset endpoints.

Each request checks out the caller's workflow from the session store (by
cookie), runs one operation on it, and returns the resulting stage.
Endpoints are synchronous: directory and SMTP calls block, so FastAPI runs
them in its threadpool.
"""

from collections.abc import Callable

from fastapi import APIRouter, Request, Response, status

from app.api.v1.dependencies import SessionStoreDep, SettingsDep
from app.application.dtos.workflow import WorkflowResult
from app.application.services.reset_workflow import ResetWorkflow
from app.core.config import Settings
from app.core.reset_session_store import ResetSessionStore
from app.schemas.password_reset import (
    PasswordSubmission,
    TokenRequest,
    TokenSubmission,
    WorkflowResponse,
)

router = APIRouter()

_FAILURE_RESPONSES = {
    400: {"description": "Workflow step failed; body carries the error kind", "model": WorkflowResponse},
    409: {"description": "Operation not allowed in the current stage"},
}


def _run(
    request: Request,
    response: Response,
    store: ResetSessionStore,
    settings: Settings,
    operation: Callable[[ResetWorkflow], WorkflowResult],
) -> WorkflowResponse:
    """Run operation on the session's workflow and shape the HTTP response."""
    cookie = request.cookies.get(settings.session_cookie_name)
    with store.checkout(cookie) as (session_id, workflow):
        result = operation(workflow)
        body = WorkflowResponse.from_result(result, workflow.display_name)

    if session_id != cookie:
        response.set_cookie(
            key=settings.session_cookie_name,
            value=session_id,
            httponly=True,
            secure=settings.session_cookie_secure,
            samesite="strict",
        )
    response.headers["Cache-Control"] = "no-store"
    if not result.ok:
        response.status_code = status.HTTP_400_BAD_REQUEST
    return body


@router.get("", response_model=WorkflowResponse)
def get_state(
    request: Request,
    response: Response,
    store: SessionStoreDep,
    settings: SettingsDep,
) -> WorkflowResponse:
    """Return the current stage of this session."""
    return _run(
        request, response, store, settings, lambda wf: WorkflowResult(stage=wf.stage)
    )


@router.post("/token-request", response_model=WorkflowResponse, responses=_FAILURE_RESPONSES)
def request_token(
    body: TokenRequest,
    request: Request,
    response: Response,
    store: SessionStoreDep,
    settings: SettingsDep,
) -> WorkflowResponse:
    """Look up the user and send a reset token over the configured channel."""
    return _run(
        request,
        response,
        store,
        settings,
        lambda wf: wf.request_token(body.username, body.human_verified),
    )


@router.post("/token", response_model=WorkflowResponse, responses=_FAILURE_RESPONSES)
def submit_token(
    body: TokenSubmission,
    request: Request,
    response: Response,
    store: SessionStoreDep,
    settings: SettingsDep,
) -> WorkflowResponse:
    """Verify the token the user received."""
    return _run(request, response, store, settings, lambda wf: wf.submit_token(body.token))


@router.post("/password", response_model=WorkflowResponse, responses=_FAILURE_RESPONSES)
def set_password(
    body: PasswordSubmission,
    request: Request,
    response: Response,
    store: SessionStoreDep,
    settings: SettingsDep,
) -> WorkflowResponse:
    """Set the new password; the token is consumed on success."""
    return _run(
        request,
        response,
        store,
        settings,
        lambda wf: wf.set_password(body.new_password, body.repeat_password),
    )


@router.post("/back", response_model=WorkflowResponse)
def back(
    request: Request,
    response: Response,
    store: SessionStoreDep,
    settings: SettingsDep,
) -> WorkflowResponse:
    """Return to the first stage."""
    return _run(request, response, store, settings, lambda wf: wf.back())


@router.delete("", response_model=WorkflowResponse)
def clear(
    request: Request,
    response: Response,
    store: SessionStoreDep,
    settings: SettingsDep,
) -> WorkflowResponse:
    """Clear the session's progress."""
    return _run(request, response, store, settings, lambda wf: wf.clear())
