from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, FastAPI, Form, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings, load_settings
from .model import OptimizeError, optimize_job_description
from .page import render_page
from .sessions import SessionRegistry
from .shell import HttpRelay, LocalRelay, OptimizerShell

# -------------------------------------------------
# Setup
# -------------------------------------------------

logger = logging.getLogger("uvicorn.error")

SESSION_COOKIE = "jdo_session"
REQUIRED_MESSAGE = "Job description is required"

router = APIRouter()


# -------------------------------------------------
# Schemas
# -------------------------------------------------

class OptimizeIn(BaseModel):
    jobDescription: Optional[str] = None


class OptimizeOut(BaseModel):
    optimized: str


class ErrorOut(BaseModel):
    error: str


# -------------------------------------------------
# Error envelope
# -------------------------------------------------

async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = "Method not allowed" if exc.status_code == 405 else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": message},
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    # the only JSON body is the relay's; a body it cannot parse has no job description
    return JSONResponse(status_code=400, content={"error": REQUIRED_MESSAGE})


# -------------------------------------------------
# Relay
# -------------------------------------------------

@router.get("/healthz")
async def healthz(request: Request):
    return {"ok": True, "sessions": len(request.app.state.sessions)}


@router.post(
    "/api/optimize",
    response_model=OptimizeOut,
    responses={400: {"model": ErrorOut}, 405: {"model": ErrorOut}, 500: {"model": ErrorOut}},
)
def optimize(data: OptimizeIn, request: Request):
    """
    Rewrite a job description.

    The text is embedded verbatim in the prompt template and sent to the
    completion API once. Upstream error messages are passed through; anything
    unexpected is logged and reported generically.
    """
    job_description = data.jobDescription
    if not job_description:
        raise HTTPException(status_code=400, detail=REQUIRED_MESSAGE)

    try:
        text = optimize_job_description(job_description, request.app.state.settings)
    except OptimizeError as e:
        raise HTTPException(status_code=500, detail=e.message)
    except Exception:
        logger.exception("optimize() failed")
        raise HTTPException(status_code=500, detail=OptimizeError.default_message)

    return {"optimized": text}


# -------------------------------------------------
# Page
# -------------------------------------------------

def _session(request: Request):
    registry: SessionRegistry = request.app.state.sessions
    return registry.get(request.cookies.get(SESSION_COOKIE))


def _page(request: Request, session_id: str, shell: OptimizerShell) -> HTMLResponse:
    response = HTMLResponse(render_page(shell))
    if request.cookies.get(SESSION_COOKIE) != session_id:
        # no max-age: the cookie lasts as long as the browser session
        response.set_cookie(SESSION_COOKIE, session_id, httponly=True, samesite="lax")
    return response


@router.get("/", response_class=HTMLResponse)
def index(request: Request):
    session_id, shell = _session(request)
    return _page(request, session_id, shell)


@router.post("/optimize", response_class=HTMLResponse)
def optimize_page(request: Request, job_description: str = Form("")):
    session_id, shell = _session(request)
    shell.set_input(job_description)
    shell.submit()
    return _page(request, session_id, shell)


@router.post("/activate", response_class=HTMLResponse)
def activate_page(request: Request, code: str = Form("")):
    session_id, shell = _session(request)
    shell.activate(code)
    return _page(request, session_id, shell)


# -------------------------------------------------
# App
# -------------------------------------------------

def _relay_for(settings: Settings):
    if settings.relay_url:
        return HttpRelay(settings.relay_url, timeout=settings.request_timeout)
    return LocalRelay(settings)


def create_app(settings: Optional[Settings] = None, relay=None) -> FastAPI:
    settings = settings or load_settings()
    relay = relay or _relay_for(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        relay.close()

    app = FastAPI(title="Job Description Optimizer", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.sessions = SessionRegistry(
        lambda storage: OptimizerShell(relay, storage),
        max_sessions=settings.max_sessions,
    )

    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.include_router(router)
    return app


app = create_app()
