import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prospectflow.api.v1.router import api_router
from prospectflow.core import deps
from prospectflow.core.database import async_session
from prospectflow.core.exceptions import ProspectFlowError, ImportValidationError
from prospectflow.core.seed import seed_default_templates
from prospectflow.services.events import EventDispatcher
from prospectflow.services.handlers import build_handlers

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    async with async_session() as db:
        await seed_default_templates(db)

    handlers = build_handlers(deps.get_site_fetcher(), deps.get_email_sender(), deps.get_ai_client())
    app.state.dispatcher = EventDispatcher(async_session, handlers)
    yield
    # Let in-flight analysis/decision tasks finish
    await app.state.dispatcher.drain()
    app.state.dispatcher = None


app = FastAPI(
    title="ProspectFlow API",
    description="Lead prospecting pipeline: site analysis, interest detection and outreach decisions",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ProspectFlowError)
async def prospectflow_error_handler(request: Request, exc: ProspectFlowError):
    body = {"success": False, "error": str(exc)}
    if isinstance(exc, ImportValidationError) and exc.errors:
        body["errors"] = exc.errors
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content=body)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{location}: {first.get('msg')}" if location else str(first.get("msg", "Invalid request"))
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": message, "detail": jsonable_errors(errors)},
    )


def jsonable_errors(errors: list) -> list:
    return [{"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")} for e in errors]


app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
async def health():
    return {"status": "ok", "service": "prospectflow-api", "version": "0.1.0"}
