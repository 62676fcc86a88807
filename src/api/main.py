"""
FILE: src/api/main.py
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from src.api.observability import setup_observability
from src.api.persistence_profile import validate_persistence_profile_guardrails
from src.api.routers.money_requests import router as money_request_router


@asynccontextmanager
async def _app_lifespan(_app: FastAPI):
    validate_persistence_profile_guardrails()
    yield


app = FastAPI(
    title="OpsDesk Money Request API",
    version="0.1.0",
    description=(
        "Approval routing for internal money requests.\n\n"
        "Requests move `Pending` -> (`CEO Review`) -> `Finance Review` -> `Approved` -> "
        "`Disbursed`, or end in `Rejected`. CEO review is inserted when the amount "
        "exceeds the approval threshold at manager approval time."
    ),
    openapi_tags=[
        {
            "name": "Money Requests",
            "description": "Submission, approval routing, disbursement and audit endpoints.",
        },
        {
            "name": "Operations",
            "description": "Liveness endpoint.",
        },
    ],
    lifespan=_app_lifespan,
)

setup_observability(app)
logger = logging.getLogger(__name__)

app.include_router(money_request_router)


@app.exception_handler(Exception)
async def unhandled_exception_to_problem_details(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception while serving request", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        media_type="application/problem+json",
        content={
            "type": "about:blank",
            "title": "Internal Server Error",
            "status": 500,
            "detail": "An unexpected error occurred.",
            "instance": str(request.url.path),
        },
    )


@app.get("/health", tags=["Operations"], summary="Liveness")
def health() -> dict[str, str]:
    return {"status": "ok"}
