"""Feedback Vault FastAPI App - local/container front door for the feedback service

Runs the same FeedbackService the Lambda handler uses, behind one /feedback path.
Run with: uvicorn feedback_vault.main:app --reload
Or:       python -m feedback_vault.main

Required env: AES_SECRET_KEY, plus DYNAMODB_TABLE (or STORE_BACKEND=memory).
"""

from fastapi import Depends, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from starlette.concurrency import run_in_threadpool
import uvicorn
import structlog

from feedback_vault.bootstrap import get_service
from feedback_vault.feedback.models import FeedbackRequest, Identity
from feedback_vault.feedback.service import FeedbackService
from feedback_vault.governance.authorizer import require_identity
from feedback_vault.utils.health_check import health_checker
from feedback_vault.utils.metrics import get_metrics_text

logger = structlog.get_logger()

app = FastAPI(
    title="Feedback Vault",
    description="Rating/comment store with field-level comment encryption",
    version="1.0.0",
)

# Same CORS policy the API Gateway deployment applies
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["Content-Type", "Authorization"],
)

# ============================================================================
# FEEDBACK
# ============================================================================

@app.api_route("/feedback", methods=["GET", "POST", "DELETE", "PUT", "PATCH"])
async def feedback(
    request: Request,
    identity: Identity = Depends(require_identity),
    service: FeedbackService = Depends(get_service),
):
    """Method-routed feedback endpoint; the service decides 200/400/404/405/500"""
    body = await request.body()
    try:
        text = body.decode("utf-8") if body else None
    except UnicodeDecodeError as e:
        # answer through the service so the 500 keeps the JSON + CORS shape
        result = service.internal_error(e)
    else:
        feedback_request = FeedbackRequest(
            method=request.method,
            headers=dict(request.headers),
            query=dict(request.query_params),
            body=text,
            identity=identity,
        )
        result = await run_in_threadpool(service.handle, feedback_request)
    return Response(
        content=result.body,
        status_code=result.status_code,
        headers=result.headers,
        media_type="application/json",
    )

# ============================================================================
# HEALTH CHECKS & METRICS
# ============================================================================

@app.get("/health/live")
async def health_live():
    """Liveness check"""
    return await health_checker.liveness_check()

@app.get("/health/ready")
async def health_ready(service: FeedbackService = Depends(get_service)):
    """Readiness check: store reachable and cipher usable"""
    return await health_checker.readiness_check(service)

@app.get("/metrics", response_class=PlainTextResponse)
async def metrics():
    """Prometheus metrics endpoint"""
    return get_metrics_text()

@app.get("/")
async def root():
    return {
        "message": "Feedback Vault",
        "feedback": "/feedback",
        "health": "/health/ready",
        "metrics": "/metrics",
    }

# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

if __name__ == "__main__":
    logger.info("Starting Feedback Vault server...")
    uvicorn.run("feedback_vault.main:app", host="0.0.0.0", port=8000, reload=True)
