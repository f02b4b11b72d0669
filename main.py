import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from core import OrchestrationCore
from database import AttemptLog
from errors import ErrorCategory
from models import (
    ActionResponse,
    AttemptListResponse,
    AttemptRecord,
    ConnectRequest,
    DismissResponse,
    HealthCheckResponse,
    LicenseActivationRequest,
    ViewSnapshot
)
from tokens import Outcome

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    attempt_log = AttemptLog()
    core = OrchestrationCore(attempt_log=attempt_log)
    app.state.core = core
    app.state.attempt_log = attempt_log
    await core.mount()
    try:
        yield
    finally:
        core.teardown()

app = FastAPI(
    title="Outline VPN Client Service",
    description="Orchestration core bridging the desktop UI and the VPN backend process",
    version=settings.APP_VERSION,
    lifespan=lifespan
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

def get_core(request: Request) -> OrchestrationCore:
    return request.app.state.core

def get_attempt_log(request: Request) -> AttemptLog:
    return request.app.state.attempt_log

def _action_result(core: OrchestrationCore, outcome: Outcome) -> ActionResponse:
    """
    Translate a controller outcome into an HTTP answer. Failures carry the
    message currently shown on the error surface. Only an applied outcome
    reports success; a discarded or skipped one leaves the view as it was.
    """
    if outcome in (Outcome.REJECTED, Outcome.FAILED):
        error = core.errors.current
        detail = error.message if error else outcome.value
        status_code = 422 if error and error.category is ErrorCategory.VALIDATION else 400
        raise HTTPException(status_code=status_code, detail=detail)

    return ActionResponse(success=outcome is Outcome.APPLIED, outcome=outcome.value, view=core.snapshot())

# API Endpoints
@app.get("/api/view", response_model=ViewSnapshot)
async def get_view(core: OrchestrationCore = Depends(get_core)):
    """
    Read-only snapshot of everything the UI renders: license slot,
    connection slot (only when licensed), live metrics and the error.
    """
    return core.snapshot()

@app.post("/api/license/activate", response_model=ActionResponse)
async def activate_license(
    request: LicenseActivationRequest,
    core: OrchestrationCore = Depends(get_core)
):
    """
    Activate a license key with the backend.

    On success the license slot is replaced with the backend's info and
    the activation input is cleared. On failure the slot is unchanged.
    """
    outcome = await core.license.activate(request.licenseKey)
    return _action_result(core, outcome)

@app.post("/api/license/refresh", response_model=ActionResponse)
async def refresh_license(core: OrchestrationCore = Depends(get_core)):
    outcome = await core.license.refresh()
    return _action_result(core, outcome)

@app.post("/api/vpn/connect", response_model=ActionResponse)
async def connect_vpn(
    request: ConnectRequest,
    core: OrchestrationCore = Depends(get_core)
):
    """
    Open a tunnel. Rejected locally (never sent to the backend) unless
    licensed, currently disconnected and given a valid endpoint.
    """
    outcome = await core.connection.connect(request.serverIP, request.port, request.password)
    return _action_result(core, outcome)

@app.post("/api/vpn/disconnect", response_model=ActionResponse)
async def disconnect_vpn(core: OrchestrationCore = Depends(get_core)):
    """
    Close the tunnel. The client always ends up disconnected; a backend
    failure is still reported.
    """
    outcome = await core.connection.disconnect()
    return _action_result(core, outcome)

@app.delete("/api/error", response_model=DismissResponse)
async def dismiss_error(core: OrchestrationCore = Depends(get_core)):
    core.dismiss_error()
    return {"success": True, "view": core.snapshot()}

@app.get("/api/diagnostics/attempts", response_model=AttemptListResponse)
async def list_attempts(limit: int = 50, attempt_log: AttemptLog = Depends(get_attempt_log)):
    """Recent operation attempts with their error category, newest first."""
    attempts = attempt_log.recent(limit=max(1, min(limit, 500)))
    return {"attempts": [AttemptRecord.model_validate(a) for a in attempts]}

@app.get("/health", response_model=HealthCheckResponse)
async def health_check(core: OrchestrationCore = Depends(get_core)):
    return {
        "status": "healthy",
        "service": "vpn-client-core",
        "version": settings.APP_VERSION,
        "backendUrl": core.gateway.base_url,
        "mounted": core.mounted and not core.torn_down
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.API_HOST, port=settings.API_PORT)
