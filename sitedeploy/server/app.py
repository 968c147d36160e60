"""
HTTP API
FastAPI application exposing the deploy workflows and domain operations.
"""

import threading
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel

from sitedeploy import __version__
from sitedeploy.api.netlify_client import NetlifyClient
from sitedeploy.api.models import Site
from sitedeploy.api.exceptions import (
    InvariantViolationError,
    NetlifyServiceError,
    NotFoundError,
    PreconditionFailedError,
)
from sitedeploy.services.deployment_orchestrator import (
    DeploymentOrchestrator,
    S3DeployParams,
    S3DeployResult,
    TestDeployParams,
    TestDeployResult,
)
from sitedeploy.services.domain_service import DomainService
from sitedeploy.server.schemas import (
    ConnectionTestResponse,
    DomainRequest,
    DomainResponse,
    LogsResponse,
    PrimaryDomainRequest,
    S3DeployResponse,
    SitesResponse,
    SiteSummary,
    StatusResponse,
    TestDeployResponse,
)
from sitedeploy.utils.config import Settings
from sitedeploy.utils.logger import current_log_file, get_logger, mask_secret
from sitedeploy.utils.validators import ValidationError

logger = get_logger(__name__)

SWAGGER_URL = "/docs/swagger"

# Form values read as true; anything else is false
TRUE_VALUES = {"1", "t", "true"}

# Errors caused by the request itself (answered with 400)
CALLER_ERRORS = (
    ValidationError,
    InvariantViolationError,
    PreconditionFailedError,
    NotFoundError,
)


def status_for(error: Exception) -> int:
    """HTTP status for an error raised by a service"""
    return 400 if isinstance(error, CALLER_ERRORS) else 500


def parse_form_bool(value: Optional[str]) -> bool:
    """Lenient form boolean: anything unrecognised is False"""
    return (value or "").strip().lower() in TRUE_VALUES


def _validation_message(error: RequestValidationError) -> str:
    problems = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
        for err in error.errors()
    )
    return f"Invalid request: {problems}"


def _respond(model: BaseModel, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=model.model_dump(mode="json"))


def _test_deploy_response(result: TestDeployResult) -> TestDeployResponse:
    return TestDeployResponse(
        success=result.success,
        message=result.message,
        site_id=result.site_id,
        site_url=result.site_url,
        deploy_id=result.deploy_id,
        created_at=result.created_at.isoformat(),
        test_success=result.test_success
    )


def _s3_deploy_response(result: S3DeployResult) -> S3DeployResponse:
    return S3DeployResponse(
        success=result.success,
        message=result.message,
        site_id=result.site_id,
        site_url=result.site_url,
        deploy_id=result.deploy_id,
        subdomain=result.subdomain,
        custom_domain=result.custom_domain,
        created_at=result.created_at.isoformat(),
        test_success=result.test_success
    )


def create_app(
    settings: Settings,
    client: Optional[NetlifyClient] = None,
    domain_service: Optional[DomainService] = None,
    orchestrator: Optional[DeploymentOrchestrator] = None
) -> FastAPI:
    """
    Build the FastAPI application.

    The Netlify client and services are created once here and shared by all
    requests.

    Args:
        settings: Validated settings
        client: Optional Netlify client (created from settings if None)
        domain_service: Optional DomainService
        orchestrator: Optional DeploymentOrchestrator

    Returns:
        FastAPI application
    """
    client = client or NetlifyClient(settings)
    domain_service = domain_service or DomainService(client)
    orchestrator = orchestrator or DeploymentOrchestrator(client, settings, domain_service=domain_service)

    # Set on shutdown so pending deploy waits stop early
    shutdown_event = threading.Event()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"API ready - docs at {SWAGGER_URL}")
        yield
        shutdown_event.set()
        logger.info("API shutting down")

    app = FastAPI(
        title="Netlify Site Deployer",
        description="Creates Netlify sites, deploys content and manages custom domains",
        version=__version__,
        docs_url=SWAGGER_URL,
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.client = client
    app.state.domain_service = domain_service
    app.state.orchestrator = orchestrator

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(f"[API] {request.method} {request.url.path} {response.status_code} {duration_ms:.0f}ms")
        return response

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Malformed bodies get the route's own failure shape with status 400"""
        message = _validation_message(exc)
        path = request.url.path
        logger.warning(f"[API] Rejected {request.method} {path}: {message}")

        if path.startswith("/api/domains/"):
            return _respond(DomainResponse(success=False, message=message), 400)
        if path == "/api/deploy/site":
            return _respond(TestDeployResponse(success=False, message=message), 400)
        if path == "/api/deploy/s3":
            return _respond(S3DeployResponse(success=False, message=message), 400)
        return JSONResponse(status_code=400, content={"success": False, "message": message})

    @app.get("/", include_in_schema=False)
    def root() -> RedirectResponse:
        return RedirectResponse(url=SWAGGER_URL)

    @app.get("/api/status", response_model=StatusResponse)
    def get_status() -> StatusResponse:
        return StatusResponse(version=__version__, time=datetime.now(timezone.utc))

    # ------------------------------------------------------------------ #
    #  Deploys                                                             #
    # ------------------------------------------------------------------ #

    @app.post("/api/deploy/site", response_model=TestDeployResponse)
    def deploy_site(
        site_name: str = Form(""),
        site_id: str = Form(""),
        description: str = Form(""),
        test_content: str = Form(""),
        cleanup_after: str = Form(""),
        custom_domain: str = Form(""),
        folder_path: str = Form(""),
        wait_for_deploy: str = Form(""),
        file: Optional[UploadFile] = File(None)
    ):
        """Create or update a site and deploy an uploaded file, inline HTML or a local folder"""
        file_content = file.file.read() if file is not None else None
        if file is not None:
            logger.info(f"[API] File received: {file.filename} ({len(file_content)} bytes)")

        params = TestDeployParams(
            site_name=site_name,
            site_id=site_id,
            description=description,
            test_content=test_content,
            cleanup_after=parse_form_bool(cleanup_after),
            custom_domain=custom_domain,
            file_content=file_content,
            folder_path=folder_path,
            wait_for_deploy=parse_form_bool(wait_for_deploy)
        )

        try:
            result = orchestrator.test_deploy(params, cancel_event=shutdown_event)
        except (NetlifyServiceError, ValidationError) as e:
            logger.error(f"[API] Test deploy failed: {str(e)}")
            return _respond(
                TestDeployResponse(success=False, message=str(e), site_id=site_id),
                status_for(e)
            )

        return _respond(_test_deploy_response(result))

    @app.post("/api/deploy/s3", response_model=S3DeployResponse)
    def deploy_s3(
        site_name: str = Form(""),
        s3_path: str = Form(""),
        site_id: str = Form(""),
        custom_domain: str = Form("")
    ):
        """Deploy the files stored under an S3 prefix"""
        params = S3DeployParams(
            site_name=site_name,
            s3_path=s3_path,
            site_id=site_id,
            custom_domain=custom_domain
        )

        try:
            result = orchestrator.deploy_from_s3(params, cancel_event=shutdown_event)
        except (NetlifyServiceError, ValidationError) as e:
            logger.error(f"[API] S3 deploy failed: {str(e)}")
            return _respond(
                S3DeployResponse(success=False, message=str(e), site_id=site_id, custom_domain=custom_domain),
                status_for(e)
            )

        return _respond(_s3_deploy_response(result))

    # ------------------------------------------------------------------ #
    #  Domains                                                             #
    # ------------------------------------------------------------------ #

    def run_domain_operation(operation, site_id: str, domain: str, success_message: str) -> JSONResponse:
        try:
            site: Site = operation()
        except (NetlifyServiceError, ValidationError) as e:
            logger.error(f"[API] Domain operation failed for site {site_id or '-'}: {str(e)}")
            return _respond(
                DomainResponse(success=False, message=str(e), site_id=site_id, domain=domain),
                status_for(e)
            )

        return _respond(DomainResponse(success=True, message=success_message, site_id=site.id, domain=domain))

    @app.post("/api/domains/add", response_model=DomainResponse)
    def add_domain(request: DomainRequest):
        """Add a custom domain. Becomes the primary domain when the site has none."""
        return run_domain_operation(
            lambda: domain_service.add_domain(request.site_id, request.domain),
            request.site_id,
            request.domain,
            f"Domain {request.domain} added successfully"
        )

    @app.post("/api/domains/remove", response_model=DomainResponse)
    def remove_domain(request: DomainRequest):
        """Remove an alias domain"""
        return run_domain_operation(
            lambda: domain_service.remove_domain(request.site_id, request.domain),
            request.site_id,
            request.domain,
            f"Domain {request.domain} removed successfully"
        )

    @app.post("/api/domains/set-default", response_model=DomainResponse)
    def set_default_domain(request: DomainRequest):
        """Make a domain the primary domain"""
        return run_domain_operation(
            lambda: domain_service.set_default_domain(request.site_id, request.domain),
            request.site_id,
            request.domain,
            f"Domain {request.domain} set as primary domain"
        )

    @app.post("/api/domains/switch-default", response_model=DomainResponse)
    def switch_default_domain(request: DomainRequest):
        """Promote an alias to primary; the previous primary becomes an alias"""
        return run_domain_operation(
            lambda: domain_service.switch_default_domain(request.site_id, request.domain),
            request.site_id,
            request.domain,
            f"Primary domain switched to {request.domain}"
        )

    @app.post("/api/domains/remove-primary", response_model=DomainResponse)
    def remove_primary_domain(request: PrimaryDomainRequest):
        """Clear the primary domain"""
        return run_domain_operation(
            lambda: domain_service.remove_primary_domain(request.site_id),
            request.site_id,
            "",
            "Primary domain removed successfully"
        )

    # ------------------------------------------------------------------ #
    #  Diagnostics                                                         #
    # ------------------------------------------------------------------ #

    @app.get("/api/test/netlify/connection", response_model=ConnectionTestResponse)
    def test_netlify_connection():
        """Check the token and that the Netlify API answers"""
        report = ConnectionTestResponse(
            success=False,
            message="",
            token_configured=bool(settings.netlify_token),
            token_preview=mask_secret(settings.netlify_token),
            base_domain=settings.base_domain
        )

        try:
            user = client.get_current_user()
        except NetlifyServiceError as e:
            logger.error(f"[API] Netlify connection test failed: {str(e)}")
            report.message = f"Netlify API not reachable: {str(e)}"
            return _respond(report, status_for(e))

        report.success = True
        report.api_reachable = True
        report.account = user.get("email") or user.get("full_name") or ""
        report.message = "Connection to Netlify API OK"
        return _respond(report)

    @app.get("/api/test/logs", response_model=LogsResponse)
    def get_logs():
        """Return today's log file"""
        log_file = current_log_file()

        if not log_file.exists():
            return _respond(
                LogsResponse(success=False, message="No log file for today", log_file=str(log_file)),
                404
            )

        return _respond(LogsResponse(
            success=True,
            log_file=str(log_file),
            logs=log_file.read_text(encoding="utf-8", errors="replace")
        ))

    @app.get("/api/sites", response_model=SitesResponse)
    def list_sites():
        """List every site of the account"""
        try:
            sites = client.list_sites()
        except NetlifyServiceError as e:
            logger.error(f"[API] Failed to list sites: {str(e)}")
            return _respond(SitesResponse(success=False, message=str(e)), status_for(e))

        return _respond(SitesResponse(
            success=True,
            message=f"{len(sites)} site(s) found",
            sites=[SiteSummary.from_site(site) for site in sites]
        ))

    return app
