"""
Deployment Orchestrator
Combines SiteResolver, DomainService and DeployExecutor into the two
end-to-end workflows exposed by the API: the test deploy (inline content,
uploaded file or local folder) and the deploy of a folder staged from S3.
"""

import tempfile
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Union

from sitedeploy.api.netlify_client import NetlifyClient
from sitedeploy.api.models import Site
from sitedeploy.api.exceptions import NetlifyServiceError, NotFoundError
from sitedeploy.services.deploy_executor import DeployExecutor
from sitedeploy.services.domain_service import DomainService
from sitedeploy.services.s3_stager import S3Stager
from sitedeploy.services.site_resolver import SiteResolver, build_subdomain
from sitedeploy.utils.config import Settings
from sitedeploy.utils.logger import get_logger
from sitedeploy.utils.validators import ValidationError, validate_domain, validate_site_name

logger = get_logger(__name__)

DEFAULT_PAGE_FILENAME = "index.html"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def default_page(created_at: datetime) -> str:
    """Placeholder page deployed when no content is supplied"""
    return (
        "<html><body><h1>Deploy test</h1>"
        f"<p>Site created at {created_at.isoformat()}</p>"
        "</body></html>"
    )


@dataclass
class TestDeployParams:
    site_name: str
    site_id: str = ""
    description: str = ""
    test_content: str = ""
    cleanup_after: bool = False
    custom_domain: str = ""
    file_content: Optional[bytes] = None
    folder_path: str = ""
    wait_for_deploy: bool = False


@dataclass
class TestDeployResult:
    success: bool = False
    message: str = ""
    site_id: str = ""
    site_url: str = ""
    deploy_id: str = ""
    created_at: datetime = field(default_factory=_utcnow)
    test_success: bool = False


@dataclass
class S3DeployParams:
    site_name: str
    s3_path: str
    site_id: str = ""
    custom_domain: str = ""


@dataclass
class S3DeployResult:
    success: bool = False
    message: str = ""
    site_id: str = ""
    site_url: str = ""
    deploy_id: str = ""
    subdomain: str = ""
    custom_domain: str = ""
    created_at: datetime = field(default_factory=_utcnow)
    test_success: bool = False


class DeploymentOrchestrator:
    """
    End-to-end deploy workflows.

    Test deploy:
    1. Resolve the site (by id with rename, or by exact name; a same-named
       site is deleted first when cleanup_after is set)
    2. Attach the custom domain, if any (failures are only logged)
    3. Deploy content: uploaded file > inline HTML > local folder > placeholder
    4. Optionally wait for the deploy to finish

    S3 deploy:
    1. Stage the S3 prefix into a temporary directory
    2. Resolve the site (by id, or by <site_name>.<BASE_DOMAIN>; created if missing)
    3. Attach the site's domain (failures are only logged)
    4. Deploy the staged folder and wait for it to finish
    """

    def __init__(
        self,
        client: NetlifyClient,
        config: Settings,
        domain_service: Optional[DomainService] = None,
        executor: Optional[DeployExecutor] = None,
        resolver: Optional[SiteResolver] = None,
        stager: Optional[S3Stager] = None
    ):
        """
        Initialize the orchestrator with shared collaborators.

        Args:
            client: Shared Netlify client
            config: Settings object
            domain_service: Optional DomainService (shares locks with the API routes)
            executor: Optional DeployExecutor
            resolver: Optional SiteResolver
            stager: Optional S3Stager (created on first S3 deploy if None)
        """
        self.client = client
        self.config = config
        self.domains = domain_service or DomainService(client)
        self.executor = executor or DeployExecutor(client)
        self.resolver = resolver or SiteResolver(client)
        self._stager = stager

    @property
    def stager(self) -> S3Stager:
        if self._stager is None:
            self._stager = S3Stager(self.config)
        return self._stager

    # ------------------------------------------------------------------ #
    #  Test deploy                                                         #
    # ------------------------------------------------------------------ #

    def test_deploy(
        self,
        params: TestDeployParams,
        cancel_event: Optional[threading.Event] = None
    ) -> TestDeployResult:
        """
        Create or update a site and deploy test content to it.

        Site problems raise; deploy problems only clear test_success and are
        appended to the message.

        Args:
            params: TestDeployParams
            cancel_event: Aborts the optional deploy wait when set

        Returns:
            TestDeployResult

        Raises:
            ValidationError: If site_name is missing or not subdomain-safe, or custom_domain is invalid
            NotFoundError: If site_id or folder_path does not exist
            RemoteCallError: If the site cannot be read, created or renamed
        """
        site_name = validate_site_name(params.site_name)
        custom_domain = validate_domain(params.custom_domain) if params.custom_domain else ""
        folder = self._folder_source(params)

        logger.info(f"[TEST] Starting test deploy: {site_name}")

        result = TestDeployResult()
        site = self._resolve_test_site(params, site_name)

        if custom_domain:
            site = self._attach_domain(site, custom_domain)

        result.site_id = site.id
        result.site_url = site.public_url
        result.success = True
        result.test_success = True
        result.message = "Test site created/updated successfully"

        title = params.description or None
        try:
            if folder is not None:
                logger.info(f"[TEST] Deploying local folder: {folder}")
                deploy = self.executor.submit_directory(site, folder, title=title)
            else:
                deploy = self.executor.submit_content(
                    site,
                    self._content_files(params, result.created_at),
                    title=title
                )

            result.deploy_id = deploy.id
            result.message += f". Deploy submitted successfully (ID: {deploy.id})"

            if params.wait_for_deploy:
                final = self.executor.await_completion(
                    deploy.id,
                    timeout=self.config.deploy_timeout_or_none,
                    cancel_event=cancel_event
                )
                if final.public_url:
                    result.site_url = final.public_url
                result.message += ". Deploy is live"

        except NetlifyServiceError as e:
            logger.error(f"[TEST] Deploy error: {str(e)}")
            result.test_success = False
            result.message += f". However, the deploy failed: {str(e)}"

        if params.cleanup_after and not params.site_id:
            logger.info(f"[TEST] Site {site.name} is flagged for removal after the test period")

        return result

    def _folder_source(self, params: TestDeployParams) -> Optional[Path]:
        """Folder to deploy when no file or inline content is given"""
        if params.file_content or params.test_content or not params.folder_path:
            return None

        folder = Path(params.folder_path)
        if not folder.is_dir():
            raise NotFoundError(f"Folder not found: {params.folder_path}")
        return folder

    @staticmethod
    def _content_files(params: TestDeployParams, created_at: datetime) -> Dict[str, Union[str, bytes]]:
        if params.file_content:
            logger.info(f"[TEST] Deploying uploaded file ({len(params.file_content)} bytes)")
            return {DEFAULT_PAGE_FILENAME: params.file_content}

        if params.test_content:
            logger.info("[TEST] Deploying inline test content")
            return {DEFAULT_PAGE_FILENAME: params.test_content}

        logger.info("[TEST] No content supplied, deploying placeholder page")
        return {DEFAULT_PAGE_FILENAME: default_page(created_at)}

    def _resolve_test_site(self, params: TestDeployParams, site_name: str) -> Site:
        if params.site_id:
            return self.resolver.resolve_by_id(params.site_id, desired_name=site_name)

        existing = self.resolver.find_by_name(site_name)

        if existing and params.cleanup_after:
            logger.info(f"[TEST] Deleting existing site: {existing.name} (ID: {existing.id})")
            self.client.delete_site(existing.id)
            existing = None

        if existing:
            logger.info(f"[TEST] Using existing site: {existing.name} (ID: {existing.id})")
            return existing

        return self.client.create_site(site_name)

    # ------------------------------------------------------------------ #
    #  S3 deploy                                                           #
    # ------------------------------------------------------------------ #

    def deploy_from_s3(
        self,
        params: S3DeployParams,
        cancel_event: Optional[threading.Event] = None
    ) -> S3DeployResult:
        """
        Deploy the files stored under an S3 prefix to a site.

        The site's domain is the custom domain when given, otherwise
        <site_name>.<BASE_DOMAIN>. A failed wait still reports success=True
        (the deploy was started) with test_success=False.

        Args:
            params: S3DeployParams
            cancel_event: Aborts the deploy wait when set

        Returns:
            S3DeployResult

        Raises:
            ValidationError: If site_name is invalid or s3_path is missing
            NotFoundError: If the prefix is empty or site_id does not exist
            RemoteCallError: If staging, site resolution or submission fails
        """
        site_name = validate_site_name(params.site_name)
        if not params.s3_path or not params.s3_path.strip():
            raise ValidationError("S3 path is required")

        subdomain = validate_domain(build_subdomain(site_name, self.config.base_domain))
        custom_domain = validate_domain(params.custom_domain) if params.custom_domain else ""

        logger.info(
            f"[S3] Deploy requested: site_id={params.site_id or '-'}, site_name={site_name}, "
            f"s3_path={params.s3_path}, custom_domain={custom_domain or '-'}"
        )

        result = S3DeployResult(subdomain=subdomain, custom_domain=custom_domain)

        with tempfile.TemporaryDirectory(prefix="netlify-s3-deploy-") as staging_dir:
            count = self.stager.download_prefix(params.s3_path, staging_dir)
            if count == 0:
                raise NotFoundError(f"No files found under S3 path: {params.s3_path}")

            if params.site_id:
                site = self.resolver.resolve_by_id(params.site_id)
            else:
                site, created = self.resolver.resolve_or_create_by_subdomain(site_name, subdomain)
                if created:
                    logger.info(f"[S3] Site created: {site.name} (ID: {site.id})")

            site = self._attach_domain(site, custom_domain or subdomain)

            deploy = self.executor.submit_directory(site, staging_dir, title=f"S3 deploy: {params.s3_path}")
            logger.info(f"[S3] Deploy started: ID {deploy.id}")

        result.success = True
        result.site_id = site.id
        result.site_url = site.public_url
        result.deploy_id = deploy.id

        try:
            final = self.executor.await_completion(
                deploy.id,
                timeout=self.config.deploy_timeout_or_none,
                cancel_event=cancel_event
            )
        except NetlifyServiceError as e:
            logger.error(f"[S3] Error while waiting for deploy: {str(e)}")
            result.test_success = False
            result.message = f"Deploy started, but its completion could not be confirmed: {str(e)}"
            return result

        if final.public_url:
            result.site_url = final.public_url
        result.test_success = True
        result.message = f"Deploy completed successfully! Site available at {result.site_url}"
        logger.info(f"[S3] {result.message}")
        return result

    # ------------------------------------------------------------------ #
    #  Helpers                                                             #
    # ------------------------------------------------------------------ #

    def _attach_domain(self, site: Site, domain: str) -> Site:
        """Attach a domain to the site; failures are logged and ignored"""
        try:
            return self.domains.ensure_domain(site, domain)
        except (NetlifyServiceError, ValidationError) as e:
            logger.warning(f"Could not configure domain {domain} on {site.name}: {str(e)}")
            return site
