"""
Tests for DeploymentOrchestrator: the test-deploy and S3-deploy workflows.
Every collaborator is mocked; no Netlify or S3 access needed.

Run:
    python -m pytest tests/test_orchestrator.py -v
"""

import pytest
from unittest.mock import MagicMock

from sitedeploy.api.models import Deploy, Site
from sitedeploy.api.exceptions import (
    BadRequestError,
    DeployFailedError,
    DeployTimeoutError,
    NotFoundError,
    PreconditionFailedError,
)
from sitedeploy.services.deployment_orchestrator import (
    DEFAULT_PAGE_FILENAME,
    DeploymentOrchestrator,
    S3DeployParams,
    TestDeployParams as SiteDeployParams,
)
from sitedeploy.utils.validators import ValidationError


# ---------------------------------------------------------------------------
# Helpers / fixtures
# ---------------------------------------------------------------------------

SITE = Site(id="site-1", name="my-site", ssl_url="https://my-site.netlify.app")
DEPLOY = Deploy(id="deploy-1", site_id="site-1", state="uploading")


def _orchestrator(files_in_s3=1):
    client = MagicMock()
    client.create_site.return_value = SITE

    config = MagicMock()
    config.base_domain = "sites.example.com"
    config.deploy_timeout_or_none = 600.0

    resolver = MagicMock()
    resolver.find_by_name.return_value = None
    resolver.resolve_by_id.return_value = SITE
    resolver.resolve_or_create_by_subdomain.return_value = (SITE, True)

    domains = MagicMock()
    domains.ensure_domain.side_effect = lambda site, domain: site

    executor = MagicMock()
    executor.submit_content.return_value = DEPLOY
    executor.submit_directory.return_value = DEPLOY
    executor.await_completion.return_value = Deploy(
        id="deploy-1", state="ready", ssl_url="https://deploy-1--my-site.netlify.app"
    )

    stager = MagicMock()
    stager.download_prefix.return_value = files_in_s3

    orchestrator = DeploymentOrchestrator(
        client,
        config,
        domain_service=domains,
        executor=executor,
        resolver=resolver,
        stager=stager
    )
    return orchestrator, client, resolver, domains, executor, stager


def _deployed_files(executor):
    return executor.submit_content.call_args.args[1]


# ===========================================================================
# 1. Test deploy: site resolution
# ===========================================================================

class TestTestDeploySite:

    def test_requires_site_name(self):
        orchestrator, client, *_ = _orchestrator()

        with pytest.raises(ValidationError):
            orchestrator.test_deploy(SiteDeployParams(site_name="  "))

        client.create_site.assert_not_called()

    def test_creates_site_when_missing(self):
        orchestrator, client, resolver, *_ = _orchestrator()

        result = orchestrator.test_deploy(SiteDeployParams(site_name="my-site"))

        client.create_site.assert_called_once_with("my-site")
        assert result.success is True
        assert result.test_success is True
        assert result.site_id == "site-1"
        assert result.deploy_id == "deploy-1"
        assert result.message == (
            "Test site created/updated successfully. Deploy submitted successfully (ID: deploy-1)"
        )

    def test_reuses_existing_site(self):
        orchestrator, client, resolver, *_ = _orchestrator()
        resolver.find_by_name.return_value = SITE

        orchestrator.test_deploy(SiteDeployParams(site_name="my-site"))

        client.create_site.assert_not_called()
        client.delete_site.assert_not_called()

    def test_cleanup_after_recreates_existing_site(self):
        orchestrator, client, resolver, *_ = _orchestrator()
        resolver.find_by_name.return_value = Site(id="old", name="my-site")

        result = orchestrator.test_deploy(SiteDeployParams(site_name="my-site", cleanup_after=True))

        client.delete_site.assert_called_once_with("old")
        client.create_site.assert_called_once_with("my-site")
        assert result.site_id == "site-1"

    def test_site_id_resolves_and_renames(self):
        orchestrator, client, resolver, *_ = _orchestrator()

        orchestrator.test_deploy(SiteDeployParams(site_name="new-name", site_id="site-1"))

        resolver.resolve_by_id.assert_called_once_with("site-1", desired_name="new-name")
        resolver.find_by_name.assert_not_called()
        client.create_site.assert_not_called()

    def test_unknown_site_id_raises(self):
        orchestrator, _, resolver, _, executor, _ = _orchestrator()
        resolver.resolve_by_id.side_effect = NotFoundError("Site not found", status_code=404)

        with pytest.raises(NotFoundError):
            orchestrator.test_deploy(SiteDeployParams(site_name="x", site_id="nope"))

        executor.submit_content.assert_not_called()

    def test_custom_domain_is_attached(self):
        orchestrator, _, _, domains, *_ = _orchestrator()

        orchestrator.test_deploy(SiteDeployParams(site_name="my-site", custom_domain="WWW.Example.com"))

        domains.ensure_domain.assert_called_once_with(SITE, "www.example.com")

    def test_custom_domain_failure_is_not_fatal(self):
        orchestrator, _, _, domains, executor, _ = _orchestrator()
        domains.ensure_domain.side_effect = PreconditionFailedError("primary domain already set")

        result = orchestrator.test_deploy(SiteDeployParams(site_name="my-site", custom_domain="a.com"))

        assert result.success is True
        assert result.test_success is True
        executor.submit_content.assert_called_once()

    @pytest.mark.parametrize("site_name", ["my_site", "my site", "-shop"])
    def test_invalid_site_name_rejected_before_remote_calls(self, site_name):
        orchestrator, client, resolver, *_ = _orchestrator()

        with pytest.raises(ValidationError):
            orchestrator.test_deploy(SiteDeployParams(site_name=site_name))

        resolver.find_by_name.assert_not_called()
        client.create_site.assert_not_called()

    def test_invalid_custom_domain_rejected_early(self):
        orchestrator, client, *_ = _orchestrator()

        with pytest.raises(ValidationError):
            orchestrator.test_deploy(SiteDeployParams(site_name="my-site", custom_domain="not a domain"))

        client.create_site.assert_not_called()


# ===========================================================================
# 2. Test deploy: content
# ===========================================================================

class TestTestDeployContent:

    def test_uploaded_file_wins(self):
        orchestrator, *_, executor, _ = _orchestrator()

        orchestrator.test_deploy(SiteDeployParams(
            site_name="my-site",
            file_content=b"<p>file</p>",
            test_content="<p>inline</p>",
            folder_path="/does/not/matter"
        ))

        assert _deployed_files(executor) == {DEFAULT_PAGE_FILENAME: b"<p>file</p>"}
        executor.submit_directory.assert_not_called()

    def test_inline_content_before_folder(self):
        orchestrator, *_, executor, _ = _orchestrator()

        orchestrator.test_deploy(SiteDeployParams(
            site_name="my-site",
            test_content="<p>inline</p>",
            folder_path="/does/not/matter"
        ))

        assert _deployed_files(executor) == {DEFAULT_PAGE_FILENAME: "<p>inline</p>"}

    def test_folder_is_deployed(self, tmp_path):
        orchestrator, *_, executor, _ = _orchestrator()

        orchestrator.test_deploy(SiteDeployParams(
            site_name="my-site",
            folder_path=str(tmp_path),
            description="from folder"
        ))

        executor.submit_directory.assert_called_once_with(SITE, tmp_path, title="from folder")
        executor.submit_content.assert_not_called()

    def test_missing_folder_fails_before_remote_calls(self, tmp_path):
        orchestrator, client, resolver, _, executor, _ = _orchestrator()

        with pytest.raises(NotFoundError, match="Folder not found"):
            orchestrator.test_deploy(SiteDeployParams(
                site_name="my-site",
                folder_path=str(tmp_path / "missing")
            ))

        resolver.find_by_name.assert_not_called()
        client.create_site.assert_not_called()
        executor.submit_directory.assert_not_called()

    def test_placeholder_page_when_no_content(self):
        orchestrator, *_, executor, _ = _orchestrator()

        result = orchestrator.test_deploy(SiteDeployParams(site_name="my-site"))

        page = _deployed_files(executor)[DEFAULT_PAGE_FILENAME]
        assert "<html>" in page
        assert result.created_at.isoformat() in page
        assert executor.submit_content.call_args.kwargs["title"] is None

    def test_deploy_failure_is_lenient(self):
        orchestrator, *_, executor, _ = _orchestrator()
        executor.submit_content.side_effect = BadRequestError("quota exceeded", status_code=422)

        result = orchestrator.test_deploy(SiteDeployParams(site_name="my-site"))

        assert result.success is True
        assert result.test_success is False
        assert result.site_id == "site-1"
        assert result.deploy_id == ""
        assert "However, the deploy failed: quota exceeded" in result.message

    def test_wait_for_deploy_uses_configured_timeout(self):
        orchestrator, *_, executor, _ = _orchestrator()
        cancel = MagicMock()

        result = orchestrator.test_deploy(
            SiteDeployParams(site_name="my-site", wait_for_deploy=True),
            cancel_event=cancel
        )

        executor.await_completion.assert_called_once_with("deploy-1", timeout=600.0, cancel_event=cancel)
        assert result.site_url == "https://deploy-1--my-site.netlify.app"
        assert result.message.endswith(". Deploy is live")
        assert result.test_success is True

    def test_wait_failure_clears_test_success(self):
        orchestrator, *_, executor, _ = _orchestrator()
        executor.await_completion.side_effect = DeployFailedError("build failed", "deploy-1")

        result = orchestrator.test_deploy(SiteDeployParams(site_name="my-site", wait_for_deploy=True))

        assert result.success is True
        assert result.test_success is False
        assert result.deploy_id == "deploy-1"
        assert "build failed" in result.message

    def test_no_wait_by_default(self):
        orchestrator, *_, executor, _ = _orchestrator()

        orchestrator.test_deploy(SiteDeployParams(site_name="my-site"))

        executor.await_completion.assert_not_called()


# ===========================================================================
# 3. S3 deploy
# ===========================================================================

class TestS3Deploy:

    @pytest.mark.parametrize("params", [
        S3DeployParams(site_name="", s3_path="sites/shop"),
        S3DeployParams(site_name="shop", s3_path="  "),
        S3DeployParams(site_name="my_site", s3_path="sites/shop"),
        S3DeployParams(site_name="-shop", s3_path="sites/shop"),
    ])
    def test_invalid_input_rejected_before_staging(self, params):
        orchestrator, *_, stager = _orchestrator()

        with pytest.raises(ValidationError):
            orchestrator.deploy_from_s3(params)

        stager.download_prefix.assert_not_called()

    def test_empty_prefix_is_not_found(self):
        orchestrator, _, resolver, _, executor, stager = _orchestrator(files_in_s3=0)

        with pytest.raises(NotFoundError, match="No files found under S3 path: sites/shop"):
            orchestrator.deploy_from_s3(S3DeployParams(site_name="shop", s3_path="sites/shop"))

        resolver.resolve_or_create_by_subdomain.assert_not_called()
        executor.submit_directory.assert_not_called()

    def test_success_path(self):
        orchestrator, _, resolver, domains, executor, stager = _orchestrator()

        result = orchestrator.deploy_from_s3(S3DeployParams(site_name="Shop", s3_path="sites/shop"))

        resolver.resolve_or_create_by_subdomain.assert_called_once_with("shop", "shop.sites.example.com")
        domains.ensure_domain.assert_called_once_with(SITE, "shop.sites.example.com")

        staging_dir = stager.download_prefix.call_args.args[1]
        executor.submit_directory.assert_called_once_with(SITE, staging_dir, title="S3 deploy: sites/shop")

        assert result.success is True
        assert result.test_success is True
        assert result.subdomain == "shop.sites.example.com"
        assert result.deploy_id == "deploy-1"
        assert result.site_url == "https://deploy-1--my-site.netlify.app"
        assert result.message == (
            "Deploy completed successfully! Site available at https://deploy-1--my-site.netlify.app"
        )

    def test_custom_domain_preferred_over_subdomain(self):
        orchestrator, _, _, domains, *_ = _orchestrator()

        result = orchestrator.deploy_from_s3(S3DeployParams(
            site_name="shop", s3_path="sites/shop", custom_domain="www.shop.com"
        ))

        domains.ensure_domain.assert_called_once_with(SITE, "www.shop.com")
        assert result.custom_domain == "www.shop.com"

    def test_site_id_skips_subdomain_lookup(self):
        orchestrator, _, resolver, *_ = _orchestrator()

        orchestrator.deploy_from_s3(S3DeployParams(site_name="shop", s3_path="sites/shop", site_id="site-1"))

        resolver.resolve_by_id.assert_called_once_with("site-1")
        resolver.resolve_or_create_by_subdomain.assert_not_called()

    def test_unknown_site_id_raises(self):
        orchestrator, _, resolver, _, executor, _ = _orchestrator()
        resolver.resolve_by_id.side_effect = NotFoundError("Site not found", status_code=404)

        with pytest.raises(NotFoundError):
            orchestrator.deploy_from_s3(S3DeployParams(site_name="shop", s3_path="sites/shop", site_id="x"))

        executor.submit_directory.assert_not_called()

    def test_wait_failure_still_reports_started_deploy(self):
        orchestrator, *_, executor, _ = _orchestrator()
        executor.await_completion.side_effect = DeployTimeoutError("Deploy deploy-1 did not finish in time")

        result = orchestrator.deploy_from_s3(S3DeployParams(site_name="shop", s3_path="sites/shop"))

        assert result.success is True
        assert result.test_success is False
        assert result.deploy_id == "deploy-1"
        assert result.site_url == "https://my-site.netlify.app"
        assert result.message.startswith("Deploy started, but its completion could not be confirmed")

    def test_domain_failure_is_not_fatal(self):
        orchestrator, *_, domains, executor, _ = _orchestrator()
        domains.ensure_domain.side_effect = BadRequestError("domain taken", status_code=422)

        result = orchestrator.deploy_from_s3(S3DeployParams(site_name="shop", s3_path="sites/shop"))

        assert result.test_success is True
        executor.submit_directory.assert_called_once()
