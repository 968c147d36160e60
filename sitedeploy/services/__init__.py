"""
Business logic and service layer
"""

from sitedeploy.services.domain_reconciler import DomainReconciler
from sitedeploy.services.domain_service import DomainService, SiteLockRegistry
from sitedeploy.services.site_resolver import SiteResolver, build_subdomain
from sitedeploy.services.deploy_executor import DeployExecutor
from sitedeploy.services.s3_stager import S3Stager, StorageError
from sitedeploy.services.deployment_orchestrator import (
    DeploymentOrchestrator,
    S3DeployParams,
    S3DeployResult,
    TestDeployParams,
    TestDeployResult,
)

__all__ = [
    # Domains
    "DomainReconciler",
    "DomainService",
    "SiteLockRegistry",
    # Sites
    "SiteResolver",
    "build_subdomain",
    # Deploys
    "DeployExecutor",
    # S3 staging
    "S3Stager",
    "StorageError",
    # Workflows
    "DeploymentOrchestrator",
    "TestDeployParams",
    "TestDeployResult",
    "S3DeployParams",
    "S3DeployResult",
]
