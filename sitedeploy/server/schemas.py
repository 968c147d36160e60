"""
Request and response models for the HTTP API.
One response model per endpoint; failures use the same shape with success=False.
"""

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from sitedeploy.api.models import Site


class StatusResponse(BaseModel):
    status: str = "ok"
    version: str
    time: datetime


class DomainRequest(BaseModel):
    """Body of /api/domains/add, /remove, /set-default and /switch-default"""

    site_id: str = Field(default="", examples=["a1b2c3d4"])
    domain: str = Field(default="", examples=["www.example.com"])


class PrimaryDomainRequest(BaseModel):
    """Body of /api/domains/remove-primary"""

    site_id: str = Field(default="", examples=["a1b2c3d4"])


class DomainResponse(BaseModel):
    success: bool
    message: str
    site_id: str = ""
    domain: str = ""


class TestDeployResponse(BaseModel):
    success: bool
    message: str
    site_id: str = ""
    site_url: str = ""
    deploy_id: str = ""
    created_at: str = ""
    test_success: bool = False


class S3DeployResponse(BaseModel):
    success: bool
    message: str
    site_id: str = ""
    site_url: str = ""
    deploy_id: str = ""
    subdomain: str = ""
    custom_domain: str = ""
    created_at: str = ""
    test_success: bool = False


class ConnectionTestResponse(BaseModel):
    """Diagnostics for the Netlify connection"""

    success: bool
    message: str
    token_configured: bool
    token_preview: str = ""
    base_domain: str = ""
    api_reachable: bool = False
    account: str = ""


class LogsResponse(BaseModel):
    success: bool
    message: str = ""
    log_file: str = ""
    logs: str = ""


class SiteSummary(BaseModel):
    id: str
    name: str
    url: str = ""
    primary_domain: str = ""
    alias_domains: List[str] = Field(default_factory=list)
    created_at: str = ""

    @classmethod
    def from_site(cls, site: Site) -> "SiteSummary":
        return cls(
            id=site.id,
            name=site.name,
            url=site.public_url,
            primary_domain=site.primary_domain,
            alias_domains=list(site.alias_domains),
            created_at=site.created_at_display()
        )


class SitesResponse(BaseModel):
    success: bool
    message: str
    sites: List[SiteSummary] = Field(default_factory=list)
