"""
Netlify resource models
Typed views over the JSON returned by the Netlify API
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


NETLIFY_DEFAULT_SUFFIX = ".netlify.app"


def _normalize_host(value) -> str:
    """Lowercase hostname without surrounding blanks or a trailing dot"""
    return (value or "").strip().lower().rstrip(".")


class Site(BaseModel):
    """
    A site hosted on Netlify.

    ``primary_domain`` maps to Netlify's ``custom_domain`` and is ``""`` when
    unset; ``alias_domains`` maps to ``domain_aliases``.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    name: str = ""
    primary_domain: str = Field(default="", alias="custom_domain")
    alias_domains: List[str] = Field(default_factory=list, alias="domain_aliases")
    url: str = ""
    ssl_url: str = ""
    created_at: Optional[datetime] = None

    @field_validator("name", "url", "ssl_url", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        return v or ""

    @field_validator("primary_domain", mode="before")
    @classmethod
    def _normalize_primary(cls, v):
        return _normalize_host(v)

    @field_validator("alias_domains", mode="before")
    @classmethod
    def _unique_aliases(cls, v):
        # Keep first-seen order, drop blanks and repeats
        seen = []
        for domain in v or []:
            domain = _normalize_host(domain)
            if domain and domain not in seen:
                seen.append(domain)
        return seen

    @property
    def default_domain(self) -> str:
        """Netlify-assigned hostname, e.g. my-site.netlify.app"""
        return f"{self.name}{NETLIFY_DEFAULT_SUFFIX}"

    @property
    def public_url(self) -> str:
        """Best URL to reach the site (HTTPS preferred)"""
        return self.ssl_url or self.url

    def has_primary_domain(self) -> bool:
        return bool(self.primary_domain)

    def has_domain(self, domain: str) -> bool:
        """True if the domain is the primary domain or one of the aliases"""
        domain = _normalize_host(domain)
        return domain == self.primary_domain or domain in self.alias_domains

    def created_at_display(self) -> str:
        """ISO-8601 creation time, or an empty string when unknown"""
        if self.created_at is None:
            return ""
        return self.created_at.isoformat()


class DeployState(str, Enum):
    """Deploy states the client reasons about; Netlify reports others too"""

    READY = "ready"
    ERROR = "error"


TERMINAL_DEPLOY_STATES = {DeployState.READY.value, DeployState.ERROR.value}


class Deploy(BaseModel):
    """One content upload transaction against a site"""

    model_config = ConfigDict(extra="ignore")

    id: str
    site_id: str = ""
    state: str = ""
    url: str = ""
    ssl_url: str = ""
    deploy_url: str = ""
    error_message: str = ""
    required: List[str] = Field(default_factory=list)

    @field_validator("site_id", "state", "url", "ssl_url", "deploy_url", "error_message", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        return v or ""

    @field_validator("required", mode="before")
    @classmethod
    def _none_to_list(cls, v):
        return v or []

    @property
    def is_ready(self) -> bool:
        return self.state == DeployState.READY.value

    @property
    def is_error(self) -> bool:
        return self.state == DeployState.ERROR.value

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_DEPLOY_STATES

    @property
    def public_url(self) -> str:
        return self.ssl_url or self.url or self.deploy_url


class MutationKind(str, Enum):
    ADD_ALIAS = "add_alias"
    REMOVE_ALIAS = "remove_alias"
    PROMOTE_TO_PRIMARY = "promote_to_primary"
    DEMOTE_PRIMARY = "demote_primary"
    SWAP_PRIMARY = "swap_primary"


class DomainMutation(BaseModel):
    """
    A single requested change to a site's custom domains.
    Lives only for the duration of one reconciliation call.
    """

    model_config = ConfigDict(frozen=True)

    kind: MutationKind
    domain: str = ""
    txt_verification: Optional[str] = None

    @classmethod
    def add_alias(cls, domain: str) -> "DomainMutation":
        return cls(kind=MutationKind.ADD_ALIAS, domain=domain)

    @classmethod
    def remove_alias(cls, domain: str) -> "DomainMutation":
        return cls(kind=MutationKind.REMOVE_ALIAS, domain=domain)

    @classmethod
    def promote_to_primary(cls, domain: str, txt_verification: Optional[str] = None) -> "DomainMutation":
        return cls(kind=MutationKind.PROMOTE_TO_PRIMARY, domain=domain, txt_verification=txt_verification)

    @classmethod
    def demote_primary(cls) -> "DomainMutation":
        return cls(kind=MutationKind.DEMOTE_PRIMARY)

    @classmethod
    def swap_primary(cls, domain: str, txt_verification: Optional[str] = None) -> "DomainMutation":
        return cls(kind=MutationKind.SWAP_PRIMARY, domain=domain, txt_verification=txt_verification)
