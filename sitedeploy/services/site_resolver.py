"""
Site Resolver
Maps a site id, name or subdomain to a Netlify site, creating one when needed
"""

from typing import Optional, Tuple

from sitedeploy.api.netlify_client import NetlifyClient
from sitedeploy.api.models import Site
from sitedeploy.utils.logger import get_logger
from sitedeploy.utils.validators import ValidationError, validate_domain

logger = get_logger(__name__)


def build_subdomain(site_name: str, base_domain: str) -> str:
    """
    Build the per-site subdomain, e.g. "shop" -> "shop.sites.example.com".

    Args:
        site_name: Site name
        base_domain: Configured BASE_DOMAIN

    Returns:
        Lowercase subdomain
    """
    if not site_name or not site_name.strip():
        raise ValidationError("Site name is required")

    return f"{site_name.strip().lower()}.{base_domain.strip('.').lower()}"


class SiteResolver:
    """
    Finds or creates sites.

    Two matching policies are kept apart: exact name (test deploys) and
    subdomain (S3 deploys).
    """

    def __init__(self, client: NetlifyClient):
        self.client = client

    def resolve_by_id(self, site_id: str, desired_name: Optional[str] = None) -> Site:
        """
        Fetch a site by id, renaming it when desired_name differs.

        Args:
            site_id: Netlify site id
            desired_name: Name the caller wants the site to have

        Returns:
            Site

        Raises:
            NotFoundError: If Netlify has no such site
        """
        site = self.client.get_site(site_id)
        logger.info(f"Using existing site: {site.name} (ID: {site.id})")

        if desired_name and site.name != desired_name:
            logger.info(f"Renaming site {site.id}: {site.name} -> {desired_name}")
            site = self.client.update_site(site.id, name=desired_name)

        return site

    def find_by_name(self, name: str) -> Optional[Site]:
        """Return the site whose name equals name exactly, or None"""
        for site in self.client.list_sites():
            if site.name == name:
                return site
        return None

    def find_by_subdomain(self, subdomain: str) -> Optional[Site]:
        """
        Return the first site reachable at subdomain, or None.

        A site matches when the subdomain is its primary domain, one of its
        aliases, or its <name>.netlify.app default host.
        """
        subdomain = validate_domain(subdomain)

        for site in self.client.list_sites():
            if site.has_domain(subdomain) or site.default_domain == subdomain:
                return site
        return None

    def resolve_or_create_by_name(self, candidate_name: str) -> Tuple[Site, bool]:
        """
        Find a site by exact name or create it.

        Returns:
            (site, was_created)
        """
        site = self.find_by_name(candidate_name)
        if site:
            logger.info(f"Found existing site: {site.name} (ID: {site.id})")
            return site, False

        return self.client.create_site(candidate_name), True

    def resolve_or_create_by_subdomain(self, candidate_name: str, desired_subdomain: str) -> Tuple[Site, bool]:
        """
        Find a site serving desired_subdomain or create one named candidate_name.

        Returns:
            (site, was_created)
        """
        site = self.find_by_subdomain(desired_subdomain)
        if site:
            logger.info(f"Found site for {desired_subdomain}: {site.name} (ID: {site.id})")
            return site, False

        logger.info(f"No site serves {desired_subdomain}, creating {candidate_name}")
        return self.client.create_site(candidate_name), True
