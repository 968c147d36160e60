"""
Domain Reconciler
Computes valid custom-domain transitions for a site (primary domain vs.
alias domains) and pushes each one to Netlify in a single update call.
"""

from typing import List, Optional

from sitedeploy.api.netlify_client import NetlifyClient
from sitedeploy.api.models import DomainMutation, MutationKind, Site
from sitedeploy.api.exceptions import (
    InvariantViolationError,
    NotFoundError,
    PreconditionFailedError,
    RemoteCallError,
)
from sitedeploy.utils.logger import get_logger
from sitedeploy.utils.validators import validate_domain

logger = get_logger(__name__)

# Netlify's error text when aliases are changed while a primary domain is set
PRIMARY_DOMAIN_LOCK_MESSAGE = "update domain aliases while primary"


class DomainReconciler:
    """
    Applies domain mutations to a Site.

    Every operation validates against the site's current state before any
    remote call, and issues at most one update. On success the returned Site
    is the representation echoed by Netlify; callers must continue with it.
    """

    def __init__(self, client: NetlifyClient, default_txt_value: str = ""):
        """
        Initialize the reconciler.

        Args:
            client: Shared Netlify client
            default_txt_value: TXT verification token used when none is given
        """
        self.client = client
        self.default_txt_value = default_txt_value

    # ------------------------------------------------------------------ #
    #  Operations                                                          #
    # ------------------------------------------------------------------ #

    def add_alias(
        self,
        site: Site,
        domain: str,
        txt_verification: Optional[str] = None,
        promote_if_no_primary: bool = True
    ) -> Site:
        """
        Attach a custom domain to a site.

        Netlify rejects alias changes while a primary domain is set, so the
        site must not have one. When it has none, the domain becomes the
        primary domain (first-time assignment) unless promote_if_no_primary
        is False, in which case it is appended to the aliases.

        Args:
            site: Current site state
            domain: Domain to add
            txt_verification: TXT token used if the domain becomes primary
            promote_if_no_primary: Promote instead of appending when no primary exists

        Returns:
            Updated site

        Raises:
            InvariantViolationError: If the domain is already attached
            PreconditionFailedError: If the site already has a primary domain
        """
        domain = validate_domain(domain)

        if domain == site.primary_domain:
            raise InvariantViolationError(f"Domain {domain} is already the primary domain of {site.name}")
        if domain in site.alias_domains:
            raise InvariantViolationError(f"Domain {domain} is already an alias of {site.name}")

        if site.has_primary_domain():
            raise PreconditionFailedError(
                f"Site {site.name} already has a primary domain ({site.primary_domain}). "
                "Remove the primary domain before adding an alias."
            )

        if promote_if_no_primary:
            logger.info(f"Site {site.name} has no primary domain. Setting {domain} as primary.")
            return self.promote_to_primary(site, domain, txt_verification)

        logger.info(f"Adding {domain} as alias of {site.name}")
        updated = self._submit(site, site.primary_domain, site.alias_domains + [domain])
        self._log_dns_instruction(updated, domain)
        return updated

    def remove_alias(self, site: Site, domain: str) -> Site:
        """
        Detach an alias domain. Absent domains are a no-op.

        Args:
            site: Current site state
            domain: Alias to remove

        Returns:
            Updated site (the same object when nothing changed)
        """
        domain = validate_domain(domain)

        if domain not in site.alias_domains:
            logger.info(f"Domain {domain} is not an alias of {site.name}; nothing to remove")
            return site

        aliases = list(site.alias_domains)
        aliases.remove(domain)

        logger.info(f"Removing alias {domain} from {site.name}")
        return self._submit(site, site.primary_domain, aliases)

    def promote_to_primary(
        self,
        site: Site,
        domain: str,
        txt_verification: Optional[str] = None
    ) -> Site:
        """
        Make a domain the site's primary domain.

        The domain is dropped from the aliases and the TXT verification token
        is sent along so Netlify can check ownership out of band.

        Args:
            site: Current site state
            domain: Domain to promote
            txt_verification: TXT token (defaults to the configured value)

        Returns:
            Updated site
        """
        domain = validate_domain(domain)

        if site.primary_domain == domain:
            logger.info(f"Domain {domain} is already the primary domain of {site.name}")
            return site

        aliases = [alias for alias in site.alias_domains if alias != domain]
        token = self._txt_value(txt_verification)

        logger.info(f"Setting {domain} as primary domain of {site.name}")
        updated = self._submit(site, domain, aliases, record_txt_value=token)
        self._log_dns_instruction(updated, domain, token)
        return updated

    def demote_primary(self, site: Site) -> Site:
        """
        Clear the site's primary domain.

        The former primary domain is not re-added as an alias.

        Args:
            site: Current site state

        Returns:
            Updated site (the same object when there was no primary domain)
        """
        if not site.has_primary_domain():
            logger.info(f"Site {site.name} has no primary domain; nothing to remove")
            return site

        old_domain = site.primary_domain
        logger.info(f"Removing {old_domain} as primary domain of {site.name}")

        return self._submit(site, "", site.alias_domains)

    def swap_primary(
        self,
        site: Site,
        new_domain: str,
        txt_verification: Optional[str] = None
    ) -> Site:
        """
        Promote an existing alias to primary and turn the old primary into an alias.

        Args:
            site: Current site state
            new_domain: Alias that becomes the primary domain
            txt_verification: TXT token (defaults to the configured value)

        Returns:
            Updated site

        Raises:
            NotFoundError: If new_domain is not one of the aliases
            InvariantViolationError: If new_domain is already the primary domain
        """
        new_domain = validate_domain(new_domain)

        if new_domain not in site.alias_domains:
            raise NotFoundError(f"Domain {new_domain} is not an alias of {site.name}")
        if new_domain == site.primary_domain:
            raise InvariantViolationError(f"Domain {new_domain} is already the primary domain of {site.name}")

        aliases = [alias for alias in site.alias_domains if alias != new_domain]
        old_primary = site.primary_domain
        if old_primary and old_primary not in aliases:
            aliases.append(old_primary)

        token = self._txt_value(txt_verification)

        logger.info(f"Switching primary domain of {site.name}: {old_primary or '(none)'} -> {new_domain}")
        updated = self._submit(site, new_domain, aliases, record_txt_value=token)
        self._log_dns_instruction(updated, new_domain, token)
        return updated

    def ensure_domain(self, site: Site, domain: str) -> Site:
        """
        Attach a domain unless it is already the primary domain or an alias.

        Args:
            site: Current site state
            domain: Domain that should reach the site

        Returns:
            Updated site (the same object when already attached)
        """
        domain = validate_domain(domain)

        if site.has_domain(domain):
            logger.info(f"Domain {domain} is already configured on {site.name}")
            return site

        return self.add_alias(site, domain)

    def apply(self, site: Site, mutation: DomainMutation) -> Site:
        """
        Apply a DomainMutation.

        Args:
            site: Current site state
            mutation: Requested change

        Returns:
            Updated site
        """
        if mutation.kind == MutationKind.ADD_ALIAS:
            return self.add_alias(site, mutation.domain, mutation.txt_verification)
        if mutation.kind == MutationKind.REMOVE_ALIAS:
            return self.remove_alias(site, mutation.domain)
        if mutation.kind == MutationKind.PROMOTE_TO_PRIMARY:
            return self.promote_to_primary(site, mutation.domain, mutation.txt_verification)
        if mutation.kind == MutationKind.DEMOTE_PRIMARY:
            return self.demote_primary(site)
        if mutation.kind == MutationKind.SWAP_PRIMARY:
            return self.swap_primary(site, mutation.domain, mutation.txt_verification)

        raise ValueError(f"Unsupported domain mutation: {mutation.kind}")

    # ------------------------------------------------------------------ #
    #  Helpers                                                             #
    # ------------------------------------------------------------------ #

    def _submit(
        self,
        site: Site,
        primary_domain: str,
        alias_domains: List[str],
        record_txt_value: Optional[str] = None
    ) -> Site:
        """Send the complete domain state of a site in one update"""
        try:
            return self.client.update_site(
                site.id,
                name=site.name,
                primary_domain=primary_domain,
                alias_domains=alias_domains,
                record_txt_value=record_txt_value
            )
        except RemoteCallError as e:
            if PRIMARY_DOMAIN_LOCK_MESSAGE in f"{e.message} {e.response_data}":
                raise PreconditionFailedError(
                    f"Site {site.name} already has a primary domain. "
                    "Remove the primary domain before adding an alias.",
                    status_code=e.status_code,
                    response_data=e.response_data
                ) from e
            raise

    def _txt_value(self, txt_verification: Optional[str]) -> str:
        if txt_verification is None:
            return self.default_txt_value
        return txt_verification

    @staticmethod
    def _log_dns_instruction(site: Site, domain: str, txt_value: Optional[str] = None) -> None:
        logger.info(
            f"To point {domain} at {site.name}, create a CNAME record for {domain} "
            f"targeting {site.default_domain}"
        )
        if txt_value:
            logger.info(f"Ownership check: add a TXT record for {domain} with value '{txt_value}'")
