"""
Domain Service
Entry points for custom-domain changes on a site identified by id.
Serializes mutations per site and runs them through the DomainReconciler.
"""

import threading
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, Optional

from sitedeploy.api.netlify_client import NetlifyClient
from sitedeploy.api.models import DomainMutation, Site
from sitedeploy.services.domain_reconciler import DomainReconciler
from sitedeploy.utils.logger import get_logger
from sitedeploy.utils.validators import ValidationError

logger = get_logger(__name__)


class SiteLockRegistry:
    """
    One lock per site id.

    Holding a site's lock while reading and updating it keeps two concurrent
    requests from computing their changes against the same stale alias list.
    Entries are dropped once no caller holds or waits on them. Only covers a
    single process.
    """

    def __init__(self):
        self._locks: Dict[str, threading.Lock] = {}
        self._users: Dict[str, int] = {}
        self._guard = threading.Lock()

    def get(self, site_id: str) -> Optional[threading.Lock]:
        """Lock currently in use for a site, None when nobody holds it"""
        with self._guard:
            return self._locks.get(site_id)

    @contextmanager
    def hold(self, site_id: str) -> Iterator[None]:
        """Context manager holding the lock of one site"""
        with self._guard:
            lock = self._locks.setdefault(site_id, threading.Lock())
            self._users[site_id] = self._users.get(site_id, 0) + 1

        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._users[site_id] -= 1
                if not self._users[site_id]:
                    del self._users[site_id]
                    del self._locks[site_id]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


class DomainService:
    """
    High-level domain operations.
    Each call fetches the current site state inside the site's lock, applies
    one mutation and returns the site as echoed by Netlify.
    """

    def __init__(
        self,
        client: NetlifyClient,
        reconciler: Optional[DomainReconciler] = None,
        locks: Optional[SiteLockRegistry] = None
    ):
        """
        Initialize domain service.

        Args:
            client: Shared Netlify client
            reconciler: Optional reconciler (built from the client's settings if None)
            locks: Optional lock registry shared with other services
        """
        self.client = client
        self.reconciler = reconciler or DomainReconciler(
            client,
            default_txt_value=client.config.netlify_txt_record_value
        )
        self.locks = locks or SiteLockRegistry()

    def add_domain(self, site_id: str, domain: str, txt_verification: Optional[str] = None) -> Site:
        """
        Add a custom domain to a site.

        If the site has no primary domain yet, the domain becomes primary.

        Raises:
            PreconditionFailedError: If the site already has a primary domain
            InvariantViolationError: If the domain is already on the site
        """
        return self._mutate(
            site_id,
            lambda site: self.reconciler.add_alias(site, domain, txt_verification)
        )

    def remove_domain(self, site_id: str, domain: str) -> Site:
        """Remove an alias domain (no-op when the domain is not an alias)"""
        return self._mutate(site_id, lambda site: self.reconciler.remove_alias(site, domain))

    def set_default_domain(self, site_id: str, domain: str, txt_verification: Optional[str] = None) -> Site:
        """Make a domain the primary domain of a site"""
        return self._mutate(
            site_id,
            lambda site: self.reconciler.promote_to_primary(site, domain, txt_verification)
        )

    def switch_default_domain(self, site_id: str, domain: str, txt_verification: Optional[str] = None) -> Site:
        """
        Promote an alias to primary; the previous primary becomes an alias.

        Raises:
            NotFoundError: If the domain is not an alias of the site
            InvariantViolationError: If the domain is already primary
        """
        return self._mutate(
            site_id,
            lambda site: self.reconciler.swap_primary(site, domain, txt_verification)
        )

    def remove_primary_domain(self, site_id: str) -> Site:
        """Clear the primary domain (no-op when there is none)"""
        return self._mutate(site_id, self.reconciler.demote_primary)

    def apply(self, site_id: str, mutation: DomainMutation) -> Site:
        """Apply an arbitrary DomainMutation to a site"""
        return self._mutate(site_id, lambda site: self.reconciler.apply(site, mutation))

    def ensure_domain(self, site: Site, domain: str) -> Site:
        """
        Make sure a domain reaches an already-resolved site.

        The site is read again inside its lock; the resolver's handle may
        predate a concurrent domain change.

        Args:
            site: Site handle from the resolver
            domain: Domain that must be attached

        Returns:
            Updated site
        """
        return self._mutate(site.id, lambda current: self.reconciler.ensure_domain(current, domain))

    def _mutate(self, site_id: str, operation: Callable[[Site], Site]) -> Site:
        if not site_id or not site_id.strip():
            raise ValidationError("site_id is required")

        site_id = site_id.strip()

        with self.locks.hold(site_id):
            site = self.client.get_site(site_id)
            return operation(site)
