"""
Input validation utilities for domains, site names and deploy paths
"""

import re
from pathlib import PurePosixPath


class ValidationError(Exception):
    """Custom exception for validation errors"""
    pass


class DomainValidator:
    """Validator for domain names"""

    # RFC-compliant domain regex
    DOMAIN_REGEX = re.compile(
        r'^(?:[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?\.)+[a-zA-Z]{2,}$'
    )

    @classmethod
    def validate(cls, domain: str) -> str:
        """
        Validate a custom domain name.

        Args:
            domain: Domain name to validate

        Returns:
            Cleaned domain name (lowercase, stripped)

        Raises:
            ValidationError: If domain is invalid
        """
        if not domain or not domain.strip():
            raise ValidationError("Domain name cannot be empty")

        # Clean the domain
        domain = domain.strip().lower()

        # Remove http(s):// if present
        domain = re.sub(r'^https?://', '', domain)

        # Remove trailing slash and trailing dot
        domain = domain.rstrip('/').rstrip('.')

        # Check length
        if len(domain) > 253:  # RFC 1035
            raise ValidationError("Domain name too long (max 253 characters)")

        if not cls.DOMAIN_REGEX.match(domain):
            raise ValidationError(
                f"Invalid domain format: {domain}. "
                "Domain must contain only letters, numbers, hyphens and dots."
            )

        return domain


class SiteNameValidator:
    """Validator for Netlify site names (used as the default subdomain)"""

    SITE_NAME_REGEX = re.compile(r'^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$')

    @classmethod
    def validate(cls, name: str) -> str:
        """
        Validate a site name.

        Args:
            name: Site name

        Returns:
            Cleaned site name (lowercase, stripped)

        Raises:
            ValidationError: If the name is empty or not subdomain-safe
        """
        if not name or not name.strip():
            raise ValidationError("Site name is required")

        name = name.strip().lower()

        if not cls.SITE_NAME_REGEX.match(name):
            raise ValidationError(
                f"Invalid site name: {name}. "
                "Use lowercase letters, numbers and hyphens only."
            )

        return name


def validate_domain(domain: str) -> str:
    """Convenience function for domain validation"""
    return DomainValidator.validate(domain)


def validate_site_name(name: str) -> str:
    """Convenience function for site name validation"""
    return SiteNameValidator.validate(name)


def validate_relative_path(path: str) -> str:
    """
    Validate a file path that will be written inside a deploy tree.

    Args:
        path: Relative file path, e.g. "index.html" or "css/site.css"

    Returns:
        Normalized POSIX path without leading "./"

    Raises:
        ValidationError: If the path is empty, absolute or escapes the tree
    """
    if not path or not path.strip():
        raise ValidationError("File path cannot be empty")

    candidate = PurePosixPath(path.strip().replace("\\", "/"))

    if candidate.is_absolute() or re.match(r'^[a-zA-Z]:', str(candidate)):
        raise ValidationError(f"File path must be relative: {path}")

    if ".." in candidate.parts:
        raise ValidationError(f"File path escapes the deploy directory: {path}")

    normalized = "/".join(part for part in candidate.parts if part not in ("", "."))
    if not normalized:
        raise ValidationError(f"Invalid file path: {path}")

    return normalized
