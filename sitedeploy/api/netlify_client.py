"""
Netlify API Client
Handles all interactions with the Netlify REST API (sites, domains, deploys)
"""

import hashlib
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote

import requests

from sitedeploy.api.models import Deploy, Site
from sitedeploy.utils.config import Settings
from sitedeploy.utils.logger import get_logger, mask_secret
from sitedeploy.api.exceptions import (
    AuthenticationError,
    BadRequestError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    RemoteCallError,
    ServerError,
)


logger = get_logger(__name__)

# Directory entries never uploaded as part of a deploy
IGNORED_NAMES = {"__MACOSX", ".DS_Store", ".git"}


class NetlifyClient:
    """
    Netlify API Client for site, domain and deploy operations.
    One instance is created at startup and shared by all requests.
    """

    def __init__(self, config: Settings, session: Optional[requests.Session] = None):
        """
        Initialize Netlify API client.

        Args:
            config: Settings object
            session: Optional requests session (a new one is created if None)
        """
        self.config = config
        self.base_url = self.config.netlify_api_url.rstrip("/")
        self.timeout = self.config.netlify_request_timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            **self.config.netlify_auth_header,
            "Accept": "application/json"
        })

        logger.info(f"Netlify Client initialized - token: {mask_secret(self.config.netlify_token)}")
        logger.info(f"Base URL: {self.base_url}")

    def _make_request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict] = None,
        json_data: Optional[Dict] = None,
        data: Optional[bytes] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> Any:
        """
        Make an HTTP request to the Netlify API with error handling.

        Args:
            method: HTTP method (GET, POST, PUT, PATCH, DELETE)
            endpoint: API endpoint (e.g., '/sites/{site_id}')
            params: Query parameters
            json_data: JSON body for POST/PATCH requests
            data: Raw body (file uploads)
            headers: Extra headers for this request

        Returns:
            Decoded JSON response (dict or list), {} for empty bodies

        Raises:
            RemoteCallError subclasses or NotFoundError based on error type
        """
        url = f"{self.base_url}{endpoint}"

        logger.debug(f"{method} {url}")
        if params:
            logger.debug(f"Params: {params}")

        try:
            response = self.session.request(
                method=method,
                url=url,
                params=params,
                json=json_data,
                data=data,
                headers=headers,
                timeout=self.timeout
            )
        except requests.exceptions.Timeout:
            raise NetworkError(f"Request timed out after {self.timeout:g} seconds")

        except requests.exceptions.ConnectionError as e:
            raise NetworkError(f"Connection error: {str(e)}")

        except requests.exceptions.RequestException as e:
            raise NetworkError(f"Network error: {str(e)}")

        status = response.status_code

        if status in (200, 201, 202):
            return response.json() if response.content else {}

        if status == 204:
            return {}

        error_data = self._parse_error_response(response)
        message = error_data.get("message") or error_data.get("error") or ""

        if status in (400, 422):
            raise BadRequestError(
                message or "Bad request",
                status_code=status,
                response_data=error_data
            )

        if status == 401:
            raise AuthenticationError(
                "Authentication failed. Check your Netlify access token.",
                status_code=401
            )

        if status == 403:
            raise AuthenticationError(
                message or "Access forbidden",
                status_code=403,
                response_data=error_data
            )

        if status == 404:
            raise NotFoundError(
                message or "Resource not found",
                status_code=404,
                response_data=error_data
            )

        if status == 429:
            raise RateLimitError(
                "API rate limit exceeded. Please wait before retrying.",
                status_code=429
            )

        if 500 <= status < 600:
            raise ServerError(
                f"Netlify server error: {message or 'Internal server error'}",
                status_code=status,
                response_data=error_data
            )

        raise RemoteCallError(
            f"Unexpected error: {message or 'Unknown error'}",
            status_code=status,
            response_data=error_data
        )

    def _parse_error_response(self, response: requests.Response) -> Dict[str, Any]:
        """
        Parse error response from the Netlify API.

        Args:
            response: Response object

        Returns:
            Error data dictionary
        """
        try:
            error_data = response.json()
            if isinstance(error_data, dict):
                return error_data
            return {"message": str(error_data), "code": response.status_code}
        except ValueError:
            return {
                "message": response.text or "Unknown error",
                "code": response.status_code
            }

    # ------------------------------------------------------------------ #
    #  Account                                                             #
    # ------------------------------------------------------------------ #

    def get_current_user(self) -> Dict[str, Any]:
        """
        Get the account that owns the configured token.

        Returns:
            User dictionary (id, email, full_name, ...)
        """
        return self._make_request("GET", "/user")

    # ------------------------------------------------------------------ #
    #  Sites                                                               #
    # ------------------------------------------------------------------ #

    def get_site(self, site_id: str) -> Site:
        """
        Get a site by id.

        Args:
            site_id: Netlify site id

        Returns:
            Site

        Raises:
            NotFoundError: If Netlify has no such site
        """
        logger.info(f"Getting site: {site_id}")

        response = self._make_request("GET", f"/sites/{quote(site_id, safe='')}")

        if not response:
            raise NotFoundError(f"Site {site_id} not found", status_code=404)

        return Site.model_validate(response)

    def list_sites(self, per_page: int = 100) -> List[Site]:
        """
        Get every site owned by the account (all pages).

        Args:
            per_page: Page size requested from the API

        Returns:
            List of sites
        """
        logger.info("Listing sites")

        sites: List[Site] = []
        page = 1

        while True:
            response = self._make_request(
                "GET",
                "/sites",
                params={"filter": "all", "page": page, "per_page": per_page}
            )

            if not isinstance(response, list) or not response:
                break

            sites.extend(Site.model_validate(item) for item in response)

            if len(response) < per_page:
                break
            page += 1

        logger.info(f"Found {len(sites)} sites")
        return sites

    def create_site(self, name: str) -> Site:
        """
        Create a new site.

        Args:
            name: Site name (also the default <name>.netlify.app subdomain)

        Returns:
            Created site
        """
        logger.info(f"Creating site: {name}")

        response = self._make_request("POST", "/sites", json_data={"name": name})
        site = Site.model_validate(response)

        logger.info(f"✅ Site created: {site.name} (ID: {site.id})")
        return site

    def update_site(
        self,
        site_id: str,
        name: Optional[str] = None,
        primary_domain: Optional[str] = None,
        alias_domains: Optional[List[str]] = None,
        record_txt_value: Optional[str] = None
    ) -> Site:
        """
        Update a site. Only the arguments that are not None are sent.

        For domain changes callers pass name, primary_domain and alias_domains
        together so the request replaces the full domain state.

        Args:
            site_id: Netlify site id
            name: New site name
            primary_domain: Primary custom domain ("" clears it)
            alias_domains: Complete alias list
            record_txt_value: TXT verification token for a new primary domain

        Returns:
            Site as returned by Netlify
        """
        payload: Dict[str, Any] = {}
        if name is not None:
            payload["name"] = name
        if primary_domain is not None:
            payload["custom_domain"] = primary_domain or None
        if alias_domains is not None:
            payload["domain_aliases"] = list(alias_domains)
        if record_txt_value is not None:
            payload["record_txt_value"] = record_txt_value

        logger.info(f"Updating site {site_id}: {sorted(payload)}")
        logger.debug(f"Payload: {payload}")

        response = self._make_request(
            "PATCH",
            f"/sites/{quote(site_id, safe='')}",
            json_data=payload
        )

        return Site.model_validate(response)

    def delete_site(self, site_id: str) -> None:
        """
        Delete a site.

        Args:
            site_id: Netlify site id
        """
        logger.warning(f"Deleting site: {site_id}")
        self._make_request("DELETE", f"/sites/{quote(site_id, safe='')}")

    # ------------------------------------------------------------------ #
    #  Deploys                                                             #
    # ------------------------------------------------------------------ #

    def deploy_files(
        self,
        site_id: str,
        files: Dict[str, bytes],
        title: Optional[str] = None
    ) -> Deploy:
        """
        Deploy an in-memory file map using Netlify's file digest method.

        A deploy is created with the SHA1 of every file, then only the files
        Netlify reports as required are uploaded.

        Args:
            site_id: Netlify site id
            files: Mapping of relative path -> file bytes
            title: Optional deploy title

        Returns:
            Deploy as returned when it was created
        """
        digests = {
            path: hashlib.sha1(content).hexdigest()
            for path, content in files.items()
        }

        payload: Dict[str, Any] = {
            "files": {f"/{path}": sha for path, sha in digests.items()},
            "draft": False
        }
        if title:
            payload["title"] = title

        logger.info(f"Creating deploy for site {site_id} ({len(files)} files)")

        response = self._make_request(
            "POST",
            f"/sites/{quote(site_id, safe='')}/deploys",
            json_data=payload
        )
        deploy = Deploy.model_validate(response)

        required = set(deploy.required)
        uploaded = 0
        for path, content in files.items():
            if digests[path] in required:
                self.upload_deploy_file(deploy.id, path, content)
                uploaded += 1

        logger.info(f"Deploy {deploy.id} created - {uploaded} file(s) uploaded, state: {deploy.state}")
        return deploy

    def deploy_directory(
        self,
        site_id: str,
        directory: Union[str, Path],
        title: Optional[str] = None
    ) -> Deploy:
        """
        Deploy every file under a local directory.

        Args:
            site_id: Netlify site id
            directory: Root of the tree to publish
            title: Optional deploy title

        Returns:
            Deploy as returned when it was created
        """
        root = Path(directory)
        files: Dict[str, bytes] = {}

        for path in sorted(root.rglob("*")):
            relative = path.relative_to(root)
            if any(part in IGNORED_NAMES for part in relative.parts):
                continue
            if path.is_file():
                files[relative.as_posix()] = path.read_bytes()

        logger.info(f"Collected {len(files)} files from {root}")
        return self.deploy_files(site_id, files, title=title)

    def upload_deploy_file(self, deploy_id: str, path: str, content: bytes) -> None:
        """
        Upload one file required by a digest deploy.

        Args:
            deploy_id: Deploy id
            path: Relative file path inside the deploy
            content: File bytes
        """
        logger.debug(f"Uploading {path} to deploy {deploy_id}")

        self._make_request(
            "PUT",
            f"/deploys/{quote(deploy_id, safe='')}/files/{quote(path)}",
            data=content,
            headers={"Content-Type": "application/octet-stream"}
        )

    def get_deploy(self, deploy_id: str) -> Deploy:
        """
        Get a deploy by id.

        Args:
            deploy_id: Deploy id

        Returns:
            Deploy
        """
        response = self._make_request("GET", f"/deploys/{quote(deploy_id, safe='')}")

        if not response:
            raise NotFoundError(f"Deploy {deploy_id} not found", status_code=404)

        return Deploy.model_validate(response)
