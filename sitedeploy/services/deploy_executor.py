"""
Deploy Executor
Submits content to a site as a Netlify deploy and waits for it to finish
"""

import tempfile
import threading
import time
from pathlib import Path
from typing import Dict, Optional, Union

from tenacity import (
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_before_delay,
    stop_never,
    wait_fixed
)

from sitedeploy.api.netlify_client import NetlifyClient
from sitedeploy.api.models import Deploy, Site
from sitedeploy.api.exceptions import (
    DeployFailedError,
    DeployTimeoutError,
    NotFoundError,
    OperationCancelledError
)
from sitedeploy.utils.logger import get_logger
from sitedeploy.utils.validators import ValidationError, validate_relative_path

logger = get_logger(__name__)


class _DeployPending(Exception):
    """Internal signal: the deploy has not reached a terminal state yet"""

    def __init__(self, deploy: Deploy):
        self.deploy = deploy
        super().__init__(f"Deploy {deploy.id} is {deploy.state or 'pending'}")


class DeployExecutor:
    """
    Uploads content to a site and optionally blocks until the deploy is
    ready or has failed.
    """

    def __init__(self, client: NetlifyClient, poll_interval: Optional[float] = None):
        """
        Initialize the executor.

        Args:
            client: Shared Netlify client
            poll_interval: Seconds between status checks (defaults to DEPLOY_POLL_INTERVAL)
        """
        self.client = client
        self.poll_interval = (
            poll_interval if poll_interval is not None
            else client.config.deploy_poll_interval
        )
        self.sleep = time.sleep

    # ------------------------------------------------------------------ #
    #  Submission                                                          #
    # ------------------------------------------------------------------ #

    def submit_content(
        self,
        site: Site,
        files: Dict[str, Union[str, bytes]],
        title: Optional[str] = None
    ) -> Deploy:
        """
        Deploy an in-memory file map.

        The files are written to a temporary directory which is submitted and
        removed afterwards.

        Args:
            site: Target site
            files: Mapping of relative path -> text or bytes
            title: Optional deploy title

        Returns:
            Deploy as returned by Netlify on submission

        Raises:
            ValidationError: If the map is empty or a path escapes the tree
        """
        if not files:
            raise ValidationError("At least one file is required for a deploy")

        normalized = {validate_relative_path(path): content for path, content in files.items()}

        with tempfile.TemporaryDirectory(prefix="sitedeploy-") as tmp_dir:
            root = Path(tmp_dir)
            for relative, content in normalized.items():
                target = root / relative
                target.parent.mkdir(parents=True, exist_ok=True)
                if isinstance(content, str):
                    target.write_text(content, encoding="utf-8")
                else:
                    target.write_bytes(content)

            logger.info(f"Materialized {len(normalized)} file(s) for {site.name}")
            return self.client.deploy_directory(site.id, root, title=title)

    def submit_directory(
        self,
        site: Site,
        path: Union[str, Path],
        title: Optional[str] = None
    ) -> Deploy:
        """
        Deploy an existing local directory tree.

        Args:
            site: Target site
            path: Directory to publish
            title: Optional deploy title

        Returns:
            Deploy as returned by Netlify on submission

        Raises:
            NotFoundError: If the directory does not exist
        """
        directory = Path(path)

        if not directory.exists():
            raise NotFoundError(f"Folder not found: {directory}")
        if not directory.is_dir():
            raise NotFoundError(f"Path is not a directory: {directory}")

        logger.info(f"Deploying folder {directory} to {site.name}")
        return self.client.deploy_directory(site.id, directory, title=title)

    # ------------------------------------------------------------------ #
    #  Waiting                                                             #
    # ------------------------------------------------------------------ #

    def await_completion(
        self,
        deploy_id: str,
        poll_interval: Optional[float] = None,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> Deploy:
        """
        Poll a deploy until it is ready or has failed.

        Only the "not finished yet" outcome is retried; transport errors from
        a poll surface immediately.

        Args:
            deploy_id: Deploy to watch
            poll_interval: Seconds between polls (defaults to the executor's interval)
            timeout: Max seconds to wait, None for no limit
            cancel_event: Setting this event aborts the wait

        Returns:
            The ready Deploy

        Raises:
            DeployFailedError: If the deploy reaches the 'error' state
            DeployTimeoutError: If the timeout elapses first
            OperationCancelledError: If cancel_event is set
        """
        interval = self.poll_interval if poll_interval is None else poll_interval

        logger.info(f"Waiting for deploy {deploy_id} (poll every {interval:g}s)")

        retryer = Retrying(
            retry=retry_if_exception_type(_DeployPending),
            wait=wait_fixed(interval),
            stop=stop_before_delay(timeout) if timeout is not None else stop_never,
            sleep=lambda seconds: self._pause(seconds, deploy_id, cancel_event)
        )

        try:
            return retryer(self._poll, deploy_id, cancel_event)
        except RetryError as e:
            last = e.last_attempt.exception()
            state = last.deploy.state if isinstance(last, _DeployPending) else "unknown"
            raise DeployTimeoutError(
                f"Deploy {deploy_id} not finished after {timeout:g}s (last state: {state or 'pending'})"
            ) from e

    def _poll(self, deploy_id: str, cancel_event: Optional[threading.Event]) -> Deploy:
        if cancel_event is not None and cancel_event.is_set():
            raise OperationCancelledError(f"Wait for deploy {deploy_id} cancelled")

        deploy = self.client.get_deploy(deploy_id)

        if deploy.is_ready:
            logger.info(f"✅ Deploy {deploy_id} is ready: {deploy.public_url}")
            return deploy

        if deploy.is_error:
            logger.error(f"❌ Deploy {deploy_id} failed: {deploy.error_message}")
            raise DeployFailedError(deploy.error_message, deploy_id=deploy_id)

        logger.debug(f"Deploy {deploy_id} state: {deploy.state or 'pending'}")
        raise _DeployPending(deploy)

    def _pause(self, seconds: float, deploy_id: str, cancel_event: Optional[threading.Event]) -> None:
        if cancel_event is None:
            self.sleep(seconds)
            return

        if cancel_event.wait(seconds):
            raise OperationCancelledError(f"Wait for deploy {deploy_id} cancelled")
