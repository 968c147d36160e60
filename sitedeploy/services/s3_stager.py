"""
S3 Stager
Downloads a tree of objects from S3 (or an S3-compatible store such as MinIO)
into a local directory that can then be deployed as-is
"""

from pathlib import Path
from typing import List, Optional, Union

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from sitedeploy.api.exceptions import RemoteCallError
from sitedeploy.utils.config import Settings
from sitedeploy.utils.logger import get_logger
from sitedeploy.utils.validators import ValidationError, validate_relative_path

logger = get_logger(__name__)

# Signing region used when talking to a custom endpoint
CUSTOM_ENDPOINT_REGION = "us-east-1"


class StorageError(RemoteCallError):
    """Raised when the object store cannot be listed or read"""
    pass


class S3Stager:
    """
    Read-only access to the staging bucket.
    """

    def __init__(self, config: Settings, s3_client=None):
        """
        Initialize the stager.

        Args:
            config: Settings object
            s3_client: Optional preconfigured boto3 S3 client
        """
        self.config = config
        self.bucket_name = config.s3_bucket_name
        self.s3_client = s3_client or self._build_client()

        logger.info(f"S3 stager ready - bucket: {self.bucket_name}")

    def _build_client(self):
        if self.config.uses_custom_s3_endpoint():
            logger.info(f"Using custom S3 endpoint: {self.config.s3_endpoint}")
            return boto3.client(
                "s3",
                endpoint_url=self.config.s3_endpoint,
                aws_access_key_id=self.config.aws_access_key_id,
                aws_secret_access_key=self.config.aws_secret_access_key,
                region_name=self.config.aws_region or CUSTOM_ENDPOINT_REGION,
                config=BotoConfig(s3={"addressing_style": "path"})
            )

        return boto3.client(
            "s3",
            aws_access_key_id=self.config.aws_access_key_id,
            aws_secret_access_key=self.config.aws_secret_access_key,
            region_name=self.config.aws_region
        )

    @staticmethod
    def normalize_prefix(prefix: Optional[str]) -> str:
        """Strip leading slashes and make sure a non-empty prefix ends with '/'"""
        prefix = (prefix or "").strip().lstrip("/")
        if prefix and not prefix.endswith("/"):
            prefix += "/"
        return prefix

    def list_objects(self, prefix: Optional[str] = None) -> List[str]:
        """
        List every object key under a prefix (all pages).

        Args:
            prefix: Key prefix, e.g. "accounts/acme/landing"

        Returns:
            Object keys, "directory" placeholder keys excluded
        """
        prefix = self.normalize_prefix(prefix)
        keys: List[str] = []

        try:
            paginator = self.s3_client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket_name, Prefix=prefix):
                for obj in page.get("Contents", []):
                    key = obj["Key"]
                    if key.endswith("/"):
                        continue
                    keys.append(key)

        except (ClientError, BotoCoreError) as e:
            logger.error(f"❌ Failed to list s3://{self.bucket_name}/{prefix}: {str(e)}")
            raise StorageError(f"Failed to list objects under '{prefix}': {str(e)}") from e

        logger.debug(f"Found {len(keys)} objects under s3://{self.bucket_name}/{prefix}")
        return keys

    def fetch_object(self, key: str, local_path: Union[str, Path]) -> Path:
        """
        Download one object to a local file, creating parent directories.

        Args:
            key: Object key
            local_path: Destination file

        Returns:
            Path of the written file
        """
        local_path = Path(local_path)
        local_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            self.s3_client.download_file(self.bucket_name, key, str(local_path))
        except (ClientError, BotoCoreError) as e:
            logger.error(f"❌ Failed to download {key}: {str(e)}")
            raise StorageError(f"Failed to download '{key}': {str(e)}") from e

        logger.debug(f"Downloaded: {key}")
        return local_path

    def download_prefix(self, prefix: Optional[str], local_dir: Union[str, Path]) -> int:
        """
        Mirror every object under a prefix into local_dir.

        The prefix is stripped from each key, so "site/css/a.css" under the
        prefix "site" lands at "<local_dir>/css/a.css".

        Args:
            prefix: Key prefix
            local_dir: Staging directory (created if missing)

        Returns:
            Number of files downloaded
        """
        prefix = self.normalize_prefix(prefix)
        local_dir = Path(local_dir)
        local_dir.mkdir(parents=True, exist_ok=True)

        logger.info(f"Downloading s3://{self.bucket_name}/{prefix} to {local_dir}")

        count = 0
        for key in self.list_objects(prefix):
            relative = key[len(prefix):] if prefix else key
            try:
                relative = validate_relative_path(relative)
            except ValidationError:
                logger.warning(f"Skipping object with unsafe key: {key}")
                continue

            self.fetch_object(key, local_dir / relative)
            count += 1

        logger.info(f"✅ Downloaded {count} files to {local_dir}")
        return count
