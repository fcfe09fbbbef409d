"""
S3 utilities for publishing archive content to S3-compatible storage.
"""
from typing import Optional, Dict
import os
import json
import time
import boto3
from botocore.client import Config
from botocore.exceptions import ClientError, ConnectionError, EndpointConnectionError

from archive_core.utils.logger import setup_worker_logger

logger = setup_worker_logger('s3_utils')


class S3ConnectionError(Exception):
    """Custom exception for S3 connection issues"""
    pass


class S3StorageConfig:
    """Configuration for S3 storage"""
    def __init__(
        self,
        endpoint_url: str = None,
        access_key: str = None,
        secret_key: str = None,
        bucket_name: str = None,
        region_name: str = None,
        use_ssl: bool = True
    ):
        """Initialize S3 storage configuration"""
        self.endpoint_url = endpoint_url or os.environ.get('S3_ENDPOINT') or None
        self.access_key = access_key or os.environ.get('S3_ACCESS_KEY')
        self.secret_key = secret_key or os.environ.get('S3_SECRET_KEY')
        self.bucket_name = bucket_name or os.environ.get('S3_BUCKET')
        self.region_name = region_name or os.environ.get('S3_REGION') or None
        self.use_ssl = use_ssl

        if not all([self.access_key, self.secret_key, self.bucket_name]):
            raise ValueError("Missing required S3 configuration")

    @classmethod
    def from_dict(cls, config_dict: Dict) -> 'S3StorageConfig':
        """Create S3StorageConfig instance from dictionary

        Args:
            config_dict: Dictionary containing S3 configuration

        Returns:
            S3StorageConfig instance
        """
        return cls(
            endpoint_url=config_dict.get('endpoint_url'),
            access_key=config_dict.get('access_key'),
            secret_key=config_dict.get('secret_key'),
            bucket_name=config_dict.get('bucket_name'),
            region_name=config_dict.get('region_name'),
            use_ssl=config_dict.get('use_ssl', True)
        )


class S3Storage:
    """Handles interactions with S3-compatible storage"""

    max_retries = 2

    def __init__(self, config: S3StorageConfig, client=None):
        """Initialize S3 storage with configuration"""
        self.config = config
        self.logger = logger
        self._client = client or self._create_client()

    def _create_client(self):
        endpoint = self.config.endpoint_url
        self.logger.info(f"Initializing S3 client for bucket {self.config.bucket_name} at {endpoint or 'AWS'}")

        config = Config(
            signature_version='s3v4',
            connect_timeout=5,
            read_timeout=60,
            retries={'max_attempts': 1}  # Retries are handled here
        )
        try:
            return boto3.client(
                's3',
                endpoint_url=endpoint,
                aws_access_key_id=self.config.access_key,
                aws_secret_access_key=self.config.secret_key,
                region_name=self.config.region_name,
                use_ssl=self.config.use_ssl,
                config=config
            )
        except Exception as e:
            raise S3ConnectionError(f"Could not create S3 client for {endpoint}: {str(e)}") from e

    def _with_retries(self, description: str, operation) -> bool:
        for attempt in range(self.max_retries):
            try:
                operation()
                return True
            except (ConnectionError, EndpointConnectionError) as e:
                self.logger.warning(f"Connection error on {description} attempt {attempt + 1}: {str(e)}")
            except ClientError as e:
                # Rejected by the service, not retried
                self.logger.error(f"Failed to {description}: {e.response['Error'].get('Code')} {str(e)}")
                return False
            except Exception as e:
                self.logger.warning(f"{description} attempt {attempt + 1} failed: {str(e)}")
            if attempt < self.max_retries - 1:
                time.sleep(1)
        self.logger.error(f"Failed to {description} after {self.max_retries} attempts")
        return False

    def upload_file(self, local_path: str, s3_key: str, content_type: Optional[str] = None) -> bool:
        """Upload a file"""
        if not os.path.exists(local_path):
            self.logger.error(f"Local file does not exist: {local_path}")
            return False

        self.logger.info(f"Uploading {local_path} ({os.path.getsize(local_path)} bytes) to {s3_key}")
        extra_args = {'ContentType': content_type} if content_type else None
        return self._with_retries(
            f"upload {s3_key}",
            lambda: self._client.upload_file(local_path, self.config.bucket_name, s3_key, ExtraArgs=extra_args)
        )

    def upload_bytes(self, s3_key: str, data: bytes, content_type: str = 'application/octet-stream') -> bool:
        """Upload in-memory bytes"""
        return self._with_retries(
            f"upload {s3_key}",
            lambda: self._client.put_object(
                Bucket=self.config.bucket_name, Key=s3_key, Body=data, ContentType=content_type
            )
        )

    def upload_json(self, s3_key: str, data: Dict) -> bool:
        """Upload JSON data directly to S3.

        Args:
            s3_key: S3 key to upload to
            data: Dictionary to upload as JSON

        Returns:
            True if successful, False otherwise
        """
        body = json.dumps(data, indent=2, default=str).encode('utf-8')
        return self.upload_bytes(s3_key, body, content_type='application/json')


def create_s3_storage_from_config(config_dict: Dict) -> S3Storage:
    """Create a fresh S3Storage instance from configuration dictionary.

    Args:
        config_dict: Dictionary containing S3 configuration

    Returns:
        Fresh S3Storage instance
    """
    s3_config = S3StorageConfig.from_dict(config_dict)
    return S3Storage(s3_config)
