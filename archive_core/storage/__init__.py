"""
Storage Module
==============

Object storage access and collection publishing.
"""

from .s3_utils import S3ConnectionError, S3Storage, S3StorageConfig, create_s3_storage_from_config
from .publisher import ContentPublisher, Environment, PublishingError

__all__ = [
    'S3ConnectionError',
    'S3Storage',
    'S3StorageConfig',
    'create_s3_storage_from_config',
    'ContentPublisher',
    'Environment',
    'PublishingError',
]
