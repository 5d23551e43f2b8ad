"""S3 client authentication handling."""

import logging
from typing import Optional

import boto3
from botocore.config import Config

from ..config.settings import DEFAULT_REGION, CredentialsConfig, PrefixloadConfig

logger = logging.getLogger(__name__)


class S3Auth:
    """Handle S3 authentication and client creation.

    Works with AWS and with any S3-compatible service: ``endpoint_url`` points
    the client at the service and ``force_path_style`` switches to
    ``https://endpoint/bucket/key`` addressing, which MinIO, Ceph RGW, Wasabi
    and others require.
    """

    def __init__(
        self,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        session_token: Optional[str] = None,
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        force_path_style: bool = False
    ):
        """Initialize S3 authentication.

        Args:
            access_key_id: Access key ID
            secret_access_key: Secret access key
            session_token: Session token (for temporary credentials)
            region: Region name (default: us-east-1)
            endpoint_url: Endpoint of an S3-compatible service (default: AWS for the region)
            force_path_style: Use path-style instead of virtual-hosted-style URLs
        """
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self.session_token = session_token
        self.region = region or DEFAULT_REGION
        self.endpoint_url = endpoint_url or None
        self.force_path_style = force_path_style
        self._s3_client = None

    def _client_config(self) -> Config:
        addressing_style = 'path' if self.force_path_style else 'auto'
        return Config(s3={'addressing_style': addressing_style})

    def get_s3_client(self):
        """Get authenticated S3 client.

        Returns:
            boto3 S3 client
        """
        if self._s3_client is None:
            kwargs = {
                'region_name': self.region,
                'endpoint_url': self.endpoint_url,
                'config': self._client_config(),
            }
            # Use provided credentials or fall back to default credential chain
            if self.access_key_id and self.secret_access_key:
                kwargs.update(
                    aws_access_key_id=self.access_key_id,
                    aws_secret_access_key=self.secret_access_key,
                    aws_session_token=self.session_token
                )
            else:
                logger.debug("No explicit S3 credentials, using the default credential chain")

            self._s3_client = boto3.client('s3', **kwargs)

        return self._s3_client

    @classmethod
    def from_config(cls, config: PrefixloadConfig, credentials: CredentialsConfig) -> "S3Auth":
        """Create S3 auth from the application configuration.

        Args:
            config: Main configuration (endpoint, region, addressing style)
            credentials: Credentials loaded from file and/or environment

        Returns:
            S3Auth instance
        """
        return cls(
            access_key_id=credentials.access_key,
            secret_access_key=credentials.secret_key,
            session_token=credentials.session_token,
            region=config.region,
            endpoint_url=config.endpoint,
            force_path_style=config.force_path_style
        )
