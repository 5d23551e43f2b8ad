"""S3-compatible bucket destination: metadata probes and file upload."""

import os
from pathlib import Path
from typing import Optional, Tuple, Union

from boto3.exceptions import S3UploadFailedError
from boto3.s3.transfer import TransferConfig
from botocore.exceptions import BotoCoreError, ClientError
from s3transfer.utils import ChunksizeAdjuster

from ..config.settings import DEFAULT_PART_SIZE
from ..errors import RemoteProtocolError, UploadError, UploadFailureKind
from ..utils.file_utils import FileHelper
from .base import BucketAccess, ObjectStore, RemoteObjectState

FORBIDDEN_STATUS_CODES = (401, 403)
FORBIDDEN_ERROR_CODES = ('AccessDenied', 'Forbidden', 'Unauthorized', '401', '403')
NOT_FOUND_ERROR_CODES = ('404', 'NoSuchKey', 'NotFound')

CONTENT_TYPE = 'application/octet-stream'


def _error_details(error: ClientError) -> Tuple[Optional[int], str, str]:
    """Extract HTTP status, error code and message from a botocore ClientError."""
    status_code = error.response.get('ResponseMetadata', {}).get('HTTPStatusCode')
    error_info = error.response.get('Error', {})
    return status_code, str(error_info.get('Code', '')), error_info.get('Message') or str(error)


class S3Destination(ObjectStore):
    """Object store backed by a boto3 S3 client."""

    def __init__(self, s3_client, part_size: int = DEFAULT_PART_SIZE):
        """Initialize S3 destination.

        Args:
            s3_client: boto3 S3 client (see ``S3Auth.get_s3_client``)
            part_size: Multipart part size; uploads larger than this are split
                into parts of exactly this size so the stored ETag matches
                the locally computed one
        """
        super().__init__()
        self.s3_client = s3_client
        self.part_size = part_size
        # A file of exactly part_size bytes must go up as a single PUT
        self.transfer_config = TransferConfig(
            multipart_threshold=part_size + 1,
            multipart_chunksize=part_size
        )

    def check_bucket_access(self, bucket: str) -> BucketAccess:
        """Probe the bucket with HEAD.

        Args:
            bucket: Bucket name

        Returns:
            ACCESSIBLE on 200, FORBIDDEN on 401/403

        Raises:
            RemoteProtocolError: For 404, network failures, wrong region, etc.
        """
        try:
            self.s3_client.head_bucket(Bucket=bucket)
            self.logger.debug(f"Bucket accessible: s3://{bucket}")
            return BucketAccess.ACCESSIBLE

        except ClientError as e:
            status_code, error_code, message = _error_details(e)
            if status_code in FORBIDDEN_STATUS_CODES or error_code in FORBIDDEN_ERROR_CODES:
                self.logger.warning(f"Access denied to bucket s3://{bucket} (HTTP {status_code})")
                return BucketAccess.FORBIDDEN
            raise RemoteProtocolError(
                'HeadBucket', bucket, f"{error_code}: {message}",
                status_code=status_code, error_code=error_code
            ) from e

        except BotoCoreError as e:
            raise RemoteProtocolError('HeadBucket', bucket, str(e)) from e

    def get_remote_state(self, bucket: str, key: str) -> RemoteObjectState:
        """Probe an object with HEAD.

        Args:
            bucket: Bucket name
            key: Object key

        Returns:
            NOT_FOUND on 404, FOUND with the unquoted ETag on 200

        Raises:
            RemoteProtocolError: For any other response or failure
        """
        try:
            response = self.s3_client.head_object(Bucket=bucket, Key=key)

        except ClientError as e:
            status_code, error_code, message = _error_details(e)
            if status_code == 404 or error_code in NOT_FOUND_ERROR_CODES:
                return RemoteObjectState.not_found()
            raise RemoteProtocolError(
                'HeadObject', bucket, f"{error_code}: {message}", key=key,
                status_code=status_code, error_code=error_code
            ) from e

        except BotoCoreError as e:
            raise RemoteProtocolError('HeadObject', bucket, str(e), key=key) from e

        return RemoteObjectState.found(response.get('ETag'))

    def upload_file(self, bucket: str, key: str, local_path: Union[str, Path]) -> None:
        """Stream a local file to the bucket.

        The file is read in part-sized pieces by boto3's transfer manager, never
        loaded into memory whole.

        Args:
            bucket: Bucket name
            key: Object key
            local_path: File to upload

        Raises:
            UploadError: LOCAL if the file cannot be opened or read, REMOTE if the store rejects it
        """
        local_path = Path(local_path)

        try:
            f = open(local_path, 'rb')
        except OSError as e:
            raise UploadError(UploadFailureKind.LOCAL, bucket, key, local_path,
                              e.strerror or str(e)) from e

        with f:
            size = os.fstat(f.fileno()).st_size
            self.logger.debug(
                f"PUT s3://{bucket}/{key} ({FileHelper.format_file_size(size)})"
            )
            self._warn_if_rechunked(key, size)
            try:
                self.s3_client.upload_fileobj(
                    Fileobj=f,
                    Bucket=bucket,
                    Key=key,
                    ExtraArgs={'ContentType': CONTENT_TYPE},
                    Config=self.transfer_config
                )
            except OSError as e:
                raise UploadError(UploadFailureKind.LOCAL, bucket, key, local_path,
                                  e.strerror or str(e)) from e
            except (ClientError, BotoCoreError, S3UploadFailedError) as e:
                raise UploadError(UploadFailureKind.REMOTE, bucket, key, local_path, str(e)) from e

    def _warn_if_rechunked(self, key: str, size: int) -> None:
        """Log when the transfer manager will not split the upload at part_size.

        Parts below 5MB and uploads over 10,000 parts are re-chunked, so the
        stored ETag will never match the local one and the file is uploaded
        again on every run.
        """
        if size <= self.part_size:
            return
        chunksize = ChunksizeAdjuster().adjust_chunksize(self.part_size, size)
        if chunksize != self.part_size:
            self.logger.warning(
                f"{key} will be uploaded in {FileHelper.format_file_size(chunksize)} parts instead of "
                f"{FileHelper.format_file_size(self.part_size)}; its ETag will not match on later runs"
            )
