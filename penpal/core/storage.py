import os
import logging
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .config import settings

logger = logging.getLogger(__name__)

class R2Storage:
    """Blob store backed by Cloudflare R2, with a local directory fallback.

    Clients upload blobs out of band and hand the API a storage key. The API
    only resolves keys to public URLs and deletes blobs whose owning rows are
    removed.
    """

    def __init__(self):
        self.client = None
        self.bucket = settings.R2_BUCKET_NAME
        self.public_url = settings.R2_PUBLIC_URL
        self.base_url = settings.BASE_URL
        self.local_root = settings.UPLOAD_DIRECTORY

        if all([settings.R2_ENDPOINT, settings.R2_ACCESS_KEY_ID, settings.R2_SECRET_ACCESS_KEY]):
            self.client = boto3.client(
                "s3",
                endpoint_url=settings.R2_ENDPOINT,
                aws_access_key_id=settings.R2_ACCESS_KEY_ID,
                aws_secret_access_key=settings.R2_SECRET_ACCESS_KEY,
            )
            logger.info(f"R2Storage S3 client initialized for bucket '{self.bucket}'")
        else:
            missing = []
            if not settings.R2_ENDPOINT:
                missing.append("R2_ENDPOINT")
            if not settings.R2_ACCESS_KEY_ID:
                missing.append("R2_ACCESS_KEY_ID")
            if not settings.R2_SECRET_ACCESS_KEY:
                missing.append("R2_SECRET_ACCESS_KEY")
            logger.warning(f"R2 storage not configured, using local directory '{self.local_root}' - missing: {', '.join(missing)}")

    def get_url(self, key: Optional[str]) -> Optional[str]:
        """Resolve a storage key to a URL clients can fetch."""
        if not key:
            return None
        if self.client and self.public_url:
            return f"{self.public_url}/{key}"
        return f"{self.base_url}{settings.API_V1_STR}/static/{key}"

    def delete_object(self, key: Optional[str]) -> bool:
        """Delete a blob. Missing keys are not an error."""
        if not key:
            return False

        if not self.client:
            local_path = os.path.join(self.local_root, key)
            if os.path.exists(local_path):
                os.remove(local_path)
                logger.info(f"Deleted local blob {local_path}")
                return True
            return False

        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
            logger.info(f"Deleted blob '{key}' from bucket '{self.bucket}'")
            return True
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Failed to delete blob '{key}' from R2: {e}")
            return False

# Global instance for app-wide usage
blob_storage = R2Storage()
