"""
Audit Document Blob Store

S3 upload for rendered audit documents.
LocalStack is supported through LOCALSTACK_ENDPOINT (path-style URLs).
"""
import os
from typing import Optional

import boto3
from botocore.config import Config


# Configuration
AWS_REGION = os.getenv("AWS_REGION", "us-east-1")
AWS_S3_BUCKET = os.getenv("AWS_S3_BUCKET", "dona-tutti-files")
LOCALSTACK_ENDPOINT = os.getenv("LOCALSTACK_ENDPOINT", "")


def audit_document_key(campaign_id: str, timestamp: int, extension: str) -> str:
    """Blob key for an audit document: audits/{campaign}/audit-report-{unix_ts}.{ext}"""
    return f"audits/{campaign_id}/audit-report-{timestamp}.{extension}"


class S3BlobStore:
    """
    Thin wrapper over boto3 put_object.

    Usage:
        store = S3BlobStore()
        url = store.upload(content, key, content_type="text/plain")
    """

    def __init__(
        self,
        bucket_name: str = AWS_S3_BUCKET,
        region: str = AWS_REGION,
        endpoint: Optional[str] = None,
        client=None,
    ):
        self.bucket_name = bucket_name
        self.region = region
        self.endpoint = (endpoint if endpoint is not None else LOCALSTACK_ENDPOINT).rstrip("/")
        self._client = client

    @property
    def client(self):
        """Lazily built so importing the module never touches AWS credentials."""
        if self._client is None:
            if self.endpoint:
                self._client = boto3.client(
                    "s3",
                    region_name=self.region,
                    endpoint_url=self.endpoint,
                    config=Config(s3={"addressing_style": "path"}),
                )
            else:
                self._client = boto3.client("s3", region_name=self.region)
        return self._client

    def upload(self, content: bytes, key: str, content_type: str = "application/octet-stream") -> str:
        """
        Upload bytes and return the public URL.

        Raises:
            botocore.exceptions.BotoCoreError / ClientError on failure
        """
        self.client.put_object(
            Bucket=self.bucket_name,
            Key=key,
            Body=content,
            ContentType=content_type,
        )
        return self.public_url(key)

    def public_url(self, key: str) -> str:
        if self.endpoint:
            return f"{self.endpoint}/{self.bucket_name}/{key}"
        return f"https://{self.bucket_name}.s3.amazonaws.com/{key}"
