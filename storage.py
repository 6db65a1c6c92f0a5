# storage.py
"""
Archive of exported report files in Cloudflare R2 (S3 API).

Settings come from the environment at call time so a missing bucket only
breaks the archive feature, not the app.
"""
import logging
import os
import uuid
from dataclasses import dataclass

import boto3
from botocore.client import Config

log = logging.getLogger(__name__)

REQUIRED_ENV = ("R2_ACCOUNT_ID", "R2_ACCESS_KEY_ID", "R2_SECRET_ACCESS_KEY", "R2_BUCKET")


@dataclass(frozen=True)
class R2Settings:
    account_id: str
    access_key_id: str
    secret_access_key: str
    bucket: str
    region: str = "auto"

    @property
    def endpoint(self) -> str:
        return f"https://{self.account_id}.r2.cloudflarestorage.com"


def load_settings() -> R2Settings:
    values = {k: (os.getenv(k) or "").strip() for k in REQUIRED_ENV}
    missing = [k for k, v in values.items() if not v]
    if missing:
        raise RuntimeError(f"Missing R2 env vars: {', '.join(missing)}")

    return R2Settings(
        account_id=values["R2_ACCOUNT_ID"],
        access_key_id=values["R2_ACCESS_KEY_ID"],
        secret_access_key=values["R2_SECRET_ACCESS_KEY"],
        bucket=values["R2_BUCKET"],
        region=(os.getenv("R2_REGION") or "auto").strip() or "auto",
    )


def _client(settings: R2Settings):
    return boto3.client(
        "s3",
        endpoint_url=settings.endpoint,
        aws_access_key_id=settings.access_key_id,
        aws_secret_access_key=settings.secret_access_key,
        region_name=settings.region,
        config=Config(signature_version="s3v4"),
    )


def report_key(site_id: int, filename: str) -> str:
    fn = (filename or "report").strip().replace("/", "_").replace("..", ".")
    return f"sites/{int(site_id)}/reports/{uuid.uuid4().hex}_{fn}"


def upload_report(site_id: int, filename: str, data: bytes, content_type: str = "text/csv") -> str:
    """Stores one exported report and returns its object key."""
    settings = load_settings()
    key = report_key(site_id, filename)
    _client(settings).put_object(
        Bucket=settings.bucket,
        Key=key,
        Body=data,
        ContentType=content_type or "application/octet-stream",
    )
    log.info("Archived report %s (%d bytes)", key, len(data))
    return key


def report_url(key: str, expires_seconds: int = 900) -> str:
    if not key:
        return ""
    settings = load_settings()
    return _client(settings).generate_presigned_url(
        ClientMethod="get_object",
        Params={"Bucket": settings.bucket, "Key": key},
        ExpiresIn=max(60, int(expires_seconds or 900)),
    )


def discard_reports(keys) -> None:
    keys = [k for k in keys if k]
    if not keys:
        return
    settings = load_settings()
    s3 = _client(settings)
    for key in keys:
        s3.delete_object(Bucket=settings.bucket, Key=key)
    log.info("Removed %d archived report(s)", len(keys))
