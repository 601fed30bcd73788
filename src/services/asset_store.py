"""Durable asset store for generated audio and rendered videos.

Two backends share one interface:
- R2AssetStore: Cloudflare R2 (S3-compatible) via boto3
- LocalAssetStore: a directory on disk, URLs are file:// URIs

Objects are grouped by kind ("bgm", "sfx", "narration", "video") and keyed
as ``<kind>/<millis>-<random>_<filename>`` so repeated uploads never collide.
"""

import asyncio
import json
import logging
import mimetypes
import time
import uuid
from abc import ABC, abstractmethod
from io import BytesIO
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import quote

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from models.audio import AudioAsset
from services.provider_errors import ProviderError
from utils.config import r2_configured

logger = logging.getLogger(__name__)

# S3 user metadata must be ASCII and the whole header block stays under 2 KB
MAX_METADATA_VALUE_CHARS = 1024

PRESIGNED_URL_TTL_SECONDS = 7 * 24 * 3600

EXTRA_CONTENT_TYPES = {
    ".wav": "audio/wav",
    ".mp3": "audio/mpeg",
    ".mp4": "video/mp4",
    ".png": "image/png",
    ".jpg": "image/jpeg",
}


class AssetStoreError(ProviderError):
    """Upload to, or listing from, the asset store failed."""


def object_key(kind: str, filename: str) -> str:
    safe_name = Path(filename).name or "asset"
    return f"{kind}/{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}_{safe_name}"


def display_name(key: str) -> str:
    """Filename without the kind prefix and upload timestamp."""
    name = key.rsplit("/", 1)[-1]
    stamp, sep, rest = name.partition("_")
    return rest if sep and stamp.partition("-")[0].isdigit() and rest else name


def guess_content_type(filename: str) -> str:
    content_type, _ = mimetypes.guess_type(filename)
    if content_type:
        return content_type
    return EXTRA_CONTENT_TYPES.get(Path(filename).suffix.lower(), "application/octet-stream")


def encode_metadata(metadata: Optional[Dict[str, str]]) -> Dict[str, str]:
    """Percent-encode and truncate metadata values so they are header-safe."""
    encoded = {}
    for key, value in (metadata or {}).items():
        encoded[key] = quote(str(value), safe=" ,.:;!?'-_()")[:MAX_METADATA_VALUE_CHARS]
    return encoded


class AssetStore(ABC):
    """Upload bytes and list named assets by kind."""

    @abstractmethod
    async def upload(
        self,
        data: bytes,
        kind: str,
        filename: str,
        make_public: bool = True,
        metadata: Optional[Dict[str, str]] = None,
    ) -> str:
        """Store the bytes and return a URL that can be fetched later."""

    @abstractmethod
    async def list(self, kind: str) -> List[AudioAsset]:
        """List stored assets of one kind, newest first."""


class R2AssetStore(AssetStore):
    """Cloudflare R2 object storage.

    Uses boto3 with the S3-compatible API. Public URLs require ``public_url``
    (a bucket custom domain or r2.dev URL); otherwise presigned URLs are returned.
    """

    def __init__(
        self,
        account_id: str,
        access_key_id: str,
        secret_access_key: str,
        bucket_name: str = "reelsmith-assets",
        public_url: Optional[str] = None,
        client=None,
    ):
        """Initialize R2 storage.

        Args:
            account_id: Cloudflare account ID
            access_key_id: R2 API access key ID
            secret_access_key: R2 API secret access key
            bucket_name: R2 bucket name
            public_url: Optional public URL base for files (CDN URL)
            client: Pre-built S3 client (tests inject a mock here)
        """
        self.account_id = account_id
        self.bucket_name = bucket_name
        self.public_url = public_url

        self._client = client or boto3.client(
            "s3",
            endpoint_url=f"https://{account_id}.r2.cloudflarestorage.com",
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            config=Config(
                signature_version="s3v4",
                retries={"max_attempts": 3, "mode": "adaptive"},
            ),
        )

        logger.info(f"R2 asset store initialized for bucket: {bucket_name}")

    def _url_for(self, key: str, make_public: bool = True) -> str:
        if make_public and self.public_url:
            return f"{self.public_url.rstrip('/')}/{quote(key)}"
        return self._client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket_name, "Key": key},
            ExpiresIn=PRESIGNED_URL_TTL_SECONDS,
        )

    def _upload_sync(
        self,
        data: bytes,
        kind: str,
        filename: str,
        make_public: bool,
        metadata: Optional[Dict[str, str]],
    ) -> str:
        key = object_key(kind, filename)
        extra_args = {"ContentType": guess_content_type(filename)}
        if metadata:
            extra_args["Metadata"] = encode_metadata(metadata)

        try:
            self._client.upload_fileobj(BytesIO(data), self.bucket_name, key, ExtraArgs=extra_args)
            url = self._url_for(key, make_public)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to upload {key}: {e}")
            raise AssetStoreError(f"Upload of {filename} failed: {e}") from e

        logger.info(f"Uploaded {key} to R2 ({len(data) / 1024:.0f} KB)")
        return url

    def _list_sync(self, kind: str) -> List[AudioAsset]:
        objects = []
        try:
            paginator = self._client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket_name, Prefix=f"{kind}/"):
                objects.extend(page.get("Contents", []))
            objects.sort(key=lambda obj: obj["LastModified"], reverse=True)
            return [AudioAsset(display_name(obj["Key"]), self._url_for(obj["Key"])) for obj in objects]
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to list {kind} assets: {e}")
            raise AssetStoreError(f"Listing {kind} assets failed: {e}") from e

    async def upload(
        self,
        data: bytes,
        kind: str,
        filename: str,
        make_public: bool = True,
        metadata: Optional[Dict[str, str]] = None,
    ) -> str:
        return await asyncio.to_thread(self._upload_sync, data, kind, filename, make_public, metadata)

    async def list(self, kind: str) -> List[AudioAsset]:
        return await asyncio.to_thread(self._list_sync, kind)


class LocalAssetStore(AssetStore):
    """Directory-backed store used when R2 is not configured.

    Metadata is written to a ``.json`` sidecar next to each asset.
    """

    def __init__(self, root: str):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        logger.info(f"Local asset store at: {self.root}")

    def _upload_sync(self, data: bytes, kind: str, filename: str, metadata) -> str:
        path = self.root / object_key(kind, filename)
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            path.write_bytes(data)
            if metadata:
                path.with_name(path.name + ".json").write_text(json.dumps(metadata, indent=2))
        except OSError as e:
            raise AssetStoreError(f"Upload of {filename} failed: {e}") from e

        logger.info(f"Stored {path.relative_to(self.root)} ({len(data) / 1024:.0f} KB)")
        return path.resolve().as_uri()

    def _list_sync(self, kind: str) -> List[AudioAsset]:
        folder = self.root / kind
        if not folder.is_dir():
            return []
        files = [p for p in folder.iterdir() if p.is_file() and p.suffix != ".json"]
        files.sort(key=lambda p: p.name, reverse=True)
        return [AudioAsset(display_name(p.name), p.resolve().as_uri()) for p in files]

    async def upload(
        self,
        data: bytes,
        kind: str,
        filename: str,
        make_public: bool = True,
        metadata: Optional[Dict[str, str]] = None,
    ) -> str:
        # Local files are always reachable through their file:// URI
        return await asyncio.to_thread(self._upload_sync, data, kind, filename, metadata)

    async def list(self, kind: str) -> List[AudioAsset]:
        return await asyncio.to_thread(self._list_sync, kind)


def get_asset_store(config: dict) -> AssetStore:
    """Build the R2 store when credentials are present, the local store otherwise."""
    if r2_configured(config):
        return R2AssetStore(
            account_id=config["r2_account_id"],
            access_key_id=config["r2_access_key_id"],
            secret_access_key=config["r2_secret_access_key"],
            bucket_name=config.get("r2_bucket_name") or "reelsmith-assets",
            public_url=config.get("r2_public_url"),
        )

    logger.debug("R2 storage not configured - using local asset store")
    return LocalAssetStore(config.get("local_asset_dir") or "assets")
