# incidenthook/storage.py
import os
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict
from urllib.parse import quote

import jwt

from incidenthook.errors import ArchiveError, AuthError

log = logging.getLogger(__name__)

JWT_ALG = "HS256"


def _safe_name(name: str) -> str:
    if not name or "/" in name or "\\" in name or name in (".", "..") or name.startswith("."):
        raise ValueError(f"Nombre inválido: {name!r}")
    return name


class LocalBlobStore:
    """
    Blob store en disco: un directorio por bucket bajo `root`.
    Las URLs apuntan a la ruta /evidence/{bucket}/{key} de la API.
    """

    def __init__(self, root: str, base_url: str, signing_secret: str):
        self.root = Path(root)
        self.base_url = (base_url or "").rstrip("/")
        self.signing_secret = signing_secret

    def path_for(self, bucket: str, key: str) -> Path:
        return self.root / _safe_name(bucket) / _safe_name(key)

    def put(self, bucket: str, key: str, data: bytes, content_type: str = "application/octet-stream") -> None:
        try:
            path = self.path_for(bucket, key)
            path.parent.mkdir(parents=True, exist_ok=True)
            # append-only: no se pisa un blob existente
            with open(path, "xb") as fh:
                fh.write(data)
        except (OSError, ValueError) as e:
            raise ArchiveError(f"put {bucket}/{key} failed: {e}") from e
        log.debug("[storage] put %s/%s (%d bytes, %s)", bucket, key, len(data), content_type)

    def exists(self, bucket: str, key: str) -> bool:
        try:
            return self.path_for(bucket, key).is_file()
        except ValueError:
            return False

    # ================== URLs ==================
    def public_url(self, bucket: str, key: str) -> str:
        return f"{self.base_url}/evidence/{quote(bucket)}/{quote(key)}"

    def signed_url(self, bucket: str, key: str, ttl_seconds: int) -> str:
        token = self.create_token(bucket, key, ttl_seconds)
        return f"{self.public_url(bucket, key)}?token={token}"

    def create_token(self, bucket: str, key: str, ttl_seconds: int) -> str:
        expire = datetime.now(timezone.utc) + timedelta(seconds=int(ttl_seconds))
        claims = {"bucket": bucket, "key": key, "exp": expire}
        return jwt.encode(claims, self.signing_secret, algorithm=JWT_ALG)

    def verify_token(self, token: str, bucket: str, key: str) -> Dict[str, Any]:
        if not token:
            raise AuthError("missing token")
        try:
            claims = jwt.decode(token, self.signing_secret, algorithms=[JWT_ALG])
        except jwt.ExpiredSignatureError as e:
            raise AuthError("token expired") from e
        except jwt.InvalidTokenError as e:
            raise AuthError("invalid token") from e
        if claims.get("bucket") != bucket or claims.get("key") != key:
            raise AuthError("token does not match resource")
        return claims


def make_blob_store(settings) -> LocalBlobStore:
    root = settings.EVIDENCE_DIR
    os.makedirs(root, exist_ok=True)
    return LocalBlobStore(root, settings.BASE_URL, settings.EVIDENCE_SIGNING_SECRET)
