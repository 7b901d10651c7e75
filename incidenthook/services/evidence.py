# incidenthook/services/evidence.py
import time
import logging
from typing import Optional

log = logging.getLogger(__name__)

URL_MODES = ("signed", "public")


class EvidenceArchiver:
    """Guarda el mensaje crudo como .txt y devuelve un locator (best-effort)."""

    def __init__(self, blob_store, bucket: str = "evidence", url_mode: str = "signed",
                 ttl_seconds: int = 3600, enabled: bool = True):
        if url_mode not in URL_MODES:
            raise ValueError(f"EVIDENCE_URL_MODE inválido: {url_mode!r}")
        self.blob_store = blob_store
        self.bucket = bucket
        self.url_mode = url_mode
        self.ttl_seconds = ttl_seconds
        self.enabled = enabled

    def key_for(self, incident_id: str) -> str:
        # sufijo de tiempo para no chocar en reintentos del mismo incidente
        return f"{incident_id}-{int(time.time() * 1000)}.txt"

    def store(self, incident_id: str, raw_message) -> Optional[str]:
        if not self.enabled or self.blob_store is None:
            return None
        key = self.key_for(incident_id)
        try:
            self.blob_store.put(self.bucket, key, str(raw_message).encode("utf-8"), "text/plain")
            if self.url_mode == "public":
                return self.blob_store.public_url(self.bucket, key)
            return self.blob_store.signed_url(self.bucket, key, self.ttl_seconds)
        except Exception as e:
            # Nunca rompas el request por la evidencia
            log.warning("[evidence] store failed for %s: %s", incident_id, e)
            return None
