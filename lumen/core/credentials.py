"""API key storage for cloud providers."""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from lumen.core.registry import ProviderClass, require_provider_class
from lumen.utils.log import get_logger, mask_secret

logger = get_logger()


class CredentialDocument(BaseModel):
    """On-disk credential document: one secret per provider id."""

    keys: Dict[str, str] = Field(default_factory=dict)


class CredentialStore:
    """Persists API keys keyed by provider id.

    Reads never raise for a missing or unreadable key; they return ``""``.
    Writes are last-write-wins and rewrite the whole file with 0600 permissions.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = threading.Lock()

    def _read(self) -> CredentialDocument:
        if not self.path.exists():
            return CredentialDocument()
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
            return CredentialDocument(**payload)
        except (json.JSONDecodeError, OSError, UnicodeDecodeError, ValueError, TypeError) as exc:
            logger.warning(
                "[credentials] Failed to load credential file: %s: %s",
                type(exc).__name__,
                exc,
                extra={"path": str(self.path)},
            )
            return CredentialDocument()

    def _write(self, document: CredentialDocument) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(document.model_dump_json(indent=2), encoding="utf-8")
        try:
            self.path.chmod(0o600)
        except OSError:
            logger.debug("[credentials] Failed to set strict permissions", extra={"path": str(self.path)})

    def save(self, provider_id: str, secret: Optional[str]) -> None:
        """Store ``secret`` for a cloud provider; an empty secret clears it."""
        provider = require_provider_class(provider_id, ProviderClass.CLOUD, "Saving an API key")
        value = (secret or "").strip()
        if not value:
            self.clear(provider.id)
            return
        with self._lock:
            document = self._read()
            document.keys[provider.id] = value
            self._write(document)
        logger.info(
            "[credentials] Saved API key",
            extra={"provider": provider.id, "key": mask_secret(value)},
        )

    def load(self, provider_id: str) -> str:
        """Return the stored key, or ``""`` when there is none."""
        provider = require_provider_class(provider_id, ProviderClass.CLOUD, "Loading an API key")
        return self._read().keys.get(provider.id, "")

    def has_credential(self, provider_id: str) -> bool:
        return bool(self.load(provider_id))

    def clear(self, provider_id: str) -> None:
        provider = require_provider_class(provider_id, ProviderClass.CLOUD, "Clearing an API key")
        with self._lock:
            document = self._read()
            if document.keys.pop(provider.id, None) is None:
                return
            self._write(document)
        logger.info("[credentials] Cleared API key", extra={"provider": provider.id})

    def list_providers(self) -> List[str]:
        """Provider ids that currently have a non-empty key."""
        return sorted(pid for pid, key in self._read().keys.items() if key)
