"""Routes a chat message to the provider that owns the selected model."""

from __future__ import annotations

import asyncio
import time
from typing import Iterable, Optional, Sequence

import httpx

from lumen.core.config import LumenSettings, get_settings
from lumen.core.credentials import CredentialStore
from lumen.core.error_mapping import run_with_exception_mapper
from lumen.core.errors import LumenError, MissingCredentialError, NoModelSelectedError
from lumen.core.model_config import ModelConfigStore
from lumen.core.providers import get_adapter
from lumen.core.registry import get_provider
from lumen.core.types import Attachment
from lumen.utils.log import get_logger

logger = get_logger()


def compose_prompt(prompt: str, attachments: Iterable[Attachment] = ()) -> str:
    """Append attachments to the prompt in the order given."""
    parts = [prompt]
    for attachment in attachments:
        if attachment.text_content:
            parts.append(f"\n\nFile: {attachment.name}\nContent:\n{attachment.text_content}")
        else:
            parts.append(f"\n\nFile: {attachment.name} ({attachment.mime_type})")
    return "".join(parts)


class DispatchRouter:
    """Sends one message to one model and returns the completion text.

    Each chat is exactly one provider call: no retries, no fallback to
    another provider. Stores are read before the call and never written.
    """

    def __init__(
        self,
        settings: Optional[LumenSettings] = None,
        *,
        credentials: Optional[CredentialStore] = None,
        model_configs: Optional[ModelConfigStore] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.credentials = credentials or CredentialStore(self.settings.credentials_path)
        self.model_configs = model_configs or ModelConfigStore(self.settings.model_configs_path)
        self.transport = transport

    async def chat(
        self,
        provider_id: str,
        model_id: str,
        prompt: str,
        attachments: Sequence[Attachment] = (),
    ) -> str:
        provider = get_provider(provider_id)
        model = (model_id or "").strip()
        if not model:
            raise NoModelSelectedError(provider.id)

        config = self.model_configs.get_config(provider.id, model)
        api_key: Optional[str] = None
        if not provider.is_local:
            api_key = self.credentials.load(provider.id)
            if not api_key:
                raise MissingCredentialError(provider.id)

        adapter = get_adapter(
            provider.id,
            endpoint=self.settings.endpoint_for(provider.id),
            transport=self.transport,
        )
        message = compose_prompt(prompt, attachments)
        timeout = self.settings.chat_timeout
        start_time = time.time()
        try:
            text = await run_with_exception_mapper(
                lambda: asyncio.wait_for(
                    adapter.chat(model, message, config, timeout=timeout, api_key=api_key),
                    timeout=timeout,
                )
            )
        except LumenError as exc:
            adapter.annotate(exc, model)
            logger.error(
                "[dispatch] Chat failed",
                extra={
                    "provider": provider.id,
                    "model": model,
                    "error_code": exc.error_code.value,
                    "error_message": exc.message,
                    "duration_ms": round((time.time() - start_time) * 1000, 2),
                },
            )
            raise
        logger.info(
            "[dispatch] Chat complete",
            extra={
                "provider": provider.id,
                "model": model,
                "attachments": len(attachments),
                "response_length": len(text),
                "duration_ms": round((time.time() - start_time) * 1000, 2),
            },
        )
        return text
