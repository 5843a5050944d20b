"""Adapter for the external chat completion service.

Timeouts surface as ``UpstreamTimeout``. Cancellation of the calling task is
not converted: ``asyncio.CancelledError`` propagates unchanged.
"""
from __future__ import annotations

import asyncio
import time
from typing import Any, Dict, List, Protocol, Sequence

import openai
import structlog

from api.features.conversation.entities import MessageRole
from api.features.conversation.exceptions import NoCompletion, UpstreamError, UpstreamTimeout
from infra.resources import CompletionResource

logger = structlog.get_logger("chat.completion")


class TranscriptEntry(Protocol):
    role: Any
    content: str


def to_provider_role(role: Any) -> str:
    """Map a stored role onto the provider vocabulary.

    ``user`` stays ``user``; everything else, including the legacy ``AI``
    label, is sent as ``assistant``.
    """
    return "user" if role == MessageRole.USER else "assistant"


class CompletionClient:
    """Turns a transcript into one generated reply.

    Never retries: a failed call raises immediately.
    """

    def __init__(
        self,
        resource: CompletionResource,
        *,
        model: str,
        temperature: float,
        max_tokens: int,
        system_prompt: str,
    ):
        self.resource = resource
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.system_prompt = system_prompt

    def build_messages(self, transcript: Sequence[TranscriptEntry]) -> List[Dict[str, str]]:
        messages = [{"role": "system", "content": self.system_prompt}]
        messages.extend(
            {"role": to_provider_role(m.role), "content": m.content} for m in transcript
        )
        return messages

    async def complete(self, transcript: Sequence[TranscriptEntry], *, timeout: float) -> str:
        """Return the first candidate's text for ``transcript``.

        Raises:
            UpstreamTimeout: no answer within ``timeout`` seconds.
            UpstreamError: transport or API failure.
            NoCompletion: the response carried no usable candidate.
        """
        client = self.resource.get_client()
        messages = self.build_messages(transcript)
        start_time = time.time()
        logger.info("completion_requested", model=self.model, messages=len(messages))

        try:
            response = await asyncio.wait_for(
                client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                    timeout=timeout,
                ),
                timeout=timeout,
            )
        except (asyncio.TimeoutError, openai.APITimeoutError) as e:
            logger.warning(
                "completion_timeout",
                model=self.model,
                timeout_seconds=timeout,
                elapsed_ms=(time.time() - start_time) * 1000,
            )
            raise UpstreamTimeout(timeout) from e
        except openai.APIError as e:
            status_code = getattr(e, "status_code", None)
            logger.error(
                "completion_failed",
                model=self.model,
                status_code=status_code,
                error=str(e),
            )
            raise UpstreamError(str(e), {"status_code": status_code}) from e

        if not response.choices or not response.choices[0].message.content:
            logger.warning("completion_empty", model=self.model)
            raise NoCompletion(self.model)

        logger.info(
            "completion_succeeded",
            model=self.model,
            processing_time_ms=(time.time() - start_time) * 1000,
        )
        return response.choices[0].message.content
