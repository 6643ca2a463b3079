"""
Move-proposal service abstraction.

Wraps the remote generative model behind a common interface so the
opponent agent does not care where moves come from. Every failure mode
(quota, HTTP error, timeout, empty body) surfaces as ProposalError, which
the agent answers by falling back to the local heuristic.
"""

from __future__ import annotations

import os
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import requests

GEMINI_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"


class ProposalError(Exception):
    """Exception raised when the proposal service cannot supply usable moves."""
    pass


@dataclass
class ProposalResponse:
    """Raw response from a proposal service call."""

    content: str
    model: str
    latency_ms: float


class ProposalService(ABC):
    """Abstract move-proposal service."""

    @abstractmethod
    def propose(
        self,
        system: str,
        payload: str,
        schema: dict[str, Any] | None = None,
    ) -> ProposalResponse:
        """Ask the service for moves.

        Args:
            system: System instruction carrying rules and strategy
            payload: Serialized board state
            schema: JSON schema the response must follow

        Raises:
            ProposalError: on any transport or service failure
        """
        ...

    @property
    @abstractmethod
    def model_id(self) -> str:
        ...


class GeminiProvider(ProposalService):
    """Google Gemini generateContent REST provider."""

    def __init__(
        self,
        model: str = "gemini-2.5-flash",
        api_key: str | None = None,
        timeout: float = 20.0,
        session: requests.Session | None = None,
    ):
        self._model = model
        self._api_key = api_key or os.environ.get("GEMINI_API_KEY") or os.environ.get("API_KEY")
        self._timeout = timeout
        self._session = session or requests.Session()

    @property
    def model_id(self) -> str:
        return self._model

    def propose(
        self,
        system: str,
        payload: str,
        schema: dict[str, Any] | None = None,
    ) -> ProposalResponse:
        if not self._api_key:
            raise ProposalError("No API key configured")

        generation_config: dict[str, Any] = {"responseMimeType": "application/json"}
        if schema is not None:
            generation_config["responseSchema"] = schema

        body = {
            "systemInstruction": {"parts": [{"text": system}]},
            "contents": [{"role": "user", "parts": [{"text": payload}]}],
            "generationConfig": generation_config,
        }

        start = time.monotonic()
        try:
            response = self._session.post(
                GEMINI_ENDPOINT.format(model=self._model),
                params={"key": self._api_key},
                json=body,
                timeout=self._timeout,
            )
        except requests.Timeout as e:
            raise ProposalError(f"Proposal request timed out: {e}") from e
        except requests.RequestException as e:
            raise ProposalError(f"Proposal request failed: {e}") from e
        elapsed = (time.monotonic() - start) * 1000

        if response.status_code == 429:
            raise ProposalError("Proposal quota exceeded (429)")
        if not 200 <= response.status_code < 300:
            raise ProposalError(f"Proposal service returned HTTP {response.status_code}")

        try:
            data = response.json()
            parts = data["candidates"][0]["content"]["parts"]
            content = "".join(part.get("text", "") for part in parts)
        except (ValueError, KeyError, IndexError, TypeError, AttributeError) as e:
            raise ProposalError(f"Unexpected proposal response shape: {e}") from e

        if not content.strip():
            raise ProposalError("Proposal service returned no text")

        return ProposalResponse(content=content, model=self._model, latency_ms=elapsed)


class MockProvider(ProposalService):
    """Mock provider for testing without API calls.

    Returns queued responses in order; a queued exception is raised instead
    of returned.
    """

    def __init__(self, responses: list[str | Exception] | None = None):
        self._responses = list(responses) if responses else []
        self.call_log: list[dict] = []

    @property
    def model_id(self) -> str:
        return "mock-model"

    def propose(
        self,
        system: str,
        payload: str,
        schema: dict[str, Any] | None = None,
    ) -> ProposalResponse:
        self.call_log.append(
            {
                "system": system,
                "payload": payload,
                "schema": schema,
            }
        )
        content = self._responses.pop(0) if self._responses else '{"moves": []}'
        if isinstance(content, Exception):
            raise content
        return ProposalResponse(content=content, model="mock-model", latency_ms=10.0)
