"""Narrow client around the OpenAI chat completions API.

Both demo flows talk to the model through ``submit(request) -> dict`` so
tests can swap in a deterministic fake backend.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Type, runtime_checkable

import openai
from openai import OpenAI
from pydantic import BaseModel, ValidationError

from config import Settings
from errors import CancelledError, MalformedResponseError, RemoteCallError

logger = logging.getLogger(__name__)

_CANCEL_POLL_INTERVAL = 0.05


@dataclass
class CompletionRequest:
    """A single chat completion request.

    Either ``tools`` or ``response_format`` is set, never both.
    """

    model: str
    messages: List[Dict[str, Any]]
    temperature: Optional[float] = None
    tools: Optional[List[Dict[str, Any]]] = None
    tool_choice: Any = None
    response_format: Optional[Type[BaseModel]] = None

    def to_kwargs(self) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {"model": self.model, "messages": self.messages}
        if self.temperature is not None:
            kwargs["temperature"] = self.temperature
        if self.tools is not None:
            kwargs["tools"] = self.tools
        if self.tool_choice is not None:
            kwargs["tool_choice"] = self.tool_choice
        if self.response_format is not None:
            kwargs["response_format"] = self.response_format
        return kwargs


class CancelToken:
    """Set from any thread to abort a pending ``submit`` call.

    The abandoned SDK call keeps running on a daemon thread until it returns
    or times out; its result is dropped and it does not hold up interpreter exit.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@runtime_checkable
class ChatBackend(Protocol):
    """Anything that can answer a CompletionRequest with a response dict."""

    def submit(
        self, request: CompletionRequest, cancel: Optional[CancelToken] = None
    ) -> Dict[str, Any]:
        ...


class ModelClient:
    """OpenAI-backed ChatBackend with a configurable timeout.

    Construct once and pass it to the flows; call ``close()`` when done.
    """

    def __init__(self, settings: Settings, client: Optional[Any] = None) -> None:
        self.settings = settings
        if client is None:
            try:
                client = OpenAI(
                    base_url=settings.base_url,
                    timeout=settings.timeout,
                    max_retries=settings.max_retries,
                )
            except openai.OpenAIError as exc:
                raise RemoteCallError(f"Could not create OpenAI client: {exc}") from exc
        self._client = client

    def submit(
        self, request: CompletionRequest, cancel: Optional[CancelToken] = None
    ) -> Dict[str, Any]:
        if cancel is not None and cancel.cancelled:
            raise CancelledError()
        logger.info("Sending %s message(s) to %s", len(request.messages), request.model)
        if cancel is None:
            response = self._send(request)
        else:
            response = self._send_cancellable(request, cancel)
        logger.info("Received response with %s choice(s)", len(response.choices))
        return _dump_response(response)

    def _send(self, request: CompletionRequest) -> Any:
        kwargs = request.to_kwargs()
        try:
            if request.response_format is not None:
                return self._client.chat.completions.parse(**kwargs)
            return self._client.chat.completions.create(**kwargs)
        except openai.APIStatusError as exc:
            raise RemoteCallError(exc.message, status_code=exc.status_code) from exc
        except openai.APIError as exc:
            raise RemoteCallError(exc.message) from exc
        except (openai.LengthFinishReasonError, openai.ContentFilterFinishReasonError) as exc:
            raise MalformedResponseError(str(exc)) from exc
        except ValidationError as exc:
            schema = getattr(request.response_format, "__name__", "the schema")
            raise MalformedResponseError(f"Response does not match {schema}: {exc}") from exc
        except openai.OpenAIError as exc:
            raise RemoteCallError(str(exc)) from exc

    def _send_cancellable(self, request: CompletionRequest, cancel: CancelToken) -> Any:
        # The SDK call cannot be interrupted, so wait on it from here and
        # abandon the daemon worker when the token fires.
        outcome: Dict[str, Any] = {}
        finished = threading.Event()

        def worker() -> None:
            try:
                outcome["response"] = self._send(request)
            except Exception as exc:
                outcome["error"] = exc
            finally:
                finished.set()

        threading.Thread(target=worker, name="model-call", daemon=True).start()
        while not finished.wait(_CANCEL_POLL_INTERVAL):
            if cancel.cancelled:
                logger.warning("Model call to %s cancelled", request.model)
                raise CancelledError()
        if "error" in outcome:
            raise outcome["error"]
        return outcome["response"]

    def close(self) -> None:
        self._client.close()


def _dump_response(response: Any) -> Dict[str, Any]:
    # ParsedChatCompletion types ``parsed`` generically, so pydantic cannot
    # serialize it; dump the parsed models ourselves.
    payload = response.model_dump(warnings=False)
    for choice, raw in zip(payload.get("choices") or [], response.choices):
        parsed = getattr(getattr(raw, "message", None), "parsed", None)
        if isinstance(parsed, BaseModel):
            choice["message"]["parsed"] = parsed.model_dump()
    return payload
