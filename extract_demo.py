"""Structured output demonstration: pull a calendar event out of free text."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError

from config import Settings
from errors import MalformedResponseError
from llm_client import CancelToken, ChatBackend, CompletionRequest

logger = logging.getLogger(__name__)

MISSING_SENTINEL = "MISSING INFORMATION"


class CalendarEvent(BaseModel):
    name: str = Field(description="Name of the event")
    date: str = Field(description="Date of the event")
    participants: List[str] = Field(description="Array of participant names")


EXTRACT_SYSTEM_PROMPT = "Extract the event information, only using the input."


def build_extraction_messages(text: str) -> List[Dict[str, Any]]:
    return [
        {"role": "system", "content": EXTRACT_SYSTEM_PROMPT},
        {
            "role": "user",
            "content": (
                f"INPUT: {text}\n\n"
                "Only reply with information found in the input.\n"
                f'If you cant get your answer from there, answer with "{MISSING_SENTINEL}"!\n'
            ),
        },
    ]


@dataclass(frozen=True)
class ExtractionOutcome:
    """Either a parsed event or a refusal text, never both."""

    event: Optional[CalendarEvent] = None
    refusal: Optional[str] = None

    @property
    def refused(self) -> bool:
        return self.event is None


def _is_sentinel(value: str) -> bool:
    return value.strip().upper() == MISSING_SENTINEL


def is_missing(event: CalendarEvent) -> bool:
    """True if the model flagged any field as missing or filled in nothing at all."""
    values = [event.name, event.date, *event.participants]
    if any(_is_sentinel(value) for value in values):
        return True
    return not event.name.strip() and not event.date.strip() and not event.participants


def interpret_extraction(response: Mapping[str, Any]) -> ExtractionOutcome:
    try:
        message = response["choices"][0]["message"]
    except (KeyError, IndexError, TypeError) as exc:
        raise MalformedResponseError(f"Response has no message: {exc}") from exc

    # only for safety
    refusal = message.get("refusal")
    if refusal:
        return ExtractionOutcome(refusal=refusal)

    parsed = message.get("parsed")
    try:
        if parsed is not None:
            event = CalendarEvent.model_validate(parsed)
        elif message.get("content"):
            event = CalendarEvent.model_validate_json(message["content"])
        else:
            raise MalformedResponseError("Response carries neither a parsed value nor a refusal")
    except ValidationError as exc:
        raise MalformedResponseError(f"Response does not match CalendarEvent: {exc}") from exc

    if is_missing(event):
        logger.info("Model reported missing information: %r", event)
        return ExtractionOutcome(refusal=MISSING_SENTINEL)
    return ExtractionOutcome(event=event)


def print_outcome(outcome: ExtractionOutcome) -> None:
    if outcome.refused:
        print(outcome.refusal)
    else:
        print(outcome.event.model_dump())


def extract_event(
    client: ChatBackend,
    text: str,
    *,
    settings: Optional[Settings] = None,
    cancel: Optional[CancelToken] = None,
) -> ExtractionOutcome:
    """Ask the model to fill a CalendarEvent from ``text`` and print the result."""
    settings = settings or Settings()
    logger.info("Extracting event from input of %s character(s)", len(text))
    request = CompletionRequest(
        model=settings.extract_model,
        messages=build_extraction_messages(text),
        response_format=CalendarEvent,
        temperature=0,
    )
    outcome = interpret_extraction(client.submit(request, cancel=cancel))
    print_outcome(outcome)
    return outcome
