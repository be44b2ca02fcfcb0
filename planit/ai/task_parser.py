"""
Free text → task, using Claude.

The user's description and today's date are sent as a small JSON document;
the model answers with {"title", "notes", "date"} or the literal error
"wrong format".
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime

import anthropic
from pydantic import ValidationError

from ..exceptions import ServiceUnavailableError, TaskParseError
from ..models import Task
from ..utils.dates import parse_datetime

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are integrated into a scheduling system.
Users will send you messages, requesting to schedule a task.
Messages will always be in JSON format and should contain two fields: description and today.
description: Contains the task's details.
today: Indicates today's date.

Your role is to analyze the request and respond with an object in valid JSON format.
This object should contain three fields: title, notes, and date.

title: The task's title.
notes: A summary of the task.
date: Extracted from the message, indicating when the task should be executed, in the same date format as received.

Instructions:
If the incoming message is in the wrong format, you must respond with the error: "wrong format".
You should ensure that you correct any orthographical errors present in the message.
You must respond in the same language as the original message in the description field.
If a date is specified without a time, you should schedule the task for 09:30.
Respond with the JSON object only, without any surrounding text.

Your response should be swift and accurate to facilitate effective task scheduling."""

WRONG_FORMAT = "wrong format"

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$")


def _strip_fences(text: str) -> str:
    return _FENCE_RE.sub("", text.strip())


class TaskParser:
    def __init__(
        self,
        api_key: str,
        model: str,
        max_tokens: int = 256,
        timezone: str = "UTC",
        client: "anthropic.AsyncAnthropic | None" = None,
    ) -> None:
        self._client = client or anthropic.AsyncAnthropic(api_key=api_key)
        self._model = model
        self._max_tokens = max_tokens
        self._timezone = timezone

    async def parse(self, description: str, today: datetime) -> Task:
        """
        Turn `description` into a Task whose date is resolved relative to `today`.
        Raises TaskParseError for input the model cannot schedule and
        ServiceUnavailableError when the API call itself fails.
        """
        payload = json.dumps({"description": description, "today": today.isoformat()})
        try:
            response = await self._client.messages.create(
                model=self._model,
                max_tokens=self._max_tokens,
                system=SYSTEM_PROMPT,
                messages=[{"role": "user", "content": payload}],
            )
        except anthropic.APIError as e:
            raise ServiceUnavailableError(f"task parser request failed: {e}") from e

        text = "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )
        text = _strip_fences(text)
        if not text:
            raise TaskParseError("empty completion")
        if WRONG_FORMAT in text.lower() and not text.startswith("{"):
            raise TaskParseError(f"model rejected the request: {text!r}")

        try:
            task = Task.model_validate_json(text)
        except ValidationError as e:
            raise TaskParseError(f"invalid task JSON: {e}") from e

        try:
            parse_datetime(task.date, self._timezone)
        except ValueError as e:
            raise TaskParseError(f"invalid task date {task.date!r}") from e

        logger.debug("Parsed task %r for %s", task.title, task.date)
        return task

    def start_of(self, task: Task) -> datetime:
        """The task's start as an aware datetime."""
        return parse_datetime(task.date, self._timezone)
