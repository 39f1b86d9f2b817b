"""
Question-answering responders.

A responder takes (node_id, question) and returns the answer text; the
session wraps the answer into a new child node. ``HttpResponder`` talks to
an external answering service, ``MockResponder`` returns canned text.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import httpx

from mindmap_core import settings

logger = logging.getLogger(__name__)


class ResponderError(Exception):
    """The answering service failed or returned an unusable payload."""


@dataclass
class Answer:
    answer_text: str


class QuestionResponder(Protocol):
    async def answer(self, node_id: str, question: str) -> Answer:
        ...


class MockResponder:
    """Canned answers keyed by node id, for development without a service."""

    DEFAULT_ANSWERS = {
        "root": 'Answer to "{question}": this paper mainly studies...',
        "node_1": 'On the research background, "{question}": work in this area began with...',
        "node_2": 'On the research method, "{question}": this study uses the following methods...',
        "node_3": 'On the experimental results, "{question}": the experiments show...',
    }
    FALLBACK = 'General answer to "{question}"'

    def __init__(self, answers: Optional[dict[str, str]] = None):
        self._answers = dict(self.DEFAULT_ANSWERS if answers is None else answers)

    async def answer(self, node_id: str, question: str) -> Answer:
        template = self._answers.get(node_id, self.FALLBACK)
        return Answer(answer_text=template.format(question=question))


class HttpResponder:
    """
    Calls ``POST {base_url}/answer`` with ``{"nodeId", "question"}``.

    Accepts ``{"answerText": ...}`` or ``{"answer": ...}`` in the response.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def answer(self, node_id: str, question: str) -> Answer:
        url = f"{self.base_url}/answer"
        logger.info("Requesting answer for node %s", node_id)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, json={"nodeId": node_id, "question": question})
        except httpx.HTTPError as e:
            raise ResponderError(f"Answering service unreachable: {e}") from e

        if response.status_code >= 400:
            raise ResponderError(f"Answering service error ({response.status_code}): {response.text}")

        try:
            payload = response.json()
        except ValueError as e:
            raise ResponderError("Answering service returned invalid JSON") from e

        text = None
        if isinstance(payload, dict):
            text = payload.get("answerText", payload.get("answer"))
        if not isinstance(text, str):
            raise ResponderError("Answering service response has no answer text")
        return Answer(answer_text=text)


def responder_from_settings() -> QuestionResponder:
    """HTTP responder when a service URL is configured, canned answers otherwise."""
    if settings.responder_url:
        return HttpResponder(settings.responder_url, timeout=settings.responder_timeout)
    logger.info("No responder URL configured, using canned answers")
    return MockResponder()
