"""
Mind Map Backend - session state, responders and the HTTP/WebSocket surface
around ``mindmap_core``.
"""

from .session import FocusRequest, ImportOutcome, MindMapSession, UnknownOperationError
from .responder import Answer, HttpResponder, MockResponder, QuestionResponder, ResponderError

__all__ = [
    "FocusRequest",
    "ImportOutcome",
    "MindMapSession",
    "UnknownOperationError",
    "Answer",
    "HttpResponder",
    "MockResponder",
    "QuestionResponder",
    "ResponderError",
]
