"""Test doubles for the chat model and canned report replies."""

import asyncio
import json
from typing import Any, List, Optional

from langchain_core.messages import AIMessage


class ScriptedChatModel:
    """Answers ``ainvoke`` calls from a list of replies.

    A reply that is an exception instance is raised instead of returned.
    When ``gate`` is set, every call waits for it before answering.
    """

    def __init__(self, replies: Optional[List[Any]] = None, gate: Optional[asyncio.Event] = None):
        self.replies = list(replies or [])
        self.gate = gate
        self.calls = []

    async def ainvoke(self, messages, **kwargs):
        self.calls.append((list(messages), kwargs))
        if self.gate is not None:
            await self.gate.wait()
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return AIMessage(content=reply)


def report_payload(**overrides) -> dict:
    payload = {
        "mainAnalysis": "Falling endlessly points to a loss of footing in waking life.",
        "sections": [
            {"title": "Projection of the unconscious", "content": "The fall mirrors a fear of losing control."},
        ],
        "lifeWorkAdvice": "Name one project where you feel unsupported and ask for help.",
        "adjustmentTips": "Try five minutes of grounding breath before sleep.",
        "isNightmare": False,
    }
    payload.update(overrides)
    return payload


def report_json(**overrides) -> str:
    return json.dumps(report_payload(**overrides))
