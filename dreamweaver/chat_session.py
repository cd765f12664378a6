import asyncio
import logging
from typing import List, Optional, Sequence, Tuple

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from dreamweaver.errors import ChatTurnError
from dreamweaver.models import ChatMessage, ChatRole
from dreamweaver.report_builder import message_text

logger = logging.getLogger(__name__)

EMPTY_REPLY_FALLBACK = "I seem to have lost my way deep in the dream. Could you say that again?"
CHAT_FAILURE_MESSAGE = "I'm sorry, my connection to the dream was interrupted for a moment."

CHAT_PREAMBLE = """
You are a gentle dream interpretation expert with deep insight into the human heart.
The user has just recorded a dream and received an in-depth analysis report.

Dream: {dream_content}
Key images: {tags}
Core of the report: {main_analysis}

Your responsibilities:
1. Answer the user's follow-up questions about this dream in a warm, wise, friendly voice.
2. Guide the user to observe their own feelings instead of simply handing down conclusions.
3. Stay empathetic, especially when the user expresses unease or confusion.
4. Make your answers thought-provoking, helping the user integrate what they discover about themselves.
"""


def build_chat_preamble(dream_content: str, tag_labels: Sequence[str], main_analysis: str) -> str:
    return CHAT_PREAMBLE.format(
        dream_content=dream_content,
        tags=", ".join(tag_labels),
        main_analysis=main_analysis,
    )


class ChatSession:
    """Follow-up conversation about one finished report.

    The transcript only ever grows, and a single turn can be in flight at a
    time: a message sent while ``is_typing`` is dropped, not queued.
    """

    def __init__(self, llm: BaseChatModel, preamble: str, timeout: Optional[float] = None):
        self._llm = llm
        self._preamble = preamble
        self._timeout = timeout
        self._messages: List[ChatMessage] = []
        # turns the model has actually answered, replayed on every request
        self._history: List[BaseMessage] = []
        self.is_typing = False
        self.closed = False

    @property
    def preamble(self) -> str:
        return self._preamble

    @property
    def messages(self) -> Tuple[ChatMessage, ...]:
        return tuple(self._messages)

    async def send_user_message(self, text: str) -> bool:
        """Send one message; returns False when it was ignored."""
        text = text.strip()
        if not text or self.is_typing or self.closed:
            return False

        self._messages.append(ChatMessage(role=ChatRole.USER, text=text))
        self.is_typing = True
        try:
            reply = await self._request(text)
        except ChatTurnError as error:
            if self.closed:
                logger.info("Discarding failed chat turn for a closed session")
                return True
            logger.warning("Chat turn failed: %s", error)
            self._messages.append(ChatMessage(role=ChatRole.MODEL, text=CHAT_FAILURE_MESSAGE))
        else:
            if self.closed:
                logger.info("Discarding chat reply for a closed session")
                return True
            if not reply.strip():
                reply = EMPTY_REPLY_FALLBACK
            self._messages.append(ChatMessage(role=ChatRole.MODEL, text=reply))
            self._history.extend([HumanMessage(content=text), AIMessage(content=reply)])
        finally:
            self.is_typing = False
        return True

    async def _request(self, text: str) -> str:
        messages = [SystemMessage(content=self._preamble), *self._history, HumanMessage(content=text)]
        logger.debug("Sending chat turn with %d context messages", len(messages))
        try:
            result = await asyncio.wait_for(self._llm.ainvoke(messages), timeout=self._timeout)
        except asyncio.TimeoutError as error:
            raise ChatTurnError(f"no reply within {self._timeout}s") from error
        except Exception as error:
            raise ChatTurnError(str(error) or type(error).__name__) from error
        return message_text(result)

    def close(self) -> None:
        self.closed = True
