import logging
from typing import Optional

from langchain_core.language_models import BaseChatModel
from langchain_openai import ChatOpenAI

from dreamweaver.config import Settings
from dreamweaver.shell import DreamShell

logger = logging.getLogger(__name__)


def create_chat_model(settings: Settings, temperature: float) -> ChatOpenAI:
    """Build the OpenAI chat client from explicit settings."""
    if not settings.openai_api_key:
        raise ValueError("OPENAI_API_KEY environment variable is required")
    return ChatOpenAI(
        model=settings.model_name,
        api_key=settings.openai_api_key,
        temperature=temperature,
        timeout=settings.request_timeout,
    )


class DreamJournalService:
    """Wires the model clients into the journal shell."""

    def __init__(
        self,
        settings: Settings,
        llm: Optional[BaseChatModel] = None,
        chat_llm: Optional[BaseChatModel] = None,
    ):
        self.settings = settings
        if llm is None:
            llm = create_chat_model(settings, settings.report_temperature)
            if chat_llm is None:
                chat_llm = create_chat_model(settings, settings.chat_temperature)
            logger.info("Using OpenAI model %s", settings.model_name)
        self.llm = llm
        self.chat_llm = chat_llm or llm
        self.shell = DreamShell(self.llm, timeout=settings.request_timeout, chat_llm=self.chat_llm)

    def close(self) -> None:
        """Drop whatever dream is in progress."""
        self.shell.reset()
