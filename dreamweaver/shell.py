import logging
from enum import Enum
from typing import List, Optional

from langchain_core.language_models import BaseChatModel
from pydantic import BaseModel, Field

from dreamweaver.errors import InvalidViewError
from dreamweaver.models import AnalysisReport, ChatMessage, DreamDraft, DreamRecord
from dreamweaver.rendering import RenderedSection, render_report
from dreamweaver.report_session import ReportSession, ReportStatus

logger = logging.getLogger(__name__)


class View(str, Enum):
    FORM = "form"
    REPORT = "report"


class ChatView(BaseModel):
    messages: List[ChatMessage] = Field(default_factory=list)
    is_typing: bool = False
    available: bool = False


class ReportView(BaseModel):
    status: ReportStatus
    message: Optional[str] = None
    report: Optional[AnalysisReport] = None
    sections: List[RenderedSection] = Field(default_factory=list)
    chat: ChatView = Field(default_factory=ChatView)


class ShellSnapshot(BaseModel):
    view: View
    draft: Optional[DreamDraft] = None
    record: Optional[DreamRecord] = None
    report: Optional[ReportView] = None


class DreamShell:
    """Switches between the entry form and the report view.

    Owns at most one dream record with its report and chat at a time;
    going back to the form throws all of them away.
    """

    def __init__(
        self,
        llm: BaseChatModel,
        timeout: Optional[float] = None,
        chat_llm: Optional[BaseChatModel] = None,
    ):
        self._llm = llm
        self._chat_llm = chat_llm
        self._timeout = timeout
        self.view = View.FORM
        self.draft = DreamDraft()
        self.record: Optional[DreamRecord] = None
        self.session: Optional[ReportSession] = None

    def submit(self) -> ReportSession:
        """Turn the draft into a record and start its report."""
        if self.view != View.FORM:
            raise InvalidViewError("A dream is already being analysed; record a new dream first")

        record = self.draft.to_record()
        self.record = record
        self.session = ReportSession(
            record,
            self._llm,
            timeout=self._timeout,
            on_ready=self._chat_opened,
            chat_llm=self._chat_llm,
        )
        self.view = View.REPORT
        logger.info("Dream %s submitted with %d tags", record.id, len(record.tags))
        self.session.start()
        return self.session

    def _chat_opened(self, session: ReportSession) -> None:
        logger.info("Chat opened for dream %s", session.record.id)

    def reset(self) -> None:
        """Record a new dream: discard the record, report and chat."""
        if self.session is not None:
            self.session.cancel()
            logger.info("Discarded dream %s", self.session.record.id)
        self.session = None
        self.record = None
        self.draft = DreamDraft()
        self.view = View.FORM

    async def send_chat(self, text: str) -> bool:
        chat = self.session.chat if self.session is not None else None
        if chat is None:
            return False
        return await chat.send_user_message(text)

    def snapshot(self) -> ShellSnapshot:
        if self.view == View.FORM or self.session is None:
            return ShellSnapshot(view=self.view, draft=self.draft)

        session = self.session
        report_view = ReportView(status=session.status, message=session.error_message)
        if session.status == ReportStatus.READY and session.report is not None:
            report_view.report = session.report
            report_view.sections = render_report(session.report)
        if session.chat is not None:
            report_view.chat = ChatView(
                messages=list(session.chat.messages),
                is_typing=session.chat.is_typing,
                available=True,
            )
        return ShellSnapshot(view=self.view, record=self.record, report=report_view)
