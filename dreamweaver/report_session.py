import asyncio
import logging
from enum import Enum
from typing import Callable, Optional

import openai
from langchain_core.language_models import BaseChatModel

from dreamweaver.chat_session import ChatSession, build_chat_preamble
from dreamweaver.errors import ReportGenerationError
from dreamweaver.models import AnalysisReport, DreamRecord
from dreamweaver.report_builder import ReportRequest, build_report_request, message_text, parse_report

logger = logging.getLogger(__name__)

TRANSPORT_FAILURE_MESSAGE = "The threads of the dream were lost in transit. Let's try once more."
PROVIDER_FAILURE_MESSAGE = "The dream oracle could not be reached just now. Please try again in a moment."


class ReportStatus(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    READY = "ready"
    FAILED = "failed"


class ReportSession:
    """Generation of the analysis report for one dream record.

    Moves ``IDLE -> REQUESTING -> READY | FAILED`` exactly once. Reaching
    READY opens the follow-up chat seeded with the dream and the report.
    After ``cancel()`` a late reply is dropped and no transition happens.
    """

    def __init__(
        self,
        record: DreamRecord,
        llm: BaseChatModel,
        timeout: Optional[float] = None,
        on_ready: Optional[Callable[["ReportSession"], None]] = None,
        chat_llm: Optional[BaseChatModel] = None,
    ):
        self.record = record
        self._llm = llm
        self._chat_llm = chat_llm or llm
        self._timeout = timeout
        self._on_ready = on_ready
        self._task: Optional[asyncio.Task] = None

        self.status = ReportStatus.IDLE
        self.report: Optional[AnalysisReport] = None
        self.error_message: Optional[str] = None
        self.chat: Optional[ChatSession] = None
        self.cancelled = False

    def start(self) -> asyncio.Task:
        """Issue the report request; later calls return the same task."""
        if self._task is None:
            self.status = ReportStatus.REQUESTING
            logger.info("Requesting report for dream %s", self.record.id)
            self._task = asyncio.get_running_loop().create_task(self._run())
        return self._task

    async def wait(self) -> ReportStatus:
        """Wait until the request settles (or is cancelled)."""
        if self._task is not None:
            await asyncio.wait({self._task})
        return self.status

    def cancel(self) -> None:
        self.cancelled = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
        if self.chat is not None:
            self.chat.close()

    async def _run(self) -> None:
        request = build_report_request(
            self.record.content, self.record.perspectives, self.record.tag_labels
        )
        try:
            report = await self._generate(request)
        except ReportGenerationError as error:
            self._fail(error)
        else:
            self._succeed(report)

    async def _generate(self, request: ReportRequest) -> AnalysisReport:
        try:
            result = await asyncio.wait_for(
                self._llm.ainvoke(request.to_messages(), response_format=request.response_format),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as error:
            logger.error("Report request timed out after %ss", self._timeout)
            raise ReportGenerationError(TRANSPORT_FAILURE_MESSAGE, detail="timeout") from error
        except openai.APIError as error:
            logger.error("Model provider rejected the report request: %s", error)
            raise ReportGenerationError(PROVIDER_FAILURE_MESSAGE, detail=f"{type(error).__name__}: {error}") from error
        except Exception as error:
            logger.error("Report request failed: %s", error)
            raise ReportGenerationError(TRANSPORT_FAILURE_MESSAGE, detail=str(error)) from error

        return parse_report(message_text(result))

    def _settled(self) -> bool:
        if self.cancelled:
            logger.info("Discarding stale report reply for dream %s", self.record.id)
            return True
        return self.status != ReportStatus.REQUESTING

    def _succeed(self, report: AnalysisReport) -> None:
        if self._settled():
            return
        self.report = report
        self.status = ReportStatus.READY
        self.chat = ChatSession(
            self._chat_llm,
            build_chat_preamble(self.record.content, self.record.tag_labels, report.main_analysis),
            timeout=self._timeout,
        )
        logger.info(
            "Report ready for dream %s (%d sections, nightmare=%s)",
            self.record.id, len(report.sections), report.is_nightmare,
        )
        if self._on_ready is not None:
            self._on_ready(self)

    def _fail(self, error: ReportGenerationError) -> None:
        if self._settled():
            return
        self.error_message = error.message
        self.status = ReportStatus.FAILED
        logger.warning("Report failed for dream %s: %s", self.record.id, error.detail or error.message)
