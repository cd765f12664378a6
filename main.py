import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from langchain_core.language_models import BaseChatModel
from pydantic import BaseModel, Field

from dreamweaver import __version__
from dreamweaver.config import Settings
from dreamweaver.errors import EmptyDreamError, PerspectiveRequiredError
from dreamweaver.models import (
    TAG_TYPE_LABELS,
    DreamTag,
    Perspective,
    TagType,
    get_perspective_description,
)
from dreamweaver.service import DreamJournalService
from dreamweaver.shell import ShellSnapshot, View


# Request/Response models
class ContentRequest(BaseModel):
    content: str


class TagRequest(BaseModel):
    label: str
    type: Optional[TagType] = None


class TagTypeRequest(BaseModel):
    type: TagType


class SubmitDreamRequest(BaseModel):
    content: Optional[str] = None
    tags: Optional[List[TagRequest]] = None
    perspectives: Optional[List[Perspective]] = Field(default=None, min_length=1)


class ChatRequest(BaseModel):
    message: str


class ChatResponse(BaseModel):
    accepted: bool
    session: ShellSnapshot


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# Dependency to get the service
def get_service(request: Request) -> DreamJournalService:
    service = getattr(request.app.state, "service", None)
    if service is None:
        raise HTTPException(status_code=500, detail="Service not initialized")
    return service


def create_app(
    settings: Optional[Settings] = None,
    llm: Optional[BaseChatModel] = None,
    chat_llm: Optional[BaseChatModel] = None,
) -> FastAPI:
    """Build the API; tests pass their own settings and model doubles."""
    if settings is None:
        settings = Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level)
        app.state.service = DreamJournalService(settings, llm=llm, chat_llm=chat_llm)
        yield
        app.state.service.close()
        app.state.service = None

    app = FastAPI(
        title="Dream Weaver API",
        description="Record a dream, get a multi-dimensional report and talk it through",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    async def root():
        return {"message": "Dream Weaver API", "version": __version__}

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "timestamp": datetime.now().isoformat()}

    @app.get("/perspectives")
    async def get_perspectives():
        """List the analytical perspectives a dream can be read through."""
        return [
            {"value": p.value, "description": get_perspective_description(p)}
            for p in Perspective
        ]

    @app.get("/tag-types")
    async def get_tag_types():
        return [{"value": t.value, "label": TAG_TYPE_LABELS[t]} for t in TagType]

    @app.get("/session", response_model=ShellSnapshot)
    async def get_session(journal_service: DreamJournalService = Depends(get_service)):
        return journal_service.shell.snapshot()

    @app.put("/draft/content", response_model=ShellSnapshot)
    async def set_content(
        request: ContentRequest,
        journal_service: DreamJournalService = Depends(get_service),
    ):
        shell = _form_shell(journal_service)
        shell.draft.content = request.content
        return shell.snapshot()

    @app.post("/draft/tags", response_model=ShellSnapshot)
    async def add_tag(
        request: TagRequest,
        journal_service: DreamJournalService = Depends(get_service),
    ):
        """Add a tag; blank labels are ignored."""
        shell = _form_shell(journal_service)
        shell.draft.add_tag(request.label, request.type)
        return shell.snapshot()

    @app.delete("/draft/tags/{tag_id}", response_model=ShellSnapshot)
    async def remove_tag(tag_id: str, journal_service: DreamJournalService = Depends(get_service)):
        shell = _form_shell(journal_service)
        shell.draft.remove_tag(tag_id)
        return shell.snapshot()

    @app.put("/draft/tag-type", response_model=ShellSnapshot)
    async def set_tag_type(
        request: TagTypeRequest,
        journal_service: DreamJournalService = Depends(get_service),
    ):
        shell = _form_shell(journal_service)
        shell.draft.set_active_tag_type(request.type)
        return shell.snapshot()

    @app.post("/draft/perspectives/{perspective}", response_model=ShellSnapshot)
    async def toggle_perspective(
        perspective: Perspective,
        journal_service: DreamJournalService = Depends(get_service),
    ):
        shell = _form_shell(journal_service)
        try:
            shell.draft.toggle_perspective(perspective)
        except PerspectiveRequiredError as e:
            raise HTTPException(status_code=409, detail=str(e))
        return shell.snapshot()

    @app.post("/dreams", response_model=ShellSnapshot)
    async def submit_dream(
        request: Optional[SubmitDreamRequest] = None,
        wait: bool = False,
        journal_service: DreamJournalService = Depends(get_service),
    ):
        """Submit the dream and start its report.

        Fields given in the body replace the draft's before submitting. With
        ``wait=true`` the response is sent once the report has settled.
        """
        shell = _form_shell(journal_service)
        if request is not None:
            if request.content is not None:
                shell.draft.content = request.content
            if request.tags is not None:
                shell.draft.tags = [DreamTag(type=t.type or shell.draft.active_tag_type, label=t.label)
                                    for t in request.tags if t.label.strip()]
            if request.perspectives is not None:
                shell.draft.perspectives = list(dict.fromkeys(request.perspectives))

        try:
            session = shell.submit()
        except EmptyDreamError as e:
            raise HTTPException(status_code=422, detail=str(e))

        if wait:
            await session.wait()
        return shell.snapshot()

    @app.post("/chat", response_model=ChatResponse)
    async def chat(
        request: ChatRequest,
        journal_service: DreamJournalService = Depends(get_service),
    ):
        """Ask a follow-up question about the current report."""
        shell = journal_service.shell
        if shell.view != View.REPORT:
            raise HTTPException(status_code=409, detail="There is no report to talk about yet")
        accepted = await shell.send_chat(request.message)
        return ChatResponse(accepted=accepted, session=shell.snapshot())

    @app.post("/reset", response_model=ShellSnapshot)
    async def record_new_dream(journal_service: DreamJournalService = Depends(get_service)):
        journal_service.shell.reset()
        return journal_service.shell.snapshot()

    return app


def _form_shell(journal_service: DreamJournalService):
    shell = journal_service.shell
    if shell.view != View.FORM:
        raise HTTPException(status_code=409, detail="The entry form is only available before a dream is submitted")
    return shell


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
