from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr, field_validator

from dreamweaver.errors import EmptyDreamError, PerspectiveRequiredError


def new_id() -> str:
    return uuid4().hex


# Analytical lenses offered on the entry form
class Perspective(str, Enum):
    PSYCHOLOGICAL = "Psychological"
    CULTURAL = "Cultural"
    CREATIVE = "Creative"


PERSPECTIVE_DESCRIPTIONS = {
    Perspective.PSYCHOLOGICAL: "Dig into your inner state and unconscious compensation",
    Perspective.CULTURAL: "Connect with collective symbols and cultural archetypes",
    Perspective.CREATIVE: "Capture narrative inspiration and visual metaphors",
}


def get_perspective_description(perspective: Perspective) -> str:
    return PERSPECTIVE_DESCRIPTIONS.get(perspective, "")


class TagType(str, Enum):
    EMOTION = "emotion"
    OBJECT = "object"
    PERSON = "person"
    LOCATION = "location"


TAG_TYPE_LABELS = {
    TagType.EMOTION: "Emotion",
    TagType.OBJECT: "Object",
    TagType.PERSON: "Person",
    TagType.LOCATION: "Location",
}


class DreamTag(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    type: TagType
    label: str


class DreamRecord(BaseModel):
    """One submitted dream entry. Never changes once built."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    content: str
    tags: List[DreamTag] = Field(default_factory=list)
    perspectives: List[Perspective] = Field(default_factory=lambda: [Perspective.PSYCHOLOGICAL])
    timestamp: datetime = Field(default_factory=datetime.now)

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("dream content must not be empty")
        return value

    @field_validator("perspectives")
    @classmethod
    def perspectives_not_empty(cls, value: List[Perspective]) -> List[Perspective]:
        if not value:
            raise ValueError("at least one perspective is required")
        # keep the first occurrence of each perspective
        return list(dict.fromkeys(value))

    @property
    def tag_labels(self) -> List[str]:
        return [tag.label for tag in self.tags]


# Structured output returned by the model
class ReportSection(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: StrictStr = Field(description="section title, e.g. 'Projection of the unconscious'")
    content: StrictStr = Field(description="the analysis for this dimension")


class AnalysisReport(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    main_analysis: StrictStr = Field(alias="mainAnalysis", description="core in-depth synthesis of the dream")
    sections: List[ReportSection] = Field(description="one section per requested perspective")
    life_work_advice: StrictStr = Field(alias="lifeWorkAdvice", description="concrete advice for life and work")
    adjustment_tips: StrictStr = Field(alias="adjustmentTips", description="self-adjustment and wellbeing suggestions")
    is_nightmare: StrictBool = Field(alias="isNightmare", description="whether the dream is judged a stress dream or nightmare")
    healing_message: Optional[StrictStr] = Field(
        default=None,
        alias="healingMessage",
        description="transformation and healing words, only for nightmares",
    )


class ChatRole(str, Enum):
    USER = "user"
    MODEL = "model"


class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: ChatRole
    text: str


class DreamDraft(BaseModel):
    """Editable state of the entry form."""

    content: str = ""
    tags: List[DreamTag] = Field(default_factory=list)
    perspectives: List[Perspective] = Field(default_factory=lambda: [Perspective.PSYCHOLOGICAL])
    active_tag_type: TagType = TagType.OBJECT

    def add_tag(self, label: str, tag_type: Optional[TagType] = None) -> Optional[DreamTag]:
        if not label.strip():
            return None
        tag = DreamTag(type=tag_type or self.active_tag_type, label=label)
        self.tags = [*self.tags, tag]
        return tag

    def remove_tag(self, tag_id: str) -> None:
        self.tags = [tag for tag in self.tags if tag.id != tag_id]

    def set_active_tag_type(self, tag_type: TagType) -> None:
        self.active_tag_type = tag_type

    def toggle_perspective(self, perspective: Perspective) -> List[Perspective]:
        """Select or deselect a perspective; the last one can't be removed."""
        if perspective in self.perspectives:
            if len(self.perspectives) == 1:
                raise PerspectiveRequiredError(
                    f"'{perspective.value}' is the only selected perspective and can't be removed"
                )
            self.perspectives = [p for p in self.perspectives if p != perspective]
        else:
            self.perspectives = [*self.perspectives, perspective]
        return self.perspectives

    @property
    def can_submit(self) -> bool:
        return bool(self.content.strip())

    def to_record(self) -> DreamRecord:
        if not self.can_submit:
            raise EmptyDreamError("Please describe your dream before submitting")
        return DreamRecord(
            content=self.content.strip(),
            tags=list(self.tags),
            perspectives=list(self.perspectives),
        )
