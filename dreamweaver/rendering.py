from enum import Enum
from typing import List, Optional

from pydantic import BaseModel

from dreamweaver.models import AnalysisReport


class SectionKind(str, Enum):
    SYNTHESIS = "synthesis"
    PERSPECTIVE = "perspective"
    GUIDANCE = "guidance"
    ADJUSTMENT = "adjustment"
    HEALING = "healing"


class RenderedSection(BaseModel):
    kind: SectionKind
    title: str
    content: str
    eyebrow: Optional[str] = None


def render_report(report: AnalysisReport) -> List[RenderedSection]:
    """Lay the report out as the ordered sections of the report view.

    Every nightmare gets the healing section, empty when the model sent
    no message.
    """
    rendered = [
        RenderedSection(kind=SectionKind.SYNTHESIS, title="Core Synthesis", content=report.main_analysis),
    ]
    for index, section in enumerate(report.sections, 1):
        rendered.append(
            RenderedSection(
                kind=SectionKind.PERSPECTIVE,
                title=section.title,
                content=section.content,
                eyebrow=f"Section {index:02d}",
            )
        )
    rendered.append(
        RenderedSection(
            kind=SectionKind.GUIDANCE,
            title="Insights for Life and Work",
            content=report.life_work_advice,
            eyebrow="Reality Guidance",
        )
    )
    rendered.append(
        RenderedSection(
            kind=SectionKind.ADJUSTMENT,
            title="A Prescription for the Heart",
            content=report.adjustment_tips,
            eyebrow="Self-Adjustment Tips",
        )
    )
    if report.is_nightmare:
        rendered.append(
            RenderedSection(
                kind=SectionKind.HEALING,
                title="Light in the Shadow",
                content=report.healing_message or "",
                eyebrow="Healing Transformation",
            )
        )
    return rendered
