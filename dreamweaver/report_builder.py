import json
import logging
from typing import Any, Dict, List, Sequence

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langchain_core.prompts import ChatPromptTemplate
from pydantic import BaseModel, ConfigDict, ValidationError

from dreamweaver.errors import ReportGenerationError
from dreamweaver.models import AnalysisReport, Perspective

logger = logging.getLogger(__name__)

MALFORMED_REPORT_MESSAGE = (
    "The dream ran too deep and the star chart could not be read. Please try again later."
)

REPORT_SYSTEM_INSTRUCTION = """
You are a leading dream interpretation expert who combines Jungian psychology,
social anthropology and career counselling experience.
Write the user a multi-dimensional dream report. Do not start a branching
dialogue: deliver the complete in-depth analysis in one pass.

The report must contain these modules:
1. Core synthesis: the overall atmosphere of the dream and its underlying motives.
2. Multi-perspective analysis: in-depth analysis from the perspectives the user selected ({perspectives}), and only those.
3. Reality guidance: concrete insights and advice for everyday life, work and relationships.
4. Self-adjustment: ways to regulate the emotions felt in the dream, or actions to take (meditation, journaling, talking it through...).

Tone: professional, wise and full of humane care.
If the dream is a nightmare: add a "healing transformation" module that explains the strength hidden behind the fear and offers gentle reassurance.

Output format: you must return a single JSON object that follows the declared schema.
"""

REPORT_USER_PROMPT = """
Dream: "{dream_content}"
Key elements: {tags}
Selected perspectives: {perspectives}

Write the in-depth report from this. Life and work advice must be specific; self-adjustment tips must be actionable.
"""

REPORT_PROMPT = ChatPromptTemplate.from_messages(
    [("system", REPORT_SYSTEM_INSTRUCTION), ("human", REPORT_USER_PROMPT)]
)

REPORT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "mainAnalysis": {"type": "string", "description": "Core in-depth synthesis."},
        "sections": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "title": {"type": "string", "description": "Section title, e.g. 'Projection of the unconscious'."},
                    "content": {"type": "string", "description": "The analysis for this dimension."},
                },
                "required": ["title", "content"],
            },
        },
        "lifeWorkAdvice": {"type": "string", "description": "Concrete advice for life and work."},
        "adjustmentTips": {"type": "string", "description": "Self-adjustment and mental wellbeing suggestions."},
        "isNightmare": {"type": "boolean", "description": "Whether the dream is judged a stress dream or nightmare."},
        "healingMessage": {"type": "string", "description": "For nightmares, words of transformation and healing."},
    },
    "required": ["mainAnalysis", "sections", "lifeWorkAdvice", "adjustmentTips", "isNightmare"],
}


class ReportRequest(BaseModel):
    """Everything sent to the model for one report."""

    model_config = ConfigDict(frozen=True)

    system_instruction: str
    prompt: str
    output_schema: Dict[str, Any]

    def to_messages(self) -> List[BaseMessage]:
        return [SystemMessage(content=self.system_instruction), HumanMessage(content=self.prompt)]

    @property
    def response_format(self) -> Dict[str, Any]:
        return {
            "type": "json_schema",
            "json_schema": {"name": "analysis_report", "schema": self.output_schema},
        }


def build_report_request(
    dream_content: str,
    perspectives: Sequence[Perspective],
    tag_labels: Sequence[str],
) -> ReportRequest:
    """Assemble the instruction, prompt and output schema for a dream."""
    if not perspectives:
        raise ValueError("at least one perspective is required")

    perspective_names = ", ".join(Perspective(p).value for p in perspectives)
    system_message, human_message = REPORT_PROMPT.format_messages(
        dream_content=dream_content,
        tags=", ".join(tag_labels),
        perspectives=perspective_names,
    )

    logger.debug(
        "Built report request: %d chars of dream, %d tags, perspectives=%s",
        len(dream_content), len(tag_labels), perspective_names,
    )
    return ReportRequest(
        system_instruction=system_message.content,
        prompt=human_message.content,
        output_schema=REPORT_SCHEMA,
    )


def message_text(message: Any) -> str:
    """Plain text of a model reply, whatever shape its content has."""
    content = getattr(message, "content", message)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text", ""))
        return "".join(parts)
    return ""


def parse_report(text: str) -> AnalysisReport:
    """Parse the raw reply into a report, or fail without a partial result."""
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as error:
        logger.warning("Report reply is not JSON (%s): %.200r", error, text)
        raise ReportGenerationError(MALFORMED_REPORT_MESSAGE, detail=str(error)) from error

    if not isinstance(data, dict):
        logger.warning("Report reply is a %s, not an object", type(data).__name__)
        raise ReportGenerationError(MALFORMED_REPORT_MESSAGE, detail="expected a JSON object")

    try:
        return AnalysisReport.model_validate(data)
    except ValidationError as error:
        logger.warning("Report reply does not match the schema: %s", error)
        raise ReportGenerationError(MALFORMED_REPORT_MESSAGE, detail=str(error)) from error
