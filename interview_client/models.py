"""
Pydantic models for the Adversarial Interview client.

Defines the persona union locked at intake, transcript entries delivered
over the live stream, stream errors, and the request/response bodies of
the interview backend.

Wire names follow the backend (camelCase, ``agent``/``message`` for
transcript turns); Python attributes are snake_case.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel


# =============================================================================
# Persona
# =============================================================================


class IndividualPersona(BaseModel):
    """
    B2C persona: one individual customer spending their own money.

    Example:
        >>> persona = IndividualPersona(
        ...     jtbd="Plan weekly meals for a family of four",
        ...     current_alternative="Pinterest boards and a paper list",
        ...     psychographics="Budget-conscious, time-poor",
        ...     budget_authority="household",
        ... )
    """
    kind: Literal["individual"] = "individual"
    jtbd: str = Field(..., min_length=1, description="Job-to-be-done in the persona's words")
    current_alternative: str = Field(
        ..., min_length=1, description="What the persona uses today instead"
    )
    age_range: Optional[str] = Field(default=None, description="Age bracket, e.g. '25-34'")
    location: Optional[str] = Field(default=None, description="Region or city type")
    psychographics: Optional[str] = Field(default=None, description="Values, habits, attitudes")
    disposable_income: Optional[int] = Field(
        default=500, ge=0, description="Monthly disposable income in USD"
    )
    budget_authority: Optional[Literal["personal", "household"]] = Field(
        default=None, description="Whose budget pays for the purchase"
    )

    model_config = {"extra": "ignore"}

    @property
    def label(self) -> str:
        return "B2C Individual Customer"


class OrganizationPersona(BaseModel):
    """B2B persona: a buyer inside an organization."""
    kind: Literal["organization"] = "organization"
    jtbd: str = Field(..., min_length=1, description="Job-to-be-done in the persona's words")
    current_alternative: str = Field(
        ..., min_length=1, description="What the organization uses today instead"
    )
    industry: Optional[str] = Field(default=None, description="Industry vertical")
    role: Optional[str] = Field(default=None, description="Buyer's job title")
    company_size: Optional[str] = Field(default=None, description="Headcount bracket")
    budget_authority: Optional[Literal["cost-center", "recommender", "no-authority"]] = Field(
        default=None, description="Purchasing power of the buyer"
    )

    model_config = {"extra": "ignore"}

    @property
    def label(self) -> str:
        return "B2B Organization Buyer"


Persona = Annotated[
    Union[IndividualPersona, OrganizationPersona],
    Field(discriminator="kind"),
]

PERSONA_ADAPTER: TypeAdapter[Persona] = TypeAdapter(Persona)


# =============================================================================
# Transcript
# =============================================================================


class Speaker(str, Enum):
    """
    The two agents in an interview run.

    Attributes:
        INITIATOR: The interviewing agent asking Mom Test questions.
        RESPONDENT: The simulated customer answering as the persona.
    """

    INITIATOR = "interviewer"
    RESPONDENT = "customer"


class TranscriptEntry(BaseModel):
    """
    One turn of the conversation as delivered by a ``message`` push event.

    Example:
        >>> entry = TranscriptEntry.model_validate({
        ...     "id": "1",
        ...     "agent": "interviewer",
        ...     "message": "Tell me about your process",
        ...     "timestamp": "2026-02-01T10:30:00Z",
        ... })
        >>> entry.speaker
        <Speaker.INITIATOR: 'interviewer'>
    """
    id: str = Field(..., min_length=1, description="Unique within one interview")
    speaker: Speaker = Field(..., alias="agent", description="Which agent produced the turn")
    text: str = Field(..., alias="message", description="Turn text, unbounded")
    produced_at: datetime = Field(..., alias="timestamp", description="When the turn was produced")

    model_config = {"extra": "ignore", "frozen": True, "populate_by_name": True}


class StreamErrorKind(str, Enum):
    """
    Why a live stream ended without completing.

    Attributes:
        TRANSPORT: Connection refused, dropped, or ended before ``complete``.
        HANDSHAKE: Stream response had a non-2xx status or wrong content type.
        SERVER: The backend pushed an explicit ``error`` event.
        DECODE: An event body was not JSON or did not match its schema.
        STALLED: Nothing arrived within the stall timeout.
    """

    TRANSPORT = "transport"
    HANDSHAKE = "handshake"
    SERVER = "server"
    DECODE = "decode"
    STALLED = "stalled"


class StreamError(BaseModel):
    """Error information handed to ``on_error`` exactly once per stream."""
    kind: StreamErrorKind
    message: str
    detail: Any = None

    model_config = {"frozen": True}


# =============================================================================
# HTTP bodies
# =============================================================================


class _CamelModel(BaseModel):
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "extra": "ignore",
    }


class StartInterviewRequest(BaseModel):
    """Body of ``POST /api/interviews/start``."""
    persona_id: str = Field(..., min_length=1)
    problem: str = Field(..., min_length=1)
    solution: str = Field(..., min_length=1)


class StartInterviewResponse(_CamelModel):
    """Backend acknowledgement of a started interview run."""
    interview_id: str = Field(..., min_length=1)
    status: str = "in-progress"


class InterviewStatus(_CamelModel):
    """Polling fallback view of an interview run."""
    interview_id: str
    status: Literal["in-progress", "completed", "failed"]
    message_count: int = 0
    is_complete: bool = False


# =============================================================================
# Insight Report
# =============================================================================


class Verdict(str, Enum):
    """Go/no-go call of the analysis engine."""

    GO = "GO"
    MAYBE = "MAYBE"
    NO_GO = "NO-GO"


_VERDICT_SPELLINGS = {
    "GO": Verdict.GO,
    "MAYBE": Verdict.MAYBE,
    "AMBIGUOUS": Verdict.MAYBE,
    "NO-GO": Verdict.NO_GO,
    "NO_GO": Verdict.NO_GO,
    "NOGO": Verdict.NO_GO,
}


class ScoredDimension(_CamelModel):
    """One scored axis of the report."""
    score: float
    label: str = ""
    reasoning: str = ""


class InsightScores(_CamelModel):
    problem: ScoredDimension
    market: ScoredDimension
    willingness_to_pay: ScoredDimension


class InsightReport(_CamelModel):
    """
    Final analysis produced by the backend after an interview completes.

    The client treats the report as read-only. Fields the client does not
    know about are kept on the model (``extra="allow"``) so newer backends
    can add sections without breaking older clients.
    """
    verdict: Verdict
    confidence: float = Field(..., ge=0.0, le=100.0, description="Confidence percentage")
    scores: InsightScores
    positive_signals: list[str] = Field(default_factory=list)
    risk_signals: list[str] = Field(default_factory=list)
    execution_challenges: list[str] = Field(default_factory=list)
    next_steps: list[str] = Field(default_factory=list)
    quotes: list[str] = Field(default_factory=list)

    model_config = {**_CamelModel.model_config, "extra": "allow"}

    @field_validator("verdict", mode="before")
    @classmethod
    def normalize_verdict(cls, value: Any) -> Any:
        if isinstance(value, str):
            normalized = value.strip().upper().replace(" ", "-")
            return _VERDICT_SPELLINGS.get(normalized, value)
        return value
