"""
Validation tests for the wire models.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from interview_client.models import (
    PERSONA_ADAPTER,
    IndividualPersona,
    InsightReport,
    OrganizationPersona,
    Speaker,
    TranscriptEntry,
    Verdict,
)
from tests.mock_data import generate_insight_report_body, generate_transcript_payload


class TestPersona:
    """Tests for the persona union."""

    def test_discriminator_selects_variant(self) -> None:
        """kind picks the B2C or B2B model."""
        b2c = PERSONA_ADAPTER.validate_python(
            {"kind": "individual", "jtbd": "x", "current_alternative": "y"}
        )
        b2b = PERSONA_ADAPTER.validate_python(
            {"kind": "organization", "jtbd": "x", "current_alternative": "y", "role": "CTO"}
        )

        assert isinstance(b2c, IndividualPersona)
        assert b2c.disposable_income == 500
        assert isinstance(b2b, OrganizationPersona)
        assert b2b.label == "B2B Organization Buyer"

    def test_unknown_kind_rejected(self) -> None:
        """A kind outside the union fails validation."""
        with pytest.raises(ValidationError):
            PERSONA_ADAPTER.validate_python({"kind": "robot", "jtbd": "x", "current_alternative": "y"})

    def test_budget_authority_is_per_variant(self) -> None:
        """B2B budget values are not valid for individuals."""
        with pytest.raises(ValidationError):
            IndividualPersona(jtbd="x", current_alternative="y", budget_authority="cost-center")


class TestTranscriptEntry:
    """Tests for wire field mapping."""

    def test_wire_names_map_to_attributes(self) -> None:
        """agent/message/timestamp become speaker/text/produced_at."""
        entry = TranscriptEntry.model_validate(
            generate_transcript_payload("7", Speaker.RESPONDENT, "We use spreadsheets")
        )

        assert entry.speaker == Speaker.RESPONDENT
        assert entry.text == "We use spreadsheets"
        assert entry.produced_at.tzinfo is not None

    def test_unknown_agent_rejected(self) -> None:
        """Only the two agent roles are accepted."""
        payload = generate_transcript_payload("7", Speaker.RESPONDENT, "hi")
        payload["agent"] = "moderator"

        with pytest.raises(ValidationError):
            TranscriptEntry.model_validate(payload)

    def test_entries_are_immutable(self) -> None:
        """Entries cannot be edited after arrival."""
        entry = TranscriptEntry.model_validate(generate_transcript_payload("1", Speaker.INITIATOR, "hi"))

        with pytest.raises(ValidationError):
            entry.text = "edited"  # type: ignore[misc]


class TestInsightReport:
    """Tests for report parsing."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("GO", Verdict.GO),
            ("go", Verdict.GO),
            ("Maybe", Verdict.MAYBE),
            ("AMBIGUOUS", Verdict.MAYBE),
            ("NO-GO", Verdict.NO_GO),
            ("no_go", Verdict.NO_GO),
            ("No Go", Verdict.NO_GO),
        ],
    )
    def test_verdict_spellings(self, raw: str, expected: Verdict) -> None:
        """Verdict spellings normalize to the three canonical values."""
        report = InsightReport.model_validate(generate_insight_report_body(verdict=raw))

        assert report.verdict == expected

    def test_unknown_verdict_rejected(self) -> None:
        """Anything else is invalid."""
        with pytest.raises(ValidationError):
            InsightReport.model_validate(generate_insight_report_body(verdict="PERHAPS"))

    def test_confidence_bounds(self) -> None:
        """Confidence is a 0-100 percentage."""
        with pytest.raises(ValidationError):
            InsightReport.model_validate(generate_insight_report_body(confidence=140))

    def test_snake_case_and_extra_fields(self) -> None:
        """snake_case keys are accepted and unknown fields preserved."""
        body = generate_insight_report_body()
        body["positive_signals"] = body.pop("positiveSignals")
        body["interviewerNotes"] = "keep me"

        report = InsightReport.model_validate(body)

        assert report.positive_signals == ["Quantified weekly time cost"]
        assert report.model_extra == {"interviewerNotes": "keep me"}
