"""
Tests for the session context store and bootstrap guard.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from interview_client.errors import MissingSessionContextError
from interview_client.models import IndividualPersona, OrganizationPersona
from interview_client.session_context import (
    INTERVIEW_ID_KEY,
    PERSONA_KEY,
    PROBLEM_KEY,
    SOLUTION_KEY,
    SessionContextStore,
    require_session_context,
)
from tests.mock_data import generate_individual_persona, generate_organization_persona


class TestSessionContextStore:
    """Tests for read/write/clear."""

    def test_read_without_write_is_absent(self) -> None:
        """An empty store reads as absent."""
        assert SessionContextStore({}).read() is None

    def test_read_after_write_returns_same_context(self) -> None:
        """Read returns exactly the written id and persona."""
        store = SessionContextStore({})
        persona = generate_individual_persona()

        store.write("abc123", persona, problem="Meal planning", solution="Planner app")
        context = store.read()

        assert context is not None
        assert context.interview_id == "abc123"
        assert context.persona == persona
        assert isinstance(context.persona, IndividualPersona)
        assert context.problem == "Meal planning"
        assert context.solution == "Planner app"

    def test_organization_persona_survives_serialization(self) -> None:
        """The persona discriminator restores the B2B variant."""
        store = SessionContextStore({})
        persona = generate_organization_persona()

        store.write("org-1", persona)
        context = store.read()

        assert context is not None
        assert isinstance(context.persona, OrganizationPersona)
        assert context.persona.role == "Controller"

    def test_values_are_strings_under_known_keys(self) -> None:
        """Storage holds string values under the documented keys."""
        storage: dict[str, str] = {}
        store = SessionContextStore(storage)

        store.write("abc123", generate_individual_persona(), problem="p", solution="s")

        assert storage[INTERVIEW_ID_KEY] == "abc123"
        assert '"kind":"individual"' in storage[PERSONA_KEY]
        assert storage[PROBLEM_KEY] == "p"
        assert storage[SOLUTION_KEY] == "s"
        assert all(isinstance(value, str) for value in storage.values())

    def test_write_replaces_previous_context(self) -> None:
        """A new write drops stale optional fields of the previous one."""
        storage: dict[str, str] = {}
        store = SessionContextStore(storage)
        store.write("first", generate_individual_persona(), problem="old", solution="old")

        store.write("second", generate_organization_persona())
        context = store.read()

        assert context is not None
        assert context.interview_id == "second"
        assert context.problem is None
        assert PROBLEM_KEY not in storage

    def test_invalid_write_leaves_storage_untouched(self) -> None:
        """A rejected write stores nothing."""
        storage: dict[str, str] = {}
        store = SessionContextStore(storage)
        store.write("keep-me", generate_individual_persona())
        snapshot = dict(storage)

        with pytest.raises(ValidationError):
            store.write("", generate_individual_persona())

        assert storage == snapshot

    @pytest.mark.parametrize("missing_key", [INTERVIEW_ID_KEY, PERSONA_KEY])
    def test_partial_context_reads_as_absent(self, missing_key: str) -> None:
        """Either required field alone never yields a context."""
        storage: dict[str, str] = {}
        store = SessionContextStore(storage)
        store.write("abc123", generate_individual_persona())

        del storage[missing_key]

        assert store.read() is None

    def test_unreadable_persona_reads_as_absent(self) -> None:
        """Garbage in the persona slot reads as absent."""
        store = SessionContextStore(
            {INTERVIEW_ID_KEY: "abc123", PERSONA_KEY: "{not json"}
        )

        assert store.read() is None

    def test_clear_removes_every_key(self) -> None:
        """Clear leaves no context keys behind."""
        storage: dict[str, str] = {"unrelated": "x"}
        store = SessionContextStore(storage)
        store.write("abc123", generate_individual_persona(), problem="p", solution="s")

        store.clear()

        assert storage == {"unrelated": "x"}
        assert store.read() is None


class TestRequireSessionContext:
    """Tests for the bootstrap guard."""

    def test_returns_stored_context(self) -> None:
        """Guard returns the context when present."""
        store = SessionContextStore({})
        store.write("abc123", generate_individual_persona())

        assert require_session_context(store).interview_id == "abc123"

    def test_raises_when_missing(self) -> None:
        """Guard raises with its machine-readable code when absent."""
        with pytest.raises(MissingSessionContextError) as exc_info:
            require_session_context(SessionContextStore({}))

        assert exc_info.value.error_code == "SESSION_CONTEXT_MISSING"
