"""
Session Context Store.

Holds the minimal context a browsing session needs to find its interview
again: the interview id and the locked persona (plus the problem and
solution text entered at intake). Values are string-serialized into any
``MutableMapping[str, str]``; the Streamlit UI passes ``st.query_params``
so the context survives a page reload of the same tab, tests and the CLI
pass a plain dict.

Either every field of a write lands in storage or none does, and a read
that finds only part of the context reports it as absent.
"""

import logging
from typing import MutableMapping, Optional

from pydantic import BaseModel, Field, ValidationError

from .errors import MissingSessionContextError
from .models import PERSONA_ADAPTER, Persona


__all__ = [
    "SessionContext",
    "SessionContextStore",
    "require_session_context",
    "INTERVIEW_ID_KEY",
    "PERSONA_KEY",
    "PROBLEM_KEY",
    "SOLUTION_KEY",
]


logger = logging.getLogger(__name__)


INTERVIEW_ID_KEY = "currentInterviewId"
PERSONA_KEY = "currentPersona"
PROBLEM_KEY = "currentProblem"
SOLUTION_KEY = "currentSolution"

_ALL_KEYS = (INTERVIEW_ID_KEY, PERSONA_KEY, PROBLEM_KEY, SOLUTION_KEY)


class SessionContext(BaseModel):
    """Identifying state of the interview a browsing session is following."""
    interview_id: str = Field(..., min_length=1)
    persona: Persona
    problem: Optional[str] = None
    solution: Optional[str] = None

    model_config = {"frozen": True}


class SessionContextStore:
    """
    Read/write/clear access to the session context.

    Example:
        >>> store = SessionContextStore({})
        >>> store.write("abc123", persona, problem="...", solution="...")
        >>> store.read().interview_id
        'abc123'
    """

    def __init__(self, storage: Optional[MutableMapping[str, str]] = None) -> None:
        self._storage: MutableMapping[str, str] = {} if storage is None else storage

    def write(
        self,
        interview_id: str,
        persona: Persona,
        problem: Optional[str] = None,
        solution: Optional[str] = None,
    ) -> SessionContext:
        """
        Store a new session context, replacing any previous one.

        All values are validated and serialized before storage is touched.

        Raises:
            ValidationError: If the interview id is empty or the persona invalid.
        """
        context = SessionContext(
            interview_id=interview_id,
            persona=persona,
            problem=problem,
            solution=solution,
        )
        values = {
            INTERVIEW_ID_KEY: context.interview_id,
            PERSONA_KEY: PERSONA_ADAPTER.dump_json(context.persona).decode("utf-8"),
        }
        if context.problem is not None:
            values[PROBLEM_KEY] = context.problem
        if context.solution is not None:
            values[SOLUTION_KEY] = context.solution

        for stale_key in set(_ALL_KEYS) - set(values):
            if stale_key in self._storage:
                del self._storage[stale_key]
        self._storage.update(values)

        logger.info(
            "Stored session context for interview %s (%s persona)",
            context.interview_id,
            context.persona.kind,
        )
        return context

    def read(self) -> Optional[SessionContext]:
        """Return the stored context, or None if it is absent or incomplete."""
        interview_id = self._storage.get(INTERVIEW_ID_KEY)
        persona_json = self._storage.get(PERSONA_KEY)

        if not interview_id or not persona_json:
            if interview_id or persona_json:
                logger.warning("Ignoring half-written session context")
            return None

        try:
            persona = PERSONA_ADAPTER.validate_json(persona_json)
            return SessionContext(
                interview_id=interview_id,
                persona=persona,
                problem=self._storage.get(PROBLEM_KEY),
                solution=self._storage.get(SOLUTION_KEY),
            )
        except ValidationError as e:
            logger.warning("Stored session context is unreadable: %s", e)
            return None

    def clear(self) -> None:
        """Remove every session context key."""
        for key in _ALL_KEYS:
            if key in self._storage:
                del self._storage[key]
        logger.debug("Session context cleared")


def require_session_context(store: SessionContextStore) -> SessionContext:
    """
    Bootstrap guard for views that need an active interview.

    Raises:
        MissingSessionContextError: If no complete context is stored; the
            caller redirects to intake without making any request.
    """
    context = store.read()
    if context is None:
        raise MissingSessionContextError()
    return context
