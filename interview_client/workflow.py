"""Composite steps shared by the Streamlit UI and the CLI."""

from __future__ import annotations

import logging

from .api_client import InterviewApiClient, new_persona_id
from .models import InsightReport, Persona
from .session_context import SessionContext, SessionContextStore, require_session_context


logger = logging.getLogger(__name__)


async def start_session(
    api: InterviewApiClient,
    store: SessionContextStore,
    persona: Persona,
    problem: str,
    solution: str,
) -> SessionContext:
    """
    Start an interview run and lock its context for later views.

    The store is written only after the backend accepted the run, so a
    failed start leaves any previous context untouched.

    Raises:
        RequestFailedError: If the backend rejects the start request.
    """
    started = await api.start_interview(new_persona_id(), problem, solution)
    return store.write(started.interview_id, persona, problem=problem, solution=solution)


async def fetch_insights(
    api: InterviewApiClient,
    store: SessionContextStore,
) -> tuple[SessionContext, InsightReport]:
    """
    Load the insight report of the stored interview.

    Raises:
        MissingSessionContextError: If no interview is stored; no request is made.
        RequestFailedError: If the insights request fails.
    """
    context = require_session_context(store)
    logger.info("Fetching insights for interview %s", context.interview_id)
    report = await api.get_insights(context.interview_id)
    return context, report
