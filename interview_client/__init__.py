"""
Adversarial Interview Client Package.

Follows a server-side adversarial interview while it runs and loads its
insight report when it finishes.

Components:
    - SessionContextStore: Tab-scoped store for interview id + locked persona
    - InterviewApiClient: Start/status/insights calls and the raw event stream
    - TranscriptStreamConsumer: Live SSE transcript reader with callbacks
    - TranscriptSession: State machine assembling the ordered transcript
    - Models: Pydantic models for personas, transcript entries, and reports

Example:
    >>> from interview_client import (
    ...     InterviewApiClient, SessionContextStore, TranscriptSession,
    ...     TranscriptStreamConsumer, start_session,
    ... )
    >>>
    >>> async with InterviewApiClient("http://localhost:8000") as api:
    ...     context = await start_session(api, store, persona, problem, solution)
    ...     session = TranscriptSession(context.interview_id)
    ...     handle = session.attach(TranscriptStreamConsumer(api))
    ...     await handle.wait()
    >>> print(session.state.phase, session.state.message_count)
"""

from .config import ClientConfig, load_client_config

from .errors import (
    InterviewClientError,
    MissingSessionContextError,
    RequestFailedError,
)

from .models import (
    IndividualPersona,
    InsightReport,
    InterviewStatus,
    OrganizationPersona,
    Persona,
    Speaker,
    StartInterviewResponse,
    StreamError,
    StreamErrorKind,
    TranscriptEntry,
    Verdict,
)

from .session_context import (
    SessionContext,
    SessionContextStore,
    require_session_context,
)

from .api_client import InterviewApiClient, new_persona_id

from .stream import StreamHandle, TranscriptStreamConsumer

from .session_state import (
    SessionPhase,
    StreamSessionState,
    TranscriptSession,
    apply_complete,
    apply_error,
    apply_message,
)

from .workflow import fetch_insights, start_session


__all__ = [
    # Config
    "ClientConfig",
    "load_client_config",
    # Errors
    "InterviewClientError",
    "MissingSessionContextError",
    "RequestFailedError",
    # Models
    "IndividualPersona",
    "InsightReport",
    "InterviewStatus",
    "OrganizationPersona",
    "Persona",
    "Speaker",
    "StartInterviewResponse",
    "StreamError",
    "StreamErrorKind",
    "TranscriptEntry",
    "Verdict",
    # Session context
    "SessionContext",
    "SessionContextStore",
    "require_session_context",
    # API
    "InterviewApiClient",
    "new_persona_id",
    # Stream
    "StreamHandle",
    "TranscriptStreamConsumer",
    # State machine
    "SessionPhase",
    "StreamSessionState",
    "TranscriptSession",
    "apply_complete",
    "apply_error",
    "apply_message",
    # Workflow
    "fetch_insights",
    "start_session",
]

__version__ = "0.3.0"
