#!/usr/bin/env python3
"""
Streamlit UI for the Adversarial Interview client.

Three views sharing one browser session:
- Intake: define the persona and the problem/solution pair, start a run
- Interview room: watch the two agents talk live, transcript streamed over SSE
- Insights: verdict, scorecard, and signals once the run has completed

The session context (interview id + locked persona) lives in the URL query
parameters so a page reload of the same tab lands back on the same run.

Usage:
    uv run python mock_backend.py                         # Terminal 1
    uv run streamlit run streamlit_ui.py --server.port 8501  # Terminal 2
"""

from __future__ import annotations

import html
import logging
import time
from dataclasses import dataclass
from typing import Final

import streamlit as st
from pydantic import ValidationError

from interview_client import (
    IndividualPersona,
    InsightReport,
    InterviewApiClient,
    MissingSessionContextError,
    OrganizationPersona,
    RequestFailedError,
    SessionContext,
    SessionContextStore,
    SessionPhase,
    Speaker,
    StreamHandle,
    TranscriptSession,
    TranscriptStreamConsumer,
    fetch_insights,
    load_client_config,
    require_session_context,
    start_session,
)
from interview_client.background import get_background_loop

# =============================================================================
# Logging Configuration
# =============================================================================

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger: logging.Logger = logging.getLogger(__name__)

# =============================================================================
# Configuration
# =============================================================================

CONFIG = load_client_config()

VIEW_PARAM: Final[str] = "view"
VIEW_INTAKE: Final[str] = "intake"
VIEW_INTERVIEW: Final[str] = "interview"
VIEW_INSIGHTS: Final[str] = "insights"

# UI refresh delay while the transcript is streaming
LIVE_POLL_DELAY_SECONDS: Final[float] = 0.75

# Blocking wait for start/insights calls made from the script thread
REQUEST_WAIT_SECONDS: Final[float] = CONFIG.http_timeout_seconds + 5.0

SPEAKER_LABELS: Final[dict[Speaker, str]] = {
    Speaker.INITIATOR: "Interviewer",
    Speaker.RESPONDENT: "Customer",
}

B2B_INDUSTRIES: Final[list[str]] = [
    "SaaS", "Healthcare", "Financial Services", "Retail", "Manufacturing",
    "Education", "Logistics", "custom",
]
B2B_ROLES: Final[list[str]] = [
    "Founder / CEO", "Head of Operations", "Engineering Manager",
    "Marketing Lead", "Procurement", "custom",
]
B2B_COMPANY_SIZES: Final[list[str]] = ["1-10", "11-50", "51-200", "201-1000", "1000+"]


# =============================================================================
# Page Configuration
# =============================================================================

st.set_page_config(
    page_title="Mom Test Simulator",
    page_icon="🥊",
    layout="wide",
    initial_sidebar_state="collapsed",
)


# =============================================================================
# Custom CSS
# =============================================================================

st.markdown("""
<style>
#MainMenu {visibility: hidden;}
footer {visibility: hidden;}
.stDeployButton {display: none;}

.main .block-container {
    padding: 1rem 2rem;
    max-width: 1100px;
}

.interviewer-bubble {
    background: linear-gradient(135deg, #E0F2FE 0%, #BAE6FD 100%);
    color: #0C4A6E;
    padding: 0.75rem 1rem;
    border-radius: 12px;
    border-bottom-left-radius: 4px;
    margin-bottom: 0.25rem;
    max-width: 85%;
}

.customer-bubble {
    background: linear-gradient(135deg, #FFEDD5 0%, #FED7AA 100%);
    color: #7C2D12;
    padding: 0.75rem 1rem;
    border-radius: 12px;
    border-bottom-right-radius: 4px;
    margin-bottom: 0.25rem;
    margin-left: auto;
    max-width: 85%;
}

.bubble-meta {
    font-size: 0.7rem;
    color: #64748B;
    margin-bottom: 0.75rem;
}

.live-badge {
    display: inline-block;
    padding: 0.2rem 0.6rem;
    border: 2px solid #06B6D4;
    border-radius: 8px;
    color: #06B6D4;
    font-weight: 700;
    font-family: monospace;
}

.verdict-go { color: #10B981; }
.verdict-maybe { color: #F59E0B; }
.verdict-no-go { color: #EF4444; }
</style>
""", unsafe_allow_html=True)


# =============================================================================
# State Management
# =============================================================================

@dataclass
class LiveInterview:
    """
    The stream a rendered interview room is following.

    Attributes:
        interview_id: Interview the stream belongs to.
        session: State machine receiving the stream callbacks.
        handle: Handle used to close the stream on navigation.
    """

    interview_id: str
    session: TranscriptSession
    handle: StreamHandle


@st.cache_resource
def get_api_client() -> InterviewApiClient:
    """API client and connection pool shared by every browser session."""
    return InterviewApiClient.from_config(CONFIG)


def init_state() -> None:
    """
    Initialize Streamlit session state for this browser session.

    Only initializes state on first run; subsequent calls are no-ops.
    The event loop and API client are process-wide; only the stream
    consumer and the cached results belong to the browser session.
    """
    if "init" not in st.session_state:
        st.session_state.init = True
        st.session_state.consumer = TranscriptStreamConsumer.from_config(
            get_api_client(), CONFIG
        )
        st.session_state.live = None
        st.session_state.insights = {}
        st.session_state.insights_errors = {}


def get_store() -> SessionContextStore:
    """Session context backed by the tab's URL query parameters."""
    return SessionContextStore(st.query_params)


def current_view() -> str:
    view = st.query_params.get(VIEW_PARAM, VIEW_INTAKE)
    if view not in (VIEW_INTAKE, VIEW_INTERVIEW, VIEW_INSIGHTS):
        return VIEW_INTAKE
    return view


def navigate(view: str) -> None:
    """Switch view, closing any live stream the new view does not show."""
    if view != VIEW_INTERVIEW:
        teardown_live()
    st.query_params[VIEW_PARAM] = view
    st.rerun()


def teardown_live() -> None:
    """Close the stream of the interview room, if one is open."""
    live: LiveInterview | None = st.session_state.live
    if live is None:
        return
    get_background_loop().call_soon(live.handle.close)
    st.session_state.live = None
    logger.info("Interview room for %s torn down", live.interview_id)


def guard_session() -> SessionContext | None:
    """
    Bootstrap guard: return the active context or redirect to intake.

    No request is made when the context is missing.
    """
    try:
        return require_session_context(get_store())
    except MissingSessionContextError:
        logger.info("No session context, redirecting to intake")
        navigate(VIEW_INTAKE)
        return None


async def _open_live(consumer: TranscriptStreamConsumer, interview_id: str) -> LiveInterview:
    session = TranscriptSession(interview_id)
    handle = session.attach(consumer)
    return LiveInterview(interview_id=interview_id, session=session, handle=handle)


def ensure_live(context: SessionContext) -> LiveInterview:
    """Open the stream for the context's interview unless it is already open."""
    live: LiveInterview | None = st.session_state.live
    if live is not None and live.interview_id == context.interview_id:
        return live

    teardown_live()
    live = get_background_loop().run(
        _open_live(st.session_state.consumer, context.interview_id),
        timeout=REQUEST_WAIT_SECONDS,
    )
    st.session_state.live = live
    return live


# =============================================================================
# Helper Functions
# =============================================================================

def fmt_time(entry_time: object) -> str:
    """Format a transcript timestamp to HH:MM:SS display format."""
    strftime = getattr(entry_time, "strftime", None)
    if strftime is None:
        return ""
    return strftime("%H:%M:%S")


def render_header() -> None:
    col_title, col_action = st.columns([4, 1])
    with col_title:
        st.markdown("### 🥊 Mom Test Simulator")
    with col_action:
        if current_view() != VIEW_INTAKE and st.button("➕ New interview"):
            navigate(VIEW_INTAKE)
    st.divider()


# =============================================================================
# Views
# =============================================================================

def render_intake() -> None:
    """Persona + business context form; starts an interview on submit."""
    st.markdown("## Who are you selling to?")

    kind = st.radio(
        "Persona type",
        options=["individual", "organization"],
        format_func=lambda k: "👤 B2C Individual" if k == "individual" else "🏢 B2B Organization",
        horizontal=True,
    )

    with st.form("intake"):
        jtbd = st.text_area("Job to be done", placeholder="What are they trying to get done?")
        current_alternative = st.text_input(
            "Current alternative", placeholder="What do they use today?"
        )

        if kind == "individual":
            col_a, col_b = st.columns(2)
            age_range = col_a.selectbox("Age range", ["18-24", "25-34", "35-44", "45-54", "55+"])
            location = col_b.text_input("Location", placeholder="e.g. Suburban US")
            psychographics = st.text_input("Psychographics", placeholder="Values, habits, attitudes")
            disposable_income = st.slider(
                "Monthly disposable income ($)", min_value=0, max_value=5000, value=500, step=50
            )
            budget_authority = st.selectbox("Budget authority", ["personal", "household"])
        else:
            col_a, col_b = st.columns(2)
            industry = col_a.selectbox("Industry", B2B_INDUSTRIES)
            custom_industry = col_a.text_input("Custom industry (if custom)")
            role = col_b.selectbox("Role", B2B_ROLES)
            custom_role = col_b.text_input("Custom role (if custom)")
            company_size = st.selectbox("Company size", B2B_COMPANY_SIZES)
            budget_authority = st.selectbox(
                "Budget authority", ["cost-center", "recommender", "no-authority"]
            )

        st.markdown("#### Your hypothesis")
        problem = st.text_area("Problem", placeholder="The problem you believe they have")
        solution = st.text_area("Solution", placeholder="What you want to sell them")
        submitted = st.form_submit_button("⚡ Start simulation", type="primary")

    if not submitted:
        return

    if not problem.strip() or not solution.strip():
        st.error("Please fill in both problem and solution fields.")
        return

    try:
        if kind == "individual":
            persona = IndividualPersona(
                jtbd=jtbd.strip(),
                current_alternative=current_alternative.strip(),
                age_range=age_range,
                location=location.strip() or None,
                psychographics=psychographics.strip() or None,
                disposable_income=disposable_income,
                budget_authority=budget_authority,
            )
        else:
            persona = OrganizationPersona(
                jtbd=jtbd.strip(),
                current_alternative=current_alternative.strip(),
                industry=custom_industry.strip() if industry == "custom" else industry,
                role=custom_role.strip() if role == "custom" else role,
                company_size=company_size,
                budget_authority=budget_authority,
            )
    except ValidationError:
        st.error("Please describe the job to be done and the current alternative.")
        return

    try:
        with st.spinner("Preparing your validation simulation..."):
            context = get_background_loop().run(
                start_session(
                    get_api_client(),
                    get_store(),
                    persona,
                    problem.strip(),
                    solution.strip(),
                ),
                timeout=REQUEST_WAIT_SECONDS,
            )
    except RequestFailedError as e:
        st.error(f"Failed to start interview: {e.message}. Please try again.")
        return

    logger.info("Interview %s started from intake", context.interview_id)
    teardown_live()
    navigate(VIEW_INTERVIEW)


def render_message(speaker: Speaker, text: str, timestamp: str) -> None:
    css_class = "interviewer-bubble" if speaker == Speaker.INITIATOR else "customer-bubble"
    align = "left" if speaker == Speaker.INITIATOR else "right"
    st.markdown(f"""
    <div class="{css_class}">
        <strong>{SPEAKER_LABELS[speaker]}:</strong> {html.escape(text)}
    </div>
    <div class="bubble-meta" style="text-align:{align};">{timestamp}</div>
    """, unsafe_allow_html=True)


def render_interview() -> None:
    """Live interview room."""
    context = guard_session()
    if context is None:
        return

    live = ensure_live(context)
    state = live.session.state

    col_h1, col_h2 = st.columns([4, 1])
    with col_h1:
        if state.is_complete:
            st.markdown("## Simulation **Complete**")
            st.caption("Adversarial interview complete. Analysis ready.")
        else:
            st.markdown("## Mom Test **In Progress**")
            st.caption("Watching AI agents conduct a behavioral economics interview...")
    with col_h2:
        if not state.is_terminal:
            st.markdown("<span class='live-badge'>● LIVE</span>", unsafe_allow_html=True)

    icon = "👤" if context.persona.kind == "individual" else "🏢"
    st.info(f"{icon} **Testing with:** {context.persona.label}")

    with st.container(border=True, height=560):
        if state.phase == SessionPhase.CONNECTING:
            with st.spinner("Connecting to simulation..."):
                st.caption("Initializing adversarial agents...")
        else:
            count = state.message_count
            status_text = "Complete" if state.is_complete else (
                "Stopped" if state.phase == SessionPhase.FAILED else "In progress"
            )
            st.caption(f"{count} message{'s' if count != 1 else ''} • {status_text}")
            for entry in state.transcript:
                render_message(entry.speaker, entry.text, fmt_time(entry.produced_at))
            if state.is_live_tail:
                st.caption("● ● ● Agents thinking...")

    if state.phase == SessionPhase.FAILED:
        st.error("Connection error. Please reload to reconnect.")
        if state.error is not None:
            st.caption(f"{state.error.kind.value}: {state.error.message}")
        if st.button("🔄 Reload", type="primary"):
            teardown_live()
            st.rerun()
        return

    if state.is_complete:
        if st.button("View Brutal Analysis →", type="primary"):
            navigate(VIEW_INSIGHTS)
        st.caption("See what the skeptical customer really thinks")
        return

    # NOTE: time.sleep() blocks the Streamlit thread between refreshes; the
    # stream itself keeps reading on the background loop meanwhile.
    time.sleep(LIVE_POLL_DELAY_SECONDS)
    st.rerun()


def render_dimension(title: str, score: float, label: str, reasoning: str) -> None:
    st.metric(title, f"{score:g}/10", label or None)
    st.caption(reasoning)


def render_list(items: list[str], empty_text: str) -> None:
    if not items:
        st.caption(empty_text)
        return
    for item in items:
        st.markdown(f"- {item}")


def render_insights() -> None:
    """Insight report of the stored interview; fetched once per session."""
    context = guard_session()
    if context is None:
        return

    interview_id = context.interview_id
    errors: dict[str, str] = st.session_state.insights_errors
    report: InsightReport | None = st.session_state.insights.get(interview_id)
    if report is None and interview_id not in errors:
        try:
            with st.spinner("Analyzing interview insights..."):
                _, report = get_background_loop().run(
                    fetch_insights(get_api_client(), get_store()),
                    timeout=REQUEST_WAIT_SECONDS,
                )
            st.session_state.insights[interview_id] = report
        except RequestFailedError as e:
            logger.error("Failed to fetch insights for %s: %s", interview_id, e)
            errors[interview_id] = e.message

    if report is None:
        st.error(f"Failed to load insights. {errors.get(interview_id, '')}")
        if st.button("Try again"):
            errors.pop(interview_id, None)
            st.rerun()
        return

    verdict_class = {
        "GO": "verdict-go",
        "MAYBE": "verdict-maybe",
        "NO-GO": "verdict-no-go",
    }[report.verdict.value]
    st.markdown(
        f"<h1 style='text-align:center;' class='{verdict_class}'>{report.verdict.value}</h1>",
        unsafe_allow_html=True,
    )
    st.progress(min(report.confidence, 100.0) / 100.0, text=f"Confidence {report.confidence:.0f}%")

    col_problem, col_market, col_wtp = st.columns(3)
    scores = report.scores
    with col_problem:
        render_dimension("Problem", scores.problem.score, scores.problem.label, scores.problem.reasoning)
    with col_market:
        render_dimension("Market", scores.market.score, scores.market.label, scores.market.reasoning)
    with col_wtp:
        render_dimension(
            "Willingness to pay",
            scores.willingness_to_pay.score,
            scores.willingness_to_pay.label,
            scores.willingness_to_pay.reasoning,
        )

    tab_signals, tab_risks, tab_challenges, tab_next, tab_quotes = st.tabs(
        ["✅ Signals", "⚠️ Risks", "🧗 Challenges", "➡️ Next steps", "💬 Quotes"]
    )
    with tab_signals:
        render_list(report.positive_signals, "No positive signals.")
    with tab_risks:
        render_list(report.risk_signals, "No risk signals.")
    with tab_challenges:
        render_list(report.execution_challenges, "No execution challenges.")
    with tab_next:
        render_list(report.next_steps, "No next steps.")
    with tab_quotes:
        for quote in report.quotes:
            st.markdown(f"> {quote}")


# =============================================================================
# Main Application
# =============================================================================

def main() -> None:
    """
    Main Streamlit application entry point.

    Routes to the view named in the URL; views needing an interview
    redirect to intake when no session context is stored.
    """
    init_state()
    render_header()

    view = current_view()
    if view == VIEW_INTERVIEW:
        render_interview()
    elif view == VIEW_INSIGHTS:
        teardown_live()
        render_insights()
    else:
        teardown_live()
        render_intake()


if __name__ == "__main__":
    main()
