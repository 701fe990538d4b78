#!/usr/bin/env python3
"""
Terminal watcher for an adversarial interview run.

Starts an interview on the backend, prints the transcript live as the
two agents talk, and prints the insight report once the run completes.

Usage:
    # Start the mock backend first:
    uv run python mock_backend.py

    # In another terminal, run the watcher:
    uv run python watch_interview.py --problem "..." --solution "..."

    # B2B persona against a remote backend:
    uv run python watch_interview.py --kind organization --base-url http://api.example.com
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Final

from pydantic import ValidationError

from interview_client import (
    IndividualPersona,
    InsightReport,
    InterviewApiClient,
    MissingSessionContextError,
    OrganizationPersona,
    Persona,
    RequestFailedError,
    SessionContextStore,
    Speaker,
    TranscriptEntry,
    TranscriptSession,
    TranscriptStreamConsumer,
    fetch_insights,
    load_client_config,
    start_session,
)
from interview_client.session_state import SessionPhase, StreamSessionState

# =============================================================================
# Logging Configuration
# =============================================================================

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger: logging.Logger = logging.getLogger(__name__)


# =============================================================================
# Exit Codes
# =============================================================================

EXIT_SUCCESS: Final[int] = 0
EXIT_REQUEST_FAILED: Final[int] = 1
EXIT_STREAM_FAILED: Final[int] = 2
EXIT_INVALID_INPUT: Final[int] = 3
EXIT_NO_SESSION: Final[int] = 4
EXIT_INTERRUPTED: Final[int] = 130  # Standard SIGINT exit code


# =============================================================================
# Defaults
# =============================================================================

DEFAULT_JTBD: Final[str] = "Keep the team's weekly status reporting under an hour"
DEFAULT_CURRENT_ALTERNATIVE: Final[str] = "A shared spreadsheet and a Friday reminder in Slack"
DEFAULT_PROBLEM: Final[str] = "Status reporting eats half a day every week for team leads"
DEFAULT_SOLUTION: Final[str] = "An assistant that drafts the weekly report from tickets and commits"

SPEAKER_LABELS: Final[dict[Speaker, str]] = {
    Speaker.INITIATOR: "Interviewer",
    Speaker.RESPONDENT: "Customer",
}


# =============================================================================
# Output
# =============================================================================

def print_entry(entry: TranscriptEntry) -> None:
    """Print one transcript turn as it arrives."""
    timestamp = entry.produced_at.strftime("%H:%M:%S")
    print(f"[{timestamp}] {SPEAKER_LABELS[entry.speaker]}: {entry.text}", flush=True)


def print_report(report: InsightReport) -> None:
    """Print the insight report in a compact text layout."""
    print("=" * 60)
    print(f"Verdict: {report.verdict.value}  (confidence {report.confidence:.0f}%)")
    print("=" * 60)
    for title, dimension in (
        ("Problem", report.scores.problem),
        ("Market", report.scores.market),
        ("Willingness to pay", report.scores.willingness_to_pay),
    ):
        print(f"{title}: {dimension.score:g}/10 {dimension.label}".rstrip())
        if dimension.reasoning:
            print(f"    {dimension.reasoning}")

    for title, items in (
        ("Positive signals", report.positive_signals),
        ("Risk signals", report.risk_signals),
        ("Execution challenges", report.execution_challenges),
        ("Next steps", report.next_steps),
    ):
        if not items:
            continue
        print(f"\n{title}:")
        for item in items:
            print(f"  - {item}")

    if report.quotes:
        print("\nQuotes:")
        for quote in report.quotes:
            print(f'  "{quote}"')


def build_persona(args: argparse.Namespace) -> Persona:
    """
    Build the intake persona from CLI arguments.

    Raises:
        ValidationError: If required persona fields are empty.
    """
    if args.kind == "organization":
        return OrganizationPersona(
            jtbd=args.jtbd,
            current_alternative=args.current_alternative,
            industry=args.industry,
            role=args.role,
            company_size=args.company_size,
        )
    return IndividualPersona(
        jtbd=args.jtbd,
        current_alternative=args.current_alternative,
        age_range=args.age_range,
        location=args.location,
    )


# =============================================================================
# Runner
# =============================================================================

async def run_watch(
    api: InterviewApiClient,
    consumer: TranscriptStreamConsumer,
    store: SessionContextStore,
    persona: Persona,
    problem: str,
    solution: str,
) -> int:
    """
    Start an interview, follow its stream, and print the report.

    Insights are requested exactly once, and only after the stream
    completed.

    Returns:
        Exit code indicating success or failure.
    """
    try:
        context = await start_session(api, store, persona, problem, solution)
    except RequestFailedError as exc:
        logger.error("%s", exc.message)
        return EXIT_REQUEST_FAILED

    logger.info("Interview %s started (%s)", context.interview_id, context.persona.label)
    print("=" * 60, flush=True)

    printed = 0

    def on_change(state: StreamSessionState) -> None:
        nonlocal printed
        for entry in state.transcript[printed:]:
            print_entry(entry)
        printed = state.message_count

    session = TranscriptSession(context.interview_id, on_change=on_change)
    handle = session.attach(consumer)
    try:
        await handle.wait()
    finally:
        handle.close()

    state = session.state
    if state.phase != SessionPhase.COMPLETED:
        error = state.error
        if error is not None:
            logger.error(
                "Stream failed after %d message(s) [%s]: %s",
                state.message_count,
                error.kind.value,
                error.message,
            )
        else:
            logger.error("Stream closed after %d message(s)", state.message_count)
        return EXIT_STREAM_FAILED

    logger.info("Interview complete with %d message(s)", state.message_count)
    return await run_insights(api, store)


async def run_insights(api: InterviewApiClient, store: SessionContextStore) -> int:
    """Fetch and print the report of the interview held in ``store``."""
    try:
        _, report = await fetch_insights(api, store)
    except MissingSessionContextError as exc:
        logger.error("%s", exc.message)
        return EXIT_NO_SESSION
    except RequestFailedError as exc:
        logger.error("%s", exc.message)
        return EXIT_REQUEST_FAILED

    print_report(report)
    return EXIT_SUCCESS


async def run(args: argparse.Namespace) -> int:
    config = load_client_config()
    base_url = args.base_url or config.api_base_url

    async with InterviewApiClient(base_url, timeout=config.http_timeout_seconds) as api:
        store = SessionContextStore({})

        if args.insights_only:
            # Without --interview-id the store stays empty and the guard exits.
            if args.interview_id:
                store.write(args.interview_id, build_persona(args))
            return await run_insights(api, store)

        consumer = TranscriptStreamConsumer.from_config(api, config)
        return await run_watch(
            api,
            consumer,
            store,
            build_persona(args),
            args.problem,
            args.solution,
        )


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for the watcher.

    Args:
        argv: Command line arguments (defaults to ``sys.argv[1:]``).

    Returns:
        Exit code indicating success or failure.
    """
    parser = argparse.ArgumentParser(
        description="Start an adversarial interview and watch its transcript live.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment Variables:
    INTERVIEW_API_BASE_URL          Backend URL (default: http://localhost:8000)
    STREAM_STALL_TIMEOUT_SECONDS    Seconds of silence before the stream fails
    STREAM_RECONNECT_ATTEMPTS       Reconnects allowed before the first event
        """,
    )
    parser.add_argument("--base-url", default=None, help="Interview backend URL")
    parser.add_argument(
        "--kind",
        choices=["individual", "organization"],
        default="individual",
        help="Persona type (default: individual)",
    )
    parser.add_argument("--jtbd", default=DEFAULT_JTBD, help="Persona job-to-be-done")
    parser.add_argument(
        "--current-alternative",
        default=DEFAULT_CURRENT_ALTERNATIVE,
        help="What the persona uses today",
    )
    parser.add_argument("--age-range", default=None, help="B2C age bracket")
    parser.add_argument("--location", default=None, help="B2C location")
    parser.add_argument("--industry", default=None, help="B2B industry")
    parser.add_argument("--role", default=None, help="B2B buyer role")
    parser.add_argument("--company-size", default=None, help="B2B company size bracket")
    parser.add_argument("--problem", default=DEFAULT_PROBLEM, help="Problem hypothesis")
    parser.add_argument("--solution", default=DEFAULT_SOLUTION, help="Solution to pitch")
    parser.add_argument(
        "--insights-only",
        action="store_true",
        help="Only fetch the report of an existing interview",
    )
    parser.add_argument("--interview-id", default=None, help="Interview for --insights-only")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        return asyncio.run(run(args))
    except ValidationError as exc:
        logger.error("Invalid input: %s", exc)
        return EXIT_INVALID_INPUT
    except RuntimeError as exc:
        logger.error("Configuration error: %s", exc)
        return EXIT_INVALID_INPUT
    except KeyboardInterrupt:
        logger.info("\nWatch interrupted")
        return EXIT_INTERRUPTED


def cli() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    cli()
