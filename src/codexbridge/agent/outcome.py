"""Final outcomes of a Codex run and the tool-result payloads built from them."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from codexbridge.stream.classifier import OperationState
from codexbridge.stream.display import format_event_for_display
from codexbridge.stream.events import CodexEvent

#: ``details.error`` value for cancelled runs.
ABORTED = "aborted"


@dataclass(frozen=True)
class Aborted:
    """The run was cancelled before or during execution."""

    partial_message: str = ""
    before_start: bool = False
    exit_code: int | None = None


@dataclass(frozen=True)
class Failed:
    """Codex exited with a non-zero status."""

    exit_code: int
    stderr: str = ""
    message: str = ""


@dataclass(frozen=True)
class Succeeded:
    """Codex exited cleanly."""

    message: str = ""
    exit_code: int = 0


Outcome = Aborted | Failed | Succeeded


@dataclass(frozen=True)
class TextContent:
    text: str
    type: Literal["text"] = "text"


@dataclass
class CodexDetails:
    """Structured details attached to every progress and final result."""

    events: list[CodexEvent] = field(default_factory=list)
    exit_code: int | None = None
    streaming: bool = False
    last_message: str = ""
    error: str | None = None


@dataclass
class CodexToolResult:
    """What the host receives: display text plus structured details."""

    content: list[TextContent]
    details: CodexDetails

    @property
    def text(self) -> str:
        return "\n".join(part.text for part in self.content)

    @property
    def is_error(self) -> bool:
        return self.details.error is not None


def synthesize_outcome(
    state: OperationState,
    exit_code: int | None,
    stderr: str,
    cancelled: bool,
) -> Outcome:
    """Pick the single outcome for a finished run.

    An observed cancellation wins over whatever exit status the process
    reported.  Any non-zero status, including a negative one for a
    signal, is a failure.
    """
    if cancelled:
        return Aborted(partial_message=state.last_message, exit_code=exit_code)
    if exit_code is None or exit_code != 0:
        return Failed(
            exit_code=exit_code if exit_code is not None else -1,
            stderr=stderr,
            message=state.last_message,
        )
    return Succeeded(message=state.last_message)


def build_result(outcome: Outcome, state: OperationState) -> CodexToolResult:
    """Render *outcome* as the terminal tool result (``streaming=False``)."""
    match outcome:
        case Aborted(before_start=True):
            return CodexToolResult(
                content=[TextContent("Codex execution aborted before start.")],
                details=CodexDetails(events=[], exit_code=None, error=ABORTED),
            )
        case Aborted():
            text = (
                "Codex execution aborted.\n\nPartial output:\n"
                f"{outcome.partial_message or '(no output)'}"
            )
            error: str | None = ABORTED
        case Failed():
            text = (
                f"Codex exited with code {outcome.exit_code}.\n\n"
                f"Stderr:\n{outcome.stderr or '(no stderr)'}\n\n"
                f"Output:\n{outcome.message or '(no output)'}"
            )
            error = outcome.stderr or f"exit code {outcome.exit_code}"
        case Succeeded():
            text = outcome.message or "(Codex completed with no message output)"
            error = None

    return CodexToolResult(
        content=[TextContent(text)],
        details=CodexDetails(
            events=state.snapshot(),
            exit_code=outcome.exit_code,
            streaming=False,
            last_message=state.last_message,
            error=error,
        ),
    )


def progress_result(event: CodexEvent, state: OperationState) -> CodexToolResult:
    """Progress payload for one newly classified event."""
    return CodexToolResult(
        content=[TextContent(format_event_for_display(event))],
        details=CodexDetails(
            events=state.snapshot(),
            exit_code=None,
            streaming=True,
            last_message=state.last_message,
        ),
    )
