"""Session state transition rules.

`next_state` decides what a single frame outcome does to the session, and
`ALLOWED_COMMANDS` lists which lifecycle commands each state accepts. Neither
touches session objects, so both can be tested on their own.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple

from ..exceptions import InvalidOperationError
from ..models.events import (
    AudioDetectedEvent,
    PausedEvent,
    ResumedEvent,
    SilenceDetectedEvent,
    StatusChangeEvent,
)
from ..models.session import PauseReason, SessionState


class FrameOutcome(Enum):
    """Result of sending one frame through a gateway."""
    SPEECH = "speech"
    SILENCE = "silence"
    FAILURE = "failure"


@dataclass(frozen=True)
class Transition:
    """New state and silence counter plus the events to publish, in order."""
    state: SessionState
    consecutive_silent_chunks: int
    events: Tuple[StatusChangeEvent, ...] = ()


def silence_warning(count: int) -> str:
    return (f"Audio capture appears to be inactive. No audio detected for {count} consecutive chunks. "
            f"Transcription paused. Please check your audio input device and routing.")


def next_state(state: SessionState,
               consecutive_silent_chunks: int,
               outcome: FrameOutcome,
               threshold: int,
               dispatched_state: Optional[SessionState] = None) -> Transition:
    """Apply one frame outcome to the session state.

    Args:
        state: Current session state
        consecutive_silent_chunks: Current run of silent frames
        outcome: What the gateway returned for the frame
        threshold: Silent frames in a row that pause a running session
        dispatched_state: State when the frame was sent to the gateway
            (defaults to `state`). Speech only lifts a silence pause if the
            frame was dispatched while silence-paused.

    Returns:
        Transition describing the new state, counter and events
    """
    if dispatched_state is None:
        dispatched_state = state

    if outcome is FrameOutcome.FAILURE:
        return Transition(state, consecutive_silent_chunks)

    if outcome is FrameOutcome.SPEECH:
        if state is SessionState.PAUSED_SILENCE and dispatched_state is SessionState.PAUSED_SILENCE:
            return Transition(SessionState.RUNNING, 0, (
                AudioDetectedEvent(),
                ResumedEvent(previous_reason=PauseReason.SILENCE),
            ))
        return Transition(state, 0)

    count = consecutive_silent_chunks + 1
    if state is SessionState.RUNNING and count >= threshold:
        return Transition(SessionState.PAUSED_SILENCE, count, (
            SilenceDetectedEvent(count=count),
            PausedEvent(reason=PauseReason.SILENCE, message=silence_warning(count)),
        ))
    return Transition(state, count)


class Command(Enum):
    START = "start"
    PAUSE = "pause"
    RESUME = "resume"
    STOP = "stop"


ALLOWED_COMMANDS: Dict[SessionState, FrozenSet[Command]] = {
    SessionState.IDLE: frozenset({Command.START, Command.STOP}),
    SessionState.RUNNING: frozenset({Command.PAUSE, Command.STOP}),
    SessionState.PAUSED_MANUAL: frozenset({Command.RESUME, Command.STOP}),
    SessionState.PAUSED_SILENCE: frozenset({Command.RESUME, Command.STOP}),
    SessionState.STOPPED: frozenset(),
}


def validate_command(state: SessionState, command: Command) -> None:
    """Raise InvalidOperationError if `command` is not accepted in `state`."""
    if command not in ALLOWED_COMMANDS.get(state, frozenset()):
        raise InvalidOperationError(f"Cannot {command.value} a session that is {state.value}")
