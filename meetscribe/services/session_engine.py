"""Transcription session engine.

A `TranscriptionSession` pulls raw PCM from a byte source, slices it into
fixed-duration frames, sends every frame to a transcription gateway on a
bounded worker pool and folds the results into a transcript sink and a set of
counters. Sustained silence pauses the session and renewed audio resumes it.
"""

import re
import random
import string
import logging
import threading
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor, wait
from datetime import datetime
from typing import Callable, Deque, Dict, Optional, Protocol, Set

from ..audio.assembler import FrameAssembler
from ..exceptions import CaptureError, InvalidOperationError, StartupError, TransientChunkError, ServiceError
from ..models.audio import AudioFrame
from ..models.events import (
    CaptureErrorEvent,
    PausedEvent,
    ResumedEvent,
    StartedEvent,
    StatusChangeEvent,
    StoppedEvent,
    WarningEvent,
)
from ..models.session import PauseReason, SessionSettings, SessionState, SessionStatus
from ..models.transcription import TranscriptEntry
from ..storage.transcript_sink import TranscriptSink
from ..transcription.base import AbstractTranscriptionGateway
from ..transcription.publisher import StatusListener, StatusPublisher
from .monitor import SessionMonitor
from .policy import Command, FrameOutcome, next_state, silence_warning, validate_command

logger = logging.getLogger(__name__)

MANUAL_PAUSE_WARNING = "Transcription manually paused by user"

# Session ids become a pubsub topic name element
SESSION_ID_PATTERN = re.compile(r"[0-9a-zA-Z]\w*")


class AudioSource(Protocol):
    """Anything that pushes raw little-endian 16-bit PCM bytes."""

    def start(self, on_data: Callable[[bytes], None],
              on_error: Optional[Callable[[Exception], None]] = None) -> None: ...

    def stop(self) -> None: ...


def generate_session_id() -> str:
    """Timestamp-based session id with a random suffix, e.g. 'session_20250115_143005_k3x9'."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    random_suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=4))
    return f"session_{timestamp}_{random_suffix}"


class TranscriptionSession:
    """One transcription session: Idle -> Running <-> Paused -> Stopped.

    All state and counters are guarded by a single re-entrant lock. Gateway
    calls run outside the lock on a per-session thread pool; their results
    are applied under the lock in completion order. Events are queued under
    the lock and delivered to listeners, in order, once it is released.

    A stopped session cannot be restarted; create a new one instead.
    """

    def __init__(self,
                 source: AudioSource,
                 gateway: AbstractTranscriptionGateway,
                 sink: TranscriptSink,
                 settings: Optional[SessionSettings] = None,
                 session_id: Optional[str] = None):
        """Initialize transcription session.

        Args:
            source: Byte source providing raw PCM audio
            gateway: Speech-to-text gateway
            sink: Transcript store
            settings: Session tunables (defaults if omitted)
            session_id: Session identifier, also used in the event topic name.
                Letters, digits and underscores only.

        Raises:
            ValueError: if `session_id` is not usable as a topic name
        """
        if session_id is not None and not SESSION_ID_PATTERN.fullmatch(session_id):
            raise ValueError(f"Invalid session id '{session_id}': use letters, digits and underscores, "
                             f"starting with a letter or digit")

        self.source = source
        self.gateway = gateway
        self.sink = sink
        self.settings = settings or SessionSettings()
        self.session_id = session_id or generate_session_id()

        self.assembler = FrameAssembler(
            sample_rate=self.settings.sample_rate,
            channels=self.settings.channels,
            frame_duration_seconds=self.settings.chunk_seconds,
        )
        self.publisher = StatusPublisher(f"session_status.{self.session_id}")

        self._lock = threading.RLock()
        self._state = SessionState.IDLE
        self._starting = False
        self._stopping = False
        self._executor: Optional[ThreadPoolExecutor] = None
        # In-flight gateway calls, mapped to their frame sequence numbers
        self._pending: Dict[Future, int] = {}
        self._local = threading.local()
        self._outbox: Deque[StatusChangeEvent] = deque()
        self._flushing = False
        self._stopped = threading.Event()
        self._monitor: Optional[SessionMonitor] = None
        self._final_status: Optional[SessionStatus] = None

        self._start_time: Optional[datetime] = None
        self._chunks_processed = 0
        self._last_transcript_time: Optional[datetime] = None
        self._errors = 0
        self._consecutive_silent_chunks = 0
        self._silent_chunks_skipped = 0
        self._pause_reason: Optional[PauseReason] = None
        self._warning: Optional[str] = None
        self._last_interaction_time: Optional[datetime] = None
        self._last_warning_minutes = 0
        self._inactivity_pause_triggered = False

        logger.info(f"TranscriptionSession {self.session_id} created with {gateway.service_name} gateway")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    def start(self) -> None:
        """Check the gateway, open the transcript and start pulling audio.

        Raises:
            InvalidOperationError: if the session is not Idle
            StartupError: if the gateway is not ready or the source fails to start
        """
        with self._lock:
            validate_command(self._state, Command.START)
            if self._starting:
                raise InvalidOperationError("Session is already starting")
            self._starting = True

        # The health check can block on the network; run it without the lock.
        try:
            healthy = self.gateway.health_check()
        except Exception as e:
            logger.error(f"Health check raised for {self.gateway.service_name}: {e}", exc_info=True)
            healthy = False

        with self._lock:
            self._starting = False
            if self._state is not SessionState.IDLE or self._stopping:
                raise InvalidOperationError(f"Session was {self._state.value} before start completed")
            if not healthy:
                raise StartupError(f"{self.gateway.service_name} is not reachable or credentials are invalid")

            try:
                self.sink.initialize()
            except OSError as e:
                raise StartupError(f"Cannot create transcript {self.sink.get_file_path()}: {e}") from e

            self._reset_counters()
            self._executor = ThreadPoolExecutor(
                max_workers=self.settings.max_concurrent_requests,
                thread_name_prefix=f"Transcribe-{self.session_id}",
            )
            self._state = SessionState.RUNNING

            try:
                self.source.start(self._on_audio_data, self._on_capture_error)
            except Exception as e:
                logger.error(f"Audio source failed to start: {e}")
                self._state = SessionState.IDLE
                self._executor.shutdown(wait=False)
                self._executor = None
                self._start_time = None
                self._last_interaction_time = None
                raise StartupError(f"Audio source failed to start: {e}") from e

            logger.info(f"Session {self.session_id} started; transcript: {self.sink.get_file_path()}")
            self._publish(StartedEvent())

            if self._monitor_enabled():
                self._monitor = SessionMonitor(
                    self.check_long_session_warnings,
                    interval=self.settings.monitor_interval_seconds,
                    name=f"Monitor-{self.session_id}",
                )
                self._monitor.start()

        self._flush_events()

    def pause(self) -> None:
        """Pause a running session. Incoming audio is discarded until resume()."""
        with self._lock:
            validate_command(self._state, Command.PAUSE)
            self._touch_interaction()
            self._state = SessionState.PAUSED_MANUAL
            self._pause_reason = PauseReason.MANUAL
            self._warning = MANUAL_PAUSE_WARNING
            self._write_system_message(
                "⏸️ TRANSCRIPTION PAUSED: User manually paused transcription. Resume transcription to continue."
            )
            logger.info(f"Session {self.session_id} paused by user")
            self._publish(PausedEvent(reason=PauseReason.MANUAL, message=MANUAL_PAUSE_WARNING))
        self._flush_events()

    def resume(self) -> None:
        """Resume a paused session (manual or silence pause)."""
        with self._lock:
            validate_command(self._state, Command.RESUME)
            self._touch_interaction()
            previous_reason = self._pause_reason
            self._state = SessionState.RUNNING
            self._pause_reason = None
            self._warning = None
            self._consecutive_silent_chunks = 0
            self._inactivity_pause_triggered = False
            if previous_reason is PauseReason.SILENCE:
                self._write_system_message(
                    "▶️ TRANSCRIPTION RESUMED: User manually resumed transcription after silence pause."
                )
            else:
                self._write_system_message(
                    "▶️ TRANSCRIPTION RESUMED: User manually resumed transcription after manual pause."
                )
            logger.info(f"Session {self.session_id} resumed (previous reason: {previous_reason})")
            self._publish(ResumedEvent(previous_reason=previous_reason))
        self._flush_events()

    def stop(self) -> SessionStatus:
        """Stop the session. Safe to call more than once.

        Halts the source, drops the partial frame, waits up to
        `stop_grace_seconds` for in-flight gateway calls and abandons the rest.
        A call made while another stop is in progress waits for that one.

        Returns:
            Final status snapshot
        """
        with self._lock:
            if self._state is SessionState.STOPPED:
                return self._final_status or self._snapshot()
            already_stopping = self._stopping
            if not already_stopping:
                validate_command(self._state, Command.STOP)
                self._stopping = True
                pending = self._pending_futures()
            was_started = self._state is not SessionState.IDLE

        if already_stopping:
            logger.debug("Stop already in progress, waiting for it")
            self._stopped.wait()
            with self._lock:
                return self._final_status

        logger.info(f"Stopping session {self.session_id} ({len(pending)} requests in flight)")

        if self._monitor:
            self._monitor.stop()
            self._monitor = None

        if was_started:
            try:
                self.source.stop()
            except Exception as e:
                logger.error(f"Error stopping audio source: {e}")

        dropped = self.assembler.reset()
        if dropped:
            logger.debug(f"Discarded {dropped} bytes of partial frame")

        with self._lock:
            pending = self._pending_futures()
        if pending:
            _, not_done = wait(pending, timeout=self.settings.stop_grace_seconds)
            if not_done:
                logger.warning(f"Abandoning {len(not_done)} in-flight transcription requests after "
                               f"{self.settings.stop_grace_seconds}s grace period")

        with self._lock:
            if self._executor:
                self._executor.shutdown(wait=False, cancel_futures=True)
                self._executor = None
            self._state = SessionState.STOPPED
            self._pause_reason = None
            self._warning = None
            self._stopping = False
            duration = (datetime.now() - self._start_time).total_seconds() if self._start_time else 0.0
            self._final_status = self._snapshot()
            logger.info(f"Session {self.session_id} stopped: {self._chunks_processed} chunks, "
                        f"{self._errors} errors, {duration:.1f}s")
            self._publish(StoppedEvent(chunks_processed=self._chunks_processed,
                                       duration_seconds=duration,
                                       errors=self._errors))
            final_status = self._final_status
        self._stopped.set()
        self._flush_events()

        try:
            self.gateway.cleanup()
        except Exception as e:
            logger.error(f"Error cleaning up gateway: {e}")
        return final_status

    # ------------------------------------------------------------------
    # Status and transcript
    # ------------------------------------------------------------------

    def get_status(self) -> SessionStatus:
        """Return an immutable snapshot of state and counters."""
        with self._lock:
            self._touch_interaction()
            return self._snapshot()

    def get_transcript(self) -> str:
        with self._lock:
            self._touch_interaction()
        return self.sink.get_content()

    def clear_transcript(self) -> None:
        with self._lock:
            self._touch_interaction()
            self.sink.clear()
        logger.info(f"Transcript cleared for session {self.session_id}")

    def delete_transcript(self) -> None:
        with self._lock:
            self.sink.delete()

    @property
    def transcript_path(self) -> str:
        return self.sink.get_file_path()

    def subscribe(self, listener: StatusListener) -> None:
        """Register a listener for StatusChangeEvent values (called as listener(event=...))."""
        self.publisher.subscribe(listener)

    def unsubscribe(self, listener: StatusListener) -> None:
        self.publisher.unsubscribe(listener)

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until every dispatched frame has been handled.

        Returns:
            True if nothing is in flight any more, False on timeout
        """
        with self._lock:
            pending = self._pending_futures()
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    # ------------------------------------------------------------------
    # Monitoring
    # ------------------------------------------------------------------

    def check_long_session_warnings(self, now: Optional[datetime] = None) -> None:
        """Emit elapsed-time warnings and auto-pause an unattended session.

        Called periodically by the session monitor; safe to call directly.

        Args:
            now: Current time (defaults to datetime.now())
        """
        now = now or datetime.now()
        with self._lock:
            if not self._state.is_active or self._stopping or self._start_time is None:
                return

            interval = self.settings.warning_interval_minutes
            elapsed_minutes = int((now - self._start_time).total_seconds() // 60)
            if interval and elapsed_minutes >= self._last_warning_minutes + interval:
                self._last_warning_minutes = int(elapsed_minutes // interval * interval)
                message = (f"Transcription session has been running for {elapsed_minutes} minutes "
                           f"({self._chunks_processed} chunks, estimated cost ${self._estimated_cost():.3f})")
                logger.warning(message)
                self._publish(WarningEvent(message=message, elapsed_minutes=elapsed_minutes))

            self._check_inactivity(now)
        self._flush_events()

    def _check_inactivity(self, now: datetime) -> None:
        timeout = self.settings.inactivity_timeout_minutes
        if not timeout or self._state is not SessionState.RUNNING or self._inactivity_pause_triggered:
            return
        if self._last_interaction_time is None:
            return
        idle_minutes = (now - self._last_interaction_time).total_seconds() / 60
        if idle_minutes < timeout:
            return

        self._inactivity_pause_triggered = True
        self._state = SessionState.PAUSED_MANUAL
        self._pause_reason = PauseReason.MANUAL
        cost = self._estimated_cost()
        self._warning = (f"INACTIVITY AUTO-PAUSE: No user interaction for {int(idle_minutes)} minutes. "
                         f"Transcription paused to avoid unnecessary API costs. Resume to continue.")
        self._write_system_message(
            f"⏸️ TRANSCRIPTION AUTO-PAUSED: No user interaction detected for {int(idle_minutes)} minutes. "
            f"Session so far: {self._chunks_processed} chunks processed, estimated API cost ${cost:.3f}. "
            f"Resume transcription to continue."
        )
        logger.warning(f"Session {self.session_id} auto-paused after {int(idle_minutes)} minutes without interaction")
        self._publish(PausedEvent(reason=PauseReason.MANUAL, message=self._warning))

    # ------------------------------------------------------------------
    # Audio intake and frame processing
    # ------------------------------------------------------------------

    def _on_audio_data(self, audio_data: bytes) -> None:
        """Byte source callback; runs on the capture thread."""
        with self._lock:
            if not self._state.is_active or self._stopping:
                return
            self.assembler.append(audio_data, self._on_frame)

    def _on_frame(self, frame: AudioFrame) -> None:
        if self._state is SessionState.PAUSED_MANUAL:
            logger.debug(f"Frame #{frame.sequence_number} discarded while paused")
            return
        future = self._executor.submit(self._process_frame, frame, self._state)
        self._pending[future] = frame.sequence_number
        future.add_done_callback(self._discard_pending)

    def _discard_pending(self, future: Future) -> None:
        with self._lock:
            self._pending.pop(future, None)

    def _process_frame(self, frame: AudioFrame, dispatched_state: SessionState) -> None:
        """Worker thread body: one gateway call, then apply the outcome."""
        self._local.frame_number = frame.sequence_number
        try:
            try:
                entry = self.gateway.transcribe(frame)
            except ServiceError as e:
                logger.warning(f"{TransientChunkError(frame.sequence_number, e)}")
                self._apply_outcome(frame, dispatched_state, FrameOutcome.FAILURE)
            except Exception as e:
                logger.error(f"{TransientChunkError(frame.sequence_number, e)}", exc_info=True)
                self._apply_outcome(frame, dispatched_state, FrameOutcome.FAILURE)
            else:
                outcome = FrameOutcome.SPEECH if entry is not None else FrameOutcome.SILENCE
                self._apply_outcome(frame, dispatched_state, outcome, entry)
            self._flush_events()
        finally:
            self._local.frame_number = None

    def _apply_outcome(self, frame: AudioFrame, dispatched_state: SessionState, outcome: FrameOutcome,
                       entry: Optional[TranscriptEntry] = None) -> None:
        with self._lock:
            if self._state is SessionState.STOPPED:
                logger.debug(f"Ignoring late result for frame #{frame.sequence_number}")
                return

            if outcome is FrameOutcome.FAILURE:
                self._errors += 1
            elif outcome is FrameOutcome.SILENCE:
                self._silent_chunks_skipped += 1

            transition = next_state(self._state, self._consecutive_silent_chunks,
                                    outcome, self.settings.silence_threshold_chunks,
                                    dispatched_state=dispatched_state)
            self._consecutive_silent_chunks = transition.consecutive_silent_chunks

            # Counters only once stop has begun
            changed = not self._stopping and transition.state is not self._state
            if changed:
                self._enter_state(transition.state, transition.consecutive_silent_chunks)

            # After the resume marker, so the entry follows it in the transcript
            if outcome is FrameOutcome.SPEECH:
                self._append_entry(frame, entry)

            if changed:
                for event in transition.events:
                    self._publish(event)

    def _append_entry(self, frame: AudioFrame, entry: TranscriptEntry) -> None:
        try:
            self.sink.append(entry)
        except OSError as e:
            self._errors += 1
            logger.error(f"Failed to write transcript entry for frame #{frame.sequence_number}: {e}")
            return
        self._chunks_processed += 1
        self._last_transcript_time = datetime.now()
        logger.debug(f"Frame #{frame.sequence_number}: '{entry.text}'")

    def _enter_state(self, state: SessionState, silent_chunks: int) -> None:
        """Apply an automatic (silence driven) state change."""
        previous = self._state
        self._state = state
        if state is SessionState.PAUSED_SILENCE:
            self._pause_reason = PauseReason.SILENCE
            self._warning = silence_warning(silent_chunks)
            seconds = int(silent_chunks * self.settings.chunk_seconds)
            self._write_system_message(
                f"⚠️ TRANSCRIPTION AUTO-PAUSED: No audio detected for {silent_chunks} consecutive chunks "
                f"({seconds} seconds). Please check your audio input device and routing. "
                f"Transcription will auto-resume when audio is detected."
            )
            logger.warning(f"Session {self.session_id} auto-paused after {silent_chunks} silent chunks")
        elif previous is SessionState.PAUSED_SILENCE:
            self._pause_reason = None
            self._warning = None
            self._write_system_message(
                "✅ TRANSCRIPTION AUTO-RESUMED: Audio detected after silence. Transcription continuing..."
            )
            logger.info(f"Session {self.session_id} auto-resumed, audio detected")

    def _on_capture_error(self, error: Exception) -> None:
        """Byte source error callback. Counted and reported, never fatal."""
        with self._lock:
            if self._state is SessionState.STOPPED:
                return
            self._errors += 1
            message = str(error) if isinstance(error, CaptureError) else f"Audio capture error: {error}"
            logger.error(message)
            self._publish(CaptureErrorEvent(message=message))
        self._flush_events()

    # ------------------------------------------------------------------
    # Helpers (call with the lock held)
    # ------------------------------------------------------------------

    def _reset_counters(self) -> None:
        now = datetime.now()
        self._start_time = now
        self._last_interaction_time = now
        self._chunks_processed = 0
        self._last_transcript_time = None
        self._errors = 0
        self._consecutive_silent_chunks = 0
        self._silent_chunks_skipped = 0
        self._pause_reason = None
        self._warning = None
        self._last_warning_minutes = 0
        self._inactivity_pause_triggered = False

    def _touch_interaction(self) -> None:
        if self._state.is_active:
            self._last_interaction_time = datetime.now()

    def _monitor_enabled(self) -> bool:
        return bool(self.settings.warning_interval_minutes or self.settings.inactivity_timeout_minutes)

    def _chunk_minutes(self, chunks: int) -> float:
        return chunks * self.settings.chunk_seconds / 60

    def _estimated_cost(self) -> float:
        return round(self._chunk_minutes(self._chunks_processed) * self.settings.cost_per_minute, 4)

    def _cost_saved(self) -> float:
        return round(self._chunk_minutes(self._silent_chunks_skipped) * self.settings.cost_per_minute, 4)

    def _write_system_message(self, message: str) -> None:
        if not self.settings.system_messages:
            return
        try:
            self.sink.append_system_message(message)
        except OSError as e:
            logger.error(f"Failed to write system message to transcript: {e}")

    def _publish(self, event: StatusChangeEvent) -> None:
        """Queue an event; `_flush_events` delivers it once the lock is released."""
        self._outbox.append(event)

    def _pending_futures(self) -> Set[Future]:
        """In-flight gateway calls, minus the one running on the calling thread."""
        current = getattr(self._local, "frame_number", None)
        return {future for future, number in self._pending.items() if number != current}

    def _snapshot(self) -> SessionStatus:
        return SessionStatus(
            state=self._state,
            is_running=self._state.is_active,
            start_time=self._start_time,
            chunks_processed=self._chunks_processed,
            last_transcript_time=self._last_transcript_time,
            errors=self._errors,
            consecutive_silent_chunks=self._consecutive_silent_chunks,
            silent_chunks_skipped=self._silent_chunks_skipped,
            is_paused=self._state.is_paused,
            pause_reason=self._pause_reason,
            warning=self._warning,
            last_interaction_time=self._last_interaction_time,
            estimated_cost=self._estimated_cost(),
            cost_saved=self._cost_saved(),
        )

    # ------------------------------------------------------------------
    # Event delivery (call without the lock held)
    # ------------------------------------------------------------------

    def _flush_events(self) -> None:
        """Deliver queued events in order, outside the lock.

        Only one thread delivers at a time; a call made while another thread
        (or an outer call on this thread) is delivering returns at once and
        its events go out from that loop. Once stop has begun, everything but
        `stopped` is dropped.
        """
        with self._lock:
            if self._flushing:
                return
            self._flushing = True

        while True:
            with self._lock:
                if not self._outbox:
                    self._flushing = False
                    return
                event = self._outbox.popleft()
                stopping = self._stopping or self._state is SessionState.STOPPED
            if stopping and not isinstance(event, StoppedEvent):
                logger.debug(f"Dropping {event.type} event, session is stopping")
                continue
            self.publisher.publish(event)
