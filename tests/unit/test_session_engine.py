"""Unit tests for TranscriptionSession."""

import threading
import time
from dataclasses import replace
from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import Mock

import numpy as np
import pytest

from meetscribe.exceptions import CaptureError, InvalidOperationError, StartupError
from meetscribe.models.session import PauseReason, SessionState
from meetscribe.services.session_engine import TranscriptionSession
from meetscribe.storage.transcript_sink import TranscriptSink

TEST_SAMPLE_RATE = 1000


def pcm_frame(value: int, seconds: float = 1.0, sample_rate: int = TEST_SAMPLE_RATE) -> bytes:
    return np.full(int(seconds * sample_rate), value, dtype=np.int16).tobytes()


LOUD = pcm_frame(1000)
QUIET = pcm_frame(0)


def feed(session, source, *frames):
    """Push frames one at a time, letting each one complete before the next."""
    for frame in frames:
        source.push(frame)
        assert session.wait_idle(5.0)


@pytest.mark.unit
class TestSessionLifecycle:
    """Start, pause, resume and stop."""

    def test_new_session_is_idle(self, make_session):
        session = make_session()
        status = session.get_status()

        assert status.state is SessionState.IDLE
        assert status.is_running is False
        assert status.start_time is None
        assert status.last_interaction_time is None

    def test_start(self, make_session, fake_source, gateway, transcript_path, event_recorder):
        session = make_session()
        session.subscribe(event_recorder.listener)

        session.start()

        status = session.get_status()
        assert status.state is SessionState.RUNNING
        assert status.is_running is True
        assert status.start_time is not None
        assert status.last_interaction_time is not None
        assert gateway.health_checks == 1
        assert fake_source.started
        assert Path(transcript_path).read_text() == "# Meeting Transcript\n\n"
        assert event_recorder.types == ["started"]

    def test_start_fails_when_gateway_unhealthy(self, make_session, fake_source, transcript_path,
                                                event_recorder, gateway_factory):
        session = make_session(gateway_=gateway_factory(healthy=False))
        session.subscribe(event_recorder.listener)

        with pytest.raises(StartupError):
            session.start()

        assert session.state is SessionState.IDLE
        assert fake_source.start_calls == 0
        assert not Path(transcript_path).exists()
        assert event_recorder.events == []

    def test_start_fails_when_health_check_raises(self, make_session, gateway_factory):
        gateway = gateway_factory()
        gateway.health_check = Mock(side_effect=RuntimeError("dns failure"))
        session = make_session(gateway_=gateway)

        with pytest.raises(StartupError):
            session.start()
        assert session.state is SessionState.IDLE

    def test_start_rolls_back_when_source_fails(self, make_session, source_factory):
        source = source_factory(fail_on_start=True)
        session = make_session(source=source)

        with pytest.raises(StartupError):
            session.start()

        assert session.state is SessionState.IDLE
        assert session.get_status().start_time is None

    def test_session_can_start_after_failed_health_check(self, make_session, gateway_factory):
        gateway = gateway_factory(healthy=False)
        session = make_session(gateway_=gateway)
        with pytest.raises(StartupError):
            session.start()

        gateway.healthy = True
        session.start()
        assert session.state is SessionState.RUNNING

    def test_start_twice_is_invalid(self, make_session, fake_source, gateway):
        session = make_session()
        session.start()
        feed(session, fake_source, LOUD, QUIET)
        before = session.get_status()

        with pytest.raises(InvalidOperationError):
            session.start()

        after = session.get_status()
        assert after.chunks_processed == before.chunks_processed == 1
        assert after.silent_chunks_skipped == before.silent_chunks_skipped == 1
        assert after.start_time == before.start_time
        assert after.state is before.state is SessionState.RUNNING
        assert gateway.health_checks == 1
        assert fake_source.start_calls == 1

    def test_pause_and_resume(self, make_session, event_recorder):
        session = make_session()
        session.subscribe(event_recorder.listener)
        session.start()

        session.pause()
        status = session.get_status()
        assert status.state is SessionState.PAUSED_MANUAL
        assert status.is_paused is True
        assert status.is_running is True
        assert status.pause_reason is PauseReason.MANUAL
        assert status.warning == "Transcription manually paused by user"

        session.resume()
        status = session.get_status()
        assert status.state is SessionState.RUNNING
        assert status.is_paused is False
        assert status.pause_reason is None
        assert status.warning is None

        assert event_recorder.types == ["started", "paused", "resumed"]
        assert event_recorder.events[1].reason is PauseReason.MANUAL
        assert event_recorder.events[2].previous_reason is PauseReason.MANUAL

    def test_resume_from_manual_pause_resets_silence_run(self, make_session, fake_source):
        session = make_session()
        session.start()
        feed(session, fake_source, QUIET, QUIET)
        assert session.get_status().consecutive_silent_chunks == 2

        session.pause()
        session.resume()

        status = session.get_status()
        assert status.state is SessionState.RUNNING
        assert status.consecutive_silent_chunks == 0
        assert status.silent_chunks_skipped == 2

    @pytest.mark.parametrize("operation", ["pause", "resume"])
    def test_pause_resume_invalid_when_idle(self, make_session, operation):
        session = make_session()
        before = session.get_status()

        with pytest.raises(InvalidOperationError):
            getattr(session, operation)()

        assert session.get_status() == before

    def test_resume_while_running_is_invalid(self, make_session):
        session = make_session()
        session.start()
        with pytest.raises(InvalidOperationError):
            session.resume()
        assert session.state is SessionState.RUNNING

    def test_pause_twice_is_invalid(self, make_session):
        session = make_session()
        session.start()
        session.pause()
        with pytest.raises(InvalidOperationError):
            session.pause()
        assert session.state is SessionState.PAUSED_MANUAL

    def test_stop(self, make_session, fake_source, gateway, event_recorder):
        session = make_session()
        session.subscribe(event_recorder.listener)
        session.start()
        feed(session, fake_source, LOUD)

        status = session.stop()

        assert status.state is SessionState.STOPPED
        assert status.is_running is False
        assert status.is_paused is False
        assert fake_source.stopped
        assert gateway.cleaned_up
        stopped = event_recorder.events[-1]
        assert stopped.type == "stopped"
        assert stopped.chunks_processed == 1
        assert stopped.errors == 0
        assert stopped.duration_seconds >= 0

    def test_stop_is_idempotent(self, make_session, event_recorder):
        session = make_session()
        session.subscribe(event_recorder.listener)
        session.start()

        first = session.stop()
        second = session.stop()

        assert first == second
        assert event_recorder.types.count("stopped") == 1

    def test_stop_from_idle(self, make_session, fake_source, event_recorder):
        session = make_session()
        session.subscribe(event_recorder.listener)

        status = session.stop()

        assert status.state is SessionState.STOPPED
        assert not fake_source.stopped
        assert event_recorder.types == ["stopped"]

    def test_stop_from_paused(self, make_session):
        session = make_session()
        session.start()
        session.pause()
        assert session.stop().state is SessionState.STOPPED

    def test_stopped_session_cannot_restart(self, make_session):
        session = make_session()
        session.start()
        session.stop()
        for operation in ("start", "pause", "resume"):
            with pytest.raises(InvalidOperationError):
                getattr(session, operation)()

    def test_stop_discards_partial_frame(self, make_session, fake_source, gateway):
        session = make_session()
        session.start()
        fake_source.push(LOUD[:1500])

        session.stop()

        assert session.assembler.pending_bytes == 0
        assert gateway.calls == []

    def test_stop_from_listener(self, make_session, fake_source, test_settings, event_recorder):
        """A listener may stop the session; nothing but `stopped` follows."""
        session = make_session(settings=replace(test_settings, stop_grace_seconds=1.0))

        def stop_on_silence(event):
            if event.type == "silence_detected":
                session.stop()

        session.subscribe(stop_on_silence)
        session.subscribe(event_recorder.listener)
        session.start()

        started = time.time()
        feed(session, fake_source, QUIET, QUIET, QUIET, QUIET)
        elapsed = time.time() - started

        assert session.state is SessionState.STOPPED
        assert event_recorder.types == ["started", "silence_detected", "stopped"]
        # stop() must not wait out the grace period on the frame that called it
        assert elapsed < 0.9

    def test_concurrent_stop_waits_for_first(self, make_session, fake_source, gateway, test_settings):
        gateway.block = threading.Event()
        session = make_session(settings=replace(test_settings, stop_grace_seconds=2.0))
        session.start()
        fake_source.push(LOUD)

        results = []
        first = threading.Thread(target=lambda: results.append(session.stop()))
        first.start()
        time.sleep(0.1)
        threading.Timer(0.3, gateway.block.set).start()

        second = session.stop()
        first.join(5.0)

        assert second.state is SessionState.STOPPED
        assert second.chunks_processed == 1
        assert results == [second]

    def test_session_id_is_validated(self, fake_source, gateway, transcript_path):
        with pytest.raises(ValueError):
            TranscriptionSession(fake_source, gateway, TranscriptSink(transcript_path), session_id="team-sync.1")

        session = TranscriptionSession(fake_source, gateway, TranscriptSink(transcript_path),
                                       session_id="team_sync_1")
        assert session.session_id == "team_sync_1"
        assert session.publisher.topic == "session_status.team_sync_1"


@pytest.mark.unit
class TestFrameProcessing:
    """Per-frame outcomes and the silence policy."""

    def test_speech_is_appended(self, make_session, fake_source, gateway):
        gateway.script = ["Hello everyone.", "Let's begin."]
        session = make_session()
        session.start()

        feed(session, fake_source, LOUD, LOUD)

        status = session.get_status()
        assert status.chunks_processed == 2
        assert status.last_transcript_time is not None
        assert status.consecutive_silent_chunks == 0
        transcript = session.get_transcript()
        assert "Hello everyone." in transcript
        assert transcript.index("Hello everyone.") < transcript.index("Let's begin.")
        assert transcript.startswith("# Meeting Transcript\n\n\n**")

    def test_entry_timestamp_format(self, make_session, fake_source):
        session = make_session()
        session.start()
        feed(session, fake_source, LOUD)

        lines = [line for line in session.get_transcript().splitlines() if line.startswith("**")]
        timestamp = lines[0].split("**")[1]
        datetime.strptime(timestamp, "%Y-%m-%d %H:%M:%S")

    def test_silent_frames_skip_the_service(self, make_session, fake_source, gateway):
        session = make_session()
        session.start()

        feed(session, fake_source, QUIET, QUIET)

        status = session.get_status()
        assert gateway.calls == []
        assert status.chunks_processed == 0
        assert status.silent_chunks_skipped == 2
        assert status.consecutive_silent_chunks == 2
        assert status.state is SessionState.RUNNING

    def test_empty_response_counts_as_silence(self, make_session, fake_source, gateway):
        gateway.script = [None]
        session = make_session()
        session.start()

        feed(session, fake_source, LOUD)

        status = session.get_status()
        assert status.silent_chunks_skipped == 1
        assert status.chunks_processed == 0

    def test_silence_auto_pause(self, make_session, fake_source, event_recorder):
        session = make_session()
        session.subscribe(event_recorder.listener)
        session.start()

        feed(session, fake_source, QUIET, QUIET, QUIET)
        assert session.state is SessionState.RUNNING
        feed(session, fake_source, QUIET)

        status = session.get_status()
        assert status.state is SessionState.PAUSED_SILENCE
        assert status.pause_reason is PauseReason.SILENCE
        assert status.consecutive_silent_chunks == 4
        assert "No audio detected for 4 consecutive chunks" in status.warning
        assert event_recorder.types == ["started", "silence_detected", "paused"]
        assert event_recorder.events[1].count == 4
        assert event_recorder.events[2].reason is PauseReason.SILENCE
        assert "TRANSCRIPTION AUTO-PAUSED" in session.get_transcript()

    def test_speech_resets_silence_run(self, make_session, fake_source):
        session = make_session()
        session.start()

        feed(session, fake_source, QUIET, QUIET, QUIET, LOUD, QUIET, QUIET, QUIET)

        status = session.get_status()
        assert status.state is SessionState.RUNNING
        assert status.consecutive_silent_chunks == 3
        assert status.silent_chunks_skipped == 6

    def test_silence_paused_session_keeps_listening_and_auto_resumes(self, make_session, fake_source,
                                                                    gateway, event_recorder):
        gateway.script = ["We're back."]
        session = make_session()
        session.subscribe(event_recorder.listener)
        session.start()
        feed(session, fake_source, QUIET, QUIET, QUIET, QUIET)

        feed(session, fake_source, QUIET)
        assert session.get_status().consecutive_silent_chunks == 5
        feed(session, fake_source, LOUD)

        status = session.get_status()
        assert status.state is SessionState.RUNNING
        assert status.pause_reason is None
        assert status.warning is None
        assert status.consecutive_silent_chunks == 0
        assert status.chunks_processed == 1
        assert event_recorder.types[-2:] == ["audio_detected", "resumed"]
        assert event_recorder.events[-1].previous_reason is PauseReason.SILENCE
        transcript = session.get_transcript()
        assert "TRANSCRIPTION AUTO-RESUMED" in transcript
        assert transcript.index("AUTO-RESUMED") < transcript.index("We're back.")

    def test_speech_dispatched_before_silence_pause_does_not_resume(self, make_session, fake_source,
                                                                    gateway, event_recorder):
        """Only frames sent while silence-paused can lift the pause."""
        gateway.script = ["Trailing words.", "We're back."]
        gateway.block = threading.Event()
        session = make_session()
        session.subscribe(event_recorder.listener)
        session.start()
        feed(session, fake_source, QUIET, QUIET, QUIET)

        # Both frames are dispatched while Running; the speech frame completes after the pause
        fake_source.push(QUIET + LOUD)
        deadline = time.time() + 2.0
        while session.state is not SessionState.PAUSED_SILENCE and time.time() < deadline:
            time.sleep(0.01)
        gateway.block.set()
        assert session.wait_idle(5.0)

        status = session.get_status()
        assert status.state is SessionState.PAUSED_SILENCE
        assert status.chunks_processed == 1
        assert status.consecutive_silent_chunks == 0
        assert event_recorder.types == ["started", "silence_detected", "paused"]
        assert "Trailing words." in session.get_transcript()

        feed(session, fake_source, LOUD)

        assert session.state is SessionState.RUNNING
        assert event_recorder.types[-2:] == ["audio_detected", "resumed"]

    def test_manual_resume_from_silence_pause(self, make_session, fake_source, event_recorder):
        session = make_session()
        session.subscribe(event_recorder.listener)
        session.start()
        feed(session, fake_source, QUIET, QUIET, QUIET, QUIET)

        session.resume()

        status = session.get_status()
        assert status.state is SessionState.RUNNING
        assert status.consecutive_silent_chunks == 0
        assert event_recorder.events[-1].previous_reason is PauseReason.SILENCE

    def test_manual_pause_discards_frames(self, make_session, fake_source, gateway):
        session = make_session()
        session.start()
        session.pause()

        feed(session, fake_source, LOUD, LOUD, QUIET, QUIET, QUIET, QUIET, QUIET)

        status = session.get_status()
        assert gateway.calls == []
        assert status.chunks_processed == 0
        assert status.silent_chunks_skipped == 0
        assert status.state is SessionState.PAUSED_MANUAL

    def test_frames_flow_again_after_resume(self, make_session, fake_source, gateway):
        session = make_session()
        session.start()
        session.pause()
        feed(session, fake_source, LOUD)
        session.resume()

        feed(session, fake_source, LOUD)

        assert len(gateway.calls) == 1
        assert session.get_status().chunks_processed == 1

    def test_gateway_failure_is_counted(self, make_session, fake_source, gateway, service_error,
                                        event_recorder):
        gateway.script = ["first", service_error, "third"]
        session = make_session()
        session.subscribe(event_recorder.listener)
        session.start()

        feed(session, fake_source, LOUD, LOUD, LOUD)

        status = session.get_status()
        assert status.errors == 1
        assert status.chunks_processed == 2
        assert status.state is SessionState.RUNNING
        assert event_recorder.types == ["started"]
        transcript = session.get_transcript()
        assert "first" in transcript and "third" in transcript

    def test_unexpected_gateway_exception_is_counted(self, make_session, fake_source, gateway):
        gateway.script = [KeyError("boom")]
        session = make_session()
        session.start()

        feed(session, fake_source, LOUD)

        assert session.get_status().errors == 1

    def test_failure_does_not_break_silence_run(self, make_session, fake_source, gateway, service_error):
        gateway.script = [service_error]
        session = make_session()
        session.start()

        feed(session, fake_source, QUIET, QUIET, LOUD, QUIET)

        status = session.get_status()
        assert status.consecutive_silent_chunks == 3
        assert status.errors == 1

    def test_failures_do_not_pause(self, make_session, fake_source, gateway, service_error):
        gateway.script = [service_error] * 6
        session = make_session()
        session.start()

        feed(session, fake_source, *([LOUD] * 6))

        status = session.get_status()
        assert status.errors == 6
        assert status.state is SessionState.RUNNING

    def test_capture_error_is_counted_and_reported(self, make_session, fake_source, event_recorder):
        session = make_session()
        session.subscribe(event_recorder.listener)
        session.start()

        fake_source.fail(CaptureError("Audio capture failed: device unplugged"))

        status = session.get_status()
        assert status.errors == 1
        assert status.state is SessionState.RUNNING
        assert event_recorder.types[-1] == "capture_error"
        assert "device unplugged" in event_recorder.events[-1].message

    def test_intake_does_not_block_on_slow_gateway(self, make_session, fake_source, gateway, test_settings):
        gateway.block = threading.Event()
        session = make_session(settings=replace(test_settings, max_concurrent_requests=2))
        session.start()

        started = time.time()
        for _ in range(5):
            fake_source.push(LOUD)
        assert time.time() - started < 1.0

        gateway.block.set()
        assert session.wait_idle(5.0)
        assert session.get_status().chunks_processed == 5

    def test_late_completion_after_stop_is_ignored(self, make_session, fake_source, gateway, test_settings):
        gateway.block = threading.Event()
        session = make_session(settings=replace(test_settings, stop_grace_seconds=0.2))
        session.start()
        fake_source.push(LOUD)

        status = session.stop()
        gateway.block.set()
        time.sleep(0.2)

        assert status.chunks_processed == 0
        assert session.get_status().chunks_processed == 0
        assert session.state is SessionState.STOPPED
        assert "**" not in session.get_transcript().replace("# Meeting Transcript", "")

    def test_completions_within_grace_are_counted(self, make_session, fake_source, gateway, event_recorder):
        gateway.block = threading.Event()
        session = make_session()
        session.subscribe(event_recorder.listener)
        session.start()
        fake_source.push(LOUD)

        threading.Timer(0.1, gateway.block.set).start()
        status = session.stop()

        assert status.chunks_processed == 1
        assert event_recorder.events[-1].chunks_processed == 1


@pytest.mark.unit
class TestSessionExtras:
    """Cost, interaction tracking, inactivity, warnings and transcript access."""

    def test_cost_tracking(self, make_session, fake_source, gateway, test_settings):
        settings = replace(test_settings, sample_rate=100, chunk_seconds=8, silence_threshold_chunks=100)
        session = make_session(settings=settings)
        session.start()
        loud = pcm_frame(1000, 8.0, 100)
        quiet = pcm_frame(0, 8.0, 100)

        feed(session, fake_source, *([loud] * 10), quiet, quiet)

        status = session.get_status()
        assert status.chunks_processed == 10
        assert status.estimated_cost == pytest.approx(0.008)
        assert status.cost_saved == pytest.approx(0.0016)

    def test_interaction_time_refreshes(self, make_session):
        session = make_session()
        session.start()
        first = session.get_status().last_interaction_time
        time.sleep(0.01)

        session.pause()
        after_pause = session.get_status().last_interaction_time
        time.sleep(0.01)
        session.get_transcript()
        after_read = session.get_status().last_interaction_time

        assert after_pause > first
        assert after_read > after_pause

    def test_no_interaction_tracking_before_start(self, make_session):
        session = make_session()
        session.get_status()
        session.get_transcript()
        assert session.get_status().last_interaction_time is None

    def test_inactivity_auto_pause(self, make_session, fake_source, test_settings, event_recorder):
        settings = replace(test_settings, sample_rate=100, chunk_seconds=8)
        session = make_session(settings=settings)
        session.subscribe(event_recorder.listener)
        session.start()
        feed(session, fake_source, *([pcm_frame(1000, 8.0, 100)] * 10))

        session.check_long_session_warnings(now=datetime.now() + timedelta(minutes=31))

        status = session.get_status()
        assert status.state is SessionState.PAUSED_MANUAL
        assert status.pause_reason is PauseReason.MANUAL
        assert "INACTIVITY AUTO-PAUSE" in status.warning
        assert "minutes" in status.warning
        assert event_recorder.types[-1] == "paused"
        transcript = session.get_transcript()
        assert "TRANSCRIPTION AUTO-PAUSED" in transcript
        assert "No user interaction detected" in transcript
        assert "API cost" in transcript
        assert "$0.008" in transcript
        assert "10 chunks processed" in transcript

    def test_no_inactivity_pause_before_timeout(self, make_session):
        session = make_session()
        session.start()
        session.check_long_session_warnings(now=datetime.now() + timedelta(minutes=29))
        assert session.state is SessionState.RUNNING

    def test_inactivity_does_not_touch_paused_session(self, make_session):
        session = make_session()
        session.start()
        session.pause()

        session.check_long_session_warnings(now=datetime.now() + timedelta(minutes=45))

        status = session.get_status()
        assert status.state is SessionState.PAUSED_MANUAL
        assert "INACTIVITY" not in status.warning

    def test_resume_rearms_inactivity_pause(self, make_session):
        session = make_session()
        session.start()
        session.check_long_session_warnings(now=datetime.now() + timedelta(minutes=31))
        assert session.state is SessionState.PAUSED_MANUAL

        session.resume()
        assert session.state is SessionState.RUNNING
        session.check_long_session_warnings(now=datetime.now() + timedelta(minutes=31))
        assert session.state is SessionState.PAUSED_MANUAL

    def test_inactivity_pause_can_be_disabled(self, make_session, test_settings):
        session = make_session(settings=replace(test_settings, inactivity_timeout_minutes=None))
        session.start()
        session.check_long_session_warnings(now=datetime.now() + timedelta(hours=5))
        assert session.state is SessionState.RUNNING

    def test_long_session_warnings(self, make_session, test_settings, event_recorder):
        session = make_session(settings=replace(test_settings, inactivity_timeout_minutes=None))
        session.subscribe(event_recorder.listener)
        session.start()
        start = session.get_status().start_time

        session.check_long_session_warnings(now=start + timedelta(minutes=59))
        session.check_long_session_warnings(now=start + timedelta(minutes=61))
        session.check_long_session_warnings(now=start + timedelta(minutes=90))
        session.check_long_session_warnings(now=start + timedelta(minutes=121))

        warnings = [e for e in event_recorder.events if e.type == "warning"]
        assert [w.elapsed_minutes for w in warnings] == [61, 121]
        assert "61 minutes" in warnings[0].message

    def test_no_warnings_when_not_active(self, make_session, event_recorder):
        session = make_session()
        session.subscribe(event_recorder.listener)
        session.check_long_session_warnings(now=datetime.now() + timedelta(hours=3))
        assert event_recorder.events == []

    def test_manual_pause_and_resume_write_system_messages(self, make_session):
        session = make_session()
        session.start()
        session.pause()
        session.resume()

        transcript = session.get_transcript()
        assert "_[SYSTEM]_" in transcript
        assert "manually paused" in transcript
        assert "manually resumed" in transcript

    def test_system_messages_can_be_disabled(self, make_session, fake_source, test_settings):
        session = make_session(settings=replace(test_settings, system_messages=False))
        session.start()
        session.pause()
        session.resume()
        feed(session, fake_source, QUIET, QUIET, QUIET, QUIET)

        assert "[SYSTEM]" not in session.get_transcript()
        assert session.state is SessionState.PAUSED_SILENCE

    def test_clear_and_delete_transcript(self, make_session, fake_source, transcript_path):
        session = make_session()
        session.start()
        feed(session, fake_source, LOUD)

        session.clear_transcript()
        assert session.get_transcript() == "# Meeting Transcript\n\n"

        session.delete_transcript()
        assert not Path(transcript_path).exists()
        assert session.transcript_path == str(Path(transcript_path).absolute())

    def test_listener_errors_do_not_affect_session(self, make_session, fake_source):
        def broken_listener(event):
            raise RuntimeError("listener bug")

        session = make_session()
        session.subscribe(broken_listener)
        session.start()
        session.pause()

        assert session.state is SessionState.PAUSED_MANUAL

    def test_broken_listener_does_not_hide_events_from_others(self, make_session, event_recorder):
        def broken_listener(event):
            raise RuntimeError("listener bug")

        session = make_session()
        session.subscribe(broken_listener)
        session.subscribe(event_recorder.listener)
        session.start()
        session.pause()

        assert event_recorder.types == ["started", "paused"]

    def test_unsubscribe(self, make_session, event_recorder):
        session = make_session()
        session.subscribe(event_recorder.listener)
        session.unsubscribe(event_recorder.listener)

        session.start()

        assert event_recorder.events == []

    def test_sessions_are_isolated(self, make_session, temp_data_dir, event_recorder,
                                   source_factory, gateway_factory):
        first = make_session(path=str(Path(temp_data_dir) / "a.md"))
        second = make_session(source=source_factory(), gateway_=gateway_factory(),
                              path=str(Path(temp_data_dir) / "b.md"))
        first.subscribe(event_recorder.listener)

        first.start()
        second.start()
        second.pause()

        assert first.session_id != second.session_id
        assert first.state is SessionState.RUNNING
        assert event_recorder.types == ["started"]
