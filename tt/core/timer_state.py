import math
import time
from dataclasses import dataclass
from datetime import datetime
from tt.common.logger import log
from tt.core import config
from tt.core.models import TimeEntryDraft
from tt.util.misc import from_ms, iso_from_ms

IDLE = "idle"
RUNNING = "running"
PAUSED = "paused"

# The durable record of an in-progress stopwatch. last_resume_time is wall-clock epoch ms, since monotonic time
# means nothing to the next process.
@dataclass
class TimerSession:
    accumulated_ms: float
    is_running: bool
    is_paused: bool
    started_at: datetime
    last_resume_time: int | None = None

    def to_dict(self):
        return {
            "accumulated_ms": self.accumulated_ms,
            "is_running": self.is_running,
            "is_paused": self.is_paused,
            "started_at": self.started_at.isoformat(timespec="milliseconds"),
            "last_resume_time": self.last_resume_time,
        }

    # Rebuilds a session from its persisted form. Returns None for anything that can't be trusted.
    @classmethod
    def from_dict(cls, raw):
        if not isinstance(raw, dict) or raw.get("is_running") is not True:
            return None
        accumulated = raw.get("accumulated_ms")
        if isinstance(accumulated, bool) or not isinstance(accumulated, (int, float)) or not math.isfinite(accumulated) or accumulated < 0:
            return None
        try:
            started_at = datetime.fromisoformat(str(raw.get("started_at"))).astimezone()
        except ValueError:
            return None

        is_paused = raw.get("is_paused") is True
        last_resume = raw.get("last_resume_time")
        if isinstance(last_resume, bool) or not isinstance(last_resume, (int, float)) or not math.isfinite(last_resume):
            last_resume = None
        # A running session without a resume point can't be continued, but its banked time can be kept.
        if last_resume is None:
            is_paused = True

        return cls(
            accumulated_ms=float(accumulated),
            is_running=True,
            is_paused=is_paused,
            started_at=started_at,
            last_resume_time=None if is_paused else int(last_resume),
        )


# Start/pause/resume/stop stopwatch whose session survives process restarts. Running time is measured on the
# monotonic clock, and the wall clock is only used for what gets persisted.
class DurableTimer:

    def __init__(self, wall=time.time, mono=time.monotonic, session_path=None, on_stopped=None):
        self._wall = wall
        self._mono = mono
        self.session_path = session_path
        self.on_stopped = on_stopped
        self.session = None
        self._mono_resume = None  # monotonic ms at the start of the current running segment
        self.displayed_elapsed_ms = 0

    #region === Clocks ===

    def _wall_ms(self):
        return int(round(self._wall() * 1000))

    def _mono_ms(self):
        return self._mono() * 1000

    #endregion === Clocks ===

    @property
    def phase(self):
        if self.session is None:
            return IDLE
        if self.session.is_paused:
            return PAUSED
        return RUNNING

    # Accumulated time plus the current running segment, if any.
    @property
    def elapsed_ms(self):
        if self.session is None:
            return 0
        if self.phase == RUNNING and self._mono_resume is not None:
            return self.session.accumulated_ms + max(0.0, self._mono_ms() - self._mono_resume)
        return self.session.accumulated_ms

    # Restores a persisted session on launch, moving its wall-clock resume point into this process's monotonic frame.
    def restore(self):
        raw = config.load_session(self.session_path)
        session = TimerSession.from_dict(raw)
        if session is None:
            if raw is not None:
                log.warning("Persisted timer session is unusable, starting idle.")
                config.clear_session(self.session_path)
            self.session = None
            self._mono_resume = None
            self.displayed_elapsed_ms = 0
            return False

        self.session = session
        self._mono_resume = None
        if session.last_resume_time is not None:
            offset = self._mono_ms() - self._wall_ms()
            self._mono_resume = session.last_resume_time + offset
        self.displayed_elapsed_ms = self.elapsed_ms
        log.info(f"Restored {self.phase} timer session started at {session.started_at.isoformat()} "
                 f"with {int(self.displayed_elapsed_ms)}ms elapsed")
        return True

    def _persist(self):
        config.save_session(self.session.to_dict(), self.session_path)

    #region === Transitions ===

    def start(self):
        if self.phase != IDLE:
            log.debug(f"Ignoring start while {self.phase}")
            return False
        wall_ms = self._wall_ms()
        self.session = TimerSession(
            accumulated_ms=0.0,
            is_running=True,
            is_paused=False,
            started_at=from_ms(wall_ms),
            last_resume_time=wall_ms,
        )
        self._mono_resume = self._mono_ms()
        self.displayed_elapsed_ms = 0
        self._persist()
        log.debug(f"Started timer at mono {self._mono_resume}")
        return True

    def pause(self):
        if self.phase != RUNNING:
            log.debug(f"Ignoring pause while {self.phase}")
            return False
        segment_ms = max(0.0, self._mono_ms() - self._mono_resume)
        self.session.accumulated_ms += segment_ms
        self.session.is_paused = True
        self.session.last_resume_time = None
        self._mono_resume = None
        self.displayed_elapsed_ms = self.session.accumulated_ms
        self._persist()
        log.debug(f"Paused timer after a {int(segment_ms)}ms segment, {int(self.session.accumulated_ms)}ms banked")
        return True

    def resume(self):
        if self.phase != PAUSED:
            log.debug(f"Ignoring resume while {self.phase}")
            return False
        self.session.is_paused = False
        self.session.last_resume_time = self._wall_ms()
        self._mono_resume = self._mono_ms()
        self._persist()
        log.debug(f"Resumed timer at mono {self._mono_resume}")
        return True

    # Ends the session and hands back the draft for the elapsed time. The draft has no category yet.
    def stop(self):
        if self.phase == IDLE:
            log.debug("Ignoring stop while idle")
            return None
        final_ms = int(self.elapsed_ms)
        draft = TimeEntryDraft(
            started_at=self.session.started_at.isoformat(timespec="milliseconds"),
            stopped_at=iso_from_ms(self._wall_ms()),
            duration_ms=final_ms,
            category="",
        )
        self.session = None
        self._mono_resume = None
        self.displayed_elapsed_ms = final_ms
        config.clear_session(self.session_path)
        log.debug(f"Stopped timer with {final_ms}ms elapsed")
        if self.on_stopped is not None:
            self.on_stopped(draft)
        return draft

    # Simply restores the timer to 0:00, whatever state it was in. No draft is produced.
    def reset(self):
        self.session = None
        self._mono_resume = None
        self.displayed_elapsed_ms = 0
        config.clear_session(self.session_path)
        log.debug("Reset timer")

    #endregion === Transitions ===

    # Display-only refresh of the elapsed time. Never touches the session itself.
    def tick(self):
        if self.phase == RUNNING:
            self.displayed_elapsed_ms = self.elapsed_ms
        return self.displayed_elapsed_ms
