from PySide6.QtCore import QObject, QTimer
from tt.common.logger import log
from tt.core.timer_state import RUNNING

# Periodic display refresh for a DurableTimer. The QTimer only runs while the timer is Running; call sync() after
# every transition so pause, stop and reset cancel the scheduled work.
class TickLoop(QObject):

    def __init__(self, timer, on_tick=None, interval_ms=1000, parent=None):
        super().__init__(parent)
        self.timer = timer
        self.on_tick = on_tick
        self._qtimer = QTimer(self)
        self._qtimer.setInterval(interval_ms)
        self._qtimer.timeout.connect(self._tick)

    @property
    def active(self):
        return self._qtimer.isActive()

    def sync(self):
        should_run = self.timer.phase == RUNNING
        if should_run and not self._qtimer.isActive():
            self._qtimer.start()
            log.debug("Tick loop started")
            self._tick()
        elif not should_run and self._qtimer.isActive():
            self._qtimer.stop()
            log.debug("Tick loop stopped")

    def cancel(self):
        self._qtimer.stop()

    def _tick(self):
        # The timer may have been stopped by someone who didn't call sync()
        if self.timer.phase != RUNNING:
            self._qtimer.stop()
            return
        elapsed_ms = self.timer.tick()
        if self.on_tick is not None:
            self.on_tick(elapsed_ms)
