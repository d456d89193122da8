"""
Sampling driver for EchoSense.

Runs the pipeline on a fixed-period worker thread. The worker is the only
writer of pipeline state; the ranging engine hands over its latest distance
through a slot, and mode / calibration changes arrive as queued commands
applied at the start of a tick.
"""

import logging
import queue
import threading
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional, Any

import numpy as np

from .config import Config
from .pipeline import Pipeline, Snapshot
from .ranging import RangingEngine
from .settings import CalibrationParams, MemorySettingsStore, SettingsStore

logger = logging.getLogger(__name__)

Observer = Callable[[Snapshot], None]


class SamplingDriver:
    """
    Fixed-cadence orchestrator.

    Each tick pulls one raw distance from the engine, reads calibration from
    the settings store, runs the pipeline and publishes a Snapshot to every
    subscribed observer.

    Usage:
        driver = SamplingDriver(engine, settings)
        driver.subscribe(lambda snap: print(snap.gesture_label))
        with driver:
            time.sleep(10)
    """

    def __init__(self, engine: RangingEngine, settings: Optional[SettingsStore] = None,
                 config: Optional[Config] = None, pipeline: Optional[Pipeline] = None):
        if config is None:
            config = pipeline.config if pipeline is not None else Config()
        self.config = config
        self.engine = engine
        self.settings = settings if settings is not None else MemorySettingsStore()
        self.pipeline = pipeline or Pipeline(config)

        self._observers: List[Observer] = []
        self._commands: "queue.Queue[Callable[[], None]]" = queue.Queue()

        # Serializes start/stop; never taken from inside a tick
        self._control_lock = threading.Lock()
        # Held for the whole of every tick; reentrant so observers may
        # submit commands
        self._tick_lock = threading.RLock()
        self._tick_owner: Optional[int] = None

        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._stop_status = 0
        self._running = False
        self._latest: Optional[Snapshot] = None

        # Statistics
        self._tick_count = 0
        self._overrun_count = 0
        self._skipped_count = 0
        self._empty_reads = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> bool:
        """
        Start the engine and the tick worker.

        Returns:
            True if running afterwards (including when already running)
        """
        if self._in_tick():
            if not self._running:
                logger.warning("Cannot start sampling from inside a tick")
            return self._running

        with self._control_lock:
            if self._running:
                return True

            # A worker stopped from inside a tick may still be shutting down
            if self._thread is not None:
                self._thread.join()
                self._thread = None

            status = self.engine.start()
            if status != 0:
                logger.error("Ranging engine failed to start (status %d)", status)
                return False

            # Each worker gets its own stop event
            self._stop_event = threading.Event()
            self._running = True
            self._thread = threading.Thread(target=self._run, args=(self._stop_event,),
                                            name="echosense-tick", daemon=True)
            self._thread.start()
            logger.info("Sampling started at %.0f Hz", self.config.tick_rate)
            return True

    def stop(self) -> bool:
        """
        Stop the tick worker and the engine.

        No observer receives a snapshot once this returns. Called from inside
        a tick (e.g. by an observer), it only signals the worker, which stops
        the engine after the tick unwinds.

        Returns:
            True if the engine stopped cleanly (or nothing was running)
        """
        if self._in_tick() or threading.current_thread() is self._thread:
            self._request_stop()
            return True

        with self._control_lock:
            thread = self._thread
            if thread is None:
                return True

            self._request_stop()
            thread.join()
            self._thread = None
            return self._stop_status == 0

    def _request_stop(self):
        self._running = False
        self._stop_event.set()

    def _in_tick(self) -> bool:
        return self._tick_owner == threading.get_ident()

    @property
    def is_running(self) -> bool:
        return self._running

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *args):
        self.stop()

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------
    def _run(self, stop_event: threading.Event):
        period = self.config.sample_interval
        next_time = time.monotonic() + period

        while not stop_event.wait(max(0.0, next_time - time.monotonic())):
            started = time.monotonic()
            self._tick(require_running=True)
            elapsed = time.monotonic() - started

            if elapsed > period:
                self._overrun_count += 1
                logger.debug("Tick overran: %.1f ms > %.1f ms", elapsed * 1000, period * 1000)

            next_time += period
            now = time.monotonic()
            if now > next_time:
                # Drop missed slots instead of bursting to catch up
                missed = int((now - next_time) // period) + 1
                self._skipped_count += missed
                next_time += missed * period

        self._shutdown()

    def _shutdown(self):
        # Commands queued while running still take effect
        with self._tick_lock:
            self._apply_commands()

        status = self.engine.stop()
        if status != 0:
            logger.error("Ranging engine failed to stop (status %d)", status)
        self._stop_status = status
        logger.info("Sampling stopped after %d ticks", self._tick_count)

    def tick(self) -> Optional[Snapshot]:
        """
        Run one tick synchronously.

        Returns:
            The published Snapshot, or None if the engine had no distance yet
        """
        return self._tick(require_running=False)

    def _tick(self, require_running: bool) -> Optional[Snapshot]:
        with self._tick_lock:
            owner, self._tick_owner = self._tick_owner, threading.get_ident()
            try:
                return self._process_tick(require_running)
            finally:
                self._tick_owner = owner

    def _process_tick(self, require_running: bool) -> Optional[Snapshot]:
        was_running = self._running
        if require_running and not was_running:
            return None

        self._apply_commands()

        raw = self.engine.latest_distance()
        if raw is None:
            self._empty_reads += 1
            return None

        calibration = CalibrationParams.from_store(self.settings)
        snapshot = self.pipeline.process(raw, calibration, is_running=was_running)
        self._latest = snapshot
        self._tick_count += 1

        for observer in list(self._observers):
            if was_running and not self._running:
                # An observer stopped the driver
                break
            try:
                observer(snapshot)
            except Exception:
                logger.exception("Snapshot observer %r failed", observer)

        return snapshot

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def _apply_commands(self):
        while True:
            try:
                command = self._commands.get_nowait()
            except queue.Empty:
                return
            command()

    def _submit(self, command: Callable[[], None]):
        self._commands.put(command)
        if not self._running:
            # Not ticking: apply now, along with anything the worker left behind
            with self._tick_lock:
                self._apply_commands()

    def set_breath_mode(self, enabled: bool):
        """Switch mode at the next tick boundary."""
        def command():
            if self.pipeline.set_breath_mode(enabled):
                logger.info("Switched to %s mode", "breath" if enabled else "gesture")
        self._submit(command)

    def set_logging(self, enabled: bool):
        """Enable or disable per-tick log records."""
        def command():
            self.pipeline.log.enabled = bool(enabled)
        self._submit(command)

    def update_calibration(self, **changes):
        """
        Change calibration knobs, e.g. update_calibration(invert_gesture=True).

        The new values are written to the settings store and used from the
        next tick on.
        """
        def command():
            current = CalibrationParams.from_store(self.settings)
            current.replace(**changes).to_store(self.settings)
        self._submit(command)

    # ------------------------------------------------------------------
    # Observers & outputs
    # ------------------------------------------------------------------
    def subscribe(self, observer: Observer):
        with self._tick_lock:
            if observer not in self._observers:
                self._observers.append(observer)

    def unsubscribe(self, observer: Observer):
        with self._tick_lock:
            if observer in self._observers:
                self._observers.remove(observer)

    @property
    def latest(self) -> Optional[Snapshot]:
        """Most recently published snapshot."""
        return self._latest

    @property
    def breath_mode(self) -> bool:
        return self.pipeline.breath_mode

    def history(self) -> np.ndarray:
        """Copy of the velocity history, oldest first."""
        with self._tick_lock:
            return self.pipeline.history.values()

    def log_text(self) -> str:
        with self._tick_lock:
            return self.pipeline.log.to_text()

    def export_log(self, directory: Optional[str] = None) -> Optional[Path]:
        """
        Export the log as CSV.

        Returns:
            Path of the written file, or None if the export failed
        """
        with self._tick_lock:
            text = self.pipeline.log.to_text()
            count = len(self.pipeline.log)
        return self.pipeline.log.write_text(text, directory, count=count)

    def get_statistics(self) -> Dict[str, Any]:
        """Get driver statistics."""
        return {
            "tick_count": self._tick_count,
            "overrun_count": self._overrun_count,
            "skipped_count": self._skipped_count,
            "empty_reads": self._empty_reads,
            "is_running": self._running,
            "breath_mode": self.pipeline.breath_mode,
        }
