import threading

from app.logging.logger import Log
from app.storage.artifact_store import ArtifactStore


class ArtifactSweeper:
    """Periodic loop: wait -> sweep expired artifacts.

    Runs on a daemon thread between start() and stop(). Tests call
    run_once() or run(max_cycles=...) instead of waiting on a clock.
    """

    def __init__(
        self,
        store: ArtifactStore,
        ttl_seconds: float,
        interval_seconds: float,
    ) -> None:
        self._store = store
        self._ttl_seconds = ttl_seconds
        self._interval_seconds = interval_seconds
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the background sweep thread. No-op if already running."""
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self.run, name="artifact-sweeper", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        """Signal the loop to exit and wait for the thread to finish."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                Log.warning("Artifact sweeper did not stop within the timeout")
                return
            self._thread = None

    def run(self, max_cycles: int | None = None) -> None:
        """Sweep loop. Runs until stop() is called.

        If max_cycles is set, return after that many sweeps (for testing).
        """
        Log.info(
            f"Artifact sweeper started (ttl={self._ttl_seconds}s, "
            f"interval={self._interval_seconds}s)"
        )
        cycles = 0
        while not self._stop_event.wait(self._interval_seconds):
            self.run_once()
            cycles += 1
            if max_cycles is not None and cycles >= max_cycles:
                break
        Log.info("Artifact sweeper stopped")

    def run_once(self) -> list[str]:
        """Run a single sweep. Failures are logged, never raised."""
        try:
            removed = self._store.sweep(self._ttl_seconds)
        except Exception:
            Log.exception("Artifact sweep failed")
            return []
        if removed:
            Log.info(f"Sweep removed {len(removed)} expired artifact(s)")
        else:
            Log.debug("Sweep found no expired artifacts")
        return removed
