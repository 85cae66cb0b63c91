"""
Background command worker for SimulPlay.

Player adapters that talk to the network or decode files must not block the
pyglet event loop. CommandWorker runs those calls on a single background
thread (so commands reach the remote end in the order they were issued) and
hands the results back to the main loop, where pump() delivers them.

Example:
    worker = CommandWorker("spotify")
    worker.submit(client.pause, on_done=lambda result, error: ...)

    # Main loop (pyglet clock):
    pyglet.clock.schedule_interval(lambda dt: worker.pump(), 0.05)
"""

import queue
import logging
from concurrent.futures import ThreadPoolExecutor, Future
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

# on_done(result, error): exactly one of the two is meaningful
DoneCallback = Callable[[Any, Optional[BaseException]], None]


class CommandWorker:
    """
    One-thread executor whose completion callbacks run on the main loop.

    Features:
    - Ordered: max_workers=1 keeps remote commands in issue order
    - Fire-and-forget: submit() never blocks the caller
    - Main-loop delivery: callbacks are queued and only run inside pump()
    """

    def __init__(self, name: str):
        """
        Initialize worker.

        Args:
            name: Thread name prefix and log label
        """
        self.name = name
        self.executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=name)
        self._completed: "queue.Queue[Callable[[], None]]" = queue.Queue()
        self._shutdown = False

    def submit(self, func: Callable, *args, on_done: Optional[DoneCallback] = None) -> Optional[Future]:
        """
        Run func(*args) on the worker thread.

        Args:
            func: Blocking callable (HTTP request, decode, ...)
            on_done: Called on the main loop with (result, error) once func returns

        Returns:
            The Future, or None if the worker was already shut down
        """
        if self._shutdown:
            logger.warning(f"{self.name}: Worker already shut down, dropping {func.__name__}")
            return None

        def run():
            try:
                result = func(*args)
            except Exception as e:
                logger.debug(f"{self.name}: {func.__name__} failed: {e}")
                if on_done is not None:
                    self._completed.put(lambda e=e: on_done(None, e))
                return
            if on_done is not None:
                self._completed.put(lambda: on_done(result, None))

        return self.executor.submit(run)

    def pump(self, dt: float = 0.0) -> int:
        """
        Deliver completed callbacks. MAIN THREAD ONLY.

        Accepts the pyglet clock's dt so it can be scheduled directly.

        Returns:
            Number of callbacks delivered
        """
        delivered = 0
        while True:
            try:
                callback = self._completed.get_nowait()
            except queue.Empty:
                return delivered
            callback()
            delivered += 1

    def shutdown(self, wait: bool = False):
        """Stop accepting work and release the thread."""
        if self._shutdown:
            return
        logger.info(f"Shutting down CommandWorker '{self.name}'")
        self._shutdown = True
        self.executor.shutdown(wait=wait)
