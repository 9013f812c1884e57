"""
Async utilities for the project dashboard
"""

import asyncio
import functools
import logging
import os
import subprocess
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Any, List, Optional, Set, Tuple, Union

# Set up logging
logger = logging.getLogger(__name__)

# Global thread pool executor for blocking work
_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="async_worker")


async def run_in_executor(func: Callable, *args, **kwargs) -> Any:
    """
    Run a synchronous function in the thread pool executor

    Raises:
        RuntimeError: If no event loop is running
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError as e:
        logger.error("No event loop available for run_in_executor")
        raise RuntimeError("No async event loop available") from e

    bound_func = functools.partial(func, *args, **kwargs)
    return await loop.run_in_executor(_executor, bound_func)


async def run_subprocess_streaming_async(
    cmd: Union[List[str], str],
    shell: bool = False,
    encoding: str = "utf-8",
    errors: str = "replace",
    cwd: Optional[str] = None,
    output_callback: Optional[Callable[[str], None]] = None,
) -> Tuple[Optional[int], str]:
    """
    Run subprocess with line-by-line output streaming using the thread pool
    Returns (return_code, full_output); return_code is None when the process
    could not be started
    """

    def run_subprocess_with_streaming():
        env = os.environ.copy()
        env["PYTHONUNBUFFERED"] = "1"
        env["PYTHONIOENCODING"] = "utf-8"

        try:
            process = subprocess.Popen(
                cmd,
                shell=shell,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                text=True,
                encoding=encoding,
                errors=errors,
                cwd=cwd,
                env=env,
            )
        except OSError as e:
            logger.error("Could not start %s: %s", cmd, e)
            message = f"Error starting process: {e}\n"
            if output_callback:
                output_callback(message)
            return None, message

        chunks = []
        for line in process.stdout:
            chunks.append(line)
            if output_callback:
                output_callback(line)

        return_code = process.wait()
        return return_code, "".join(chunks)

    return await run_in_executor(run_subprocess_with_streaming)


class ImprovedAsyncTaskManager:
    """
    Task manager that runs coroutines on an event loop in a background thread,
    for callers living outside the loop (web handlers, file monitor, CLI)
    """

    def __init__(self):
        self._tasks: Set[asyncio.Future] = set()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._shutdown_requested = False
        self._loop_ready = threading.Event()

    def setup_event_loop(self):
        """Setup event loop in background thread"""
        if self._shutdown_requested or self._thread is not None:
            return

        def run_event_loop():
            try:
                self._loop = asyncio.new_event_loop()

                def handle_exception(loop, context):
                    exception = context.get("exception")
                    if exception:
                        logger.error(
                            "Async task exception: %s", exception, exc_info=exception
                        )
                    else:
                        logger.error(
                            "Async task error: %s", context.get("message", "Unknown")
                        )

                self._loop.set_exception_handler(handle_exception)
                self._loop_ready.set()

                logger.info("Async event loop thread started")
                self._loop.run_forever()

            except Exception:
                logger.exception("Critical error in event loop thread")
                self._loop_ready.set()  # Signal even on error to prevent deadlock
            finally:
                if self._loop and not self._loop.is_closed():
                    pending = asyncio.all_tasks(self._loop)
                    for task in pending:
                        task.cancel()
                    if pending:
                        self._loop.run_until_complete(
                            asyncio.gather(*pending, return_exceptions=True)
                        )
                    self._loop.close()

                logger.info("Async event loop thread ended")

        self._thread = threading.Thread(
            target=run_event_loop, daemon=True, name="AsyncEventLoop"
        )
        self._thread.start()

        if not self._loop_ready.wait(timeout=5.0):
            raise RuntimeError("Failed to start async event loop within timeout")

        if self._loop is None:
            raise RuntimeError("Failed to create async event loop")

    def run_task(
        self, coro, callback: Optional[Callable] = None, task_name: Optional[str] = None
    ):
        """
        Run an async task in the background thread

        Args:
            coro: Coroutine to run
            callback: Optional callback function called with (result, error)
            task_name: Optional name for the task (for debugging)

        Returns:
            concurrent.futures.Future representing the task

        Raises:
            RuntimeError: If task manager is shutting down or not set up
        """
        if self._shutdown_requested:
            coro.close()
            raise RuntimeError("Task manager is shutting down")

        if not self._loop or self._loop.is_closed():
            self.setup_event_loop()

        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        self._tasks.add(future)

        def cleanup_and_callback(completed_future):
            self._tasks.discard(completed_future)

            if completed_future.cancelled():
                error = asyncio.CancelledError("Task was cancelled")
                result = None
            else:
                error = completed_future.exception()
                result = None if error else completed_future.result()
                if error:
                    logger.error("Error in task %s: %s", task_name or "unnamed", error)

            if callback:
                try:
                    callback(result, error)
                except Exception:
                    logger.exception(
                        "Error in task callback for %s", task_name or "unnamed"
                    )

        future.add_done_callback(cleanup_and_callback)
        return future

    def run_sync(self, coro, timeout: Optional[float] = None) -> Any:
        """Run a coroutine on the background loop and block for its result"""
        return self.run_task(coro).result(timeout=timeout)

    def cancel_all_tasks(self, timeout: float = 5.0):
        """Cancel all running tasks with timeout"""
        if not self._tasks:
            return

        logger.info("Cancelling %d tasks", len(self._tasks))

        cancelled_tasks = []
        for task in self._tasks.copy():
            if not task.done():
                task.cancel()
                cancelled_tasks.append(task)

        start_time = time.time()
        while cancelled_tasks and (time.time() - start_time) < timeout:
            cancelled_tasks = [task for task in cancelled_tasks if not task.done()]
            if cancelled_tasks:
                time.sleep(0.1)

        if cancelled_tasks:
            logger.warning("%d tasks did not cancel within timeout", len(cancelled_tasks))

        self._tasks.clear()

    def get_task_count(self) -> int:
        """Get current number of tracked tasks"""
        completed = {task for task in self._tasks if task.done()}
        self._tasks -= completed
        return len(self._tasks)

    def shutdown(self, timeout: float = 5.0):
        """Shutdown the task manager with proper cleanup and timeout"""
        logger.info("Shutting down async task manager")
        self._shutdown_requested = True

        self.cancel_all_tasks(timeout=timeout / 2)

        if self._loop and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._loop.stop)

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning(
                    "Event loop thread did not shut down cleanly within %fs", timeout
                )

        self._loop = None
        self._thread = None
        self._loop_ready.clear()


# Global task manager instance
task_manager = ImprovedAsyncTaskManager()


def shutdown_all(timeout: float = 5.0):
    """Shutdown all async resources with timeout"""
    logger.info("Shutting down all async resources")
    task_manager.shutdown(timeout=timeout)
    _executor.shutdown(wait=False)
