"""
Tests for async utilities - Tests for async task management and subprocess execution
"""

import os
import sys
import asyncio
import threading
import time
import pytest

# Add parent directory to path to import modules
parent_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if parent_dir not in sys.path:
    sys.path.insert(0, parent_dir)

from services.platform_service import PlatformService
from utils.async_utils import (
    ImprovedAsyncTaskManager,
    run_in_executor,
    run_subprocess_streaming_async,
)


class TestRunSubprocessStreamingAsync:
    """Test cases for run_subprocess_streaming_async"""

    @pytest.mark.asyncio
    async def test_streaming_output(self):
        """Test that each output line reaches the callback"""
        lines = []
        return_code, output = await run_subprocess_streaming_async(
            "echo first && echo second", shell=True, output_callback=lines.append
        )

        assert return_code == 0
        assert "first" in output and "second" in output
        assert len(lines) == 2
        assert "".join(lines) == output

    @pytest.mark.asyncio
    async def test_streaming_with_error(self):
        """Test a failing command reports its exit code"""
        return_code, _ = await run_subprocess_streaming_async("exit 3", shell=True)
        assert return_code == 3

    @pytest.mark.asyncio
    async def test_streaming_with_cwd(self, temp_directory):
        command = "cd" if PlatformService.is_windows() else "pwd"
        return_code, output = await run_subprocess_streaming_async(
            command, shell=True, cwd=str(temp_directory)
        )

        assert return_code == 0
        assert os.path.basename(str(temp_directory)) in output

    @pytest.mark.asyncio
    async def test_missing_executable(self):
        """Test a process that cannot be started has no exit code"""
        lines = []
        return_code, output = await run_subprocess_streaming_async(
            ["prodash-no-such-executable-xyz"], output_callback=lines.append
        )

        assert return_code is None
        assert output.startswith("Error starting process")
        assert lines == [output]


class TestRunInExecutor:
    """Test cases for run_in_executor"""

    @pytest.mark.asyncio
    async def test_run_sync_function(self):
        def add(a, b):
            return a + b

        assert await run_in_executor(add, 2, 3) == 5

    @pytest.mark.asyncio
    async def test_run_with_kwargs(self):
        def greet(name, greeting="Hello"):
            return f"{greeting}, {name}"

        assert await run_in_executor(greet, "ProDash", greeting="Hi") == "Hi, ProDash"

    @pytest.mark.asyncio
    async def test_exception_propagation(self):
        def fail():
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            await run_in_executor(fail)

    def test_no_event_loop(self):
        """Test calling outside of a running loop"""
        coro = run_in_executor(lambda: None)
        with pytest.raises(RuntimeError, match="No async event loop available"):
            coro.send(None)


class TestImprovedAsyncTaskManager:
    """Test cases for ImprovedAsyncTaskManager"""

    def setup_method(self):
        """Set up test fixtures"""
        self.task_manager = ImprovedAsyncTaskManager()

    def teardown_method(self):
        """Clean up after tests"""
        if self.task_manager._loop and not self.task_manager._loop.is_closed():
            self.task_manager.shutdown(timeout=1.0)

    def test_initialization(self):
        """Test task manager initialization"""
        assert len(self.task_manager._tasks) == 0
        assert self.task_manager._loop is None
        assert self.task_manager._thread is None
        assert self.task_manager._shutdown_requested is False

    def test_setup_event_loop(self):
        """Test setting up event loop"""
        self.task_manager.setup_event_loop()

        assert self.task_manager._loop is not None
        assert not self.task_manager._loop.is_closed()
        assert self.task_manager._thread.is_alive()

    def test_setup_event_loop_twice(self):
        """Test that setting up event loop twice doesn't create multiple loops"""
        self.task_manager.setup_event_loop()
        first_loop = self.task_manager._loop
        first_thread = self.task_manager._thread

        self.task_manager.setup_event_loop()

        assert self.task_manager._loop is first_loop
        assert self.task_manager._thread is first_thread

    def test_run_task_sets_up_loop_on_demand(self):
        async def simple_task():
            return "result"

        future = self.task_manager.run_task(simple_task())

        assert future.result(timeout=2.0) == "result"
        assert self.task_manager._thread.is_alive()

    def test_run_task_with_callback(self):
        """Test running task with callback"""
        self.task_manager.setup_event_loop()

        callback_called = threading.Event()
        received = {}

        def callback(result, error):
            received["result"] = result
            received["error"] = error
            callback_called.set()

        async def task():
            return "callback_test"

        self.task_manager.run_task(task(), callback=callback, task_name="test_task")

        assert callback_called.wait(timeout=2.0)
        assert received == {"result": "callback_test", "error": None}

    def test_run_task_with_error(self):
        """Test running task that raises exception"""
        self.task_manager.setup_event_loop()

        callback_called = threading.Event()
        received = {}

        def callback(result, error):
            received["error"] = error
            callback_called.set()

        async def failing_task():
            raise ValueError("Test error")

        self.task_manager.run_task(failing_task(), callback=callback)

        assert callback_called.wait(timeout=2.0)
        assert isinstance(received["error"], ValueError)
        assert str(received["error"]) == "Test error"

    def test_run_sync(self):
        async def double(value):
            await asyncio.sleep(0)
            return value * 2

        assert self.task_manager.run_sync(double(21), timeout=2.0) == 42

    def test_cancel_all_tasks(self):
        """Test cancelling all tasks"""
        self.task_manager.setup_event_loop()

        async def long_task():
            await asyncio.sleep(10)

        futures = [self.task_manager.run_task(long_task()) for _ in range(3)]
        time.sleep(0.1)

        self.task_manager.cancel_all_tasks(timeout=2.0)

        assert all(future.cancelled() for future in futures)
        assert self.task_manager.get_task_count() == 0

    def test_shutdown(self):
        """Test shutting down the task manager"""
        self.task_manager.setup_event_loop()
        thread = self.task_manager._thread

        self.task_manager.shutdown(timeout=2.0)

        assert not thread.is_alive()
        assert self.task_manager._loop is None

        async def late_task():
            return None

        with pytest.raises(RuntimeError, match="shutting down"):
            self.task_manager.run_task(late_task())
