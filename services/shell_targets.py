"""
Command-execution targets that the terminal runners send script lines to
"""

import asyncio
import codecs
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Dict, Optional

from models.terminal_buffer import TerminalBuffer
from services.platform_service import PlatformService
from utils.async_utils import run_subprocess_streaming_async

logger = logging.getLogger(__name__)


class CommandTarget(ABC):
    """A live target for one terminal kind, fed one command line at a time"""

    def __init__(self, kind: str, name: str, buffer: Optional[TerminalBuffer] = None):
        self.kind = kind
        self.name = name
        self.buffer = buffer or TerminalBuffer()

    @abstractmethod
    async def start(self):
        pass

    @abstractmethod
    async def wait_until_ready(self, timeout: float) -> bool:
        """True when the target confirmed, within timeout, that it reports completions"""
        pass

    @property
    @abstractmethod
    def supports_completion(self) -> bool:
        pass

    @property
    @abstractmethod
    def is_terminated(self) -> bool:
        pass

    @abstractmethod
    async def send(self, line: str):
        """Send a line without waiting for it to finish"""
        pass

    @abstractmethod
    async def execute(self, line: str) -> Optional[int]:
        """Send a line and wait for its exit code (None when unknown)"""
        pass

    @abstractmethod
    async def close(self):
        pass

    def _record(self, text: str):
        self.buffer.append(text)


class ShellSessionTarget(CommandTarget):
    """
    A long-lived shell reading commands from stdin.

    Every command is followed by a marker line echoing the command's exit
    status together with a unique token, which lets the reader task match
    the status to the waiting caller. A shell that does not echo the marker
    back within the readiness timeout is used fire-and-forget.
    """

    READ_CHUNK_SIZE = 4096
    MAX_PARTIAL_LINE = 65536
    MARKER_TAIL = 256

    def __init__(
        self,
        kind: str,
        name: str,
        platform_service: PlatformService,
        buffer: Optional[TerminalBuffer] = None,
        cwd: Optional[str] = None,
    ):
        super().__init__(kind, name, buffer)
        self.platform_service = platform_service
        self.cwd = cwd
        self.marker_prefix = platform_service.terminal_config.marker_prefix
        self._process: Optional[asyncio.subprocess.Process] = None
        self._reader: Optional[asyncio.Task] = None
        self._pending: Dict[str, asyncio.Future] = {}
        self._supports_completion = False

    async def start(self):
        argv = self.platform_service.build_session_argv(self.kind)
        logger.info(f"Starting {self.name}: {' '.join(argv)}")
        self._process = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            cwd=self.cwd,
        )
        self._reader = asyncio.create_task(self._read_output())

    async def wait_until_ready(self, timeout: float) -> bool:
        token, future = self._register()
        try:
            await self._write(self.platform_service.completion_marker(self.kind, token))
            await asyncio.wait_for(future, timeout)
            self._supports_completion = True
        except (asyncio.TimeoutError, ConnectionError) as e:
            logger.debug(f"{self.name} did not confirm readiness: {e!r}")
            self._pending.pop(token, None)
            self._supports_completion = False
        return self._supports_completion

    @property
    def supports_completion(self) -> bool:
        return self._supports_completion and not self.is_terminated

    @property
    def is_terminated(self) -> bool:
        return self._process is None or self._process.returncode is not None

    async def send(self, line: str):
        await self._write(line)

    async def execute(self, line: str) -> Optional[int]:
        token, future = self._register()
        try:
            await self._write(line)
            await self._write(self.platform_service.completion_marker(self.kind, token))
        except ConnectionError as e:
            self._pending.pop(token, None)
            logger.error(f"{self.name} closed its input: {e}")
            return None
        return await future

    async def close(self):
        if self._process is None:
            return
        if self._process.returncode is None:
            if self._process.stdin and not self._process.stdin.is_closing():
                self._process.stdin.close()
            try:
                await asyncio.wait_for(self._process.wait(), 2.0)
            except asyncio.TimeoutError:
                self._process.kill()
                await self._process.wait()
        if self._reader:
            await self._reader
        logger.info(f"Closed {self.name}")

    def _register(self):
        token = uuid.uuid4().hex
        future = asyncio.get_running_loop().create_future()
        self._pending[token] = future
        return token, future

    async def _write(self, line: str):
        if self.is_terminated:
            raise ConnectionError(f"{self.name} has terminated")
        ending = self.platform_service.line_ending(self.kind)
        self._process.stdin.write(f"{line}{ending}".encode("utf-8"))
        await self._process.stdin.drain()

    async def _read_output(self):
        stream = self._process.stdout
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        partial = ""
        try:
            while True:
                chunk = await stream.read(self.READ_CHUNK_SIZE)
                partial += decoder.decode(chunk, final=not chunk)
                *lines, partial = partial.split("\n")
                for line in lines:
                    self._handle_line(line + "\n")
                if not chunk:
                    break
                # Unterminated output is flushed early; the tail may still hold a marker
                if len(partial) > self.MAX_PARTIAL_LINE:
                    self._record(partial[: -self.MARKER_TAIL])
                    partial = partial[-self.MARKER_TAIL :]
            if partial:
                self._handle_line(partial)
            await self._process.wait()
        finally:
            # Commands still waiting will never see their marker
            for future in self._pending.values():
                if not future.done():
                    future.set_result(None)
            self._pending.clear()

    def _handle_line(self, line: str):
        if not self._complete_marker(line):
            self._record(line)

    def _complete_marker(self, line: str) -> bool:
        """Resolve the waiting command when line is a completion marker"""
        start = line.find(self.marker_prefix)
        if start < 0:
            return False

        parts = line[start + len(self.marker_prefix) :].split()
        if not parts or parts[0] not in self._pending:
            return False

        if start > 0:
            self._record(line[:start] + "\n")

        future = self._pending.pop(parts[0])
        if not future.done():
            future.set_result(self._parse_code(parts[1] if len(parts) > 1 else None))
        return True

    @staticmethod
    def _parse_code(value: Optional[str]) -> Optional[int]:
        try:
            return int(value)
        except (TypeError, ValueError):
            return None


class OneShotTarget(CommandTarget):
    """Runs every command in a fresh shell process and reports its exit code"""

    def __init__(
        self,
        kind: str,
        name: str,
        platform_service: PlatformService,
        buffer: Optional[TerminalBuffer] = None,
        cwd: Optional[str] = None,
    ):
        super().__init__(kind, name, buffer)
        self.platform_service = platform_service
        self.cwd = cwd
        self._closed = False
        self._background: set = set()

    async def start(self):
        logger.debug(f"{self.name} runs each command in its own process")

    async def wait_until_ready(self, timeout: float) -> bool:
        return True

    @property
    def supports_completion(self) -> bool:
        return True

    @property
    def is_terminated(self) -> bool:
        return self._closed

    async def send(self, line: str):
        task = asyncio.create_task(self.execute(line))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def execute(self, line: str) -> Optional[int]:
        self._record(f"$ {line}\n")
        return_code, _ = await run_subprocess_streaming_async(
            self.platform_service.build_oneshot_command(self.kind, line),
            cwd=self.cwd,
            output_callback=self._record,
        )
        return return_code

    async def close(self):
        self._closed = True
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
