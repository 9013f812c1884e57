import threading
from typing import Dict


class TerminalBuffer:
    """Bounded, thread-safe capture of one runner's output"""

    def __init__(self, max_size: int = 50000):
        self._output = ""
        self._max_size = max_size
        self._lock = threading.Lock()

    def append(self, text: str):
        with self._lock:
            self._output += text
            if len(self._output) > self._max_size:
                self._output = self._output[-self._max_size :]

    def get(self) -> str:
        with self._lock:
            return self._output

    def clear(self):
        with self._lock:
            self._output = ""


class TerminalBufferRegistry:
    """One output buffer per terminal kind"""

    def __init__(self, max_size: int = 50000):
        self._max_size = max_size
        self._buffers: Dict[str, TerminalBuffer] = {}
        self._lock = threading.Lock()

    def for_kind(self, kind: str) -> TerminalBuffer:
        with self._lock:
            if kind not in self._buffers:
                self._buffers[kind] = TerminalBuffer(self._max_size)
            return self._buffers[kind]
