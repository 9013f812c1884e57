"""
File monitoring service for detecting changes to registry and script files
"""

import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional
import logging

from utils.file_utils import to_forward_slashes

logger = logging.getLogger(__name__)


@dataclass
class FileInfo:
    """Information about a file for change detection"""

    exists: bool
    modified_time: float = 0.0
    size: int = 0


class FileMonitorService:
    """Polls individual files and calls back on creation, modification or deletion"""

    def __init__(self, check_interval: float = 1.0):
        self.check_interval = check_interval
        self.watched_files: Dict[str, Dict] = {}  # path -> {callbacks, info}
        self.monitoring_thread: Optional[threading.Thread] = None
        self.stop_event = threading.Event()
        self.lock = threading.Lock()

    def watch(self, file_path: Optional[str], callback: Callable[[str], None]):
        """Start watching a file; watching an already watched file adds the callback"""
        if not file_path:
            return

        key = to_forward_slashes(str(file_path))
        with self.lock:
            entry = self.watched_files.get(key)
            if entry is None:
                self.watched_files[key] = {
                    "callbacks": [callback],
                    "info": self._stat(key),
                }
            elif callback not in entry["callbacks"]:
                entry["callbacks"].append(callback)

            # A stopping loop may still be alive; clearing the event keeps it running
            self.stop_event.clear()
            if self.monitoring_thread is None or not self.monitoring_thread.is_alive():
                self.monitoring_thread = threading.Thread(
                    target=self._monitor_loop, daemon=True, name="FileMonitor"
                )
                self.monitoring_thread.start()
                logger.info("Started file monitor")

    def unwatch(self, file_path: str):
        key = to_forward_slashes(str(file_path))
        with self.lock:
            if self.watched_files.pop(key, None) is not None:
                logger.debug(f"Stopped watching {key}")
            if not self.watched_files:
                self.stop_event.set()

    def clear(self):
        """Stop watching every file"""
        with self.lock:
            if self.watched_files:
                self.watched_files.clear()
                logger.info("Cleared all file watchers")
            self.stop_event.set()

    def get_watched_files(self) -> List[str]:
        with self.lock:
            return sorted(self.watched_files)

    @staticmethod
    def _stat(path: str) -> FileInfo:
        try:
            stat = Path(path).stat()
        except OSError:
            return FileInfo(exists=False)
        return FileInfo(exists=True, modified_time=stat.st_mtime, size=stat.st_size)

    def _monitor_loop(self):
        """Main monitoring loop"""
        while True:
            with self.lock:
                if self.stop_event.is_set():
                    self.monitoring_thread = None
                    return
            try:
                self.check_now()
                # Sleep but check for stop signal
                self.stop_event.wait(self.check_interval)
            except Exception as e:
                logger.error(f"Error in monitoring loop: {e}")
                time.sleep(self.check_interval)

    def check_now(self) -> List[str]:
        """Compare every watched file with its last state; returns the changed paths"""
        with self.lock:
            files_to_check = list(self.watched_files.items())

        changed = []
        for path, entry in files_to_check:
            current = self._stat(path)
            if current == entry["info"]:
                continue

            entry["info"] = current
            changed.append(path)
            logger.debug(f"Change detected: {path}")
            for callback in list(entry["callbacks"]):
                try:
                    callback(path)
                except Exception as e:
                    logger.error(f"Error in change callback for {path}: {e}")

        return changed
