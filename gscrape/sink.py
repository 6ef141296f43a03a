# gscrape/sink.py
from __future__ import annotations

import threading
from pathlib import Path
from typing import TextIO

from .exceptions import SinkError


class FileSink:
    """
    Append-only text sink: one URL per line.

    The file is opened in append-create mode the first time it is needed and the
    handle is reused after that; it is never truncated. Each line is flushed as
    it is written so a crash keeps everything appended so far.

    Writes are serialized with a lock, so sessions running on different threads
    can share one sink without interleaving partial lines.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.written = 0
        self._fh: TextIO | None = None
        self._lock = threading.Lock()

    def open(self) -> FileSink:
        with self._lock:
            self._open_locked()
        return self

    def _open_locked(self) -> TextIO:
        if self.closed:
            try:
                self._fh = self.path.open("a", encoding="utf-8")
            except OSError as exc:
                raise SinkError(f"failed to open output file {self.path}: {exc}") from exc
        return self._fh

    def append(self, url: str) -> None:
        with self._lock:
            fh = self._open_locked()
            try:
                fh.write(url + "\n")
                fh.flush()
            except OSError as exc:
                raise SinkError(f"failed to write to output file {self.path}: {exc}") from exc
            self.written += 1

    def close(self) -> None:
        with self._lock:
            if not self.closed:
                try:
                    self._fh.close()
                except OSError as exc:
                    raise SinkError(f"failed to close output file {self.path}: {exc}") from exc
            self._fh = None

    @property
    def closed(self) -> bool:
        return self._fh is None or self._fh.closed

    def __enter__(self) -> FileSink:
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["FileSink"]
