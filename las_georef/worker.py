"""Background conversion thread.

The whole conversion runs on this thread. Progress is reported through the
callback given at construction, synchronously on the worker thread: 0 before
starting, periodic percentages while reading, 100 when done. Marshaling the
values onto another thread (a UI loop, a queue) is the caller's business.
"""
import threading

from .config import ConversionConfig
from .pipeline import convert, no_progress


class ConversionWorker(threading.Thread):
    """Runs ``pipeline.convert`` once. No cancellation: it runs to the end."""

    def __init__(self, config: ConversionConfig, progress=None):
        super().__init__(name="las-georef-convert", daemon=True)
        self.config = config
        self.progress = progress or no_progress
        self.results = []
        # Unexpected exception that aborted the run, if any
        self.error = None

    @property
    def ok(self) -> bool:
        return (self.error is None and bool(self.results)
                and all(r.ok for r in self.results))

    def run(self):
        self.progress(0)
        print(f"[Worker] get data dir: {self.config.data_dir}")
        try:
            self.results = convert(self.config, progress=self.progress)
        except Exception as e:
            print(f"[Worker] ERROR: conversion aborted: {e!r}")
            self.error = e
        finally:
            self.progress(100)
