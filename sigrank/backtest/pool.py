# -*- coding: utf-8 -*-
"""
SigRank - Chunk Pool
=====================
FILE: sigrank/backtest/pool.py

Splits an index range into contiguous chunks and runs a function over them,
sequentially or on a thread pool.

Results come back in chunk order whatever order the workers finish in, so
a merge over them is deterministic. cancel() stops dispatching chunks that
have not started; chunks already running finish normally.

Usage:
    pool = ChunkPool(chunk_size=500, max_workers=4)
    results = pool.map(lambda start, stop: work(start, stop), 50, 10_000)
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict, List, Optional, Tuple, TypeVar
import logging
import threading

logger = logging.getLogger(__name__)

R = TypeVar('R')


def make_chunks(start: int, stop: int, chunk_size: int) -> List[Tuple[int, int]]:
    """
    Contiguous [start, stop) ranges of at most chunk_size indices.

    Example:
        >>> make_chunks(0, 5, 2)
        [(0, 2), (2, 4), (4, 5)]
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
    return [(lo, min(lo + chunk_size, stop)) for lo in range(start, stop, chunk_size)]


class ChunkPool:
    """
    Bounded chunk-level parallelism over an index range.

    Args:
        chunk_size: Indices per chunk.
        max_workers: Worker threads; ≤ 1 runs in the calling thread.
        on_chunk_done: Called with (start, stop) after each finished chunk.
    """

    def __init__(
        self,
        chunk_size: int = 500,
        max_workers: int = 1,
        on_chunk_done: Optional[Callable[[int, int], None]] = None,
    ):
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
        self.chunk_size = chunk_size
        self.max_workers = max(1, int(max_workers or 1))
        self.on_chunk_done = on_chunk_done

        self._cancelled = threading.Event()
        self._lock = threading.Lock()
        self._completed = 0
        self._skipped = 0

    def cancel(self):
        """Stop dispatching further chunks."""
        self._cancelled.set()
        logger.info("Chunk pool cancelled")

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def _run_chunk(self, fn: Callable[[int, int], R], lo: int, hi: int) -> Optional[R]:
        if self._cancelled.is_set():
            with self._lock:
                self._skipped += 1
            return None
        result = fn(lo, hi)
        with self._lock:
            self._completed += 1
        if self.on_chunk_done is not None:
            self.on_chunk_done(lo, hi)
        return result

    def map(self, fn: Callable[[int, int], R], start: int, stop: int) -> List[R]:
        """
        Run fn(lo, hi) for every chunk of [start, stop).

        Returns:
            Results of the chunks that ran, in chunk order.
        """
        chunks = make_chunks(start, stop, self.chunk_size)
        logger.debug(
            f"Dispatching {len(chunks)} chunks of {self.chunk_size} "
            f"on {self.max_workers} worker(s)")

        if self.max_workers == 1 or len(chunks) <= 1:
            results = [self._run_chunk(fn, lo, hi) for lo, hi in chunks]
            return [r for r in results if r is not None]

        by_chunk: Dict[int, Optional[R]] = {}
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {
                executor.submit(self._run_chunk, fn, lo, hi): n
                for n, (lo, hi) in enumerate(chunks)
            }
            for future in as_completed(futures):
                by_chunk[futures[future]] = future.result()

        return [by_chunk[n] for n in sorted(by_chunk) if by_chunk[n] is not None]

    def get_stats(self) -> Dict[str, int]:
        return {
            'chunk_size': self.chunk_size,
            'max_workers': self.max_workers,
            'completed': self._completed,
            'skipped': self._skipped,
            'cancelled': self.cancelled,
        }

    def reset(self):
        self._cancelled.clear()
        self._completed = 0
        self._skipped = 0

    def __repr__(self) -> str:
        return f"ChunkPool(chunk_size={self.chunk_size}, max_workers={self.max_workers})"
