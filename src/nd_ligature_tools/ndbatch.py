"""
ndbatch — chunked, cancellable ligature search over large word lists.

process_batch() runs the combination engine over every word, keeps the
results that fit max_chars codepoints, and returns them in word order (no
dedup across words). Every chunk_size words it awaits asyncio.sleep(0) so
other tasks on the event loop get to run, then reports progress.

Cancellation is cooperative: a CancellationToken is checked before each word
and right after each yield. A cancelled batch raises ProcessingCancelled and
returns nothing, not even the words finished so far.

BatchController keeps at most one batch in flight: starting a new one
cancels the previous one, whose results are then discarded.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

from .ligature_table import LigatureError, RuleLike, coerce_rules
from .ndligature import MAX_CHARS_IN_TAG, _enumerate, filter_by_length

DEFAULT_CHUNK_SIZE = 10_000

ProgressCallback = Callable[[int], None]


class ProcessingCancelled(LigatureError):
    """Raised when a batch observes its cancellation token. Not a failure."""

    def __init__(self, message: str = "Processing cancelled") -> None:
        super().__init__(message)


class CancellationToken:
    """
    Write-once cancellation flag shared between a batch and whoever may stop it.

    Read without locking: there is a single writer and the flag only ever goes
    from False to True.
    """

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise ProcessingCancelled()


class BatchState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass
class BatchStats:
    """Counters for one batch run."""

    words_total: int = 0
    words_processed: int = 0
    candidates_generated: int = 0
    candidates_kept: int = 0
    chunks_yielded: int = 0
    duration_ms: float = 0.0

    def as_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out["duration_ms"] = round(self.duration_ms, 3)
        return out


def _report(on_progress: Optional[ProgressCallback], progress: int) -> None:
    if on_progress is not None:
        on_progress(progress)


async def process_batch(
    words: Sequence[str],
    rules: Sequence[RuleLike],
    all_cases: bool = True,
    token: Optional[CancellationToken] = None,
    on_progress: Optional[ProgressCallback] = None,
    *,
    max_chars: int = MAX_CHARS_IN_TAG,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    stats: Optional[BatchStats] = None,
) -> List[str]:
    """
    Run the combination engine over words and return every result that fits.

    words:
        Non-blank entries; trimming the raw list is the caller's job.
    on_progress:
        Called with round(i / len(words) * 100) after the yield following word
        index i (i % chunk_size == 0), then with 100 once every word is done.
        Never called with 100 for a cancelled batch.

    Raises ProcessingCancelled if token is cancelled before a word or right
    after a yield.
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be >= 1; got {chunk_size}")

    table = coerce_rules(rules)
    if token is None:
        token = CancellationToken()
    if stats is None:
        stats = BatchStats()

    t0 = time.perf_counter()
    total = len(words)
    stats.words_total = total
    results: List[str] = []

    for i, word in enumerate(words):
        token.raise_if_cancelled()

        combinations = _enumerate(word, table, all_cases)
        if all_cases:
            combinations.sort()
        kept = filter_by_length(combinations, max_chars)

        results.extend(kept)
        stats.words_processed += 1
        stats.candidates_generated += len(combinations)
        stats.candidates_kept += len(kept)

        if i % chunk_size == 0:
            await asyncio.sleep(0)
            stats.chunks_yielded += 1
            token.raise_if_cancelled()
            _report(on_progress, round(i / total * 100))

    token.raise_if_cancelled()
    stats.duration_ms = (time.perf_counter() - t0) * 1000.0
    _report(on_progress, 100)
    return results


class BatchController:
    """
    Runs batches one at a time.

    run() cancels whatever batch is still in flight before starting its own,
    so two batches never write into the same result. A batch that was
    superseded raises ProcessingCancelled instead of returning its results.
    """

    def __init__(self) -> None:
        self._token: Optional[CancellationToken] = None
        self.state = BatchState.IDLE

    @property
    def active(self) -> bool:
        return self._token is not None

    def cancel(self) -> None:
        if self._token is not None:
            self._token.cancel()

    async def run(
        self,
        words: Sequence[str],
        rules: Sequence[RuleLike],
        all_cases: bool = True,
        on_progress: Optional[ProgressCallback] = None,
        **kwargs: Any,
    ) -> List[str]:
        self.cancel()
        token = CancellationToken()
        self._token = token
        self.state = BatchState.RUNNING

        try:
            results = await process_batch(
                words, rules, all_cases, token, on_progress, **kwargs
            )
        except ProcessingCancelled:
            if self._token is token:
                self._token = None
                self.state = BatchState.CANCELLED
            raise
        except Exception:
            if self._token is token:
                self._token = None
                self.state = BatchState.IDLE
            raise

        if self._token is not token:
            # superseded after its last cancellation check
            raise ProcessingCancelled()

        self._token = None
        self.state = BatchState.COMPLETED
        return results
