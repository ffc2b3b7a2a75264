"""
Interval arithmetic on minutes since midnight.

Intervals are half-open ``(start, end)`` tuples of ints, so an interval
ending at 600 and one starting at 600 touch but do not overlap.
"""

from datetime import time
from typing import Iterable, List, Tuple

Interval = Tuple[int, int]

MINUTES_PER_DAY = 24 * 60


def to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def from_minutes(minutes: int) -> time:
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f"{minutes} minutes is outside a single day")
    return time(minutes // 60, minutes % 60)


def merge_intervals(intervals: Iterable[Interval]) -> List[Interval]:
    """Sort by start and join intervals that overlap or touch."""
    ordered = sorted(i for i in intervals if i[0] < i[1])
    if not ordered:
        return []

    merged = [ordered[0]]
    for start, end in ordered[1:]:
        last_start, last_end = merged[-1]
        if start <= last_end:
            if end > last_end:
                merged[-1] = (last_start, end)
        else:
            merged.append((start, end))
    return merged


def subtract_interval(interval: Interval, block: Interval) -> List[Interval]:
    """Remove ``block`` from ``interval``; yields zero, one or two pieces."""
    start, end = interval
    block_start, block_end = block

    if block_end <= start or block_start >= end:
        return [interval]

    pieces = []
    if block_start > start:
        pieces.append((start, block_start))
    if block_end < end:
        pieces.append((block_end, end))
    return pieces


def subtract_intervals(
    windows: Iterable[Interval], blocks: Iterable[Interval]
) -> List[Interval]:
    """Difference of two interval sets, sorted by start.

    ``blocks`` are merged first, then removed from every window in turn.
    """
    merged_blocks = merge_intervals(blocks)
    remaining = []
    for window in merge_intervals(windows):
        pieces = [window]
        for block in merged_blocks:
            if block[0] >= window[1]:
                break
            next_pieces = []
            for piece in pieces:
                next_pieces.extend(subtract_interval(piece, block))
            pieces = next_pieces
            if not pieces:
                break
        remaining.extend(pieces)
    return remaining


def step_starts(window: Interval, duration: int, step: int) -> List[int]:
    """Starts on the ``step`` grid of ``window`` that fit ``duration`` minutes.

    The grid is anchored at the window's own start; a slot never leaves
    the window.
    """
    if duration <= 0 or step <= 0:
        raise ValueError("duration and step must be positive")
    start, end = window
    starts = []
    current = start
    while current + duration <= end:
        starts.append(current)
        current += step
    return starts
