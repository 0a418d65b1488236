from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from datetime import UTC, datetime

from servertrack.models import AggregatedBucket, HistorySample, HistorySummary

DEFAULT_BUCKET_COUNT = 24
_SECONDS_PER_HOUR = 3600


def _mean(values: Sequence[int]) -> int:
    # Player counts are never negative, floor division truncates toward zero.
    return sum(values) // len(values) if values else 0


def aggregate(
    samples: Sequence[HistorySample],
    bucket_count: int = DEFAULT_BUCKET_COUNT,
    now: datetime | None = None,
) -> list[AggregatedBucket]:
    """Bucket samples by whole hours before ``now``.

    Hours without samples come out as 0, which is how quiet periods (never
    persisted) reappear in the chart. Index 0 is the most recent hour.
    """
    if bucket_count <= 0:
        raise ValueError("bucket_count must be > 0")
    if now is None:
        now = datetime.now(UTC)

    groups: dict[int, list[int]] = defaultdict(list)
    for sample in samples:
        delta = (now - sample.recorded_at).total_seconds()
        hours_ago = int(delta // _SECONDS_PER_HOUR)
        if hours_ago < 0 or hours_ago >= bucket_count:
            continue
        groups[hours_ago].append(sample.player_count)

    return [
        AggregatedBucket(bucket_index=i, average_player_count=_mean(groups.get(i, [])))
        for i in range(bucket_count)
    ]


def aggregate_chunks(
    samples: Sequence[HistorySample],
    target_buckets: int = DEFAULT_BUCKET_COUNT,
) -> list[AggregatedBucket]:
    """Average contiguous chunks of an already newest-first history slice.

    Timestamps are ignored, so irregular sampling skews chunks in time. Short
    inputs yield fewer than ``target_buckets`` buckets.
    """
    if target_buckets <= 0:
        raise ValueError("target_buckets must be > 0")
    if not samples:
        return []

    size = max(1, len(samples) // target_buckets)
    buckets: list[AggregatedBucket] = []
    for index, start in enumerate(range(0, len(samples), size)):
        if index >= target_buckets:
            break
        chunk = samples[start : start + size]
        buckets.append(
            AggregatedBucket(
                bucket_index=index,
                average_player_count=_mean([s.player_count for s in chunk]),
            )
        )
    return buckets


def summarize(samples: Sequence[HistorySample]) -> HistorySummary | None:
    if not samples:
        return None
    counts = [s.player_count for s in samples]
    return HistorySummary(minimum=min(counts), average=_mean(counts), maximum=max(counts))
