from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
from matplotlib import font_manager
from matplotlib.ticker import MaxNLocator

from servertrack.models import AggregatedBucket, HistorySummary


def _apply_font(font_path: str | None) -> None:
    if font_path:
        font_manager.fontManager.addfont(font_path)
        name = font_manager.FontProperties(fname=font_path).get_name()
        plt.rcParams["font.sans-serif"] = [name]
    plt.rcParams["axes.unicode_minus"] = False


def render_activity_chart(
    output_path: Path,
    buckets: list[AggregatedBucket],
    summary: HistorySummary | None,
    server_name: str,
    generated_at: datetime,
    font_path: str | None,
) -> Path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    _apply_font(font_path)

    # Oldest hour on the left, current hour on the right.
    ordered = sorted(buckets, key=lambda b: b.bucket_index, reverse=True)
    labels = [f"-{b.bucket_index}h" if b.bucket_index else "now" for b in ordered]
    values = [b.average_player_count for b in ordered]

    if generated_at.tzinfo is None:
        generated_at = generated_at.replace(tzinfo=UTC)

    fig, ax = plt.subplots(figsize=(12, 5))
    bars = ax.bar(labels, values, color="#2979FF", alpha=0.9)
    for bar, value in zip(bars, values, strict=False):
        if value:
            ax.text(
                bar.get_x() + bar.get_width() / 2,
                bar.get_height() + 0.1,
                str(value),
                ha="center",
                va="bottom",
                fontsize=8,
            )

    ax.set_title(
        f"{server_name} Player Activity (Last {len(buckets)}h, "
        f"{generated_at.astimezone(UTC).strftime('%Y-%m-%d %H:%M')} UTC)"
    )
    ax.set_xlabel("Hour")
    ax.set_ylabel("Average Players")
    ax.set_ylim(0, max(values + [0]) + 2)
    ax.yaxis.set_major_locator(MaxNLocator(integer=True))
    ax.tick_params(axis="x", rotation=45, labelsize=8)

    if summary is None:
        caption = "No activity recorded"
    else:
        caption = f"min {summary.minimum} / avg {summary.average} / max {summary.maximum}"
    ax.text(0.99, 0.97, caption, ha="right", va="top", transform=ax.transAxes, fontsize=9)

    fig.tight_layout()
    fig.savefig(output_path, dpi=150)
    plt.close(fig)
    return output_path
