"""Balance ranks and rank computation.

These values MUST match the profile page rank ladder exactly.
"""

from __future__ import annotations

RANK_THRESHOLDS: list[dict] = [
    {"rank": 1, "title": "Hamster", "icon": "\U0001f439", "threshold": 0},
    {"rank": 2, "title": "Hodler", "icon": "\U0001f48e", "threshold": 1001},
    {"rank": 3, "title": "Trader", "icon": "\U0001f4c8", "threshold": 5001},
    {"rank": 4, "title": "Whale", "icon": "\U0001f40b", "threshold": 20001},
]


def compute_rank(balance: int) -> dict:
    """Compute rank info from a point balance.

    At the top rank the next threshold is 1.5x the current one, as on the
    profile page, so the progress bar still has a target.
    """
    current = RANK_THRESHOLDS[0]
    next_rank: dict | None = None

    for entry in RANK_THRESHOLDS:
        if balance >= entry["threshold"]:
            current = entry
        elif next_rank is None:
            next_rank = entry

    current_threshold = current["threshold"]
    next_threshold = next_rank["threshold"] if next_rank else int(current_threshold * 1.5)
    span = next_threshold - current_threshold

    if span <= 0:
        percent = 100.0
    else:
        percent = min(100.0, max(0.0, (balance - current_threshold) / span * 100))

    return {
        "rank": current["rank"],
        "title": current["title"],
        "icon": current["icon"],
        "next_title": next_rank["title"] if next_rank else None,
        "next_threshold": next_threshold,
        "points_to_next": max(0, next_threshold - balance),
        "progress_percent": round(percent, 1),
    }
