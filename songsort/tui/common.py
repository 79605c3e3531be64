from __future__ import annotations

from typing import Any


def _format_seconds(seconds: float | None) -> str:
    if seconds is None:
        return "-"
    value = int(max(0, seconds))
    hours, rem = divmod(value, 3600)
    minutes, sec = divmod(rem, 60)
    if hours:
        return f"{hours}h {minutes}m {sec}s"
    return f"{minutes}m:{sec:02d}s"


def _progress_bar(ratio: float, width: int = 18) -> str:
    ratio = max(0.0, min(1.0, ratio))
    done = int(ratio * width)
    return f"{'█' * done}{'░' * (width - done)} {ratio * 100:5.1f}%"


def _row_key_value(event_row_key: Any) -> str:
    if event_row_key is None:
        return ""
    if hasattr(event_row_key, "value"):
        value = event_row_key.value
        return "" if value is None else str(value)
    return str(event_row_key)


def _estimate_from_state(state: dict[str, Any] | None) -> tuple[int, int, int]:
    estimate = (state or {}).get("estimate", {})
    try:
        completed = int(estimate.get("completed", 0) or 0)
    except Exception:  # noqa: BLE001
        completed = 0
    try:
        best_case = int(estimate.get("best_case", 0) or 0)
    except Exception:  # noqa: BLE001
        best_case = 0
    try:
        worst_case = int(estimate.get("worst_case", 0) or 0)
    except Exception:  # noqa: BLE001
        worst_case = best_case
    return completed, best_case, max(best_case, worst_case)


def _estimate_ratio(state: dict[str, Any] | None) -> float:
    completed, best_case, worst_case = _estimate_from_state(state)
    if best_case <= 0:
        return 1.0 if completed >= worst_case else 0.0
    return min(1.0, completed / best_case)


def _estimate_label(state: dict[str, Any] | None) -> str:
    completed, best_case, worst_case = _estimate_from_state(state)
    if best_case == worst_case:
        return f"Comparison #{completed + 1} of {best_case}"
    return f"Comparison #{completed + 1} of {best_case} to {worst_case}"
