"""Linear curriculum progression.

Items unlock strictly by ``order``: the non-completed items sharing the lowest
order form the frontier and are the only ones a student may work on. Every
function here is pure; callers persist the returned items themselves.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Literal, Optional, Sequence

from . import config
from .types import CurriculumItem

log = logging.getLogger(__name__)

ResultStatus = Literal["ok", "not_found", "already_completed", "locked"]


@dataclass(frozen=True)
class ProgressResult:
    status: ResultStatus
    items: List[CurriculumItem]
    item: Optional[CurriculumItem] = None

    @property
    def is_error(self) -> bool:
        return self.status in ("not_found", "locked")

    @property
    def changed(self) -> bool:
        return self.status == "ok"


def _index_of(items: Sequence[CurriculumItem], item_id: str) -> Optional[int]:
    for idx, it in enumerate(items):
        if it.id == item_id:
            return idx
    return None


def _frontier(items: Sequence[CurriculumItem]) -> Optional[int]:
    pending = [it.order for it in items if it.status != "completed"]
    return min(pending) if pending else None


def compute_unlocks(items: Sequence[CurriculumItem], *, now: str | None = None) -> List[CurriculumItem]:
    """Return items with statuses re-derived from completion state and order.

    Completed items are never touched. Frontier items become ``unlocked``
    unless already ``unlocked``/``in_progress``; everything past the frontier
    is ``locked``. Input order is preserved, so equal orders unlock together.
    """
    frontier = _frontier(items)
    out: List[CurriculumItem] = []
    for it in items:
        if it.status == "completed":
            out.append(it)
        elif it.order == frontier:
            if it.status in ("unlocked", "in_progress"):
                out.append(it)
            else:
                out.append(replace(it, status="unlocked", unlocked_at=now or it.unlocked_at))
        elif it.status != "locked":
            log.info("relocking item %s (order %s) behind frontier %s", it.id, it.order, frontier)
            out.append(replace(it, status="locked"))
        else:
            out.append(it)
    return out


def record_completion(items: Sequence[CurriculumItem], completed_item_id: str, *, now: str | None = None) -> ProgressResult:
    idx = _index_of(items, completed_item_id)
    if idx is None:
        log.warning("completion for unknown curriculum item %s", completed_item_id)
        return ProgressResult("not_found", list(items))
    target = items[idx]
    if target.status == "completed":
        return ProgressResult("already_completed", list(items), target)

    updated = list(items)
    updated[idx] = replace(target, status="completed", completed_at=now or target.completed_at)
    updated = compute_unlocks(updated, now=now)
    unlocked = [it.id for old, it in zip(items, updated) if it.status == "unlocked" and old.status == "locked"]
    log.info("completed curriculum item %s; unlocked %s", completed_item_id, unlocked or "nothing")
    return ProgressResult("ok", updated, updated[idx])


def start_item(items: Sequence[CurriculumItem], item_id: str) -> ProgressResult:
    idx = _index_of(items, item_id)
    if idx is None:
        return ProgressResult("not_found", list(items))
    target = items[idx]
    if target.status == "completed":
        return ProgressResult("already_completed", list(items), target)
    if target.status == "locked":
        return ProgressResult("locked", list(items), target)
    if target.status == "in_progress":
        return ProgressResult("ok", list(items), target)
    updated = list(items)
    updated[idx] = replace(target, status="in_progress")
    return ProgressResult("ok", updated, updated[idx])


def next_item(items: Sequence[CurriculumItem]) -> Optional[CurriculumItem]:
    best: Optional[CurriculumItem] = None
    for it in items:
        if it.status != "unlocked":
            continue
        if best is None or it.order < best.order:
            best = it
    return best


def next_order(items: Sequence[CurriculumItem]) -> int:
    return max((it.order for it in items), default=-1) + 1


def add_item(items: Sequence[CurriculumItem], item: CurriculumItem, *, now: str | None = None) -> List[CurriculumItem]:
    if _index_of(items, item.id) is not None:
        raise ValueError(f"curriculum already contains item {item.id}")
    return compute_unlocks([*items, item], now=now)


def remove_item(items: Sequence[CurriculumItem], item_id: str, *, now: str | None = None) -> ProgressResult:
    idx = _index_of(items, item_id)
    if idx is None:
        return ProgressResult("not_found", list(items))
    removed = items[idx]
    rest = [it for i, it in enumerate(items) if i != idx]
    return ProgressResult("ok", compute_unlocks(rest, now=now), removed)


def reorder_items(items: Sequence[CurriculumItem], item_ids: Sequence[str], *, now: str | None = None) -> List[CurriculumItem]:
    """Assign ``order = position`` following `item_ids`, a permutation of the current ids."""
    current = [it.id for it in items]
    if sorted(current) != sorted(item_ids) or len(set(item_ids)) != len(item_ids):
        raise ValueError("item_ids must list every curriculum item exactly once")
    by_id = {it.id: it for it in items}
    reordered = [replace(by_id[iid], order=pos) for pos, iid in enumerate(item_ids)]
    return compute_unlocks(reordered, now=now)


def progress_summary(items: Sequence[CurriculumItem], *, default_minutes: int | None = None) -> Dict[str, Any]:
    minutes = config.DEFAULT_ITEM_MINUTES if default_minutes is None else default_minutes
    total = len(items)
    counts = {s: 0 for s in ("completed", "in_progress", "unlocked", "locked")}
    for it in items:
        counts[it.status] = counts.get(it.status, 0) + 1

    done = [it for it in items if it.status == "completed" and it.completed_at]
    last_done = max(done, key=lambda it: it.completed_at or "") if done else None
    remaining = sum(
        (it.estimated_minutes if it.estimated_minutes is not None else minutes)
        for it in items if it.status != "completed"
    )
    nxt = next_item(items)
    return {
        "totalItems": total,
        "completedItems": counts["completed"],
        "inProgressItems": counts["in_progress"],
        "unlockedItems": counts["unlocked"],
        "lockedItems": counts["locked"],
        "progressPercentage": round(counts["completed"] * 100 / total) if total else 0,
        "nextItem": nxt.to_dict() if nxt else None,
        "lastCompletedItem": last_done.to_dict() if last_done else None,
        "estimatedTimeRemaining": remaining,
    }
