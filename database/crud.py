"""CRUD helpers for PoliceDeskVN.

Every helper takes a list of records and returns a new list; inputs are never
mutated. Records are matched on their string-coerced id.
"""
from __future__ import annotations
import uuid
from typing import List, Sequence, TypeVar

from core.schemas import Record, Event, EventTarget, EventTargetResult

R = TypeVar("R", bound=Record)


def new_id() -> str:
    return str(uuid.uuid4())


# ── Generic records ───────────────────────────────────────────────────────
def create(items: Sequence[R], item: R) -> List[R]:
    changes = {"id": new_id()}
    if isinstance(item, Event):
        changes["targets"] = []
    return [*items, item.model_copy(update=changes, deep=True)]

def update(items: Sequence[R], item: R) -> List[R]:
    return [item if str(x.id) == str(item.id) else x for x in items]

def delete(items: Sequence[R], record_id) -> List[R]:
    return [x for x in items if str(x.id) != str(record_id)]

def find(items: Sequence[R], record_id):
    for x in items:
        if str(x.id) == str(record_id):
            return x
    return None


# ── Event targets ─────────────────────────────────────────────────────────
def add_event_target(events: Sequence[Event], event_id, target: EventTarget) -> List[Event]:
    new_target = target.model_copy(update={"id": new_id(), "results": []}, deep=True)
    return [
        ev.model_copy(update={"targets": [*ev.targets, new_target]})
        if str(ev.id) == str(event_id) else ev
        for ev in events
    ]

def update_event_target_result(
    events: Sequence[Event],
    event_id,
    target_id,
    result_date: str,
    result: float,
) -> List[Event]:
    """Upsert the result recorded for `result_date` on one event target."""
    out = []
    for ev in events:
        if str(ev.id) != str(event_id):
            out.append(ev)
            continue
        targets = []
        for tg in ev.targets:
            if str(tg.id) == str(target_id):
                entry = EventTargetResult(date=result_date, result=result)
                if any(r.date == result_date for r in tg.results):
                    results = [entry if r.date == result_date else r for r in tg.results]
                else:
                    results = [*tg.results, entry]
                tg = tg.model_copy(update={"results": results})
            targets.append(tg)
        out.append(ev.model_copy(update={"targets": targets}))
    return out
