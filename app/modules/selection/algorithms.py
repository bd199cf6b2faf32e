import random
import uuid
from dataclasses import dataclass
from datetime import datetime

@dataclass(frozen=True)
class Candidate:
    doctor_id: uuid.UUID
    priority: int = 100
    weight: int = 50
    last_assigned_at: datetime | None = None
    round_robin_counter: int = 0
    is_online: bool = False

def _by_priority(candidates: list[Candidate], rng: random.Random) -> Candidate:
    # min() keeps the first of equal values, so ties go to input order
    return min(candidates, key=lambda c: c.priority)

def _by_weight(candidates: list[Candidate], rng: random.Random) -> Candidate:
    total = sum(max(c.weight, 0) for c in candidates)
    if total == 0:
        return rng.choice(candidates)
    draw = rng.random() * total
    for c in candidates:
        if c.weight <= 0:
            continue
        draw -= c.weight
        if draw <= 0:
            return c
    # float rounding can leave a sliver; hand it to the last weighted candidate
    return [c for c in candidates if c.weight > 0][-1]

def _at_random(candidates: list[Candidate], rng: random.Random) -> Candidate:
    return rng.choice(candidates)

def _least_recently_used(candidates: list[Candidate], rng: random.Random) -> Candidate:
    never = [c for c in candidates if c.last_assigned_at is None]
    if never:
        return never[0]
    return min(candidates, key=lambda c: c.last_assigned_at)

def _round_robin(candidates: list[Candidate], rng: random.Random) -> Candidate:
    return min(candidates, key=lambda c: c.round_robin_counter)

PICKERS = {
    "priority": _by_priority,
    "weighted": _by_weight,
    "random": _at_random,
    "least_recently_used": _least_recently_used,
    "round_robin": _round_robin,
}

def pick_candidate(candidates: list[Candidate], algorithm: str, rng: random.Random | None = None) -> Candidate | None:
    """Pick one candidate; None when the list is empty. Does not touch any state."""
    if not candidates:
        return None
    try:
        picker = PICKERS[algorithm]
    except KeyError:
        raise ValueError(f"unknown selection algorithm: {algorithm}")
    return picker(candidates, rng or random.Random())

def prefer_online(candidates: list[Candidate]) -> list[Candidate]:
    online = [c for c in candidates if c.is_online]
    return online or candidates
