"""
Greedy constructor.

``first_fit`` walks the days from least to most loaded and takes the first
block and room where both the room and the subject's teacher are still free.
When every pair is taken the hour goes where it collides least, so the clash
shows up in the conflict list instead of silently dropping the hour.

``random`` reproduces the plain per-hour draw (compatible room, any slot) used
to seed the genetic optimizer. It never looks at earlier bookings.
"""
import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .config import EngineConfig
from .domains import RoomPools, build_room_pools, expand_requirements, split_placeable
from .initial_population import build_random_schedule
from .model import Assignment, Room, SessionRequirement, Subject, TimeSlot, UnplacedHour
from .timegrid import slots_by_day

logger = logging.getLogger(__name__)


@dataclass
class GreedyResult:
    assignments: List[Assignment]
    unplaced: List[UnplacedHour] = field(default_factory=list)


class Bookings:
    """Counts of what is already booked per (room, slot), (teacher, slot) and day."""

    def __init__(self, days: Sequence[str]):
        self.room: Dict[Tuple[str, int], int] = {}
        self.teacher: Dict[Tuple[str, int], int] = {}
        self.day_load: Dict[str, int] = {d: 0 for d in days}

    def cost(self, room_id: str, teacher_id: Optional[str], slot_index: int) -> int:
        cost = self.room.get((room_id, slot_index), 0)
        if teacher_id:
            cost += self.teacher.get((teacher_id, slot_index), 0)
        return cost

    def book(self, a: Assignment) -> None:
        idx = a.time_slot.slot_index
        self.room[(a.room_id, idx)] = self.room.get((a.room_id, idx), 0) + 1
        if a.teacher_id:
            self.teacher[(a.teacher_id, idx)] = self.teacher.get((a.teacher_id, idx), 0) + 1
        self.day_load[a.time_slot.day] = self.day_load.get(a.time_slot.day, 0) + 1

    def days_by_load(self) -> List[str]:
        # sorted() is stable: equal loads keep grid order
        return sorted(self.day_load, key=lambda d: self.day_load[d])


def _first_fit_pair(
    req: SessionRequirement,
    rooms: Sequence[Room],
    grid: Dict[str, List[TimeSlot]],
    bookings: Bookings,
) -> Tuple[TimeSlot, Room]:
    fallback: Optional[Tuple[TimeSlot, Room]] = None
    fallback_cost = None
    for day in bookings.days_by_load():
        for slot in grid[day]:
            for room in rooms:
                cost = bookings.cost(room.id, req.teacher_id, slot.slot_index)
                if cost == 0:
                    return slot, room
                if fallback_cost is None or cost < fallback_cost:
                    fallback, fallback_cost = (slot, room), cost
    return fallback


def build_first_fit_schedule(
    requirements: Sequence[SessionRequirement],
    pools: RoomPools,
    slots: Sequence[TimeSlot],
) -> List[Assignment]:
    grid = slots_by_day(slots)
    bookings = Bookings(list(grid))
    out: List[Assignment] = []
    for req in requirements:
        slot, room = _first_fit_pair(req, pools.for_hour(req.is_lab, req.subject_id), grid, bookings)
        a = Assignment(
            subject_id=req.subject_id,
            room_id=room.id,
            time_slot=slot,
            teacher_id=req.teacher_id,
            is_lab=req.is_lab,
        )
        bookings.book(a)
        out.append(a)
    return out


def build_greedy_schedule(
    subjects: Sequence[Subject],
    rooms: Sequence[Room],
    slots: Sequence[TimeSlot],
    cfg: Optional[EngineConfig] = None,
    rng: Optional[random.Random] = None,
) -> GreedyResult:
    cfg = cfg or EngineConfig()
    requirements = expand_requirements(subjects, prioritize=True)
    pools = build_room_pools(rooms, subjects)
    placeable, unplaced = split_placeable(requirements, pools, slots)

    if cfg.greedy_mode == "random":
        rng = rng or random.Random(cfg.seed)
        assignments = build_random_schedule(placeable, pools, slots, rng)
    else:
        assignments = build_first_fit_schedule(placeable, pools, slots)

    if unplaced:
        logger.warning("Greedy: %d of %d hours have no room or slot", len(unplaced), len(requirements))
    logger.info("Greedy (%s): placed %d hours", cfg.greedy_mode, len(assignments))
    return GreedyResult(assignments=assignments, unplaced=unplaced)
