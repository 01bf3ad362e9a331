# timetable_engine/initial_population.py
import random
from typing import List, Sequence

from .domains import RoomPools
from .model import Assignment, Individual, SessionRequirement, TimeSlot


def random_assignment(
    req: SessionRequirement,
    pools: RoomPools,
    slots: Sequence[TimeSlot],
    rng: random.Random,
) -> Assignment:
    # Room drawn among the compatible rooms, slot among the whole grid.
    room = rng.choice(pools.for_hour(req.is_lab, req.subject_id))
    slot = rng.choice(slots)
    return Assignment(
        subject_id=req.subject_id,
        room_id=room.id,
        time_slot=slot,
        teacher_id=req.teacher_id,
        is_lab=req.is_lab,
    )


def build_random_schedule(
    requirements: Sequence[SessionRequirement],
    pools: RoomPools,
    slots: Sequence[TimeSlot],
    rng: random.Random,
) -> List[Assignment]:
    """Requirements must already be placeable (see ``domains.split_placeable``)."""
    return [random_assignment(req, pools, slots, rng) for req in requirements]


def build_initial_population(
    requirements: Sequence[SessionRequirement],
    pools: RoomPools,
    slots: Sequence[TimeSlot],
    pop_size: int,
    rng: random.Random,
) -> List[Individual]:
    return [
        Individual(assignments=build_random_schedule(requirements, pools, slots, rng))
        for _ in range(pop_size)
    ]
