# timetable_engine/evaluation.py
import math
from collections import defaultdict
from dataclasses import dataclass
from typing import DefaultDict, Dict, List, Mapping, Optional, Sequence, Set

from .config import EngineConfig
from .model import Assignment, Individual, SessionRequirement, Teacher


@dataclass(frozen=True)
class FitnessBreakdown:
    score: float
    room_clashes: int
    teacher_clashes: int
    consecutive_labs: int
    overload_hours: int
    unavailable_uses: int
    teacher_hours: Dict[str, int]


def evaluate(
    assignments: Sequence[Assignment],
    teachers: Mapping[str, Teacher],
    cfg: Optional[EngineConfig] = None,
) -> FitnessBreakdown:
    """
    Scores a candidate schedule from a fixed baseline.

    Each assignment that reuses a (room, slot) or (teacher, slot) already taken
    earlier in the list is penalised once; same-subject lab hours on adjacent
    blocks of one day earn a bonus; teacher overload and unavailable teachers
    are penalised. The result never goes below zero and depends only on the
    arguments.
    """
    cfg = cfg or EngineConfig()

    room_used: DefaultDict[str, Set[int]] = defaultdict(set)
    teacher_used: DefaultDict[str, Set[int]] = defaultdict(set)
    teacher_hours: Dict[str, int] = {}
    labs_by_subject: DefaultDict[str, List[Assignment]] = defaultdict(list)
    room_clashes = teacher_clashes = unavailable = 0

    for a in assignments:
        idx = a.time_slot.slot_index
        if idx in room_used[a.room_id]:
            room_clashes += 1
        else:
            room_used[a.room_id].add(idx)

        if a.teacher_id:
            if idx in teacher_used[a.teacher_id]:
                teacher_clashes += 1
            else:
                teacher_used[a.teacher_id].add(idx)
            teacher_hours[a.teacher_id] = teacher_hours.get(a.teacher_id, 0) + 1
            teacher = teachers.get(a.teacher_id)
            if teacher is not None and not teacher.is_available:
                unavailable += 1

        if a.is_lab:
            labs_by_subject[a.subject_id].append(a)

    consecutive = 0
    for labs in labs_by_subject.values():
        labs.sort(key=lambda x: x.time_slot.slot_index)
        for cur, nxt in zip(labs, labs[1:]):
            if (
                cur.time_slot.day == nxt.time_slot.day
                and cur.time_slot.slot_index + 1 == nxt.time_slot.slot_index
            ):
                consecutive += 1

    overload = 0
    for tid, hours in teacher_hours.items():
        teacher = teachers.get(tid)
        if teacher is not None and hours > teacher.max_hours:
            overload += hours - teacher.max_hours

    score = (
        cfg.baseline_fitness
        - cfg.weight_room_conflict * room_clashes
        - cfg.weight_teacher_conflict * teacher_clashes
        + cfg.weight_consecutive_lab * consecutive
        - cfg.weight_teacher_overload * overload
        - cfg.weight_teacher_unavailable * unavailable
    )

    return FitnessBreakdown(
        score=max(0.0, float(score)),
        room_clashes=room_clashes,
        teacher_clashes=teacher_clashes,
        consecutive_labs=consecutive,
        overload_hours=overload,
        unavailable_uses=unavailable,
        teacher_hours=teacher_hours,
    )


def fitness(
    assignments: Sequence[Assignment],
    teachers: Mapping[str, Teacher],
    cfg: Optional[EngineConfig] = None,
) -> float:
    return evaluate(assignments, teachers, cfg).score


def evaluate_individual(ind: Individual, teachers: Mapping[str, Teacher], cfg: EngineConfig) -> float:
    ind.fitness = fitness(ind.assignments, teachers, cfg)
    return ind.fitness


def theoretical_max(
    requirements: Sequence[SessionRequirement],
    blocks_per_day: int,
    cfg: Optional[EngineConfig] = None,
    days: Optional[int] = None,
) -> float:
    """
    Upper bound of ``fitness``: a clash-free schedule whose lab hours are packed
    into as many adjacent pairs as the day length allows.

    With ``days`` the week is finite too: only ``days * blocks_per_day`` hours
    of a subject can sit in distinct blocks, and each used day breaks a run.
    """
    cfg = cfg or EngineConfig()
    if blocks_per_day <= 0 or (days is not None and days <= 0):
        return cfg.baseline_fitness
    lab_hours: Dict[str, int] = {}
    for req in requirements:
        if req.is_lab:
            lab_hours[req.subject_id] = lab_hours.get(req.subject_id, 0) + 1
    pairs = 0
    for n in lab_hours.values():
        runs = math.ceil(n / blocks_per_day)
        if days is not None:
            n = min(n, days * blocks_per_day)
            runs = min(days, runs)
        pairs += n - runs
    return cfg.baseline_fitness + cfg.weight_consecutive_lab * pairs
