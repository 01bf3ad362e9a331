# timetable_engine/domains.py
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .errors import ConfigurationError, InputError
from .model import (
    Room,
    RoomKind,
    SessionRequirement,
    Subject,
    Teacher,
    TimeSlot,
    UnplacedHour,
    UnplacedReason,
)


@dataclass(frozen=True)
class RoomPools:
    """
    Rooms a session hour may use, split by the kind the hour needs.

    ``min_capacity`` maps subject ids to their class size; for those subjects
    rooms with fewer seats are left out of the pool.
    """
    lab: Tuple[Room, ...]
    classroom: Tuple[Room, ...]
    min_capacity: Dict[str, int] = field(default_factory=dict)

    def for_hour(self, is_lab: bool, subject_id: Optional[str] = None) -> Tuple[Room, ...]:
        rooms = self.lab if is_lab else self.classroom
        need = self.min_capacity.get(subject_id) if subject_id is not None else None
        if not need:
            return rooms
        return tuple(r for r in rooms if r.capacity >= need)


def build_room_pools(rooms: Iterable[Room], subjects: Iterable[Subject] = ()) -> RoomPools:
    # Auditoriums are never picked automatically.
    rooms = list(rooms)
    return RoomPools(
        lab=tuple(r for r in rooms if r.kind == RoomKind.LAB),
        classroom=tuple(r for r in rooms if r.kind == RoomKind.CLASSROOM),
        min_capacity={s.id: s.capacity for s in subjects if s.capacity},
    )


def subject_priority(subject: Subject) -> int:
    return (subject.credits or 3) * (subject.capacity or 30)


def expand_requirements(subjects: Sequence[Subject], prioritize: bool = False) -> List[SessionRequirement]:
    """
    One requirement per required hour (lecture + lab) of every subject.

    With ``prioritize`` subjects are visited by descending credits x capacity;
    the sort is stable so equal priorities keep input order.
    """
    ordered = sorted(subjects, key=subject_priority, reverse=True) if prioritize else list(subjects)
    out: List[SessionRequirement] = []
    for subject in ordered:
        for hour in range(subject.total_hours):
            out.append(
                SessionRequirement(
                    subject_id=subject.id,
                    hour_index=hour,
                    is_lab=subject.is_lab_hour(hour),
                    teacher_id=subject.teacher_id,
                    order=len(out),
                )
            )
    return out


def split_placeable(
    requirements: Sequence[SessionRequirement],
    pools: RoomPools,
    slots: Sequence[TimeSlot],
) -> Tuple[List[SessionRequirement], List[UnplacedHour]]:
    """Separates hours that have at least one compatible room and slot from those that never can."""
    placeable: List[SessionRequirement] = []
    unplaced: List[UnplacedHour] = []
    for req in requirements:
        if not slots:
            reason = UnplacedReason.NO_TIME_SLOTS
        elif not pools.for_hour(req.is_lab, req.subject_id):
            reason = UnplacedReason.NO_COMPATIBLE_ROOM
        else:
            placeable.append(req)
            continue
        unplaced.append(UnplacedHour(req.subject_id, req.hour_index, req.is_lab, reason))
    return placeable, unplaced


def _duplicates(ids: Iterable[str]) -> List[str]:
    seen, dups = set(), []
    for i in ids:
        if i in seen and i not in dups:
            dups.append(i)
        seen.add(i)
    return dups


def validate_inputs(
    subjects: Sequence[Subject],
    teachers: Sequence[Teacher],
    rooms: Sequence[Room],
) -> None:
    errors: List[str] = []
    for label, items in (("subject", subjects), ("teacher", teachers), ("room", rooms)):
        for dup in _duplicates(x.id for x in items):
            errors.append(f"duplicate {label} id {dup!r}")
    for s in subjects:
        if s.lecture_hours < 0 or s.lab_hours < 0:
            errors.append(f"subject {s.id!r}: hours must not be negative")
    for t in teachers:
        if t.max_hours < 0:
            errors.append(f"teacher {t.id!r}: max_hours must not be negative")
    if errors:
        raise InputError(f"Input validation failed: {'; '.join(errors)}", details={"errors": errors})

    required = sum(s.total_hours for s in subjects)
    if required > 0 and not rooms:
        raise ConfigurationError(
            "No rooms configured while subjects require teaching hours",
            details={"required_hours": required},
        )

