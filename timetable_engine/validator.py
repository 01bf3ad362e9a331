# timetable_engine/validator.py
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .model import (
    Assignment,
    Conflict,
    ConflictKind,
    Room,
    Severity,
    Teacher,
    TimeSlot,
    ValidationReport,
)

logger = logging.getLogger(__name__)

SEVERITY_BY_KIND: Dict[ConflictKind, Severity] = {
    ConflictKind.ROOM_DOUBLE_BOOKED: Severity.CRITICAL,
    ConflictKind.TEACHER_DOUBLE_BOOKED: Severity.CRITICAL,
    ConflictKind.TEACHER_UNAVAILABLE: Severity.HIGH,
    ConflictKind.TEACHER_OVERLOADED: Severity.MEDIUM,
}

SEVERITY_RANK = {Severity.CRITICAL: 4, Severity.HIGH: 3, Severity.MEDIUM: 2, Severity.LOW: 1}


def _double_bookings(
    assignments: Sequence[Assignment],
    key_of,
    kind: ConflictKind,
    label: str,
) -> List[Conflict]:
    # Every later occupant of a taken (resource, slot) is reported against the first one.
    first_seen: Dict[Tuple[str, int], Assignment] = {}
    out: List[Conflict] = []
    for a in assignments:
        resource = key_of(a)
        if resource is None:
            continue
        key = (resource, a.time_slot.slot_index)
        prev = first_seen.get(key)
        if prev is None:
            first_seen[key] = a
            continue
        out.append(
            Conflict(
                kind=kind,
                severity=SEVERITY_BY_KIND[kind],
                message=(
                    f"{label} {resource} is double-booked on {a.time_slot.day} "
                    f"{a.time_slot.start}-{a.time_slot.end} ({prev.subject_id} / {a.subject_id})"
                ),
                assignments=(prev, a),
                room_id=a.room_id if kind == ConflictKind.ROOM_DOUBLE_BOOKED else None,
                teacher_id=a.teacher_id if kind == ConflictKind.TEACHER_DOUBLE_BOOKED else None,
                slot_index=a.time_slot.slot_index,
            )
        )
    return out


def find_conflicts(
    assignments: Sequence[Assignment],
    rooms: Optional[Iterable[Room]] = None,
    teachers: Optional[Iterable[Teacher]] = None,
) -> ValidationReport:
    """
    Hard-constraint check (room and teacher double-booking) of any schedule.

    When a room or teacher catalog is given, assignments pointing at ids
    outside it are not checked for that resource and are listed in the report
    instead. Assignments without a teacher are never teacher conflicts.
    """
    room_ids = None if rooms is None else {r.id for r in rooms}
    teacher_ids = None if teachers is None else {t.id for t in teachers}
    unknown_rooms: List[str] = []
    unknown_teachers: List[str] = []

    def room_key(a: Assignment) -> Optional[str]:
        if not a.room_id:
            return None
        if room_ids is not None and a.room_id not in room_ids:
            if a.room_id not in unknown_rooms:
                unknown_rooms.append(a.room_id)
            return None
        return a.room_id

    def teacher_key(a: Assignment) -> Optional[str]:
        if not a.teacher_id:
            return None
        if teacher_ids is not None and a.teacher_id not in teacher_ids:
            if a.teacher_id not in unknown_teachers:
                unknown_teachers.append(a.teacher_id)
            return None
        return a.teacher_id

    conflicts = _double_bookings(assignments, room_key, ConflictKind.ROOM_DOUBLE_BOOKED, "Room")
    conflicts += _double_bookings(assignments, teacher_key, ConflictKind.TEACHER_DOUBLE_BOOKED, "Teacher")

    if unknown_rooms or unknown_teachers:
        logger.warning("Unknown references: rooms=%s teachers=%s", unknown_rooms, unknown_teachers)
    return ValidationReport(
        conflicts=conflicts,
        total_sessions=len(assignments),
        unknown_rooms=unknown_rooms,
        unknown_teachers=unknown_teachers,
    )


def find_load_conflicts(assignments: Sequence[Assignment], teachers: Mapping[str, Teacher]) -> List[Conflict]:
    """Teachers over their weekly hours and sessions given to unavailable teachers."""
    hours: Dict[str, List[Assignment]] = {}
    out: List[Conflict] = []
    for a in assignments:
        if not a.teacher_id or a.teacher_id not in teachers:
            continue
        hours.setdefault(a.teacher_id, []).append(a)
        teacher = teachers[a.teacher_id]
        if not teacher.is_available:
            out.append(
                Conflict(
                    kind=ConflictKind.TEACHER_UNAVAILABLE,
                    severity=SEVERITY_BY_KIND[ConflictKind.TEACHER_UNAVAILABLE],
                    message=f"Teacher {teacher.name} is unavailable but teaches {a.subject_id}",
                    assignments=(a,),
                    teacher_id=a.teacher_id,
                    slot_index=a.time_slot.slot_index,
                )
            )
    for tid, sessions in hours.items():
        teacher = teachers[tid]
        if len(sessions) > teacher.max_hours:
            out.append(
                Conflict(
                    kind=ConflictKind.TEACHER_OVERLOADED,
                    severity=SEVERITY_BY_KIND[ConflictKind.TEACHER_OVERLOADED],
                    message=f"Teacher {teacher.name} has {len(sessions)} hours, max {teacher.max_hours}",
                    assignments=tuple(sessions),
                    teacher_id=tid,
                )
            )
    return out


def build_clash_report(conflicts: Sequence[Conflict], total_sessions: int) -> Dict[str, Any]:
    summary = {s.value: 0 for s in Severity}
    by_kind = {k.value: 0 for k in ConflictKind}
    affected = set()
    for c in conflicts:
        summary[c.severity.value] += 1
        by_kind[c.kind.value] += 1
        affected.update(id(a) for a in c.assignments)

    rate = (len(affected) / total_sessions * 100) if total_sessions else 0.0
    recommendations = []
    if summary[Severity.CRITICAL.value]:
        recommendations.append({
            "priority": "critical",
            "action": "Resolve all critical conflicts before publishing",
            "details": f"{summary[Severity.CRITICAL.value]} double-bookings make the timetable invalid",
        })
    if by_kind[ConflictKind.TEACHER_UNAVAILABLE.value]:
        recommendations.append({
            "priority": "high",
            "action": "Reassign sessions taught by unavailable teachers",
            "details": f"{by_kind[ConflictKind.TEACHER_UNAVAILABLE.value]} sessions affected",
        })
    if by_kind[ConflictKind.TEACHER_OVERLOADED.value]:
        recommendations.append({
            "priority": "medium",
            "action": "Review teacher workloads",
            "details": f"{by_kind[ConflictKind.TEACHER_OVERLOADED.value]} teachers above their weekly hours",
        })

    return {
        "summary": dict(summary, total=len(conflicts), affectedSessions=len(affected),
                        totalSessions=total_sessions, conflictRate=round(rate, 2)),
        "byType": by_kind,
        "conflicts": sorted(conflicts, key=lambda c: SEVERITY_RANK[c.severity], reverse=True),
        "recommendations": recommendations,
        "canProceed": summary[Severity.CRITICAL.value] == 0,
        "requiresReview": summary[Severity.CRITICAL.value] > 0 or summary[Severity.HIGH.value] > 0,
    }


def _first(record: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for k in keys:
        if k in record and record[k] is not None:
            return record[k]
    return default


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "y")
    return bool(value)


def _normalize_clock(value: str) -> str:
    # "9:00", "09:00" and "09:00:00" name the same block
    parts = value.strip().split(":")
    try:
        return f"{int(parts[0]):02d}:{int(parts[1][:2]):02d}"
    except (IndexError, ValueError):
        return value.strip().lower()


def _time_key(slot: Mapping[str, Any]) -> Optional[Tuple[str, str]]:
    day = _first(slot, "day", "dayOfWeek")
    start = _first(slot, "startTime", "start")
    if day in (None, "") or start in (None, ""):
        return None
    return str(day).strip().lower(), _normalize_clock(str(start))


def assignments_from_records(records: Iterable[Mapping[str, Any]]) -> List[Assignment]:
    """
    Converts externally edited schedule rows (camelCase or snake_case, flat or
    with a nested ``timeSlot``) into assignments. Missing fields become empty
    values for the validator to skip, never an exception.

    Rows without a ``slotIndex`` are placed by day and start time: they share
    the index of any indexed row at the same time, or a synthetic negative
    index shared by all rows at that time. Rows with neither never collide.
    """
    rows = []
    for rec in records:
        slot_rec = _first(rec, "timeSlot", "time_slot", default={})
        if not isinstance(slot_rec, Mapping):
            slot_rec = {}
        merged = {**rec, **slot_rec}
        try:
            slot_index = int(_first(merged, "slotIndex", "slot_index"))
        except (TypeError, ValueError):
            slot_index = None
        rows.append((rec, merged, slot_index))

    by_time: Dict[Tuple[str, str], int] = {}
    for _, merged, slot_index in rows:
        key = _time_key(merged)
        if slot_index is not None and key is not None:
            by_time.setdefault(key, slot_index)

    synthetic = 0
    out: List[Assignment] = []
    for rec, merged, slot_index in rows:
        if slot_index is None:
            key = _time_key(merged)
            if key is None or key not in by_time:
                synthetic -= 1
                slot_index = synthetic
                if key is not None:
                    by_time[key] = slot_index
            else:
                slot_index = by_time[key]
        teacher = _first(rec, "teacherId", "teacher_id")
        out.append(
            Assignment(
                subject_id=str(_first(rec, "subjectId", "subject_id", default="")),
                room_id=str(_first(rec, "roomId", "room_id", default="")),
                teacher_id=str(teacher) if teacher not in (None, "") else None,
                is_lab=_as_bool(_first(rec, "isLab", "is_lab", default=False)),
                time_slot=TimeSlot(
                    day=str(_first(merged, "day", "dayOfWeek", default="")),
                    start=str(_first(merged, "startTime", "start", default="")),
                    end=str(_first(merged, "endTime", "end", default="")),
                    slot_index=slot_index,
                ),
            )
        )
    return out
