# timetable_engine/model.py
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class RoomKind(str, Enum):
    CLASSROOM = "classroom"
    LAB = "lab"
    AUDITORIUM = "auditorium"


class ConflictKind(str, Enum):
    ROOM_DOUBLE_BOOKED = "room_double_booked"
    TEACHER_DOUBLE_BOOKED = "teacher_double_booked"
    TEACHER_OVERLOADED = "teacher_overloaded"
    TEACHER_UNAVAILABLE = "teacher_unavailable"


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class UnplacedReason(str, Enum):
    NO_COMPATIBLE_ROOM = "no_compatible_room"
    NO_TIME_SLOTS = "no_time_slots"
    SEARCH_EXHAUSTED = "search_exhausted"


@dataclass(frozen=True)
class Subject:
    id: str
    name: str
    lecture_hours: int = 0
    lab_hours: int = 0
    is_lab: bool = False
    teacher_id: Optional[str] = None
    credits: Optional[int] = None
    capacity: Optional[int] = None

    @property
    def total_hours(self) -> int:
        return self.lecture_hours + self.lab_hours

    def is_lab_hour(self, hour: int) -> bool:
        # Lab-only subjects: every hour. Mixed subjects: hours past the lectures.
        return self.is_lab or (self.lab_hours > 0 and hour >= self.lecture_hours)


@dataclass(frozen=True)
class Teacher:
    id: str
    name: str
    is_available: bool = True
    max_hours: int = 20


@dataclass(frozen=True)
class Room:
    id: str
    name: str
    kind: RoomKind = RoomKind.CLASSROOM
    capacity: int = 30


@dataclass(frozen=True)
class TimeSlot:
    day: str
    start: str
    end: str
    slot_index: int

    def to_dict(self) -> Dict[str, Any]:
        return {"day": self.day, "startTime": self.start, "endTime": self.end, "slotIndex": self.slot_index}


@dataclass(frozen=True)
class Assignment:
    # One scheduled hour of one subject.
    subject_id: str
    room_id: str
    time_slot: TimeSlot
    teacher_id: Optional[str] = None
    is_lab: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "subjectId": self.subject_id,
            "teacherId": self.teacher_id,
            "roomId": self.room_id,
            "timeSlot": self.time_slot.to_dict(),
            "isLab": self.is_lab,
        }


@dataclass(frozen=True)
class SessionRequirement:
    """One required teaching hour of a subject, before placement."""
    subject_id: str
    hour_index: int
    is_lab: bool
    teacher_id: Optional[str] = None
    order: int = 0


@dataclass
class Individual:
    assignments: List[Assignment]
    fitness: float = 0.0

    def copy(self) -> "Individual":
        # Assignments are immutable, a shallow list copy is enough.
        return Individual(assignments=list(self.assignments), fitness=self.fitness)


@dataclass(frozen=True)
class Conflict:
    kind: ConflictKind
    message: str
    severity: Severity = Severity.HIGH
    assignments: Tuple[Assignment, ...] = ()
    room_id: Optional[str] = None
    teacher_id: Optional[str] = None
    slot_index: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.kind.value,
            "severity": self.severity.value,
            "message": self.message,
            "roomId": self.room_id,
            "teacherId": self.teacher_id,
            "slotIndex": self.slot_index,
            "sessions": [a.to_dict() for a in self.assignments],
        }


@dataclass(frozen=True)
class UnplacedHour:
    subject_id: str
    hour_index: int
    is_lab: bool
    reason: UnplacedReason

    def to_dict(self) -> Dict[str, Any]:
        return {
            "subjectId": self.subject_id,
            "hourIndex": self.hour_index,
            "isLab": self.is_lab,
            "reason": self.reason.value,
        }


@dataclass(frozen=True)
class GenerationStats:
    generation: int
    best_fitness: float        # best seen so far, never decreases
    generation_best: float
    mean_fitness: float
    worst_fitness: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "generation": self.generation,
            "bestFitness": self.best_fitness,
            "generationBest": self.generation_best,
            "avgFitness": self.mean_fitness,
            "worstFitness": self.worst_fitness,
        }


@dataclass(frozen=True)
class Metrics:
    quality_score: float
    scheduling_rate: float
    total_sessions: int
    total_conflicts: int
    fitness: float = 0.0
    required_hours: int = 0
    placed_hours: int = 0
    subjects_scheduled: int = 0
    total_subjects: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "qualityScore": self.quality_score,
            "schedulingRate": self.scheduling_rate,
            "totalSessions": self.total_sessions,
            "totalConflicts": self.total_conflicts,
            "fitness": self.fitness,
            "requiredHours": self.required_hours,
            "placedHours": self.placed_hours,
            "subjectsScheduled": self.subjects_scheduled,
            "totalSubjects": self.total_subjects,
        }


@dataclass
class RunResult:
    timetable: List[Assignment]
    conflicts: List[Conflict]
    metrics: Metrics
    unplaced: List[UnplacedHour] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    # wall clock; not part of metadata or equality
    elapsed_seconds: float = field(default=0.0, compare=False)

    @property
    def assignments(self) -> List[Assignment]:
        return self.timetable

    def to_dict(self, include_timing: bool = True) -> Dict[str, Any]:
        meta = dict(self.metadata)
        if "generations" in meta:
            meta["generations"] = [g.to_dict() for g in meta["generations"]]
        if include_timing:
            meta["elapsedSeconds"] = self.elapsed_seconds
        return {
            "timetable": [a.to_dict() for a in self.timetable],
            "conflicts": [c.to_dict() for c in self.conflicts],
            "metrics": self.metrics.to_dict(),
            "unplaced": [u.to_dict() for u in self.unplaced],
            "metadata": meta,
        }


@dataclass
class ValidationReport:
    conflicts: List[Conflict]
    total_sessions: int
    unknown_rooms: List[str] = field(default_factory=list)
    unknown_teachers: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.conflicts

    @property
    def conflict_count(self) -> int:
        return len(self.conflicts)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isValid": self.is_valid,
            "conflicts": [c.to_dict() for c in self.conflicts],
            "totalSessions": self.total_sessions,
            "conflictCount": self.conflict_count,
            "unknownRooms": list(self.unknown_rooms),
            "unknownTeachers": list(self.unknown_teachers),
        }
