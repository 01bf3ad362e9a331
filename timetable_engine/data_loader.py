# timetable_engine/data_loader.py
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from .errors import InputError
from .model import Assignment, Room, RoomKind, Subject, Teacher, TimeSlot
from .validator import assignments_from_records


@dataclass(frozen=True)
class DataBundle:
    subjects: List[Subject]
    teachers: List[Teacher]
    rooms: List[Room]
    time_slots: Optional[List[TimeSlot]] = None
    source: Dict[str, str] = field(default_factory=dict)


ROOM_KIND_ALIASES = {
    "classroom": RoomKind.CLASSROOM,
    "lecture_hall": RoomKind.CLASSROOM,
    "lab": RoomKind.LAB,
    "laboratory": RoomKind.LAB,
    "auditorium": RoomKind.AUDITORIUM,
}


def _clean(value: Any, default: Any = None) -> Any:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return default
    if isinstance(value, str) and not value.strip():
        return default
    return value


def _as_bool(value: Any, default: bool = False) -> bool:
    value = _clean(value)
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "y")
    return bool(value)


def _as_int(value: Any, default: Optional[int] = None) -> Optional[int]:
    value = _clean(value)
    return default if value is None else int(value)


def _read_csv(path: Path, required: List[str]) -> pd.DataFrame:
    # ids stay strings: "001" and "1" are different rooms
    df = pd.read_csv(path, dtype={c: str for c in ("id", "teacher_id", "room_id", "subject_id")})
    df.columns = [c.strip() for c in df.columns]
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise InputError(f"{path.name} is missing columns: {', '.join(missing)}", details={"file": str(path)})
    return df


def subjects_from_frame(df: pd.DataFrame) -> List[Subject]:
    out = []
    for row in df.to_dict(orient="records"):
        teacher = _clean(row.get("teacher_id"))
        out.append(
            Subject(
                id=str(row["id"]).strip(),
                name=str(_clean(row.get("name"), row["id"])),
                lecture_hours=_as_int(row.get("lecture_hours"), 0),
                lab_hours=_as_int(row.get("lab_hours"), 0),
                is_lab=_as_bool(row.get("is_lab")),
                teacher_id=str(teacher).strip() if teacher is not None else None,
                credits=_as_int(row.get("credits")),
                capacity=_as_int(row.get("capacity")),
            )
        )
    return out


def teachers_from_frame(df: pd.DataFrame) -> List[Teacher]:
    return [
        Teacher(
            id=str(row["id"]).strip(),
            name=str(_clean(row.get("name"), row["id"])),
            is_available=_as_bool(row.get("is_available"), True),
            max_hours=_as_int(row.get("max_hours"), 20),
        )
        for row in df.to_dict(orient="records")
    ]


def rooms_from_frame(df: pd.DataFrame) -> List[Room]:
    out = []
    for row in df.to_dict(orient="records"):
        raw_kind = str(_clean(row.get("kind"), "classroom")).strip().lower()
        if raw_kind not in ROOM_KIND_ALIASES:
            raise InputError(f"Room {row['id']}: unknown kind {raw_kind!r}")
        out.append(
            Room(
                id=str(row["id"]).strip(),
                name=str(_clean(row.get("name"), row["id"])),
                kind=ROOM_KIND_ALIASES[raw_kind],
                capacity=_as_int(row.get("capacity"), 30),
            )
        )
    return out


def time_slots_from_frame(df: pd.DataFrame) -> List[TimeSlot]:
    slots = []
    for i, row in enumerate(df.to_dict(orient="records")):
        slots.append(
            TimeSlot(
                day=str(row["day"]).strip(),
                start=str(row["start"]).strip(),
                end=str(row["end"]).strip(),
                slot_index=_as_int(row.get("slot_index"), i),
            )
        )
    return sorted(slots, key=lambda s: s.slot_index)


def load_data(data_dir: str) -> DataBundle:
    base = Path(data_dir)
    subjects = subjects_from_frame(_read_csv(base / "subjects.csv", ["id"]))
    teachers_path = base / "teachers.csv"
    teachers = teachers_from_frame(_read_csv(teachers_path, ["id"])) if teachers_path.exists() else []
    rooms = rooms_from_frame(_read_csv(base / "rooms.csv", ["id"]))

    slots_path = base / "timeslots.csv"
    slots = None
    if slots_path.exists():
        slots = time_slots_from_frame(_read_csv(slots_path, ["day", "start", "end"]))

    return DataBundle(
        subjects=subjects,
        teachers=teachers,
        rooms=rooms,
        time_slots=slots,
        source={"data_dir": str(base)},
    )


def load_assignments(path: str) -> List[Assignment]:
    """Reads a schedule for validation from JSON (list or ``{"timetable": [...]}``) or CSV."""
    p = Path(path)
    if p.suffix.lower() == ".json":
        data = json.loads(p.read_text(encoding="utf-8"))
        if isinstance(data, dict):
            data = data.get("timetable") or data.get("assignments") or []
        return assignments_from_records(data)
    df = pd.read_csv(p, dtype=str)
    records = [{k: v for k, v in row.items() if _clean(v) is not None} for row in df.to_dict(orient="records")]
    return assignments_from_records(records)


def timetable_to_dataframe(assignments: List[Assignment], bundle: Optional[DataBundle] = None) -> pd.DataFrame:
    subject_names = {s.id: s.name for s in bundle.subjects} if bundle else {}
    teacher_names = {t.id: t.name for t in bundle.teachers} if bundle else {}
    room_names = {r.id: r.name for r in bundle.rooms} if bundle else {}
    rows = [
        {
            "subject_id": a.subject_id,
            "subject": subject_names.get(a.subject_id, a.subject_id),
            "teacher_id": a.teacher_id,
            "teacher": teacher_names.get(a.teacher_id, a.teacher_id),
            "room_id": a.room_id,
            "room": room_names.get(a.room_id, a.room_id),
            "day": a.time_slot.day,
            "start": a.time_slot.start,
            "end": a.time_slot.end,
            "slot_index": a.time_slot.slot_index,
            "is_lab": a.is_lab,
        }
        for a in sorted(assignments, key=lambda x: (x.time_slot.slot_index, x.room_id))
    ]
    columns = ["subject_id", "subject", "teacher_id", "teacher", "room_id", "room",
               "day", "start", "end", "slot_index", "is_lab"]
    return pd.DataFrame(rows, columns=columns)
