# timetable_engine/timegrid.py
from typing import Dict, List, Sequence, Tuple

from .config import EngineConfig
from .model import TimeSlot


def _to_minutes(value: str) -> int:
    hours, minutes = value.strip().split(":")
    return int(hours) * 60 + int(minutes)


def _to_clock(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def build_time_grid(days: Sequence[str], blocks: Sequence[Tuple[str, str]]) -> List[TimeSlot]:
    """
    Full weekly slot catalog, indexed day-major then block-minor.

    An empty day or block list gives an empty grid; strategies read that as
    "no capacity" rather than an error.
    """
    slots: List[TimeSlot] = []
    idx = 0
    for day in days:
        for start, end in blocks:
            slots.append(TimeSlot(day=day, start=start, end=end, slot_index=idx))
            idx += 1
    return slots


def blocks_from_working_hours(
    start: str,
    end: str,
    slot_minutes: int = 60,
    break_minutes: int = 0,
) -> List[Tuple[str, str]]:
    """Blocks of ``slot_minutes`` separated by ``break_minutes`` inside [start, end]."""
    if slot_minutes <= 0:
        return []
    first, last = _to_minutes(start), _to_minutes(end)
    blocks = []
    t = first
    while t + slot_minutes <= last:
        blocks.append((_to_clock(t), _to_clock(t + slot_minutes)))
        t += slot_minutes + max(0, break_minutes)
    return blocks


def build_time_grid_from_config(cfg: EngineConfig) -> List[TimeSlot]:
    return build_time_grid(cfg.days, cfg.blocks)


def slots_by_day(slots: Sequence[TimeSlot]) -> Dict[str, List[TimeSlot]]:
    """Groups slots per day keeping grid order for both days and blocks."""
    out: Dict[str, List[TimeSlot]] = {}
    for s in sorted(slots, key=lambda x: x.slot_index):
        out.setdefault(s.day, []).append(s)
    return out


def max_blocks_per_day(slots: Sequence[TimeSlot]) -> int:
    per_day = slots_by_day(slots)
    return max((len(v) for v in per_day.values()), default=0)
