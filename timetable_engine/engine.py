"""
Engine façade: the single entry point for callers.

``generate`` resolves the strategy once, runs it, always validates the result
and computes metrics. ``validate`` checks a schedule built elsewhere.
"""
import logging
import random
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from .config import EngineConfig
from .csp import build_csp_schedule
from .domains import build_room_pools, expand_requirements, split_placeable, validate_inputs
from .errors import UnsupportedAlgorithmError
from .evaluation import fitness, theoretical_max
from .ga import GeneticSolver
from .greedy import build_first_fit_schedule, build_greedy_schedule
from .metrics import compute_metrics
from .model import Assignment, Individual, Room, RunResult, Subject, Teacher, TimeSlot, ValidationReport
from .timegrid import build_time_grid_from_config, max_blocks_per_day, slots_by_day
from .validator import assignments_from_records, find_conflicts, find_load_conflicts

logger = logging.getLogger(__name__)


class Algorithm(str, Enum):
    GREEDY = "greedy"
    GENETIC = "genetic"
    CONSTRAINT = "constraint"

    @classmethod
    def parse(cls, value: Union[str, "Algorithm"]) -> "Algorithm":
        if isinstance(value, cls):
            return value
        name = str(value).strip().lower() if value is not None else ""
        if name == "constraint_satisfaction":
            name = cls.CONSTRAINT.value
        try:
            return cls(name)
        except ValueError:
            raise UnsupportedAlgorithmError(value) from None


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TimetableEngine:
    def __init__(self, cfg: Optional[EngineConfig] = None, clock: Optional[Callable[[], datetime]] = None):
        self.cfg = cfg or EngineConfig()
        self.clock = clock or _utc_now

    def generate(
        self,
        subjects: Sequence[Subject],
        teachers: Sequence[Teacher],
        rooms: Sequence[Room],
        algorithm: Union[str, Algorithm] = Algorithm.GREEDY,
        params: Optional[Dict[str, Any]] = None,
        time_slots: Optional[Sequence[TimeSlot]] = None,
        seed: Optional[int] = None,
        rng: Optional[random.Random] = None,
        cancel: Any = None,
    ) -> RunResult:
        algo = Algorithm.parse(algorithm)
        cfg = self.cfg.with_overrides(params)
        validate_inputs(subjects, teachers, rooms)

        slots = list(time_slots) if time_slots is not None else build_time_grid_from_config(cfg)
        if seed is None:
            seed = cfg.seed
        rng = rng or random.Random(seed)
        teachers_by_id = {t.id: t for t in teachers}

        requirements = expand_requirements(subjects)
        pools = build_room_pools(rooms, subjects)
        placeable, unplaced = split_placeable(requirements, pools, slots)

        logger.info(
            "Generating timetable with %s: %d subjects, %d hours, %d rooms, %d slots",
            algo.value, len(subjects), len(requirements), len(rooms), len(slots),
        )
        started = time.perf_counter()
        metadata: Dict[str, Any] = {"algorithm": algo.value, "seed": seed, "cancelled": False}

        if algo is Algorithm.GREEDY:
            res = build_greedy_schedule(subjects, rooms, slots, cfg, rng)
            assignments, unplaced = res.assignments, res.unplaced
            metadata["stopReason"] = "completed"
        elif algo is Algorithm.GENETIC:
            seed_ind = None
            if cfg.seed_with_greedy and placeable:
                seed_ind = Individual(assignments=build_first_fit_schedule(placeable, pools, slots))
            solver = GeneticSolver(placeable, pools, slots, teachers_by_id, cfg, rng)
            best = solver.evolve(cancel=cancel, seed_individual=seed_ind)
            assignments = best.assignments
            metadata["generations"] = list(solver.history)
            metadata["stopReason"] = solver.stop_reason
            metadata["cancelled"] = solver.stop_reason == "cancelled"
        else:
            res = build_csp_schedule(placeable, pools, slots, cfg)
            assignments = res.assignments
            unplaced = unplaced + res.unplaced
            metadata["solverStatus"] = res.status
            metadata["stopReason"] = "completed" if res.complete else "search_exhausted"

        result = self._assemble(
            assignments, unplaced, requirements, placeable, slots, teachers, rooms,
            teachers_by_id, cfg, metadata, total_subjects=len(subjects),
        )
        result.elapsed_seconds = round(time.perf_counter() - started, 4)
        logger.info(
            "Timetable ready: %d sessions, %d conflicts, quality %.2f, scheduling rate %.2f%%",
            result.metrics.total_sessions, result.metrics.total_conflicts,
            result.metrics.quality_score, result.metrics.scheduling_rate,
        )
        return result

    def _assemble(self, assignments, unplaced, requirements, placeable, slots, teachers, rooms,
                  teachers_by_id, cfg, metadata, total_subjects) -> RunResult:
        report = find_conflicts(assignments, rooms=rooms, teachers=teachers)
        conflicts = report.conflicts + find_load_conflicts(assignments, teachers_by_id)
        score = fitness(assignments, teachers_by_id, cfg)
        max_score = theoretical_max(placeable, max_blocks_per_day(slots), cfg, days=len(slots_by_day(slots)))
        metrics = compute_metrics(
            assignments, conflicts, len(requirements), score, max_score, total_subjects=total_subjects,
        )
        metadata.update({
            "generatedAt": self.clock().isoformat(),
            "totalTimeSlots": len(slots),
            "maxFitness": max_score,
            "unknownRooms": list(report.unknown_rooms),
            "unknownTeachers": list(report.unknown_teachers),
        })
        if unplaced:
            logger.warning("%d hours could not be placed", len(unplaced))
        return RunResult(
            timetable=list(assignments),
            conflicts=conflicts,
            metrics=metrics,
            unplaced=list(unplaced),
            metadata=metadata,
        )

    def validate(
        self,
        schedule: Iterable[Union[Assignment, Mapping[str, Any]]],
        rooms: Optional[Sequence[Room]] = None,
        teachers: Optional[Sequence[Teacher]] = None,
    ) -> ValidationReport:
        rows: List = list(schedule)
        if any(isinstance(r, Mapping) for r in rows):
            assignments = assignments_from_records(
                r if isinstance(r, Mapping) else r.to_dict() for r in rows
            )
        else:
            assignments = rows
        report = find_conflicts(assignments, rooms=rooms, teachers=teachers)
        logger.info("Validated %d sessions: %d conflicts", report.total_sessions, report.conflict_count)
        return report


def generate_timetable(subjects, teachers, rooms, algorithm="greedy", **kwargs) -> RunResult:
    """Convenience wrapper around a default-configured ``TimetableEngine``."""
    return TimetableEngine().generate(subjects, teachers, rooms, algorithm=algorithm, **kwargs)
