from typing import Sequence

from .model import Assignment, Conflict, Metrics


def compute_metrics(
    assignments: Sequence[Assignment],
    conflicts: Sequence[Conflict],
    required_hours: int,
    fitness_score: float,
    max_fitness: float,
    total_subjects: int = 0,
) -> Metrics:
    """Summary of a finished run. A run with nothing to place counts as fully scheduled."""
    placed = len(assignments)
    rate = (placed / required_hours * 100.0) if required_hours > 0 else 100.0
    quality = (fitness_score / max_fitness * 100.0) if max_fitness > 0 else 0.0
    quality = min(100.0, max(0.0, quality))
    return Metrics(
        quality_score=round(quality, 2),
        scheduling_rate=round(min(100.0, rate), 2),
        total_sessions=placed,
        total_conflicts=len(conflicts),
        fitness=fitness_score,
        required_hours=required_hours,
        placed_hours=placed,
        subjects_scheduled=len({a.subject_id for a in assignments}),
        total_subjects=total_subjects,
    )
