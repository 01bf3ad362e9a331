import random
from dataclasses import replace
from typing import Sequence, Tuple

from .domains import RoomPools
from .model import Individual, TimeSlot


def tournament_select(population: Sequence[Individual], size: int, rng: random.Random) -> Individual:
    """Samples ``size`` individuals with replacement and keeps the fittest (first wins ties)."""
    best = None
    for _ in range(size):
        cand = population[rng.randrange(len(population))]
        if best is None or cand.fitness > best.fitness:
            best = cand
    return best


def single_point_crossover(
    p1: Individual,
    p2: Individual,
    crossover_rate: float,
    rng: random.Random,
) -> Tuple[Individual, Individual]:
    """Swaps the tails of both parents after one cut point; otherwise returns copies."""
    if rng.random() >= crossover_rate:
        return p1.copy(), p2.copy()
    shortest = min(len(p1.assignments), len(p2.assignments))
    cut = rng.randrange(shortest) if shortest > 0 else 0
    c1 = p1.assignments[:cut] + p2.assignments[cut:]
    c2 = p2.assignments[:cut] + p1.assignments[cut:]
    return Individual(assignments=c1), Individual(assignments=c2)


def mutate(
    ind: Individual,
    mutation_rate: float,
    pools: RoomPools,
    slots: Sequence[TimeSlot],
    rng: random.Random,
) -> Individual:
    """Per assignment, with ``mutation_rate``: re-draw either its room or its slot (50/50)."""
    genes = ind.assignments
    for i, a in enumerate(genes):
        if rng.random() >= mutation_rate:
            continue
        if rng.random() < 0.5:
            rooms = pools.for_hour(a.is_lab, a.subject_id)
            if rooms:
                genes[i] = replace(a, room_id=rng.choice(rooms).id)
        elif slots:
            genes[i] = replace(a, time_slot=rng.choice(slots))
    return ind
