import logging
import random
import time
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from .config import EngineConfig
from .domains import RoomPools
from .evaluation import evaluate_individual, theoretical_max
from .initial_population import build_initial_population
from .model import GenerationStats, Individual, SessionRequirement, Teacher, TimeSlot
from .operators import mutate, single_point_crossover, tournament_select
from .timegrid import max_blocks_per_day, slots_by_day

logger = logging.getLogger(__name__)


def cancel_requested(cancel: Any) -> bool:
    """Accepts a ``threading.Event``-like object or a zero-argument callable."""
    if cancel is None:
        return False
    if hasattr(cancel, "is_set"):
        return bool(cancel.is_set())
    return bool(cancel())


class GeneticSolver:
    def __init__(
        self,
        requirements: Sequence[SessionRequirement],
        pools: RoomPools,
        slots: Sequence[TimeSlot],
        teachers: Dict[str, Teacher],
        cfg: EngineConfig,
        rng: Optional[random.Random] = None,
    ):
        self.requirements = list(requirements)
        self.pools = pools
        self.slots = list(slots)
        self.teachers = teachers
        self.cfg = cfg
        self.rng = rng or random.Random(cfg.seed)
        self.max_fitness = theoretical_max(
            self.requirements, max_blocks_per_day(self.slots), cfg, days=len(slots_by_day(self.slots))
        )
        self.history: List[GenerationStats] = []
        self.stop_reason = "generations"

    def _evaluate(self, ind: Individual) -> Individual:
        evaluate_individual(ind, self.teachers, self.cfg)
        return ind

    def initial_population(self, seed_individual: Optional[Individual] = None) -> List[Individual]:
        population = build_initial_population(
            self.requirements, self.pools, self.slots, self.cfg.population_size, self.rng
        )
        if seed_individual is not None:
            population[0] = seed_individual.copy()
        for ind in population:
            self._evaluate(ind)
        return population

    def _record(self, gen: int, population: List[Individual], best_so_far: float) -> GenerationStats:
        scores = np.fromiter((ind.fitness for ind in population), dtype=float, count=len(population))
        stats = GenerationStats(
            generation=gen,
            best_fitness=best_so_far,
            generation_best=float(scores.max()),
            mean_fitness=float(scores.mean()),
            worst_fitness=float(scores.min()),
        )
        self.history.append(stats)
        if gen % max(1, self.cfg.log_every) == 0:
            logger.debug(
                "Gen %d: best=%.1f gen_best=%.1f avg=%.2f worst=%.1f",
                gen, stats.best_fitness, stats.generation_best, stats.mean_fitness, stats.worst_fitness,
            )
        return stats

    def _offspring(self, population: List[Individual]) -> List[Individual]:
        cfg = self.cfg
        elite_count = min(int(cfg.population_size * cfg.elitism_rate), len(population))
        new_pop: List[Individual] = [population[i].copy() for i in range(elite_count)]

        while len(new_pop) < cfg.population_size:
            p1 = tournament_select(population, cfg.tournament_size, self.rng)
            p2 = tournament_select(population, cfg.tournament_size, self.rng)
            c1, c2 = single_point_crossover(p1, p2, cfg.crossover_rate, self.rng)
            for child in (c1, c2):
                if len(new_pop) >= cfg.population_size:
                    break
                mutate(child, cfg.mutation_rate, self.pools, self.slots, self.rng)
                new_pop.append(self._evaluate(child))
        return new_pop

    def evolve(
        self,
        population: Optional[List[Individual]] = None,
        cancel: Any = None,
        seed_individual: Optional[Individual] = None,
    ) -> Individual:
        """
        Runs the generation loop and returns the best individual seen in any
        generation. Stop conditions are checked only between generations, so a
        cancelled run still returns a fully evaluated best-so-far.
        """
        cfg = self.cfg
        if population is None:
            population = self.initial_population(seed_individual)
        started = time.perf_counter()

        best_global = max(population, key=lambda x: x.fitness).copy()
        stagnation = 0
        self.history = []
        self.stop_reason = "generations"

        for gen in range(cfg.generations):
            population.sort(key=lambda x: x.fitness, reverse=True)
            if population[0].fitness > best_global.fitness:
                best_global = population[0].copy()
                stagnation = 0
            elif gen > 0:
                stagnation += 1
            self._record(gen, population, best_global.fitness)

            if best_global.fitness >= self.max_fitness:
                self.stop_reason = "optimum"
                logger.info("Optimal schedule found at generation %d", gen)
                break
            if cfg.max_stagnation and stagnation >= cfg.max_stagnation:
                self.stop_reason = "stagnation"
                break
            if cancel_requested(cancel):
                self.stop_reason = "cancelled"
                break
            if cfg.time_limit_seconds is not None and time.perf_counter() - started >= cfg.time_limit_seconds:
                self.stop_reason = "time_limit"
                break

            population = self._offspring(population)
        else:
            # the last offspring batch was never ranked inside the loop
            if population:
                top = max(population, key=lambda x: x.fitness)
                if top.fitness > best_global.fitness:
                    best_global = top.copy()

        logger.info(
            "GA finished after %d generations (%s): best fitness %.1f / %.1f",
            len(self.history), self.stop_reason, best_global.fitness, self.max_fitness,
        )
        return best_global
