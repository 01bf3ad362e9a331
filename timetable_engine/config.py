"""
Engine configuration.

Every tunable of a run lives in one dataclass so runs stay reproducible, and
it can be loaded from YAML (or JSON) next to the input data.
"""
from dataclasses import dataclass, field, asdict, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
import json

import yaml

from .errors import ConfigurationError


DEFAULT_DAYS: List[str] = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]

DEFAULT_BLOCKS: List[Tuple[str, str]] = [
    ("09:00", "10:30"),
    ("11:00", "12:30"),
    ("14:00", "15:30"),
    ("16:00", "17:30"),
]

GREEDY_MODES = ("first_fit", "random")

# camelCase request keys accepted as per-run overrides
PARAM_ALIASES: Dict[str, str] = {
    "populationSize": "population_size",
    "generations": "generations",
    "mutationRate": "mutation_rate",
    "crossoverRate": "crossover_rate",
    "elitismRate": "elitism_rate",
    "tournamentSize": "tournament_size",
    "maxStagnation": "max_stagnation",
    "timeLimitSeconds": "time_limit_seconds",
    "greedyMode": "greedy_mode",
    "seedWithGreedy": "seed_with_greedy",
    "cspTimeLimitSeconds": "csp_time_limit_seconds",
    "cspWorkers": "csp_workers",
}


@dataclass
class EngineConfig:
    # Time grid
    days: List[str] = field(default_factory=lambda: list(DEFAULT_DAYS))
    blocks: List[Tuple[str, str]] = field(default_factory=lambda: list(DEFAULT_BLOCKS))

    # Genetic algorithm
    population_size: int = 50
    generations: int = 100
    mutation_rate: float = 0.1
    crossover_rate: float = 0.8
    elitism_rate: float = 0.2
    tournament_size: int = 3
    max_stagnation: Optional[int] = None
    time_limit_seconds: Optional[float] = None
    seed_with_greedy: bool = False
    seed: Optional[int] = None
    log_every: int = 10

    # Greedy / constraint strategies
    greedy_mode: str = "first_fit"
    csp_time_limit_seconds: float = 10.0
    csp_workers: int = 1

    # Fitness weights
    baseline_fitness: float = 1000.0
    weight_room_conflict: float = 50.0
    weight_teacher_conflict: float = 40.0
    weight_consecutive_lab: float = 20.0
    weight_teacher_overload: float = 10.0
    weight_teacher_unavailable: float = 30.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EngineConfig":
        merged = asdict(cls())
        for k, v in data.items():
            k = PARAM_ALIASES.get(k, k)
            if k in merged:
                merged[k] = v
        cfg = cls(**merged)
        cfg.validate()
        return cfg

    def with_overrides(self, params: Optional[Dict[str, Any]]) -> "EngineConfig":
        """Copy of this config with per-run parameters applied; unknown keys are an error."""
        if not params:
            return self
        names = {f.name for f in fields(self)}
        updates = {}
        for k, v in params.items():
            name = PARAM_ALIASES.get(k, k)
            if name not in names:
                raise ConfigurationError(f"Unknown engine parameter: {k}", details={"parameter": k})
            updates[name] = v
        cfg = replace(self, **updates)
        cfg.validate()
        return cfg

    def validate(self) -> None:
        if int(self.population_size) < 1:
            raise ConfigurationError("population_size must be at least 1")
        if int(self.generations) < 0:
            raise ConfigurationError("generations must not be negative")
        for name in ("mutation_rate", "crossover_rate", "elitism_rate"):
            value = getattr(self, name)
            if not 0.0 <= float(value) <= 1.0:
                raise ConfigurationError(f"{name} must be within [0, 1], got {value}")
        if int(self.tournament_size) < 1:
            raise ConfigurationError("tournament_size must be at least 1")
        if self.greedy_mode not in GREEDY_MODES:
            raise ConfigurationError(
                f"greedy_mode must be one of {', '.join(GREEDY_MODES)}, got {self.greedy_mode!r}"
            )
        if float(self.csp_time_limit_seconds) <= 0:
            raise ConfigurationError("csp_time_limit_seconds must be positive")
        if int(self.csp_workers) < 1:
            raise ConfigurationError("csp_workers must be at least 1")
        self.blocks = [tuple(b) for b in self.blocks]

    @property
    def blocks_per_day(self) -> int:
        return len(self.blocks)


def _load_yaml_or_json(path: Path) -> Any:
    if not path.exists():
        return {}
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        return json.loads(text)
    return yaml.safe_load(text) or {}


def load_config(path: str = "config.yaml") -> EngineConfig:
    cfg_path = Path(path)
    try:
        data = _load_yaml_or_json(cfg_path)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Could not parse {cfg_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"{cfg_path} must contain a mapping")
    return EngineConfig.from_dict(data)
