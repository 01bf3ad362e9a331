"""
Constraint-satisfaction strategy on OR-Tools CP-SAT.

One boolean per (hour, slot, compatible room). Each hour is placed at most
once, and each (room, slot) and (teacher, slot) holds at most one hour, so any
solution is free of double-booking. The objective places as many hours as
possible first and, among those, prefers same-subject lab hours on adjacent
blocks of one day. Hours the solver leaves out are reported as unplaced, so a
partial answer is still returned when the instance is over-full or the time
limit runs out.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import DefaultDict, Dict, List, Sequence, Tuple

from ortools.sat.python import cp_model

from .config import EngineConfig
from .domains import RoomPools
from .model import Assignment, SessionRequirement, TimeSlot, UnplacedHour, UnplacedReason
from .timegrid import slots_by_day

logger = logging.getLogger(__name__)


@dataclass
class CSPResult:
    assignments: List[Assignment]
    unplaced: List[UnplacedHour] = field(default_factory=list)
    status: str = "UNKNOWN"
    complete: bool = False
    wall_time: float = 0.0


class ConstraintScheduler:
    def __init__(self, requirements: Sequence[SessionRequirement], pools: RoomPools,
                 slots: Sequence[TimeSlot], cfg: EngineConfig):
        self.requirements = list(requirements)
        self.pools = pools
        self.slots = list(slots)
        self.cfg = cfg
        self.model = cp_model.CpModel()
        # (requirement position, slot, room id) -> placement literal
        self.x: Dict[Tuple[int, TimeSlot, str], cp_model.IntVar] = {}

    def _build(self) -> None:
        model = self.model
        by_room: DefaultDict[Tuple[str, int], List] = defaultdict(list)
        by_teacher: DefaultDict[Tuple[str, int], List] = defaultdict(list)
        lab_occupancy: DefaultDict[Tuple[str, int], List] = defaultdict(list)

        for i, req in enumerate(self.requirements):
            literals = []
            for slot in self.slots:
                for room in self.pools.for_hour(req.is_lab, req.subject_id):
                    v = model.NewBoolVar(f"h{i}_s{slot.slot_index}_{room.id}")
                    self.x[i, slot, room.id] = v
                    literals.append(v)
                    by_room[room.id, slot.slot_index].append(v)
                    if req.teacher_id:
                        by_teacher[req.teacher_id, slot.slot_index].append(v)
                    if req.is_lab:
                        lab_occupancy[req.subject_id, slot.slot_index].append(v)
            model.AddAtMostOne(literals)

        for group in list(by_room.values()) + list(by_teacher.values()):
            if len(group) > 1:
                model.AddAtMostOne(group)

        adjacent = []
        lab_subjects = {sid for sid, _ in lab_occupancy}
        for day_slots in slots_by_day(self.slots).values():
            for cur, nxt in zip(day_slots, day_slots[1:]):
                if cur.slot_index + 1 != nxt.slot_index:
                    continue
                for sid in lab_subjects:
                    here = lab_occupancy.get((sid, cur.slot_index))
                    there = lab_occupancy.get((sid, nxt.slot_index))
                    if not here or not there:
                        continue
                    pair = model.NewBoolVar(f"pair_{sid}_{cur.slot_index}")
                    model.Add(pair <= sum(here))
                    model.Add(pair <= sum(there))
                    adjacent.append(pair)

        # any extra placed hour outweighs every possible lab pair
        weight = len(adjacent) + 1
        model.Maximize(weight * cp_model.LinearExpr.Sum(list(self.x.values())) + sum(adjacent))

    def solve(self) -> CSPResult:
        if not self.requirements:
            return CSPResult(assignments=[], status="OPTIMAL", complete=True)

        self._build()
        solver = cp_model.CpSolver()
        solver.parameters.max_time_in_seconds = float(self.cfg.csp_time_limit_seconds)
        solver.parameters.num_workers = int(self.cfg.csp_workers)
        if self.cfg.seed is not None:
            solver.parameters.random_seed = int(self.cfg.seed)
        status = solver.Solve(self.model)
        status_name = solver.StatusName(status)

        placed: Dict[int, Assignment] = {}
        if status in (cp_model.OPTIMAL, cp_model.FEASIBLE):
            for (i, slot, room_id), v in self.x.items():
                if solver.BooleanValue(v):
                    req = self.requirements[i]
                    placed[i] = Assignment(
                        subject_id=req.subject_id,
                        room_id=room_id,
                        time_slot=slot,
                        teacher_id=req.teacher_id,
                        is_lab=req.is_lab,
                    )

        unplaced = [
            UnplacedHour(req.subject_id, req.hour_index, req.is_lab, UnplacedReason.SEARCH_EXHAUSTED)
            for i, req in enumerate(self.requirements)
            if i not in placed
        ]
        complete = not unplaced
        logger.info(
            "CP-SAT %s in %.2fs: %d of %d hours placed",
            status_name, solver.WallTime(), len(placed), len(self.requirements),
        )
        if not complete:
            logger.warning("Constraint solver left %d hours unplaced", len(unplaced))
        return CSPResult(
            assignments=[placed[i] for i in sorted(placed)],
            unplaced=unplaced,
            status=status_name,
            complete=complete,
            wall_time=solver.WallTime(),
        )


def build_csp_schedule(
    requirements: Sequence[SessionRequirement],
    pools: RoomPools,
    slots: Sequence[TimeSlot],
    cfg: EngineConfig,
) -> CSPResult:
    return ConstraintScheduler(requirements, pools, slots, cfg).solve()
