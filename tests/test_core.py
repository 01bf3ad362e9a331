import random
import unittest

from timetable_engine.config import EngineConfig
from timetable_engine.domains import build_room_pools, expand_requirements
from timetable_engine.evaluation import evaluate, fitness, theoretical_max
from timetable_engine.model import Assignment, Individual, Room, RoomKind, Subject, Teacher, TimeSlot
from timetable_engine.operators import mutate, single_point_crossover, tournament_select
from timetable_engine.timegrid import blocks_from_working_hours, build_time_grid, max_blocks_per_day


def slot(idx, day="Monday"):
    return TimeSlot(day=day, start=f"{8 + idx:02d}:00", end=f"{9 + idx:02d}:00", slot_index=idx)


def asg(subject, room, idx, teacher=None, lab=False, day="Monday"):
    return Assignment(subject_id=subject, room_id=room, time_slot=slot(idx, day), teacher_id=teacher, is_lab=lab)


class TimeGridTests(unittest.TestCase):
    def test_reference_template_is_dense_and_day_major(self):
        cfg = EngineConfig()
        grid = build_time_grid(cfg.days, cfg.blocks)
        self.assertEqual(len(grid), 20)
        self.assertEqual([s.slot_index for s in grid], list(range(20)))
        self.assertEqual(grid[4].day, "Tuesday")
        self.assertEqual((grid[4].start, grid[4].end), ("09:00", "10:30"))
        self.assertEqual(max_blocks_per_day(grid), 4)

    def test_empty_template_gives_empty_grid(self):
        self.assertEqual(build_time_grid([], [("09:00", "10:00")]), [])
        self.assertEqual(build_time_grid(["Monday"], []), [])

    def test_blocks_from_working_hours(self):
        blocks = blocks_from_working_hours("08:00", "12:00", slot_minutes=60, break_minutes=15)
        self.assertEqual(blocks, [("08:00", "09:00"), ("09:15", "10:15"), ("10:30", "11:30")])


class EvaluationTests(unittest.TestCase):
    def test_empty_schedule_scores_baseline(self):
        self.assertEqual(fitness([], {}), 1000.0)

    def test_room_clash_penalised_once_per_extra_occupant(self):
        two = [asg("A", "R1", 0), asg("B", "R1", 0)]
        three = two + [asg("C", "R1", 0)]
        self.assertEqual(fitness(two, {}), 950.0)
        self.assertEqual(fitness(three, {}), 900.0)

    def test_teacher_clash_and_missing_teacher_exempt(self):
        clash = [asg("A", "R1", 0, teacher="T1"), asg("B", "R2", 0, teacher="T1")]
        no_teacher = [asg("A", "R1", 0), asg("B", "R2", 0)]
        res = evaluate(clash, {})
        self.assertEqual(res.teacher_clashes, 1)
        self.assertEqual(res.score, 960.0)
        self.assertEqual(fitness(no_teacher, {}), 1000.0)

    def test_consecutive_labs_bonus_ignores_list_order(self):
        forward = [asg("L", "LAB", 0, lab=True), asg("L", "LAB", 1, lab=True)]
        backward = list(reversed(forward))
        self.assertEqual(fitness(forward, {}), 1020.0)
        self.assertEqual(fitness(backward, {}), 1020.0)

    def test_adjacent_index_on_another_day_is_not_consecutive(self):
        labs = [asg("L", "LAB", 3, lab=True, day="Monday"), asg("L", "LAB", 4, lab=True, day="Tuesday")]
        self.assertEqual(evaluate(labs, {}).consecutive_labs, 0)

    def test_teacher_overload_scores_lower_than_spread_load(self):
        t1 = Teacher("T1", "One", max_hours=2)
        t2 = Teacher("T2", "Two", max_hours=2)
        teachers = {"T1": t1, "T2": t2}
        overloaded = [asg("S", f"R{i}", i, teacher="T1") for i in range(4)]
        spread = [asg("S", f"R{i}", i, teacher="T1" if i < 2 else "T2") for i in range(4)]
        self.assertEqual(fitness(overloaded, teachers), 980.0)
        self.assertEqual(fitness(spread, teachers), 1000.0)
        self.assertLess(fitness(overloaded, teachers), fitness(spread, teachers))

    def test_unavailable_teacher_penalised_per_assignment(self):
        teachers = {"T1": Teacher("T1", "Away", is_available=False)}
        sched = [asg("S", "R1", 0, teacher="T1"), asg("S", "R1", 1, teacher="T1")]
        self.assertEqual(fitness(sched, teachers), 940.0)

    def test_unknown_teacher_has_no_load_penalty(self):
        sched = [asg("S", "R1", i, teacher="GHOST") for i in range(30)]
        self.assertEqual(fitness(sched, {}), 1000.0)

    def test_score_is_clamped_and_deterministic(self):
        sched = [asg(f"S{i}", "R1", 0) for i in range(40)]
        self.assertEqual(fitness(sched, {}), 0.0)
        mixed = [asg("A", "R1", 0, "T1"), asg("B", "R1", 0, "T1"), asg("L", "X", 1, lab=True)]
        self.assertEqual(fitness(mixed, {}), fitness(mixed, {}))

    def test_weights_come_from_config(self):
        cfg = EngineConfig(weight_room_conflict=5)
        self.assertEqual(fitness([asg("A", "R1", 0), asg("B", "R1", 0)], {}, cfg), 995.0)

    def test_theoretical_max_counts_packable_lab_pairs(self):
        reqs = expand_requirements([Subject("L", "Lab", lab_hours=4, is_lab=True), Subject("C", "Lec", 3)])
        self.assertEqual(theoretical_max(reqs, 4), 1060.0)
        self.assertEqual(theoretical_max(reqs, 2), 1040.0)
        self.assertEqual(theoretical_max(reqs, 1), 1000.0)
        self.assertEqual(theoretical_max(reqs, 0), 1000.0)

    def test_theoretical_max_respects_number_of_days(self):
        reqs = expand_requirements([Subject("L", "Lab", lab_hours=8, is_lab=True)])
        self.assertEqual(theoretical_max(reqs, 4, days=1), 1060.0)
        self.assertEqual(theoretical_max(reqs, 4, days=2), 1120.0)
        self.assertEqual(theoretical_max(reqs, 4), 1120.0)
        self.assertEqual(theoretical_max(reqs, 4, days=0), 1000.0)


class OperatorTests(unittest.TestCase):
    def setUp(self):
        self.rooms = [Room("C1", "C1"), Room("L1", "L1", RoomKind.LAB), Room("L2", "L2", RoomKind.LAB)]
        self.pools = build_room_pools(self.rooms)
        self.slots = build_time_grid(["Monday", "Tuesday"], [("09:00", "10:00"), ("10:00", "11:00")])

    def test_pool_filters_rooms_by_class_size(self):
        subjects = [Subject("BIG", "Big", 1, capacity=40), Subject("ANY", "Any", 1)]
        rooms = [Room("C1", "C1", capacity=30), Room("C2", "C2", capacity=40)]
        pools = build_room_pools(rooms, subjects)
        self.assertEqual([r.id for r in pools.for_hour(False, "BIG")], ["C2"])
        self.assertEqual([r.id for r in pools.for_hour(False, "ANY")], ["C1", "C2"])
        self.assertEqual(len(pools.for_hour(False)), 2)

    def test_crossover_without_rate_returns_copies(self):
        p1 = Individual([asg("A", "C1", 0), asg("B", "C1", 1)], fitness=10)
        p2 = Individual([asg("A", "C1", 2), asg("B", "C1", 3)], fitness=20)
        c1, c2 = single_point_crossover(p1, p2, 0.0, random.Random(0))
        self.assertEqual(c1.assignments, p1.assignments)
        self.assertEqual(c2.assignments, p2.assignments)
        self.assertIsNot(c1.assignments, p1.assignments)

    def test_crossover_swaps_tails_positionally(self):
        p1 = Individual([asg("S", "C1", i) for i in range(6)])
        p2 = Individual([asg("S", "C1", 10 + i) for i in range(6)])
        c1, c2 = single_point_crossover(p1, p2, 1.0, random.Random(3))
        self.assertEqual(len(c1.assignments), 6)
        self.assertEqual(len(c2.assignments), 6)
        for i in range(6):
            pair = {p1.assignments[i], p2.assignments[i]}
            self.assertEqual({c1.assignments[i], c2.assignments[i]}, pair)

    def test_mutation_keeps_room_kind(self):
        ind = Individual([asg("L", "L1", 0, lab=True) for _ in range(20)] + [asg("C", "C1", 1)])
        mutate(ind, 1.0, self.pools, self.slots, random.Random(7))
        for a in ind.assignments[:20]:
            self.assertIn(a.room_id, {"L1", "L2"})
            self.assertIn(a.time_slot, self.slots + [slot(0)])
        self.assertEqual(ind.assignments[20].room_id, "C1")

    def test_zero_mutation_rate_changes_nothing(self):
        genes = [asg("L", "L1", 0, lab=True), asg("C", "C1", 1)]
        ind = Individual(list(genes))
        mutate(ind, 0.0, self.pools, self.slots, random.Random(1))
        self.assertEqual(ind.assignments, genes)

    def test_tournament_prefers_fitter(self):
        weak = Individual([], fitness=1)
        strong = Individual([], fitness=5)
        picked = tournament_select([weak, strong], 50, random.Random(11))
        self.assertIs(picked, strong)


if __name__ == "__main__":
    unittest.main()
