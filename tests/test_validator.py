import unittest

from timetable_engine.model import (
    Assignment,
    ConflictKind,
    Room,
    Severity,
    Teacher,
    TimeSlot,
)
from timetable_engine.validator import (
    assignments_from_records,
    build_clash_report,
    find_conflicts,
    find_load_conflicts,
)


def asg(subject, room, idx, teacher=None):
    return Assignment(subject, room, TimeSlot("Monday", "09:00", "10:00", idx), teacher_id=teacher)


class ConflictDetectionTests(unittest.TestCase):
    def test_unique_pairs_have_no_conflicts(self):
        sched = [asg("A", "R1", 0, "T1"), asg("B", "R1", 1, "T1"), asg("C", "R2", 0, "T2")]
        report = find_conflicts(sched)
        self.assertTrue(report.is_valid)
        self.assertEqual(report.conflicts, [])
        self.assertEqual(report.total_sessions, 3)

    def test_shared_room_slot_gives_one_conflict_with_both(self):
        a, b = asg("A", "R1", 3), asg("B", "R1", 3)
        report = find_conflicts([a, b])
        self.assertEqual(report.conflict_count, 1)
        conflict = report.conflicts[0]
        self.assertEqual(conflict.kind, ConflictKind.ROOM_DOUBLE_BOOKED)
        self.assertEqual(conflict.assignments, (a, b))
        self.assertEqual(conflict.room_id, "R1")
        self.assertEqual(conflict.slot_index, 3)
        self.assertEqual(conflict.severity, Severity.CRITICAL)

    def test_each_extra_occupant_is_reported_against_the_first(self):
        a, b, c = asg("A", "R1", 0), asg("B", "R1", 0), asg("C", "R1", 0)
        conflicts = find_conflicts([a, b, c]).conflicts
        self.assertEqual([x.assignments for x in conflicts], [(a, b), (a, c)])

    def test_teacher_double_booking_and_missing_teacher(self):
        sched = [asg("A", "R1", 0, "T1"), asg("B", "R2", 0, "T1"), asg("C", "R3", 0), asg("D", "R4", 0)]
        conflicts = find_conflicts(sched).conflicts
        self.assertEqual(len(conflicts), 1)
        self.assertEqual(conflicts[0].kind, ConflictKind.TEACHER_DOUBLE_BOOKED)
        self.assertEqual(conflicts[0].teacher_id, "T1")

    def test_unknown_references_reported_not_conflicting(self):
        sched = [asg("A", "GHOST", 0, "NOBODY"), asg("B", "GHOST", 0, "NOBODY"), asg("C", "R1", 1)]
        report = find_conflicts(sched, rooms=[Room("R1", "Room 1")], teachers=[Teacher("T1", "One")])
        self.assertTrue(report.is_valid)
        self.assertEqual(report.unknown_rooms, ["GHOST"])
        self.assertEqual(report.unknown_teachers, ["NOBODY"])

    def test_input_is_not_mutated(self):
        sched = [asg("A", "R1", 0), asg("B", "R1", 0)]
        before = list(sched)
        find_conflicts(sched)
        self.assertEqual(sched, before)

    def test_validation_dict_shape(self):
        out = find_conflicts([asg("A", "R1", 0), asg("B", "R1", 0)]).to_dict()
        self.assertFalse(out["isValid"])
        self.assertEqual(out["conflictCount"], 1)
        self.assertEqual(out["totalSessions"], 2)
        self.assertEqual(out["conflicts"][0]["type"], "room_double_booked")
        self.assertEqual(len(out["conflicts"][0]["sessions"]), 2)


class LoadConflictTests(unittest.TestCase):
    def test_overloaded_teacher(self):
        teachers = {"T1": Teacher("T1", "One", max_hours=2)}
        sched = [asg("S", "R1", i, "T1") for i in range(4)]
        conflicts = find_load_conflicts(sched, teachers)
        self.assertEqual(len(conflicts), 1)
        self.assertEqual(conflicts[0].kind, ConflictKind.TEACHER_OVERLOADED)
        self.assertEqual(len(conflicts[0].assignments), 4)

    def test_unavailable_teacher_per_session(self):
        teachers = {"T1": Teacher("T1", "One", is_available=False)}
        conflicts = find_load_conflicts([asg("S", "R1", 0, "T1"), asg("S", "R1", 1, "T1")], teachers)
        self.assertEqual([c.kind for c in conflicts], [ConflictKind.TEACHER_UNAVAILABLE] * 2)

    def test_unknown_teacher_ignored(self):
        self.assertEqual(find_load_conflicts([asg("S", "R1", 0, "X")], {}), [])


class ClashReportTests(unittest.TestCase):
    def test_report_summary(self):
        teachers = {"T1": Teacher("T1", "One", max_hours=1)}
        sched = [asg("A", "R1", 0, "T1"), asg("B", "R1", 0), asg("C", "R2", 1, "T1")]
        conflicts = find_conflicts(sched).conflicts + find_load_conflicts(sched, teachers)
        report = build_clash_report(conflicts, len(sched))
        self.assertEqual(report["summary"]["total"], 2)
        self.assertEqual(report["summary"]["critical"], 1)
        self.assertEqual(report["summary"]["medium"], 1)
        self.assertEqual(report["byType"]["room_double_booked"], 1)
        self.assertEqual(report["byType"]["teacher_overloaded"], 1)
        self.assertEqual(report["summary"]["affectedSessions"], 3)
        self.assertEqual(report["summary"]["conflictRate"], 100.0)
        self.assertFalse(report["canProceed"])
        self.assertTrue(report["requiresReview"])
        self.assertEqual(report["conflicts"][0].severity, Severity.CRITICAL)
        self.assertEqual([r["priority"] for r in report["recommendations"]], ["critical", "medium"])

    def test_clean_report(self):
        report = build_clash_report([], 0)
        self.assertTrue(report["canProceed"])
        self.assertFalse(report["requiresReview"])
        self.assertEqual(report["summary"]["conflictRate"], 0.0)


class RecordConversionTests(unittest.TestCase):
    def test_camel_case_nested_and_snake_case_flat(self):
        rows = [
            {"subjectId": "A", "roomId": "R1", "teacherId": "T1", "isLab": True,
             "timeSlot": {"day": "Monday", "startTime": "09:00", "endTime": "10:00", "slotIndex": 2}},
            {"subject_id": "B", "room_id": "R1", "day": "Monday", "start": "09:00", "end": "10:00",
             "slot_index": "2", "is_lab": "false"},
        ]
        a, b = assignments_from_records(rows)
        self.assertEqual(a.time_slot.slot_index, 2)
        self.assertTrue(a.is_lab)
        self.assertEqual(a.teacher_id, "T1")
        self.assertEqual(b.time_slot.slot_index, 2)
        self.assertFalse(b.is_lab)
        self.assertIsNone(b.teacher_id)
        self.assertEqual(find_conflicts([a, b]).conflict_count, 1)

    def test_rows_without_index_collide_by_day_and_start(self):
        rows = [
            {"subjectId": "A", "roomId": "R1", "day": "Monday", "startTime": "09:00", "endTime": "10:00"},
            {"subjectId": "B", "roomId": "R1", "day": "monday", "startTime": "9:00", "endTime": "10:00"},
            {"subjectId": "C", "roomId": "R1", "day": "Monday", "startTime": "10:00", "endTime": "11:00"},
        ]
        a, b, c = assignments_from_records(rows)
        self.assertEqual(a.time_slot.slot_index, b.time_slot.slot_index)
        self.assertNotEqual(a.time_slot.slot_index, c.time_slot.slot_index)
        report = find_conflicts([a, b, c])
        self.assertEqual(report.conflict_count, 1)
        self.assertEqual(report.conflicts[0].assignments, (a, b))

    def test_row_without_index_joins_indexed_row_at_same_time(self):
        rows = [
            {"subjectId": "A", "teacherId": "T1", "roomId": "R1",
             "timeSlot": {"day": "Tuesday", "startTime": "11:00", "endTime": "12:30", "slotIndex": 5}},
            {"subjectId": "B", "teacherId": "T1", "roomId": "R2",
             "timeSlot": {"day": "Tuesday", "startTime": "11:00:00", "endTime": "12:30:00"}},
        ]
        a, b = assignments_from_records(rows)
        self.assertEqual(b.time_slot.slot_index, 5)
        conflicts = find_conflicts([a, b]).conflicts
        self.assertEqual([c.kind for c in conflicts], [ConflictKind.TEACHER_DOUBLE_BOOKED])

    def test_rows_without_slot_never_collide(self):
        rows = [{"subjectId": "A", "roomId": "R1"}, {"subjectId": "B", "roomId": "R1"}, {}]
        assignments = assignments_from_records(rows)
        self.assertEqual(len(assignments), 3)
        self.assertTrue(find_conflicts(assignments).is_valid)


if __name__ == "__main__":
    unittest.main()
