import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List

import pandas as pd

from timetable_engine.config import load_config
from timetable_engine.data_loader import load_assignments, load_data, timetable_to_dataframe
from timetable_engine.engine import Algorithm, TimetableEngine
from timetable_engine.errors import EngineError
from timetable_engine.model import RunResult
from timetable_engine.validator import build_clash_report


def export_outputs(result: RunResult, df_schedule: pd.DataFrame, out_dir: Path) -> None:
    out_dir.mkdir(parents=True, exist_ok=True)
    df_schedule.to_csv(out_dir / "timetable.csv", index=False)
    pd.DataFrame(
        [
            {"type": c.kind.value, "severity": c.severity.value, "message": c.message}
            for c in result.conflicts
        ],
        columns=["type", "severity", "message"],
    ).to_csv(out_dir / "conflicts.csv", index=False)
    if result.unplaced:
        pd.DataFrame([u.to_dict() for u in result.unplaced]).to_csv(out_dir / "unplaced.csv", index=False)
    if result.metadata.get("generations"):
        pd.DataFrame([g.to_dict() for g in result.metadata["generations"]]).to_csv(
            out_dir / "history.csv", index=False
        )
    pd.DataFrame([result.metrics.to_dict()]).to_csv(out_dir / "metrics.csv", index=False)


def print_summary(result: RunResult) -> None:
    m = result.metrics
    print("\n--- TIMETABLE ---")
    print(f"Algorithm: {result.metadata['algorithm']} | Stop: {result.metadata.get('stopReason')} "
          f"| Time: {result.elapsed_seconds:.2f}s")
    print(f"Fitness: {m.fitness:.1f} | Quality: {m.quality_score:.2f}/100 | "
          f"Scheduling rate: {m.scheduling_rate:.2f}%")
    print(f"Sessions: {m.total_sessions}/{m.required_hours} | Conflicts: {m.total_conflicts}")
    for u in result.unplaced[:20]:
        print(f"  unplaced: {u.subject_id} hour {u.hour_index} ({u.reason.value})")


def cmd_generate(args) -> int:
    cfg = load_config(args.config)
    print("Loading data...")
    bundle = load_data(args.data_dir)
    engine = TimetableEngine(cfg)

    params = {}
    if args.generations is not None:
        params["generations"] = args.generations
    if args.population is not None:
        params["population_size"] = args.population

    print(f"Subjects: {len(bundle.subjects)} | Teachers: {len(bundle.teachers)} | Rooms: {len(bundle.rooms)}")
    result = engine.generate(
        bundle.subjects,
        bundle.teachers,
        bundle.rooms,
        algorithm=args.algorithm,
        params=params,
        time_slots=bundle.time_slots,
        seed=args.seed,
    )
    print_summary(result)

    out_dir = Path(args.out)
    export_outputs(result, timetable_to_dataframe(result.timetable, bundle), out_dir)
    print(f"Results saved to {out_dir}/")
    return 0


def cmd_validate(args) -> int:
    assignments = load_assignments(args.schedule)
    rooms = teachers = None
    if args.data_dir:
        bundle = load_data(args.data_dir)
        rooms, teachers = bundle.rooms, bundle.teachers
    report = TimetableEngine().validate(assignments, rooms=rooms, teachers=teachers)
    out = report.to_dict()
    if args.report:
        clash = build_clash_report(report.conflicts, report.total_sessions)
        out["report"] = {k: v for k, v in clash.items() if k != "conflicts"}
    print(json.dumps(out, indent=2))
    return 0 if report.is_valid else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Automated timetable generation")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Build a timetable from CSV inputs")
    gen.add_argument("--config", default="config.yaml", help="Path to the configuration file")
    gen.add_argument("--data_dir", default="data", help="Directory with subjects/teachers/rooms CSVs")
    gen.add_argument("--algorithm", default="greedy", choices=[a.value for a in Algorithm])
    gen.add_argument("--seed", type=int, default=None)
    gen.add_argument("--generations", type=int, default=None)
    gen.add_argument("--population", type=int, default=None)
    gen.add_argument("--out", default="outputs")
    gen.set_defaults(func=cmd_generate)

    val = sub.add_parser("validate", help="Check an existing timetable for double-bookings")
    val.add_argument("--schedule", required=True, help="CSV or JSON timetable")
    val.add_argument("--data_dir", default=None, help="Optional catalogs to flag unknown rooms/teachers")
    val.add_argument("--report", action="store_true", help="Include the clash report summary")
    val.set_defaults(func=cmd_validate)
    return parser


def main(argv: List[str] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return args.func(args)
    except EngineError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
