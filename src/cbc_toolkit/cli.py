"""Command-line entry point.

Runs the grading core over a JSON snapshot of the school directory, paper
configuration and stored assessments, and prints the result as JSON.

Usage:
    cbc-toolkit --snapshot school.json enter-marks --request marks.json
    cbc-toolkit --snapshot school.json broadsheet --grade 10 --term "Term 1" --exam Opener --year 2025
    cbc-toolkit --snapshot school.json rank-classes --grade all --term "Term 1" --exam Midterm --year 2025
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from cbc_toolkit import __version__
from cbc_toolkit.common.exams import ExamCalendar
from cbc_toolkit.core.errors import GradingError, RequestError
from cbc_toolkit.core.utils.serialization import (
    Snapshot,
    dump_json,
    load_snapshot,
    serialize_assessment,
)
from cbc_toolkit.grading.config import DEFAULT_GRADING_CONFIG, GradingConfig, load_grading_config
from cbc_toolkit.grading.entry import MarkEntryRequest, enter_marks, update_marks
from cbc_toolkit.reports import (
    build_broadsheet,
    build_broadsheet_bundle,
    build_grade_distribution,
    build_report_cards,
    rank_classes_and_grades,
    rank_subjects,
    summarize_assessment,
)

logger = logging.getLogger("cbc_toolkit.cli")


def _add_period(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--term", required=True, help='Term name, e.g. "Term 1"')
    parser.add_argument("--exam", required=True, help="Exam name, e.g. Opener")
    parser.add_argument("--year", required=True, type=int, help="Academic year")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cbc-toolkit",
        description="Assessment aggregation and ranking over a school snapshot",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--snapshot", required=True, type=Path, help="Snapshot JSON file")
    parser.add_argument("--config", type=Path, help="Grading configuration JSON file")
    parser.add_argument("--output", "-o", type=Path, help="Write JSON here instead of stdout")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    entry = sub.add_parser("enter-marks", help="Batch mark entry or update")
    entry.add_argument("--request", required=True, type=Path, help="Mark entry request JSON")
    entry.add_argument("--update", action="store_true", help="Re-score existing assessments")

    sheet = sub.add_parser("broadsheet", help="Class or grade broadsheet")
    _add_period(sheet)
    sheet.add_argument("--class", dest="class_name", help="Class name")
    sheet.add_argument("--grade", help='Grade level, e.g. 10 or "Grade 10"')
    sheet.add_argument("--pathway", default="general", help='"general" or a pathway name')
    sheet.add_argument("--bundle", action="store_true", help="One broadsheet per pathway of --grade")

    dist = sub.add_parser("distribution", help="Grade distribution per pathway")
    _add_period(dist)
    dist.add_argument("--level", required=True, help='"all", a grade, or a class name')

    classes = sub.add_parser("rank-classes", help="Class and grade rankings")
    _add_period(classes)
    classes.add_argument("--grade", default="all", help='"all" or a grade level')

    subjects = sub.add_parser("rank-subjects", help="Subject rankings per class")
    _add_period(subjects)
    subjects.add_argument("--grade", required=True, help="Grade level")

    cards = sub.add_parser("report-cards", help="Report cards for a class or student")
    _add_period(cards)
    cards.add_argument("--class", dest="class_name", help="Class name")
    cards.add_argument("--adm-no", help="Single student admission number")

    lookup = sub.add_parser("lookup", help="One student's assessment in one subject")
    _add_period(lookup)
    lookup.add_argument("--adm-no", required=True, help="Admission number")
    lookup.add_argument("--subject", required=True, help="Subject name")

    return parser


def _config_for(args: argparse.Namespace, snapshot: Snapshot, config: GradingConfig) -> GradingConfig:
    """Use the exam order configured for the term when paper setups define one."""
    term = getattr(args, "term", None)
    if term and snapshot.catalog.exam_sequence(term, args.year):
        calendar = ExamCalendar.from_setups(snapshot.catalog, term=term, year=args.year)
        if calendar != config.calendar:
            logger.debug("Exam order for %s %s: %s", term, args.year, ", ".join(calendar.exams))
            config = replace(config, calendar=calendar)
    return config


def _period(args: argparse.Namespace) -> Dict[str, Any]:
    return {"term": args.term, "exam": args.exam, "year": args.year}


def _run_enter_marks(args, snapshot: Snapshot, config: GradingConfig) -> Any:
    try:
        with open(args.request, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise RequestError(f"Invalid JSON in {args.request}: {e}", parameter="request") from e
    request = MarkEntryRequest.from_dict(data)
    operation = update_marks if args.update else enter_marks
    outcome = operation(
        request,
        directory=snapshot.directory,
        catalog=snapshot.catalog,
        existing=snapshot.assessments,
        config=config,
    )
    return {**outcome.to_dict(), "assessments": [serialize_assessment(a) for a in outcome.assessments]}


def _run_broadsheet(args, snapshot: Snapshot, config: GradingConfig) -> Any:
    common = dict(
        directory=snapshot.directory, assessments=snapshot.assessments, config=config, **_period(args)
    )
    if args.bundle:
        return [sheet.to_dict() for sheet in build_broadsheet_bundle(grade=args.grade, **common)]
    return build_broadsheet(
        pathway=args.pathway, class_name=args.class_name, grade=args.grade, **common
    ).to_dict()


def _run_distribution(args, snapshot: Snapshot, config: GradingConfig) -> Any:
    return build_grade_distribution(
        args.level,
        directory=snapshot.directory,
        assessments=snapshot.assessments,
        config=config,
        **_period(args),
    ).to_dict()


def _run_rank_classes(args, snapshot: Snapshot, config: GradingConfig) -> Any:
    return rank_classes_and_grades(
        args.grade,
        directory=snapshot.directory,
        assessments=snapshot.assessments,
        config=config,
        **_period(args),
    ).to_dict()


def _run_rank_subjects(args, snapshot: Snapshot, config: GradingConfig) -> Any:
    return rank_subjects(
        args.grade,
        directory=snapshot.directory,
        assessments=snapshot.assessments,
        config=config,
        **_period(args),
    ).to_dict()


def _run_report_cards(args, snapshot: Snapshot, config: GradingConfig) -> Any:
    return build_report_cards(
        class_name=args.class_name,
        adm_no=args.adm_no,
        directory=snapshot.directory,
        assessments=snapshot.assessments,
        config=config,
        **_period(args),
    ).to_dict()


def _run_lookup(args, snapshot: Snapshot, config: GradingConfig) -> Any:
    return summarize_assessment(
        args.adm_no,
        args.subject,
        directory=snapshot.directory,
        assessments=snapshot.assessments,
        **_period(args),
    ).to_dict()


COMMANDS: Dict[str, Callable[[argparse.Namespace, Snapshot, GradingConfig], Any]] = {
    "enter-marks": _run_enter_marks,
    "broadsheet": _run_broadsheet,
    "distribution": _run_distribution,
    "rank-classes": _run_rank_classes,
    "rank-subjects": _run_rank_subjects,
    "report-cards": _run_report_cards,
    "lookup": _run_lookup,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_grading_config(args.config) if args.config else DEFAULT_GRADING_CONFIG
        snapshot = load_snapshot(args.snapshot, config=config)
        unknown = config.weighting.unknown_subjects(snapshot.directory.subjects)
        if unknown:
            logger.warning("Weighting rules name unknown subjects: %s", ", ".join(unknown))
        config = _config_for(args, snapshot, config)
        payload = COMMANDS[args.command](args, snapshot, config)
    except (GradingError, FileNotFoundError) as e:
        logger.error("%s failed: %s", args.command, e)
        print(json.dumps({"error": str(e)}), file=sys.stderr)
        return 1

    text = dump_json(payload)
    if args.output:
        args.output.write_text(text + "\n", encoding="utf-8")
        logger.info("Wrote %s", args.output)
    else:
        print(text)
    return 0


if __name__ == "__main__":
    sys.exit(main())
