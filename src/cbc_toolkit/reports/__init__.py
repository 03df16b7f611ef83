"""
Reports Package

Assembles report data (report cards, broadsheets, grade distributions,
class/grade rankings, subject rankings) from assessment snapshots. Every
report is a frozen dataclass with a to_dict() for rendering collaborators.
"""

from .broadsheet import Broadsheet, BroadsheetRow, build_broadsheet, build_broadsheet_bundle
from .distribution import DistributionMode, GradeDistribution, build_grade_distribution
from .lookup import AssessmentSummary, ClassPaperRow, fetch_class_papers, summarize_assessment
from .rankings import ClassGradeRanking, SubjectRanking, rank_classes_and_grades, rank_subjects
from .report_cards import ReportCard, ReportCardBatch, build_report_cards

__all__ = [
    "AssessmentSummary",
    "Broadsheet",
    "BroadsheetRow",
    "ClassGradeRanking",
    "ClassPaperRow",
    "DistributionMode",
    "GradeDistribution",
    "ReportCard",
    "ReportCardBatch",
    "SubjectRanking",
    "build_broadsheet",
    "build_broadsheet_bundle",
    "build_grade_distribution",
    "build_report_cards",
    "fetch_class_papers",
    "rank_classes_and_grades",
    "rank_subjects",
    "summarize_assessment",
]
