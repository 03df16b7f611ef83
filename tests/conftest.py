import sys
from pathlib import Path

import pytest

# Add src to sys.path so we can import cbc_toolkit
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if SRC_PATH.as_posix() not in sys.path:
    sys.path.insert(0, SRC_PATH.as_posix())

from cbc_toolkit.core.models.directory import SchoolClass, SchoolDirectory, Student, Subject  # noqa: E402
from cbc_toolkit.core.models.papers import PaperConfig, PaperConfigCatalog, PaperSetup  # noqa: E402
from cbc_toolkit.grading.entry import build_assessment  # noqa: E402
from cbc_toolkit.grading.normalizer import normalize_scores  # noqa: E402

STEM = ("English", "Mathematics", "Kiswahili", "Biology", "Physics")
SOCIAL = ("English", "Mathematics", "Kiswahili", "History", "Geography")

# Opener scores (single paper out of 100, so computed score == score)
OPENER_SCORES = {
    "S001": {"English": 80, "Mathematics": 90, "Kiswahili": 70, "Biology": 85, "Physics": 75},
    "S002": {"English": 60, "Mathematics": 50, "Kiswahili": 70, "History": 65, "Geography": 55},
    "S003": {"English": 40.5, "Mathematics": 45},
    "S004": {"English": 70, "Mathematics": 72, "Kiswahili": 68, "Biology": 74, "Physics": 66},
    "S005": {"English": 90, "Mathematics": 88, "Kiswahili": 92, "History": 86, "Geography": 94},
}

# Midterm: S001 +5 everywhere, S002 and S005 unchanged, S004 -5, S003 absent
MIDTERM_SCORES = {
    "S001": {s: v + 5 for s, v in OPENER_SCORES["S001"].items()},
    "S002": dict(OPENER_SCORES["S002"]),
    "S004": {s: v - 5 for s, v in OPENER_SCORES["S004"].items()},
    "S005": dict(OPENER_SCORES["S005"]),
}


@pytest.fixture
def subjects():
    return (
        Subject("English", "ENG", "Eng", "Compulsory"),
        Subject("Mathematics", "MAT", "Math", "Compulsory"),
        Subject("Kiswahili", "KIS", "Kis", "Compulsory"),
        Subject("Biology", "BIO", "Bio", "STEM", "STEM"),
        Subject("Physics", "PHY", "Phy", "STEM", "STEM"),
        Subject("History", "HIS", "Hist", "Humanities", "Social Sciences"),
        Subject("Geography", "GEO", "Geo", "Humanities", "Social Sciences"),
    )


@pytest.fixture
def directory(subjects) -> SchoolDirectory:
    """Two grade 10 classes and one grade 11 class."""
    return SchoolDirectory(
        classes=(
            SchoolClass("10N", 10, "North"),
            SchoolClass("10S", 10, "South"),
            SchoolClass("11E", 11, "East"),
        ),
        students=(
            Student("S001", "Amina Otieno", "10N", "STEM", STEM),
            Student("S002", "Brian Kamau", "10N", "Social Sciences", SOCIAL),
            Student("S003", "Cheru Wanjiku", "10N", "STEM", STEM),
            Student("S004", "Daniel Mwangi", "10S", "STEM", STEM),
            Student("S005", "Esther Achieng", "11E", "Social Sciences", SOCIAL),
            Student("S006", "Felix Njoroge", "11E", "Social Sciences", SOCIAL, status="graduated"),
        ),
        subjects=subjects,
    )


@pytest.fixture
def catalog() -> PaperConfigCatalog:
    """Two 50-mark Mathematics papers and three science papers for grade 10 Opener."""
    return PaperConfigCatalog.from_setups((
        PaperSetup(
            "Mathematics", 10, "Term 1", "Opener", 2025,
            (PaperConfig(1, 50), PaperConfig(2, 50)), sequence=1,
        ),
        PaperSetup(
            "Biology", 10, "Term 1", "Opener", 2025,
            (PaperConfig(1, 80), PaperConfig(2, 80), PaperConfig(3, 40)), sequence=1,
        ),
        PaperSetup(
            "Mathematics", 10, "Term 1", "Midterm", 2025,
            (PaperConfig(1, 100),), sequence=2,
        ),
        PaperSetup(
            "Mathematics", 11, "Term 1", "Opener", 2025,
            (PaperConfig(1, 100),), sequence=1,
        ),
    ))


@pytest.fixture
def make_assessment(directory):
    """Factory for assessments scored from one 100-mark paper."""
    def make(adm_no, subject, score, *, exam="Opener", term="Term 1", year=2025, class_name=None):
        student = directory.student(adm_no)
        scores = normalize_scores(
            (PaperConfig(1, 100),), [{"paperNo": 1, "score": score}], adm_no=adm_no
        )
        return build_assessment(
            adm_no=adm_no,
            subject_name=subject,
            class_name=class_name or student.class_name,
            term=term,
            exam=exam,
            year=year,
            scores=scores,
        )
    return make


@pytest.fixture
def opener_assessments(make_assessment):
    return [
        make_assessment(adm_no, subject, score)
        for adm_no, scores in OPENER_SCORES.items()
        for subject, score in scores.items()
    ]


@pytest.fixture
def term_assessments(make_assessment, opener_assessments):
    """Opener plus Midterm assessments for Term 1 2025."""
    midterm = [
        make_assessment(adm_no, subject, score, exam="Midterm")
        for adm_no, scores in MIDTERM_SCORES.items()
        for subject, score in scores.items()
    ]
    return opener_assessments + midterm
