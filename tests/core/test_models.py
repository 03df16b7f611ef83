"""
Unit Tests for Core Models

Tests for paper configuration, paper scores, assessments and the school
directory lookups.
"""

import pytest

from cbc_toolkit.core.errors import NotFoundError
from cbc_toolkit.core.models.assessments import AssessmentKey
from cbc_toolkit.core.models.directory import SchoolDirectory, Student
from cbc_toolkit.core.models.papers import ABSENT, PaperConfig, PaperScore, PaperSetup


class TestPaperConfig:
    """Tests for PaperConfig."""

    def test_init_when_paper_zero_then_raises_error(self):
        """Paper numbers start at 1."""
        with pytest.raises(ValueError, match="paper_no must be >= 1"):
            PaperConfig(0, 50)

    def test_init_when_negative_total_then_raises_error(self):
        with pytest.raises(ValueError, match="cannot be negative"):
            PaperConfig(1, -5)

    def test_from_dict_when_camel_case_keys_then_parsed(self):
        """from_dict reads the stored camelCase form."""
        assert PaperConfig.from_dict({"paperNo": "2", "total": 80}) == PaperConfig(2, 80.0)


class TestPaperScore:
    """Tests for PaperScore."""

    def test_init_when_score_above_total_then_raises_error(self):
        """Scores are bounded by the paper maximum."""
        with pytest.raises(ValueError, match="outside"):
            PaperScore(1, 51, 50)

    def test_effective_score_when_absent_then_zero(self):
        """Absent papers count as zero towards totals."""
        paper = PaperScore(1, ABSENT, 50)
        assert paper.is_absent
        assert paper.effective_score == 0.0
        assert paper.percentage == 0.0

    def test_percentage_when_zero_total_then_zero(self):
        """A zero-mark paper never divides by zero."""
        assert PaperScore(1, 0, 0).percentage == 0.0


class TestPaperSetup:
    """Tests for PaperSetup."""

    def test_init_when_no_papers_then_raises_error(self):
        with pytest.raises(ValueError, match="has no papers"):
            PaperSetup("Biology", 10, "Term 1", "Opener", 2025, ())

    def test_init_when_duplicate_paper_numbers_then_raises_error(self):
        with pytest.raises(ValueError, match="Duplicate paper numbers"):
            PaperSetup("Biology", 10, "Term 1", "Opener", 2025, (PaperConfig(1, 50), PaperConfig(1, 50)))

    def test_matches_when_names_differ_in_case_then_true(self):
        """Subject, term and exam are matched after normalisation."""
        setup = PaperSetup("Biology", 10, "Term 1", "Opener", 2025, (PaperConfig(1, 50),))
        assert setup.matches("biology", 10, "term 1", " OPENER", 2025)
        assert not setup.matches("Biology", 11, "Term 1", "Opener", 2025)

    def test_out_of_when_two_papers_then_sum_of_totals(self):
        setup = PaperSetup("Biology", 10, "Term 1", "Opener", 2025, (PaperConfig(1, 80), PaperConfig(2, 40)))
        assert setup.out_of == 120
        assert setup.total_map == {1: 80, 2: 40}


class TestPaperConfigCatalog:
    """Tests for PaperConfigCatalog."""

    def test_get_when_configured_then_returns_setup(self, catalog):
        """get() finds the setup for subject/grade/term/exam/year."""
        setup = catalog.get("mathematics", 10, "Term 1", "Opener", 2025)
        assert setup.out_of == 100

    def test_get_when_missing_then_raises_not_found(self, catalog):
        """An unconfigured subject raises NotFoundError."""
        with pytest.raises(NotFoundError, match="Paper configuration not found"):
            catalog.get("Physics", 10, "Term 1", "Opener", 2025)

    def test_exam_sequence_when_sequenced_then_ordered_unique(self, catalog):
        """Exam names appear once each, in sequence order."""
        assert catalog.exam_sequence("Term 1", 2025) == ("Opener", "Midterm")

    def test_exam_sequence_when_unknown_term_then_empty(self, catalog):
        assert catalog.exam_sequence("Term 3", 2025) == ()


class TestSubjectAssessment:
    """Tests for SubjectAssessment."""

    def test_init_when_adm_no_lowercase_then_normalised(self, make_assessment):
        """Admission numbers are stored upper-case."""
        assessment = make_assessment("s001", "Biology", 85)
        assert assessment.adm_no == "S001"

    def test_key_when_names_differ_in_case_then_equal(self, make_assessment):
        """The identity key is normalised."""
        assessment = make_assessment("S001", "Biology", 85)
        assert assessment.key == AssessmentKey.of("s001", "BIOLOGY", "term 1", "opener", "2025")

    def test_init_when_absent_count_wrong_then_raises_error(self, make_assessment):
        """absent_count must agree with the papers."""
        from dataclasses import replace

        assessment = make_assessment("S001", "Biology", 85)
        with pytest.raises(ValueError, match="absent_count"):
            replace(assessment, absent_count=1)

    def test_init_when_computed_score_above_100_then_raises_error(self, make_assessment):
        from dataclasses import replace

        assessment = make_assessment("S001", "Biology", 85)
        with pytest.raises(ValueError, match="computed_score outside"):
            replace(assessment, computed_score=100.5)

    def test_in_period_when_term_case_differs_then_true(self, make_assessment):
        assessment = make_assessment("S001", "Biology", 85)
        assert assessment.in_period("TERM 1", 2025)
        assert not assessment.in_period("Term 1", 2024)


class TestSchoolDirectory:
    """Tests for SchoolDirectory lookups."""

    def test_student_when_lowercase_adm_no_then_found(self, directory):
        assert directory.student("s002").name == "Brian Kamau"

    def test_student_when_unknown_then_raises_not_found(self, directory):
        """Unknown students raise NotFoundError with the entity kind."""
        with pytest.raises(NotFoundError, match="Student not found") as exc:
            directory.student("X999")
        assert exc.value.kind == "student"

    def test_school_class_when_unknown_then_raises_not_found(self, directory):
        with pytest.raises(NotFoundError, match="Class '12W' not found"):
            directory.school_class("12W")

    def test_grade_of_when_class_known_then_explicit_grade(self, directory):
        """Grade level comes from the class record."""
        assert directory.grade_of(directory.student("S005")) == 11

    def test_grade_of_when_class_unknown_then_none(self):
        directory = SchoolDirectory(students=(Student("S1", "A", "Nowhere"),))
        assert directory.grade_of(directory.student("S1")) is None

    def test_classes_in_grade_when_no_classes_then_raises_not_found(self, directory):
        with pytest.raises(NotFoundError, match="No classes found for grade '12'"):
            directory.classes_in_grade(12)

    def test_students_in_classes_when_one_class_then_sorted_by_adm_no(self, directory):
        students = directory.students_in_classes(["10n"])
        assert [s.adm_no for s in students] == ["S001", "S002", "S003"]

    def test_subjects_of_when_selection_then_directory_subjects(self, directory):
        names = [s.name for s in directory.subjects_of(directory.student("S001"))]
        assert names == ["English", "Mathematics", "Kiswahili", "Biology", "Physics"]

    def test_pathway_names_when_subjects_loaded_then_sorted_distinct(self, directory):
        """Compulsory subjects carry no pathway; the rest are listed once each."""
        assert directory.pathway_names() == ("Social Sciences", "STEM")

    def test_is_active_when_graduated_then_false(self, directory):
        assert not directory.student("S006").is_active
        assert directory.student("S005").is_active
