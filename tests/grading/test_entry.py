"""
Unit Tests for Batch Mark Entry

Tests for enter_marks / update_marks and their per-student accounting.
"""

import pytest

from cbc_toolkit.core.errors import ConflictError, NotFoundError, RequestError
from cbc_toolkit.core.models.assessments import AssessmentKey
from cbc_toolkit.core.schemas.validator import SchemaError
from cbc_toolkit.grading.entry import (
    EntryAction,
    MarkEntryRequest,
    enter_marks,
    ensure_writable,
    update_marks,
)


def _request(subject="Mathematics", exam="Opener", marks=(), class_name="10N", allow_update=False):
    return MarkEntryRequest(
        subject_name=subject,
        term="Term 1",
        exam=exam,
        year=2025,
        marks=marks,
        class_name=class_name,
        allow_update=allow_update,
    )


def _mark(adm_no, *scores):
    return {"admNo": adm_no, "papers": [{"paperNo": n, "score": s} for n, s in enumerate(scores, 1)]}


class TestMarkEntryRequest:
    """Tests for MarkEntryRequest.from_dict."""

    def test_from_dict_when_valid_then_fields_trimmed(self):
        request = MarkEntryRequest.from_dict({
            "className": " 10N ",
            "subjectName": " Mathematics ",
            "term": "Term 1",
            "exam": "Opener ",
            "year": "2025",
            "marks": [_mark("S001", 45)],
        })

        assert request.class_name == "10N"
        assert request.subject_name == "Mathematics"
        assert request.exam == "Opener"
        assert request.year == 2025
        assert request.allow_update is False

    def test_from_dict_when_updates_key_then_used_as_marks(self):
        """Update payloads carry their entries under `updates`."""
        request = MarkEntryRequest.from_dict({
            "subjectName": "Biology", "term": "Term 1", "exam": "Opener", "year": 2025,
            "updates": [_mark("S001", 60, 40, 30)],
        })

        assert len(request.marks) == 1
        assert request.class_name is None

    def test_from_dict_when_subject_missing_then_raises_request_error(self):
        with pytest.raises(RequestError) as exc:
            MarkEntryRequest.from_dict({"term": "Term 1", "exam": "Opener", "year": 2025, "marks": []})
        assert exc.value.parameter == "subjectName"

    def test_from_dict_when_marks_missing_then_raises_schema_error(self):
        with pytest.raises(SchemaError):
            MarkEntryRequest.from_dict({"subjectName": "Biology", "term": "Term 1", "exam": "Opener", "year": 2025})


class TestEnterMarks:
    """Tests for enter_marks."""

    def test_enter_when_blank_paper_then_absent_and_percentage(self, directory, catalog):
        """Two 50-mark papers, 45 and blank: 45 of 100, one absence."""
        outcome = enter_marks(_request(marks=[_mark("S001", 45, "")]), directory=directory, catalog=catalog)

        (assessment,) = outcome.assessments
        assert assessment.total_score == 45
        assert assessment.total_out_of == 100
        assert assessment.absent_count == 1
        assert assessment.percentage == "45.00"
        assert assessment.computed_score == 45.0
        assert assessment.grade == "Approaching Expectations 1"
        assert assessment.class_name == "10N"
        assert outcome.actions[0].action is EntryAction.INSERTED

    def test_enter_when_score_out_of_range_then_only_that_student_rejected(self, directory, catalog):
        """120 on a 100-mark paper voids that record; the rest of the batch is written."""
        request = _request(exam="Midterm", marks=[_mark("S001", 120), _mark("S002", 70)])

        outcome = enter_marks(request, directory=directory, catalog=catalog)

        assert [r.adm_no for r in outcome.results] == ["S002"]
        assert outcome.results[0].score == 70
        (skipped,) = outcome.actions_of(EntryAction.SKIPPED)
        assert skipped.adm_no == "S001"
        assert skipped.reason == "Invalid or missing scores"
        (error,) = outcome.errors
        assert error.to_dict() == {
            "admNo": "S001",
            "message": "Paper 1 score must be between 0 and 100",
            "paperNo": 1,
            "submittedValue": 120,
            "max": 100,
        }
        assert [a.adm_no for a in outcome.assessments] == ["S002"]

    def test_enter_when_science_then_weighted_score(self, directory, catalog):
        """Biology weights paper percentages 30/30/40."""
        outcome = enter_marks(
            _request(subject="biology", marks=[_mark("S001", 60, 40, 30)]),
            directory=directory, catalog=catalog,
        )

        (result,) = outcome.results
        assert outcome.subject == "Biology"
        assert outcome.code == "BIO"
        assert outcome.assessments[0].computed_score == 67.5
        assert result.score == 68
        assert result.grade == "Meeting Expectations 1"

    def test_enter_when_unknown_student_then_error_and_batch_continues(self, directory, catalog):
        outcome = enter_marks(
            _request(marks=[_mark("X999", 10, 10), _mark("s002", 20, 20)]),
            directory=directory, catalog=catalog,
        )

        assert outcome.count == 1
        assert outcome.results[0].adm_no == "S002"
        assert outcome.errors[0].adm_no == "X999"
        assert outcome.errors[0].message == "Student not found"

    def test_enter_when_entry_has_no_papers_then_error(self, directory, catalog):
        outcome = enter_marks(
            _request(marks=[{"admNo": "S001"}, {"papers": []}, "junk"]),
            directory=directory, catalog=catalog,
        )

        assert outcome.count == 0
        assert [e.message for e in outcome.errors] == ["Missing papers or admNo"] * 3

    def test_enter_when_existing_and_no_update_then_skipped_as_conflict(
        self, directory, catalog, make_assessment
    ):
        """Existing assessments are left alone unless updates are allowed."""
        existing = [make_assessment("S001", "Mathematics", 50)]

        outcome = enter_marks(
            _request(marks=[_mark("S001", 45, 45)]), directory=directory, catalog=catalog, existing=existing,
        )

        assert outcome.count == 0
        assert outcome.assessments == ()
        (action,) = outcome.actions
        assert action.action is EntryAction.SKIPPED
        assert action.reason == "Existing entry — update not allowed"

    def test_enter_when_existing_and_update_allowed_then_updated(self, directory, catalog, make_assessment):
        existing = [make_assessment("S001", "Mathematics", 50)]

        outcome = enter_marks(
            _request(marks=[_mark("S001", 45, 45)], allow_update=True),
            directory=directory, catalog=catalog, existing=existing,
        )

        (action,) = outcome.actions
        assert action.action is EntryAction.UPDATED
        assert action.to_dict() == {
            "admNo": "S001",
            "action": "updated",
            "score": 90,
            "grade": "Exceeding Expectations 2",
            "remark": "Consistently applies skills and understands deeply.",
        }

    def test_enter_when_student_twice_in_batch_then_second_skipped(self, directory, catalog):
        """The first entry for a student wins; repeats are skipped."""
        outcome = enter_marks(
            _request(marks=[_mark("S001", 10, 10), _mark("S001", 40, 40)]),
            directory=directory, catalog=catalog,
        )

        assert outcome.count == 1
        assert outcome.assessments[0].total_score == 20
        assert [a.action for a in outcome.actions] == [EntryAction.INSERTED, EntryAction.SKIPPED]
        assert outcome.actions[1].reason == "Duplicate entry in batch"

    def test_enter_when_student_twice_with_allow_update_then_one_assessment(self, directory, catalog):
        outcome = enter_marks(
            _request(marks=[_mark("S001", 20, 20), _mark("S001", 45, 45)], allow_update=True),
            directory=directory, catalog=catalog,
        )

        assert outcome.count == 1
        (assessment,) = outcome.assessments
        assert assessment.computed_score == 40.0
        assert [a.action for a in outcome.actions] == [EntryAction.INSERTED, EntryAction.SKIPPED]

    def test_enter_when_no_class_then_raises_request_error(self, directory, catalog):
        with pytest.raises(RequestError):
            enter_marks(_request(class_name=None), directory=directory, catalog=catalog)

    def test_enter_when_unknown_class_then_raises_not_found(self, directory, catalog):
        with pytest.raises(NotFoundError, match="Class '9Z' not found"):
            enter_marks(_request(class_name="9Z"), directory=directory, catalog=catalog)

    def test_enter_when_unknown_subject_then_raises_not_found(self, directory, catalog):
        with pytest.raises(NotFoundError, match="Subject not found"):
            enter_marks(_request(subject="Chemistry"), directory=directory, catalog=catalog)

    def test_enter_when_no_paper_config_then_raises_not_found(self, directory, catalog):
        """Paper configuration is looked up for the class's grade."""
        with pytest.raises(NotFoundError, match="Paper configuration not found"):
            enter_marks(_request(subject="Physics"), directory=directory, catalog=catalog)

    def test_to_dict_when_outcome_then_three_way_accounting(self, directory, catalog):
        outcome = enter_marks(
            _request(marks=[_mark("S001", 45, 45), _mark("X1", 1, 1)]), directory=directory, catalog=catalog,
        )

        data = outcome.to_dict()

        assert data["message"] == "Mark entry completed"
        assert data["className"] == "10N"
        assert data["count"] == 1
        assert data["results"] == [{
            "admNo": "S001", "name": "Amina Otieno", "score": 90,
            "grade": "Exceeding Expectations 2",
            "remark": "Consistently applies skills and understands deeply.",
        }]
        assert len(data["actions"]) == 1
        assert len(data["errors"]) == 1


class TestEnsureWritable:
    """Tests for ensure_writable."""

    def test_ensure_when_existing_without_update_then_raises_conflict(self, make_assessment):
        previous = make_assessment("S001", "Mathematics", 50)

        with pytest.raises(ConflictError) as exc:
            ensure_writable(previous.key, previous, allow_update=False)
        assert exc.value.key == previous.key

    def test_ensure_when_nothing_stored_then_no_error(self):
        key = AssessmentKey.of("S001", "Mathematics", "Term 1", "Opener", 2025)
        ensure_writable(key, None, allow_update=False)


class TestUpdateMarks:
    """Tests for update_marks."""

    def test_update_when_existing_then_rescored_with_grade_setup(
        self, directory, catalog, opener_assessments
    ):
        """The setup comes from the student's grade; missing records are skipped."""
        request = _request(subject="Biology", class_name=None, marks=[
            _mark("S001", 60, 40, 30),
            _mark("S002", 10, 10, 10),
        ])

        outcome = update_marks(request, directory=directory, catalog=catalog, existing=opener_assessments)

        assert outcome.message == "Bulk mark update completed"
        (updated,) = outcome.actions_of(EntryAction.UPDATED)
        assert updated.adm_no == "S001"
        assert outcome.assessments[0].computed_score == 67.5
        assert outcome.assessments[0].class_name == "10N"
        (skipped,) = outcome.actions_of(EntryAction.SKIPPED)
        assert (skipped.adm_no, skipped.reason) == ("S002", "Assessment not found")

    def test_update_when_no_setup_for_grade_then_skipped(self, directory, catalog, opener_assessments):
        outcome = update_marks(
            _request(subject="Kiswahili", marks=[_mark("S001", 50)]),
            directory=directory, catalog=catalog, existing=opener_assessments,
        )

        (skipped,) = outcome.actions
        assert skipped.reason == "PaperConfig not found"

    def test_update_when_invalid_scores_then_rejected_with_violations(
        self, directory, catalog, opener_assessments
    ):
        outcome = update_marks(
            _request(marks=[_mark("S001", 60, "abc")]),
            directory=directory, catalog=catalog, existing=opener_assessments,
        )

        assert outcome.count == 0
        assert [e.paper_no for e in outcome.errors] == [1, 2]

    def test_update_when_no_entries_then_raises_request_error(self, directory, catalog, opener_assessments):
        with pytest.raises(RequestError):
            update_marks(_request(marks=[]), directory=directory, catalog=catalog, existing=opener_assessments)

    def test_update_when_student_twice_then_first_entry_only(self, directory, catalog, opener_assessments):
        outcome = update_marks(
            _request(subject="Biology", class_name=None, marks=[
                _mark("S001", 60, 40, 30),
                _mark("S001", 80, 80, 40),
            ]),
            directory=directory, catalog=catalog, existing=opener_assessments,
        )

        (assessment,) = outcome.assessments
        assert assessment.computed_score == 67.5
        assert [a.reason for a in outcome.actions_of(EntryAction.SKIPPED)] == ["Duplicate entry in batch"]

    def test_update_when_exam_not_recorded_then_raises_not_found(self, directory, catalog, opener_assessments):
        with pytest.raises(NotFoundError, match="not recognized"):
            update_marks(
                _request(exam="Endterm", marks=[_mark("S001", 1, 1)]),
                directory=directory, catalog=catalog, existing=opener_assessments,
            )
