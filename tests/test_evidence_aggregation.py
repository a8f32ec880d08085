import pytest
from datetime import date
from sqlalchemy.exc import OperationalError

from hr_evidence.core.exceptions import InvalidInputError, PersistenceError, ResourceNotFoundError
from hr_evidence.models.evaluation import Evaluation
from hr_evidence.models.evidence_result import EvidenceEvaluationResult
from hr_evidence.schemas.period import PeriodWindow
from hr_evidence.services.evidence_aggregation import EvidenceAggregator, aggregation_statistics

DIMENSIONS = ["responsibilities", "kpis", "competencies", "values"]


def _results(db_session, evaluation_id):
    rows = (
        db_session.query(EvidenceEvaluationResult)
        .filter(EvidenceEvaluationResult.evaluation_id == evaluation_id)
        .all()
    )
    return {row.dimension: row for row in rows}


def _snapshot(db_session, evaluation_id):
    return sorted(
        (
            row.id, row.dimension, row.evidence_count, row.avg_star_rating,
            row.total_positive_entries, row.total_negative_entries, row.calculated_score,
        )
        for row in _results(db_session, evaluation_id).values()
    )


def test_kpi_scenario_counts_and_average(db_session, employee, evaluation, period, add_entry):
    """Three kpis entries rated 5, 4, 3 inside the period."""
    for rating in (5, 4, 3):
        add_entry("kpis", rating)

    assert EvidenceAggregator(db_session).aggregate(employee.id, evaluation.id, period) is True

    kpis = _results(db_session, evaluation.id)["kpis"]
    assert kpis.evidence_count == 3
    assert kpis.avg_star_rating == 4.0
    assert kpis.total_positive_entries == 2
    assert kpis.total_negative_entries == 0
    # 3 of 10 entries needed for full confidence
    assert kpis.calculated_score == pytest.approx(1.2)


def test_always_four_rows_even_without_evidence(db_session, employee, evaluation, period):
    EvidenceAggregator(db_session).aggregate(employee.id, evaluation.id, period)

    results = _results(db_session, evaluation.id)
    assert sorted(results) == sorted(DIMENSIONS)
    for row in results.values():
        assert row.evidence_count == 0
        assert row.avg_star_rating == 0
        assert row.calculated_score == 0
        assert row.total_positive_entries == 0
        assert row.total_negative_entries == 0


def test_dimension_without_entries_gets_zero_row(db_session, employee, evaluation, period, add_entry):
    add_entry("competencies", 4)
    add_entry("responsibilities", 2)

    EvidenceAggregator(db_session).aggregate(employee.id, evaluation.id, period)

    values = _results(db_session, evaluation.id)["values"]
    assert values.evidence_count == 0
    assert values.avg_star_rating == 0
    assert values.calculated_score == 0


def test_period_bounds_are_inclusive(db_session, employee, evaluation, period, add_entry):
    add_entry("values", 5, entry_date=date(2023, 12, 31))
    add_entry("values", 4, entry_date=date(2024, 1, 1))
    add_entry("values", 2, entry_date=date(2024, 3, 31))
    add_entry("values", 5, entry_date=date(2024, 4, 1))

    EvidenceAggregator(db_session).aggregate(employee.id, evaluation.id, period)

    values = _results(db_session, evaluation.id)["values"]
    assert values.evidence_count == 2
    assert values.avg_star_rating == 3.0
    assert values.total_positive_entries == 1
    assert values.total_negative_entries == 1


def test_other_employees_evidence_is_ignored(db_session, employee, evaluation, period, add_entry, make_employee):
    colleague = make_employee(first_name="Cora")
    add_entry("kpis", 5, employee_id=colleague.id)
    add_entry("kpis", 1)

    EvidenceAggregator(db_session).aggregate(employee.id, evaluation.id, period)

    kpis = _results(db_session, evaluation.id)["kpis"]
    assert kpis.evidence_count == 1
    assert kpis.avg_star_rating == 1.0
    assert kpis.total_negative_entries == 1


def test_neutral_ratings_are_neither_positive_nor_negative(db_session, employee, evaluation, period, add_entry):
    for rating in (3, 3, 3, 5, 1):
        add_entry("responsibilities", rating)

    EvidenceAggregator(db_session).aggregate(employee.id, evaluation.id, period)

    for row in _results(db_session, evaluation.id).values():
        assert row.total_positive_entries + row.total_negative_entries <= row.evidence_count
    row = _results(db_session, evaluation.id)["responsibilities"]
    assert (row.total_positive_entries, row.total_negative_entries) == (1, 1)


def test_aggregation_is_idempotent(db_session, employee, evaluation, period, add_entry):
    for rating in (5, 4, 4, 2):
        add_entry("competencies", rating)
    add_entry("kpis", 3)

    aggregator = EvidenceAggregator(db_session)
    aggregator.aggregate(employee.id, evaluation.id, period)
    first = _snapshot(db_session, evaluation.id)
    first_rating = db_session.get(Evaluation, evaluation.id).evidence_rating

    aggregator.aggregate(employee.id, evaluation.id, period)

    assert _snapshot(db_session, evaluation.id) == first
    assert db_session.get(Evaluation, evaluation.id).evidence_rating == first_rating


def test_reaggregation_reflects_new_entry_without_leftovers(db_session, employee, evaluation, period, add_entry):
    add_entry("kpis", 5)
    add_entry("kpis", 3)
    aggregator = EvidenceAggregator(db_session)
    aggregator.aggregate(employee.id, evaluation.id, period)
    first_id = _results(db_session, evaluation.id)["kpis"].id

    add_entry("kpis", 1)
    aggregator.aggregate(employee.id, evaluation.id, period)

    assert db_session.query(EvidenceEvaluationResult).filter_by(evaluation_id=evaluation.id).count() == 4
    kpis = _results(db_session, evaluation.id)["kpis"]
    assert kpis.id == first_id
    assert kpis.evidence_count == 3
    assert kpis.avg_star_rating == 3.0
    assert kpis.total_negative_entries == 1


def test_score_reaches_average_at_full_confidence(db_session, employee, evaluation, period, add_entry):
    for _ in range(12):
        add_entry("values", 5)

    EvidenceAggregator(db_session).aggregate(employee.id, evaluation.id, period)

    values = _results(db_session, evaluation.id)["values"]
    assert values.calculated_score == 5.0


def test_evaluation_receives_weighted_evidence_rating(db_session, employee, evaluation, period, add_entry):
    for rating in (5, 4, 3):
        add_entry("kpis", rating)

    EvidenceAggregator(db_session).aggregate(employee.id, evaluation.id, period)

    # Only kpis carries a score: 0.25 * 1.2
    assert db_session.get(Evaluation, evaluation.id).evidence_rating == pytest.approx(0.3)


def test_accepts_plain_window(db_session, employee, evaluation, add_entry):
    add_entry("kpis", 4, entry_date=date(2024, 6, 1))
    window = PeriodWindow(start_date=date(2024, 6, 1), end_date=date(2024, 6, 1))

    EvidenceAggregator(db_session).aggregate(employee.id, evaluation.id, window)

    assert _results(db_session, evaluation.id)["kpis"].evidence_count == 1


def test_aggregate_evaluation_uses_its_period(db_session, evaluation, add_entry):
    add_entry("kpis", 4, entry_date=date(2024, 3, 1))
    add_entry("kpis", 4, entry_date=date(2024, 5, 1))

    EvidenceAggregator(db_session).aggregate_evaluation(evaluation.id)

    assert _results(db_session, evaluation.id)["kpis"].evidence_count == 1


def test_inverted_window_is_rejected(db_session, employee, evaluation):
    window = PeriodWindow(start_date=date(2024, 3, 31), end_date=date(2024, 1, 1))

    with pytest.raises(InvalidInputError):
        EvidenceAggregator(db_session).aggregate(employee.id, evaluation.id, window)
    assert _results(db_session, evaluation.id) == {}


def test_unknown_employee_is_rejected(db_session, evaluation, period):
    with pytest.raises(ResourceNotFoundError):
        EvidenceAggregator(db_session).aggregate(9999, evaluation.id, period)


def test_unknown_evaluation_is_rejected(db_session, employee, period):
    with pytest.raises(ResourceNotFoundError):
        EvidenceAggregator(db_session).aggregate(employee.id, 9999, period)


def test_evaluation_of_another_employee_is_rejected(db_session, evaluation, period, make_employee):
    stranger = make_employee(first_name="Sam")

    with pytest.raises(InvalidInputError) as exc_info:
        EvidenceAggregator(db_session).aggregate(stranger.id, evaluation.id, period)
    assert exc_info.value.status_code == 422


def test_persistence_failure_leaves_no_partial_rows(db_session, employee, evaluation, period, add_entry, monkeypatch):
    add_entry("kpis", 5)

    def failing_commit():
        raise OperationalError("COMMIT", {}, Exception("database is unavailable"))

    monkeypatch.setattr(db_session, "commit", failing_commit)

    with pytest.raises(PersistenceError) as exc_info:
        EvidenceAggregator(db_session).aggregate(employee.id, evaluation.id, period)

    assert isinstance(exc_info.value.__cause__, OperationalError)
    assert _results(db_session, evaluation.id) == {}
    assert db_session.get(Evaluation, evaluation.id).evidence_rating is None


def test_persistence_failure_keeps_previous_results(db_session, employee, evaluation, period, add_entry, monkeypatch):
    add_entry("kpis", 5)
    aggregator = EvidenceAggregator(db_session)
    aggregator.aggregate(employee.id, evaluation.id, period)
    before = _snapshot(db_session, evaluation.id)

    add_entry("kpis", 1)

    def failing_commit():
        raise OperationalError("COMMIT", {}, Exception("connection lost"))

    monkeypatch.setattr(db_session, "commit", failing_commit)
    with pytest.raises(PersistenceError):
        aggregator.aggregate(employee.id, evaluation.id, period)

    assert _snapshot(db_session, evaluation.id) == before


def test_aggregation_statistics(db_session, employee, evaluation, period, add_entry, make_employee):
    from hr_evidence.models.evaluation import Evaluation as EvaluationModel

    idle = make_employee(first_name="Ida")
    db_session.add(EvaluationModel(employee_id=idle.id, period_id=period.id))
    db_session.commit()

    for _ in range(10):
        add_entry("kpis", 4)
    EvidenceAggregator(db_session).aggregate(employee.id, evaluation.id, period)

    stats = aggregation_statistics(db_session)
    assert stats["total_evaluations"] == 2
    assert stats["evaluations_with_evidence"] == 1
    assert stats["coverage_percentage"] == 50.0
    assert stats["avg_evidence_rating"] == 1.0


def test_row_inserted_by_concurrent_writer_is_overwritten(engine, db_session, employee, evaluation, period, add_entry, monkeypatch):
    """A first-time aggregation racing another one keeps the last write instead of failing."""
    from sqlalchemy.orm import sessionmaker

    add_entry("kpis", 5)
    add_entry("kpis", 3)
    evaluation_id = evaluation.id
    competitor_ids = []
    real_execute = db_session.execute

    def execute_after_competitor(statement, *args, **kwargs):
        if getattr(statement, "is_insert", False) and not competitor_ids:
            other = sessionmaker(bind=engine)()
            row = EvidenceEvaluationResult(
                evaluation_id=evaluation_id, dimension="kpis", evidence_count=99,
                avg_star_rating=1.0, total_positive_entries=0, total_negative_entries=99,
                calculated_score=1.0,
            )
            other.add(row)
            other.commit()
            competitor_ids.append(row.id)
            other.close()
        return real_execute(statement, *args, **kwargs)

    monkeypatch.setattr(db_session, "execute", execute_after_competitor)

    assert EvidenceAggregator(db_session).aggregate(employee.id, evaluation_id, period) is True

    results = _results(db_session, evaluation_id)
    assert len(results) == 4
    assert results["kpis"].id == competitor_ids[0]
    assert results["kpis"].evidence_count == 2
    assert results["kpis"].avg_star_rating == 4.0
    assert results["kpis"].total_negative_entries == 0
