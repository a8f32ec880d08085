import pytest
from datetime import date

from hr_evidence.core.exceptions import InvalidInputError, ResourceNotFoundError
from hr_evidence.schemas.evidence import EvidenceEntryCreate, EvidenceEntryUpdate
from hr_evidence.services.evidence_journal import EvidenceJournalService


def _create(service, employee, manager, **overrides):
    data = {
        "employee_id": employee.id,
        "manager_id": manager.id,
        "content": "Led the incident review and shipped the fix",
        "star_rating": 4,
        "dimension": "responsibilities",
        "entry_date": date(2024, 2, 1),
    }
    data.update(overrides)
    return service.create_entry(EvidenceEntryCreate(**data))


def test_create_entry(db_session, employee, manager):
    service = EvidenceJournalService(db_session)
    entry = _create(service, employee, manager)

    assert entry.id is not None
    assert entry.employee_id == employee.id
    assert entry.manager_id == manager.id
    assert entry.created_at is not None
    assert service.get_entry(entry.id).content.startswith("Led the incident")


def test_create_entry_for_unknown_employee(db_session, employee, manager):
    service = EvidenceJournalService(db_session)
    with pytest.raises(ResourceNotFoundError):
        service.create_entry(EvidenceEntryCreate(
            employee_id=4242, manager_id=manager.id, content="x",
            star_rating=3, dimension="kpis", entry_date=date(2024, 2, 1),
        ))


def test_create_entry_validates_rating_and_dimension(db_session, employee, manager):
    service = EvidenceJournalService(db_session)
    # Bypass schema validation to reach the service checks
    bad_rating = EvidenceEntryCreate.model_construct(
        employee_id=employee.id, manager_id=manager.id, content="x",
        star_rating=6, dimension="kpis", entry_date=date(2024, 2, 1),
    )
    bad_dimension = EvidenceEntryCreate.model_construct(
        employee_id=employee.id, manager_id=manager.id, content="x",
        star_rating=3, dimension="leadership", entry_date=date(2024, 2, 1),
    )

    with pytest.raises(InvalidInputError):
        service.create_entry(bad_rating)
    with pytest.raises(InvalidInputError):
        service.create_entry(bad_dimension)


def test_update_entry_changes_only_given_fields(db_session, employee, manager):
    service = EvidenceJournalService(db_session)
    entry = _create(service, employee, manager)

    updated = service.update_entry(entry.id, EvidenceEntryUpdate(star_rating=2))

    assert updated.star_rating == 2
    assert updated.dimension == "responsibilities"
    assert updated.content.startswith("Led the incident")


def test_delete_entry(db_session, employee, manager):
    service = EvidenceJournalService(db_session)
    entry = _create(service, employee, manager)

    assert service.delete_entry(entry.id) is True
    with pytest.raises(ResourceNotFoundError):
        service.get_entry(entry.id)


def test_employee_journal_filters_and_order(db_session, employee, add_entry):
    add_entry("kpis", 5, entry_date=date(2024, 1, 10), content="Closed twelve deals")
    add_entry("kpis", 2, entry_date=date(2024, 3, 5), content="Missed the forecast")
    add_entry("values", 4, entry_date=date(2024, 2, 20), content="Mentored two juniors")
    add_entry("values", 3, entry_date=date(2024, 5, 1), content="Outside the window")

    service = EvidenceJournalService(db_session)
    window = {"start_date": date(2024, 1, 1), "end_date": date(2024, 3, 31)}

    journal = service.get_employee_journal(employee.id, **window)
    assert [e.entry_date for e in journal] == [date(2024, 3, 5), date(2024, 2, 20), date(2024, 1, 10)]

    kpis = service.get_employee_journal(employee.id, dimension="kpis", **window)
    assert {e.star_rating for e in kpis} == {5, 2}

    high = service.get_employee_journal(employee.id, min_rating=4)
    assert {e.star_rating for e in high} == {5, 4}

    found = service.get_employee_journal(employee.id, search="mentored")
    assert [e.content for e in found] == ["Mentored two juniors"]


def test_manager_entries(db_session, employee, manager, add_entry, make_employee):
    other_manager = make_employee(first_name="Olga")
    add_entry("kpis", 4)
    add_entry("values", 5)
    add_entry("kpis", 1, manager_id=other_manager.id)

    service = EvidenceJournalService(db_session)
    entries = service.get_manager_entries(manager.id)
    assert len(entries) == 2
    assert all(e.manager_id == manager.id for e in entries)
    assert len(service.get_manager_entries(manager.id, dimension="values")) == 1


def test_evidence_by_dimension(db_session, employee, add_entry):
    add_entry("kpis", 5)
    add_entry("kpis", 4)
    add_entry("competencies", 2)

    stats = EvidenceJournalService(db_session).get_evidence_by_dimension(employee.id)

    assert [s["dimension"] for s in stats] == ["kpis", "competencies"]
    assert stats[0] == {
        "dimension": "kpis", "entry_count": 2, "avg_rating": 4.5,
        "positive_count": 2, "negative_count": 0,
    }
    assert stats[1]["negative_count"] == 1


def test_evidence_summary(db_session, employee, add_entry):
    add_entry("kpis", 5, entry_date=date(2024, 1, 3))
    add_entry("values", 3, entry_date=date(2024, 2, 3))
    add_entry("competencies", 1, entry_date=date(2024, 3, 3))

    summary = EvidenceJournalService(db_session).get_evidence_summary(employee.id)

    assert summary["total_entries"] == 3
    assert summary["overall_avg_rating"] == 3.0
    assert (summary["positive_entries"], summary["neutral_entries"], summary["negative_entries"]) == (1, 1, 1)
    assert summary["first_entry_date"] == date(2024, 1, 3)
    assert summary["last_entry_date"] == date(2024, 3, 3)


def test_evidence_summary_without_entries(db_session, employee):
    summary = EvidenceJournalService(db_session).get_evidence_summary(employee.id)
    assert summary["total_entries"] == 0
    assert summary["overall_avg_rating"] == 0.0
    assert summary["first_entry_date"] is None


def test_dimension_statistics_across_employees(db_session, add_entry, make_employee):
    colleague = make_employee(first_name="Cora")
    add_entry("values", 4)
    add_entry("values", 2, employee_id=colleague.id)
    add_entry("kpis", 5)

    stats = EvidenceJournalService(db_session).get_dimension_statistics()

    assert stats[0]["dimension"] == "values"
    assert stats[0]["entry_count"] == 2
    assert stats[0]["avg_rating"] == 3.0


def test_recent_entries_newest_first(db_session, add_entry, make_employee):
    colleague = make_employee(first_name="Cora")
    first = add_entry("kpis", 4)
    second = add_entry("values", 3, employee_id=colleague.id)
    third = add_entry("competencies", 5)

    service = EvidenceJournalService(db_session)
    assert [e.id for e in service.get_recent_entries(limit=2)] == [third.id, second.id]
    assert [e.id for e in service.get_recent_entries()] == [third.id, second.id, first.id]


def test_entries_by_date_range(db_session, employee, manager, add_entry, make_employee):
    colleague = make_employee(first_name="Cora")
    add_entry("kpis", 4, entry_date=date(2024, 1, 31))
    add_entry("values", 3, entry_date=date(2024, 2, 1))
    add_entry("kpis", 2, entry_date=date(2024, 2, 29), employee_id=colleague.id)
    add_entry("kpis", 5, entry_date=date(2024, 3, 1))

    service = EvidenceJournalService(db_session)
    february = service.get_entries_by_date_range(date(2024, 2, 1), date(2024, 2, 29))
    assert [e.entry_date for e in february] == [date(2024, 2, 1), date(2024, 2, 29)]

    mine = service.get_entries_by_date_range(date(2024, 1, 1), date(2024, 3, 31), employee_id=employee.id)
    assert len(mine) == 3

    kpis = service.get_entries_by_date_range(
        date(2024, 1, 1), date(2024, 3, 31), manager_id=manager.id, dimension="kpis",
    )
    assert [e.star_rating for e in kpis] == [4, 2, 5]


def test_entries_by_date_range_rejects_inverted_window(db_session):
    with pytest.raises(InvalidInputError):
        EvidenceJournalService(db_session).get_entries_by_date_range(date(2024, 3, 1), date(2024, 2, 1))
