import pytest
from complaint_service.core.distribution import ComplaintDistributionService, empty_stats
from complaint_service.core.repository import SqlAlchemyDistributionRepository
from fakes import InMemoryDistributionRepository

@pytest.fixture
def service(db_session):
    return ComplaintDistributionService(SqlAlchemyDistributionRepository(db_session))

def test_stats_on_empty_system(service):
    stats = service.get_assignment_stats()

    assert stats["complaints"]["total"] == 0
    assert stats["complaints"]["assignment_rate"] == "0%"
    assert stats["admins"]["avg_case_load"] == 0
    assert stats["categories"] == []
    assert stats == empty_stats()

def test_stats_aggregate_complaints_and_admins(service, admin_factory, complaint_factory):
    busy = admin_factory(name="Busy", current_case_load=3, max_case_load=10)
    idle = admin_factory(name="Idle", current_case_load=0, max_case_load=5)
    admin_factory(name="Away", current_case_load=7, is_active=False)

    complaint_factory(category="academic", status="assigned", assigned_to=busy.id)
    complaint_factory(category="academic", status="in_progress", assigned_to=busy.id)
    complaint_factory(category="academic", status="resolved", assigned_to=busy.id)
    complaint_factory(category="exam", status="closed", assigned_to=idle.id)
    complaint_factory(category="sports")
    complaint_factory(category="academic")

    stats = service.get_assignment_stats()

    assert stats["complaints"] == {
        "total": 6,
        "assigned": 4,
        "unassigned": 2,
        "resolved": 1,
        "in_progress": 1,
        "assignment_rate": "67%",
    }
    assert stats["categories"][0] == {"category": "academic", "count": 4, "assigned_count": 3}
    assert {c["category"] for c in stats["categories"]} == {"academic", "exam", "sports"}

    admins = stats["admins"]
    assert admins["total"] == 3
    assert admins["active"] == 2
    assert admins["total_case_load"] == 3
    assert admins["avg_case_load"] == 1.5

    per_admin = {row["name"]: row for row in admins["per_admin"]}
    assert set(per_admin) == {"Busy", "Idle"}
    # resolved complaints are excluded, closed ones still count
    assert per_admin["Busy"]["active_complaint_count"] == 2
    assert per_admin["Idle"]["active_complaint_count"] == 1
    assert [row["name"] for row in admins["per_admin"]] == ["Idle", "Busy"]

def test_assignment_rate_rounds_half_up():
    repo = InMemoryDistributionRepository()
    admin = repo.add_admin()
    repo.add_complaint(assigned_to=admin.id, status="assigned")
    for _ in range(7):
        repo.add_complaint()

    stats = ComplaintDistributionService(repo).get_assignment_stats()

    # 1 of 8 is 12.5%
    assert stats["complaints"]["assignment_rate"] == "13%"

class BrokenRepository(InMemoryDistributionRepository):
    def complaint_totals(self):
        raise RuntimeError("aggregation pipeline failed")

def test_stats_degrade_to_zero_values_on_failure():
    repo = BrokenRepository()
    repo.add_admin(current_case_load=2)
    repo.add_complaint()

    stats = ComplaintDistributionService(repo).get_assignment_stats()

    assert stats == empty_stats()
