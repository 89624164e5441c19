import pytest
from fastapi import HTTPException
from complaint_service.core.fsm import ComplaintStateMachine, ComplaintStatus

def test_fsm_valid_transition(complaint_factory, admin_factory, db_session):
    admin = admin_factory()
    complaint = complaint_factory(status=ComplaintStatus.ASSIGNED, assigned_to=admin.id)

    fsm = ComplaintStateMachine()
    release = fsm.transition(complaint=complaint, new_state=ComplaintStatus.IN_PROGRESS)
    db_session.commit()

    assert release is False
    assert complaint.status == ComplaintStatus.IN_PROGRESS
    assert complaint.resolved_at is None

def test_fsm_resolution_records_details_and_requests_release(complaint_factory, admin_factory, db_session):
    admin = admin_factory()
    complaint = complaint_factory(status=ComplaintStatus.IN_PROGRESS, assigned_to=admin.id)

    fsm = ComplaintStateMachine()
    release = fsm.transition(
        complaint=complaint,
        new_state=ComplaintStatus.RESOLVED,
        resolution="Timetable corrected",
        resolved_by=admin.id,
    )
    db_session.commit()

    assert release is True
    assert complaint.status == ComplaintStatus.RESOLVED
    assert complaint.resolution == "Timetable corrected"
    assert complaint.resolved_by == admin.id
    assert complaint.resolved_at is not None

def test_fsm_closing_resolved_complaint_does_not_release_again(complaint_factory, admin_factory):
    admin = admin_factory()
    complaint = complaint_factory(status=ComplaintStatus.RESOLVED, assigned_to=admin.id)

    release = ComplaintStateMachine().transition(complaint=complaint, new_state=ComplaintStatus.CLOSED)

    assert release is False
    assert complaint.status == ComplaintStatus.CLOSED

def test_fsm_closing_keeps_recorded_resolution(complaint_factory, admin_factory, db_session):
    admin = admin_factory()
    complaint = complaint_factory(status=ComplaintStatus.IN_PROGRESS, assigned_to=admin.id)
    fsm = ComplaintStateMachine()
    fsm.transition(complaint=complaint, new_state=ComplaintStatus.RESOLVED, resolution="Refund issued", resolved_by=admin.id)
    db_session.commit()
    resolved_at = complaint.resolved_at

    fsm.transition(complaint=complaint, new_state=ComplaintStatus.CLOSED)
    db_session.commit()

    assert complaint.status == ComplaintStatus.CLOSED
    assert complaint.resolution == "Refund issued"
    assert complaint.resolved_by == admin.id
    assert complaint.resolved_at == resolved_at

def test_fsm_invalid_transition(complaint_factory):
    complaint = complaint_factory(status=ComplaintStatus.RECEIVED)

    fsm = ComplaintStateMachine()

    with pytest.raises(HTTPException) as exc:
        fsm.transition(
            complaint=complaint,
            new_state=ComplaintStatus.RESOLVED, # RECEIVED -> RESOLVED is invalid, nobody holds it yet
        )

    assert exc.value.status_code == 409
    assert "Invalid status transition" in exc.value.detail["error"]
    assert complaint.status == ComplaintStatus.RECEIVED

@pytest.mark.parametrize("target", [
    ComplaintStatus.ASSIGNED,
    ComplaintStatus.IN_PROGRESS,
    ComplaintStatus.RESOLVED,
    ComplaintStatus.FORWARDED,
])
def test_fsm_closed_is_terminal(target):
    with pytest.raises(HTTPException) as exc:
        ComplaintStateMachine().validate_transition(ComplaintStatus.CLOSED, target)
    assert exc.value.status_code == 409
