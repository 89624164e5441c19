from datetime import datetime
from typing import Optional
from fastapi import HTTPException, status
from complaint_service.models.complaint import Complaint

class ComplaintStatus:
    RECEIVED = "received"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    FORWARDED = "forwarded"
    RESOLVED = "resolved"
    CLOSED = "closed"

TERMINAL_STATES = (ComplaintStatus.RESOLVED, ComplaintStatus.CLOSED)

# Transitions requested from outside the distribution engine.
# ASSIGNED and FORWARDED are only ever written by the engine itself.
VALID_TRANSITIONS = {
    ComplaintStatus.RECEIVED: [],
    ComplaintStatus.ASSIGNED: [ComplaintStatus.IN_PROGRESS, ComplaintStatus.RESOLVED, ComplaintStatus.CLOSED],
    ComplaintStatus.FORWARDED: [ComplaintStatus.IN_PROGRESS, ComplaintStatus.RESOLVED, ComplaintStatus.CLOSED],
    ComplaintStatus.IN_PROGRESS: [ComplaintStatus.RESOLVED, ComplaintStatus.CLOSED],
    ComplaintStatus.RESOLVED: [ComplaintStatus.CLOSED],
    ComplaintStatus.CLOSED: [],
}

class ComplaintStateMachine:
    def validate_transition(self, current_state: str, new_state: str):
        if new_state not in VALID_TRANSITIONS.get(current_state, []):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={
                    "error": "Invalid status transition",
                    "current_state": current_state,
                    "attempted_state": new_state,
                    "reason": f"Transition from {current_state} to {new_state} is not permitted.",
                }
            )

    def transition(
        self,
        complaint: Complaint,
        new_state: str,
        resolution: Optional[str] = None,
        resolved_by: Optional[int] = None,
    ) -> bool:
        """
        Move a complaint to a new status. Does NOT commit.
        Returns True when the move closes an open complaint, i.e. when the
        assigned admin's caseload must be released by the caller.
        """
        self.validate_transition(complaint.status, new_state)

        previous_state = complaint.status
        complaint.status = new_state

        if new_state in TERMINAL_STATES:
            # resolved -> closed keeps whatever the resolution step recorded
            if resolution is not None:
                complaint.resolution = resolution
            if resolved_by is not None:
                complaint.resolved_by = resolved_by
            if previous_state not in TERMINAL_STATES or complaint.resolved_at is None:
                complaint.resolved_at = datetime.utcnow()

        return new_state in TERMINAL_STATES and previous_state not in TERMINAL_STATES
