"""
Complaint distribution engine.

Routes complaints to admins, keeps admin caseloads in step with assignments,
forwards complaints between admins and aggregates assignment statistics.
All storage access goes through a DistributionRepository so the selection
logic does not depend on a particular database.
"""

import logging
import math
from datetime import datetime
from typing import Any, Dict, List, Optional
from sqlalchemy.exc import SQLAlchemyError
from complaint_service.core.fsm import ComplaintStatus
from complaint_service.core.repository import AdminFilter, DistributionRepository
from complaint_service.core.results import BatchAssignmentReport, ErrorCode, ServiceResult
from complaint_service.models.admin import Admin
from complaint_service.models.complaint import Complaint, ComplaintForward

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "general"

# Statuses in which an admin still holds the complaint
FORWARDABLE_STATES = (ComplaintStatus.ASSIGNED, ComplaintStatus.IN_PROGRESS, ComplaintStatus.FORWARDED)

# How many candidates each selection tier pulls before taking the first
PRIMARY_CANDIDATE_LIMIT = 5
SPECIALIZATION_CANDIDATE_LIMIT = 3


def empty_stats() -> Dict[str, Any]:
    return {
        "complaints": {
            "total": 0,
            "assigned": 0,
            "unassigned": 0,
            "resolved": 0,
            "in_progress": 0,
            "assignment_rate": "0%",
        },
        "categories": [],
        "admins": {
            "total": 0,
            "active": 0,
            "total_case_load": 0,
            "avg_case_load": 0,
            "per_admin": [],
        },
    }


def _admin_summary(admin: Admin) -> Dict[str, Any]:
    return {
        "id": admin.id,
        "name": admin.name,
        "email": admin.email,
        "department": admin.department,
    }


class ComplaintDistributionService:
    def __init__(self, repository: DistributionRepository):
        self.repository = repository

    # -------------------------------------------------------------------------
    # Candidate selection
    # -------------------------------------------------------------------------

    def find_best_admin(
        self,
        category: Optional[str] = None,
        department: Optional[str] = None,
        semester: Optional[int] = None,
    ) -> Optional[Admin]:
        """
        Pick the least loaded admin able to take a complaint.

        Tiers are tried in order and the first non-empty one wins:
          1. active, specialized in the category, under capacity, matching the
             student's department and semester when those are known
          2. as 1 without the department/semester constraints
          3. any active admin under capacity
        Returns None when every tier is empty.
        """
        category = category or DEFAULT_CATEGORY
        tiers = [
            AdminFilter(
                category=category,
                department=department or None,
                semester=semester or None,
                limit=PRIMARY_CANDIDATE_LIMIT,
            ),
            AdminFilter(category=category, limit=SPECIALIZATION_CANDIDATE_LIMIT),
            AdminFilter(limit=1),
        ]

        for tier, criteria in enumerate(tiers, start=1):
            candidates = self.repository.query_admins(criteria)
            if candidates:
                logger.debug(
                    "Selected admin %s for category %s at tier %d", candidates[0].id, category, tier
                )
                return candidates[0]

        logger.info("No admin with spare capacity for category %s", category)
        return None

    def _select_for(self, complaint: Complaint) -> Optional[Admin]:
        student = complaint.student_info or {}
        return self.find_best_admin(
            category=complaint.category,
            department=student.get("department"),
            semester=student.get("semester"),
        )

    # -------------------------------------------------------------------------
    # Assignment
    # -------------------------------------------------------------------------

    def assign_complaint(
        self,
        complaint_id: int,
        admin_id: Optional[int] = None,
        assigned_by: Optional[int] = None,
    ) -> ServiceResult[Dict[str, Any]]:
        """
        Assign a complaint to an admin.

        With admin_id the assignment is manual and is honored even when the
        admin is already at capacity. Without it an admin is selected
        automatically. The complaint update and the caseload increment are
        committed together.
        """
        try:
            with self.repository.transaction():
                complaint = self.repository.find_complaint(complaint_id)
                if not complaint:
                    return ServiceResult.fail(ErrorCode.NOT_FOUND, "Complaint not found")

                if admin_id is not None:
                    assignment_type = "manual"
                    admin = self.repository.find_admin(admin_id)
                    if not admin:
                        return ServiceResult.fail(ErrorCode.NOT_FOUND, "Admin not found")
                else:
                    assignment_type = "auto"
                    admin = self._select_for(complaint)
                    if not admin:
                        return ServiceResult.fail(
                            ErrorCode.NO_CANDIDATE_AVAILABLE, "No available admin found for assignment"
                        )

                complaint.assigned_to = admin.id
                complaint.assigned_by = assigned_by if assignment_type == "manual" else None
                complaint.assignment_type = assignment_type
                complaint.assigned_at = datetime.utcnow()
                complaint.status = ComplaintStatus.ASSIGNED
                self.repository.save_complaint(complaint)
                self.repository.increment_case_load(admin.id)

                payload = {"assigned_to": _admin_summary(admin), "assignment_type": assignment_type}

            logger.info("Complaint %s assigned to admin %s (%s)", complaint_id, payload["assigned_to"]["id"], assignment_type)
            return ServiceResult.ok(payload)

        except SQLAlchemyError as e:
            logger.error(f"Database error assigning complaint {complaint_id}: {e}", exc_info=True)
            return ServiceResult.from_exception(e, "assign complaint")
        except Exception as e:
            logger.error(f"Unexpected error assigning complaint {complaint_id}: {e}", exc_info=True)
            return ServiceResult.from_exception(e, "assign complaint")

    def forward_complaint(
        self,
        complaint_id: int,
        from_admin_id: int,
        to_admin_id: int,
        reason: Optional[str] = None,
    ) -> ServiceResult[Dict[str, Any]]:
        """
        Hand a complaint from one admin to another.
        Only complaints an admin currently holds can be forwarded.
        Unlike manual assignment, the target's capacity is enforced.
        """
        try:
            with self.repository.transaction():
                complaint = self.repository.find_complaint(complaint_id)
                from_admin = self.repository.find_admin(from_admin_id)
                to_admin = self.repository.find_admin(to_admin_id)

                if not complaint or not from_admin or not to_admin:
                    return ServiceResult.fail(ErrorCode.NOT_FOUND, "Invalid complaint or admin IDs")
                if complaint.status not in FORWARDABLE_STATES:
                    return ServiceResult.fail(
                        ErrorCode.INVALID_STATE,
                        f"Complaint in status {complaint.status} cannot be forwarded",
                    )

                # Conditional increment closes the gap between the capacity check and the write
                if not to_admin.has_capacity or not self.repository.increment_case_load(
                    to_admin.id, enforce_capacity=True
                ):
                    return ServiceResult.fail(ErrorCode.CAPACITY_EXCEEDED, "Target admin is at maximum capacity")
                self.repository.decrement_case_load(from_admin.id)

                complaint.assigned_to = to_admin.id
                complaint.status = ComplaintStatus.FORWARDED
                complaint.forward_history.append(ComplaintForward(
                    from_admin_id=from_admin.id,
                    to_admin_id=to_admin.id,
                    reason=reason,
                    forwarded_at=datetime.utcnow(),
                ))
                complaint.add_message(
                    f"Complaint forwarded from {from_admin.name} to {to_admin.name}. "
                    f"Reason: {reason if reason is not None else ''}",
                    sender="admin",
                    sender_name="System",
                    visible=True,
                )
                self.repository.save_complaint(complaint)

                payload = {"forwarded_to": _admin_summary(to_admin)}

            logger.info("Complaint %s forwarded from admin %s to admin %s", complaint_id, from_admin_id, to_admin_id)
            return ServiceResult.ok(payload)

        except SQLAlchemyError as e:
            logger.error(f"Database error forwarding complaint {complaint_id}: {e}", exc_info=True)
            return ServiceResult.from_exception(e, "forward complaint")
        except Exception as e:
            logger.error(f"Unexpected error forwarding complaint {complaint_id}: {e}", exc_info=True)
            return ServiceResult.from_exception(e, "forward complaint")

    def release_on_resolution(self, complaint_id: int) -> ServiceResult[Dict[str, Any]]:
        """
        Give back one caseload slot to the admin holding a complaint that was
        just resolved or closed. Pending changes on the complaint are committed
        in the same unit of work.
        """
        with self.repository.transaction():
            complaint = self.repository.find_complaint(complaint_id)
            if not complaint:
                return ServiceResult.fail(ErrorCode.NOT_FOUND, "Complaint not found")

            admin_id = complaint.assigned_to
            if admin_id is None:
                return ServiceResult.ok({"released": False, "admin_id": None})

            self.repository.decrement_case_load(admin_id)

        logger.info("Released caseload of admin %s for complaint %s", admin_id, complaint_id)
        return ServiceResult.ok({"released": True, "admin_id": admin_id})

    def auto_assign_unassigned(self) -> BatchAssignmentReport:
        """
        Single best-effort pass over every unassigned complaint.
        Each complaint is attempted once; a failure never stops the pass.
        """
        pending = [(c.id, c.token) for c in self.repository.list_unassigned_complaints()]
        report = BatchAssignmentReport(total=len(pending))

        for complaint_id, token in pending:
            result = self.assign_complaint(complaint_id)
            if result.success:
                report.assigned += 1
            else:
                report.failed += 1
                report.errors.append({"complaint_id": complaint_id, "token": token, "error": result.error})

        logger.info(
            "Batch assignment finished: %d total, %d assigned, %d failed",
            report.total, report.assigned, report.failed,
        )
        return report

    # -------------------------------------------------------------------------
    # Statistics
    # -------------------------------------------------------------------------

    def get_assignment_stats(self) -> Dict[str, Any]:
        """
        Aggregate complaint and workload statistics.
        Always returns a well-formed structure; failures yield zero values.
        """
        try:
            with self.repository.transaction():
                totals = self.repository.complaint_totals()
                categories = self.repository.category_breakdown()
                admins = self.repository.list_admins()
                open_counts = self.repository.open_complaint_counts()
                admin_rows = self._admin_rows(admins, open_counts)
        except Exception:
            logger.exception("Error computing assignment statistics")
            return empty_stats()

        total = totals["total"]
        assigned = totals["assigned"]
        # Math.round semantics: halves round up
        rate = f"{math.floor(assigned / total * 100 + 0.5)}%" if total > 0 else "0%"

        active = [row for row in admin_rows if row["is_active"]]
        total_case_load = sum(row["current_case_load"] for row in active)
        avg_case_load = round(total_case_load / len(active), 2) if active else 0

        return {
            "complaints": {
                "total": total,
                "assigned": assigned,
                "unassigned": total - assigned,
                "resolved": totals["resolved"],
                "in_progress": totals["in_progress"],
                "assignment_rate": rate,
            },
            "categories": categories,
            "admins": {
                "total": len(admin_rows),
                "active": len(active),
                "total_case_load": total_case_load,
                "avg_case_load": avg_case_load,
                "per_admin": [
                    {key: value for key, value in row.items() if key != "is_active"}
                    for row in active
                ],
            },
        }

    @staticmethod
    def _admin_rows(admins: List[Admin], open_counts: Dict[int, int]) -> List[Dict[str, Any]]:
        return [
            {
                "id": admin.id,
                "name": admin.name,
                "email": admin.email,
                "is_active": bool(admin.is_active),
                "current_case_load": admin.current_case_load or 0,
                "max_case_load": admin.max_case_load or 0,
                "active_complaint_count": open_counts.get(admin.id, 0),
            }
            for admin in admins
        ]
