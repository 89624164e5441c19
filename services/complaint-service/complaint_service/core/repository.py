from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional
from sqlalchemy import case, func, update
from sqlalchemy.orm import Session
from complaint_service.models.admin import Admin, AdminSpecialization
from complaint_service.models.complaint import Complaint

@dataclass
class AdminFilter:
    """
    Criteria for querying the admin capacity pool.
    None means "do not constrain on this attribute".
    """
    category: Optional[str] = None
    department: Optional[str] = None
    semester: Optional[int] = None
    active_only: bool = True
    require_capacity: bool = True
    limit: Optional[int] = None


class DistributionRepository(ABC):
    """
    Storage seam for the distribution engine.
    Results of query_admins are ordered by current caseload, then registration time.
    """

    @abstractmethod
    def transaction(self):
        """Context manager wrapping one unit of work."""

    @abstractmethod
    def find_admin(self, admin_id: int) -> Optional[Admin]: ...

    @abstractmethod
    def find_complaint(self, complaint_id: int) -> Optional[Complaint]: ...

    @abstractmethod
    def query_admins(self, criteria: AdminFilter) -> List[Admin]: ...

    @abstractmethod
    def save_admin(self, admin: Admin) -> None: ...

    @abstractmethod
    def save_complaint(self, complaint: Complaint) -> None: ...

    @abstractmethod
    def increment_case_load(self, admin_id: int, enforce_capacity: bool = False) -> bool:
        """
        Atomically add one to an admin's caseload.
        With enforce_capacity the increment only happens while the admin is
        under max_case_load; returns False when nothing was incremented.
        """

    @abstractmethod
    def decrement_case_load(self, admin_id: int) -> None:
        """Atomically subtract one from an admin's caseload, floored at zero."""

    @abstractmethod
    def list_unassigned_complaints(self) -> List[Complaint]: ...

    @abstractmethod
    def list_admins(self) -> List[Admin]: ...

    @abstractmethod
    def complaint_totals(self) -> Dict[str, int]:
        """Counts keyed total, assigned, resolved, in_progress."""

    @abstractmethod
    def category_breakdown(self) -> List[Dict[str, object]]:
        """Per category: category, count, assigned_count; largest first."""

    @abstractmethod
    def open_complaint_counts(self) -> Dict[int, int]:
        """Assigned complaints per admin id whose status is not resolved."""


class SqlAlchemyDistributionRepository(DistributionRepository):
    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        try:
            yield self.db
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def find_admin(self, admin_id: int) -> Optional[Admin]:
        if admin_id is None:
            return None
        return self.db.query(Admin).filter(Admin.id == admin_id).first()

    def find_complaint(self, complaint_id: int) -> Optional[Complaint]:
        if complaint_id is None:
            return None
        return self.db.query(Complaint).filter(Complaint.id == complaint_id).first()

    def query_admins(self, criteria: AdminFilter) -> List[Admin]:
        query = self.db.query(Admin)

        if criteria.active_only:
            query = query.filter(Admin.is_active.is_(True))
        if criteria.category is not None:
            query = query.filter(Admin.specializations.any(AdminSpecialization.category == criteria.category))
        if criteria.require_capacity:
            query = query.filter(Admin.current_case_load < Admin.max_case_load)
        if criteria.department is not None:
            query = query.filter(Admin.branches == criteria.department)
        if criteria.semester is not None:
            query = query.filter(Admin.semesters == criteria.semester)

        query = query.order_by(Admin.current_case_load.asc(), Admin.created_at.asc(), Admin.id.asc())
        if criteria.limit:
            query = query.limit(criteria.limit)
        return query.all()

    def save_admin(self, admin: Admin) -> None:
        self.db.add(admin)
        self.db.flush()

    def save_complaint(self, complaint: Complaint) -> None:
        self.db.add(complaint)
        self.db.flush()

    def increment_case_load(self, admin_id: int, enforce_capacity: bool = False) -> bool:
        stmt = update(Admin).where(Admin.id == admin_id)
        if enforce_capacity:
            stmt = stmt.where(Admin.current_case_load < Admin.max_case_load)
        stmt = stmt.values(current_case_load=Admin.current_case_load + 1)
        result = self.db.execute(stmt.execution_options(synchronize_session="fetch"))
        return result.rowcount == 1

    def decrement_case_load(self, admin_id: int) -> None:
        stmt = (
            update(Admin)
            .where(Admin.id == admin_id)
            .values(current_case_load=case(
                (Admin.current_case_load > 0, Admin.current_case_load - 1),
                else_=0,
            ))
        )
        self.db.execute(stmt.execution_options(synchronize_session="fetch"))

    def list_unassigned_complaints(self) -> List[Complaint]:
        return (
            self.db.query(Complaint)
            .filter(Complaint.assigned_to.is_(None))
            .order_by(Complaint.created_at.asc(), Complaint.id.asc())
            .all()
        )

    def list_admins(self) -> List[Admin]:
        return self.db.query(Admin).order_by(Admin.current_case_load.asc(), Admin.id.asc()).all()

    def complaint_totals(self) -> Dict[str, int]:
        total, assigned, resolved, in_progress = self.db.query(
            func.count(Complaint.id),
            func.count(Complaint.assigned_to),
            func.sum(case((Complaint.status == "resolved", 1), else_=0)),
            func.sum(case((Complaint.status == "in_progress", 1), else_=0)),
        ).one()
        return {
            "total": total or 0,
            "assigned": assigned or 0,
            "resolved": resolved or 0,
            "in_progress": in_progress or 0,
        }

    def category_breakdown(self) -> List[Dict[str, object]]:
        count = func.count(Complaint.id)
        rows = (
            self.db.query(Complaint.category, count, func.count(Complaint.assigned_to))
            .group_by(Complaint.category)
            .order_by(count.desc(), Complaint.category.asc())
            .all()
        )
        return [
            {"category": category, "count": total, "assigned_count": assigned}
            for category, total, assigned in rows
        ]

    def open_complaint_counts(self) -> Dict[int, int]:
        rows = (
            self.db.query(Complaint.assigned_to, func.count(Complaint.id))
            .filter(Complaint.assigned_to.isnot(None), Complaint.status != "resolved")
            .group_by(Complaint.assigned_to)
            .all()
        )
        return {admin_id: total for admin_id, total in rows}
