import threading
from collections import Counter
from contextlib import contextmanager
from datetime import datetime, timedelta
from itertools import count
from typing import Dict, List, Optional
from complaint_service.core.repository import AdminFilter, DistributionRepository
from complaint_service.models.admin import Admin, AdminSpecialization
from complaint_service.models.complaint import Complaint


class InMemoryDistributionRepository(DistributionRepository):
    """
    Dictionary-backed repository. Caseload counters are guarded by one lock
    per admin so concurrent increments and decrements never lose updates.
    """

    def __init__(self):
        self.admins: Dict[int, Admin] = {}
        self.complaints: Dict[int, Complaint] = {}
        self._ids = count(1)
        self._locks: Dict[int, threading.Lock] = {}
        self._epoch = datetime(2024, 1, 1)

    @contextmanager
    def transaction(self):
        yield self

    def add_admin(self, specializations=("general",), **fields) -> Admin:
        admin_id = next(self._ids)
        fields.setdefault("name", f"Admin {admin_id}")
        fields.setdefault("email", f"admin{admin_id}@university.edu")
        fields.setdefault("department", "CSE")
        fields.setdefault("employee_id", f"EMP{admin_id:05d}")
        fields.setdefault("is_active", True)
        fields.setdefault("max_case_load", 5)
        fields.setdefault("current_case_load", 0)
        fields.setdefault("created_at", self._epoch + timedelta(minutes=admin_id))
        admin = Admin(
            id=admin_id,
            specializations=[AdminSpecialization(category=c) for c in specializations],
            **fields,
        )
        self._locks[admin_id] = threading.Lock()
        self.admins[admin_id] = admin
        return admin

    def add_complaint(self, **fields) -> Complaint:
        complaint_id = next(self._ids)
        fields.setdefault("token", f"{200000 + complaint_id:06d}")
        fields.setdefault("title", f"Complaint {complaint_id}")
        fields.setdefault("description", "")
        fields.setdefault("category", "general")
        fields.setdefault("status", "received")
        fields.setdefault("messages", [])
        complaint = Complaint(id=complaint_id, **fields)
        self.complaints[complaint_id] = complaint
        return complaint

    def find_admin(self, admin_id: int) -> Optional[Admin]:
        return self.admins.get(admin_id)

    def find_complaint(self, complaint_id: int) -> Optional[Complaint]:
        return self.complaints.get(complaint_id)

    def query_admins(self, criteria: AdminFilter) -> List[Admin]:
        matches = []
        for admin in self.admins.values():
            if criteria.active_only and not admin.is_active:
                continue
            if criteria.category is not None and criteria.category not in admin.categories:
                continue
            if criteria.require_capacity and not admin.has_capacity:
                continue
            if criteria.department is not None and admin.branches != criteria.department:
                continue
            if criteria.semester is not None and admin.semesters != criteria.semester:
                continue
            matches.append(admin)
        matches.sort(key=lambda a: (a.current_case_load, a.created_at, a.id))
        return matches[:criteria.limit] if criteria.limit else matches

    def save_admin(self, admin: Admin) -> None:
        self.admins[admin.id] = admin

    def save_complaint(self, complaint: Complaint) -> None:
        self.complaints[complaint.id] = complaint

    def increment_case_load(self, admin_id: int, enforce_capacity: bool = False) -> bool:
        admin = self.admins[admin_id]
        with self._locks[admin_id]:
            if enforce_capacity and admin.current_case_load >= admin.max_case_load:
                return False
            admin.current_case_load += 1
            return True

    def decrement_case_load(self, admin_id: int) -> None:
        admin = self.admins[admin_id]
        with self._locks[admin_id]:
            admin.current_case_load = max(0, admin.current_case_load - 1)

    def list_unassigned_complaints(self) -> List[Complaint]:
        return [c for c in self.complaints.values() if c.assigned_to is None]

    def list_admins(self) -> List[Admin]:
        return sorted(self.admins.values(), key=lambda a: (a.current_case_load, a.id))

    def complaint_totals(self) -> Dict[str, int]:
        complaints = list(self.complaints.values())
        return {
            "total": len(complaints),
            "assigned": sum(1 for c in complaints if c.assigned_to is not None),
            "resolved": sum(1 for c in complaints if c.status == "resolved"),
            "in_progress": sum(1 for c in complaints if c.status == "in_progress"),
        }

    def category_breakdown(self) -> List[Dict[str, object]]:
        totals = Counter(c.category for c in self.complaints.values())
        assigned = Counter(c.category for c in self.complaints.values() if c.assigned_to is not None)
        return [
            {"category": category, "count": total, "assigned_count": assigned[category]}
            for category, total in sorted(totals.items(), key=lambda item: (-item[1], item[0]))
        ]

    def open_complaint_counts(self) -> Dict[int, int]:
        return dict(Counter(
            c.assigned_to for c in self.complaints.values()
            if c.assigned_to is not None and c.status != "resolved"
        ))
