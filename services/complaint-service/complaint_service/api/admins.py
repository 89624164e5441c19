import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from complaint_service.api.deps import get_repository
from complaint_service.core.db import get_db
from complaint_service.core.fsm import TERMINAL_STATES
from complaint_service.core.repository import AdminFilter, SqlAlchemyDistributionRepository
from complaint_service.models.admin import Admin, AdminSpecialization
from complaint_service.models.complaint import Complaint
from complaint_service.schemas.admin import (
    AdminCreate,
    AdminResponse,
    AdminStatsResponse,
    AdminUpdate,
    ToggleStatusResponse,
)
from complaint_service.schemas.complaint import CategoryEnum

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admins", tags=["Admins"])


def _get_admin_or_404(db: Session, admin_id: int) -> Admin:
    admin = db.query(Admin).filter(Admin.id == admin_id).first()
    if not admin:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Admin not found")
    return admin


@router.post("", response_model=AdminResponse, status_code=status.HTTP_201_CREATED)
def register_admin(
    admin_in: AdminCreate,
    db: Session = Depends(get_db),
    repository: SqlAlchemyDistributionRepository = Depends(get_repository),
):
    """
    Add an admin to the directory with an empty caseload.
    """
    duplicate = db.query(Admin).filter(
        (Admin.email == admin_in.email) | (Admin.employee_id == admin_in.employee_id)
    ).first()
    if duplicate:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Admin with this email or employee ID already exists",
        )

    try:
        db_admin = Admin(
            name=admin_in.name,
            email=admin_in.email,
            department=admin_in.department,
            employee_id=admin_in.employee_id,
            role=admin_in.role.value,
            branches=admin_in.branches or admin_in.department,
            semesters=admin_in.semesters,
            max_case_load=admin_in.max_case_load,
            current_case_load=0,
            is_active=True,
            specializations=[AdminSpecialization(category=spec.value) for spec in admin_in.specializations],
        )
        with repository.transaction():
            repository.save_admin(db_admin)
        db.refresh(db_admin)
    except IntegrityError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Admin with this email or employee ID already exists",
        )
    except Exception as e:
        db.rollback()
        raise e

    logger.info("Registered admin %s (%s)", db_admin.id, db_admin.email)
    return db_admin


@router.get("", response_model=List[AdminResponse])
def get_admins(
    specialization: Optional[CategoryEnum] = None,
    branch: Optional[str] = None,
    semester: Optional[int] = Query(None, ge=1, le=8),
    is_active: Optional[bool] = None,
    db: Session = Depends(get_db)
):
    """
    Retrieve admins with optional filtering, most recently registered first.
    """
    query = db.query(Admin)

    if specialization is not None:
        query = query.filter(Admin.specializations.any(AdminSpecialization.category == specialization.value))
    if branch is not None:
        query = query.filter(Admin.branches == branch)
    if semester is not None:
        query = query.filter(Admin.semesters == semester)
    if is_active is not None:
        query = query.filter(Admin.is_active.is_(is_active))

    return query.order_by(Admin.created_at.desc(), Admin.id.desc()).all()


@router.get("/available/{category}", response_model=List[AdminResponse])
def get_available_admins(
    category: CategoryEnum,
    department: Optional[str] = None,
    semester: Optional[int] = Query(None, ge=1, le=8),
    repository: SqlAlchemyDistributionRepository = Depends(get_repository),
):
    """
    Active admins specialized in a category who still have spare capacity, least loaded first.
    """
    return repository.query_admins(AdminFilter(category=category.value, department=department, semester=semester))


@router.get("/{admin_id}", response_model=AdminResponse)
def get_admin(admin_id: int, db: Session = Depends(get_db)):
    return _get_admin_or_404(db, admin_id)


@router.put("/{admin_id}", response_model=AdminResponse)
def update_admin(admin_id: int, update_data: AdminUpdate, db: Session = Depends(get_db)):
    """
    Edit an admin's directory details. A lower max_case_load takes effect for
    new assignments only; complaints already held are not redistributed.
    """
    admin = _get_admin_or_404(db, admin_id)
    changes = update_data.model_dump(exclude_unset=True)
    specializations = changes.pop("specializations", None)

    try:
        for field, value in changes.items():
            if value is None:
                continue
            setattr(admin, field, value.value if field == "role" else value)

        if specializations is not None:
            wanted = [spec.value for spec in specializations]
            # Keep surviving rows so the (admin_id, category) constraint is never hit mid-flush
            admin.specializations = [s for s in admin.specializations if s.category in wanted] + [
                AdminSpecialization(category=category)
                for category in wanted
                if category not in admin.categories
            ]

        db.commit()
        db.refresh(admin)
    except Exception as e:
        db.rollback()
        raise e

    logger.info("Updated admin %s: %s", admin.id, sorted(update_data.model_fields_set))
    return admin


@router.patch("/{admin_id}/toggle-status", response_model=ToggleStatusResponse)
def toggle_admin_status(admin_id: int, db: Session = Depends(get_db)):
    """
    Flip whether an admin is eligible for new assignments. Existing assignments are untouched.
    """
    admin = _get_admin_or_404(db, admin_id)
    try:
        admin.is_active = not admin.is_active
        db.commit()
        db.refresh(admin)
    except Exception as e:
        db.rollback()
        raise e

    return ToggleStatusResponse(
        message=f"Admin {'activated' if admin.is_active else 'deactivated'} successfully",
        is_active=admin.is_active,
    )


@router.get("/{admin_id}/stats", response_model=AdminStatsResponse)
def get_admin_stats(admin_id: int, db: Session = Depends(get_db)):
    """
    Workload of a single admin: utilization of the caseload ceiling and
    how the complaints assigned to them are spread across statuses.
    """
    admin = _get_admin_or_404(db, admin_id)

    by_status = dict(
        db.query(Complaint.status, func.count(Complaint.id))
        .filter(Complaint.assigned_to == admin.id)
        .group_by(Complaint.status)
        .all()
    )
    total = sum(by_status.values())
    resolved = sum(count for state, count in by_status.items() if state in TERMINAL_STATES)

    return {
        "admin": {
            "name": admin.name,
            "email": admin.email,
            "department": admin.department,
            "specializations": admin.categories,
            "current_case_load": admin.current_case_load,
            "max_case_load": admin.max_case_load,
            "utilization_rate": round(admin.current_case_load / admin.max_case_load * 100, 2) if admin.max_case_load > 0 else 0,
        },
        "complaints": {
            "total": total,
            "resolved": resolved,
            "resolution_rate": round(resolved / total * 100, 2) if total > 0 else 0,
            "by_status": by_status,
        },
    }
