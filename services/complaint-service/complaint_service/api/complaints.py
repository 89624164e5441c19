import logging
import math
from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from complaint_service.api.deps import get_distribution_service, raise_for_result
from complaint_service.core.db import get_db
from complaint_service.core.distribution import ComplaintDistributionService
from complaint_service.core.fsm import ComplaintStateMachine, ComplaintStatus
from complaint_service.core.tokens import generate_unique_token
from complaint_service.models.complaint import Complaint
from complaint_service.schemas.assignment import (
    AssignmentRequest,
    AssignmentResponse,
    AssignmentStatsResponse,
    BatchAssignmentResponse,
    ForwardRequest,
    ForwardResponse,
)
from complaint_service.schemas.complaint import (
    AdminComplaintsPage,
    CategoryEnum,
    ComplaintCreate,
    ComplaintResponse,
    ComplaintStatusEnum,
    ComplaintSubmitted,
    ComplaintTrackResponse,
    ComplaintUpdate,
    MessageCreate,
    RevealIdentityRequest,
    RevealIdentityResponse,
    StatusUpdateRequest,
    StudentInfo,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/complaints", tags=["Complaints"])


def _get_complaint_or_404(db: Session, complaint_id: int) -> Complaint:
    complaint = db.query(Complaint).filter(Complaint.id == complaint_id).first()
    if not complaint:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Complaint not found")
    return complaint


def _extract_student_info(complaint_in: ComplaintCreate) -> Optional[dict]:
    if complaint_in.anonymous:
        return None
    if complaint_in.student_info is not None:
        info = complaint_in.student_info.model_dump()
    else:
        info = StudentInfo().model_dump()
    if not info.get("department"):
        info["department"] = complaint_in.department
    return info


@router.post("", response_model=ComplaintSubmitted, status_code=status.HTTP_201_CREATED)
def submit_complaint(
    complaint_in: ComplaintCreate,
    db: Session = Depends(get_db),
    service: ComplaintDistributionService = Depends(get_distribution_service),
):
    """
    Accept a student complaint and issue its tracking token.
    Automatic assignment is attempted afterwards; the submission succeeds
    whether or not an admin could be found.
    """
    if not complaint_in.title and not complaint_in.description:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Title or description is required")
    if complaint_in.category is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Category is required")

    student_info = _extract_student_info(complaint_in)
    try:
        db_complaint = Complaint(
            token=generate_unique_token(db),
            title=complaint_in.title or "Complaint",
            description=complaint_in.description or "",
            category=complaint_in.category.value,
            priority=complaint_in.priority.value,
            department=complaint_in.department or (student_info or {}).get("department"),
            is_anonymous=complaint_in.anonymous,
            student_info=student_info,
            status=ComplaintStatus.RECEIVED,
            messages=[],
        )
        db.add(db_complaint)
        db.commit()
        db.refresh(db_complaint)
    except Exception as e:
        db.rollback()
        raise e

    logger.info("Complaint %s received with token %s", db_complaint.id, db_complaint.token)

    result = service.assign_complaint(db_complaint.id)
    if result.success:
        logger.info(
            "Complaint %s automatically assigned to %s",
            db_complaint.token, result.data["assigned_to"]["name"],
        )
    else:
        logger.warning("Could not auto-assign complaint %s: %s", db_complaint.token, result.error)

    db.refresh(db_complaint)
    return ComplaintSubmitted(
        id=db_complaint.id,
        title=db_complaint.title,
        description=db_complaint.description,
        category=db_complaint.category,
        token=db_complaint.token,
        status=db_complaint.status,
        created_at=db_complaint.created_at,
    )


@router.get("", response_model=List[ComplaintResponse])
def get_complaints(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    status: Optional[ComplaintStatusEnum] = None,
    category: Optional[CategoryEnum] = None,
    db: Session = Depends(get_db)
):
    """
    Retrieve complaints with optional filtering, newest first.
    """
    query = db.query(Complaint)

    if status is not None:
        query = query.filter(Complaint.status == status.value)
    if category is not None:
        query = query.filter(Complaint.category == category.value)

    return query.order_by(Complaint.created_at.desc(), Complaint.id.desc()).offset(skip).limit(limit).all()


@router.get("/unassigned", response_model=List[ComplaintResponse])
def get_unassigned_complaints(category: Optional[CategoryEnum] = None, db: Session = Depends(get_db)):
    query = db.query(Complaint).filter(Complaint.assigned_to.is_(None))
    if category is not None:
        query = query.filter(Complaint.category == category.value)
    return query.order_by(Complaint.created_at.desc(), Complaint.id.desc()).all()


@router.get("/stats/assignments", response_model=AssignmentStatsResponse)
def get_assignment_stats(service: ComplaintDistributionService = Depends(get_distribution_service)):
    return service.get_assignment_stats()


@router.post("/auto-assign", response_model=BatchAssignmentResponse)
def auto_assign_unassigned(service: ComplaintDistributionService = Depends(get_distribution_service)):
    """
    Run one assignment pass over every complaint still waiting for an admin.
    """
    report = service.auto_assign_unassigned()
    return BatchAssignmentResponse(
        total=report.total,
        assigned=report.assigned,
        failed=report.failed,
        errors=report.errors,
    )


@router.get("/track/{token}", response_model=ComplaintTrackResponse)
def track_complaint(token: str, db: Session = Depends(get_db)):
    """
    Public tracking view. Only messages marked visible are returned.
    """
    complaint = db.query(Complaint).filter(Complaint.token == token).first()
    if not complaint:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Complaint not found")
    return ComplaintTrackResponse(
        status=complaint.status,
        priority=complaint.priority,
        title=complaint.title,
        description=complaint.description,
        created_at=complaint.created_at,
        updated_at=complaint.updated_at,
        messages=[m for m in (complaint.messages or []) if m.get("visible")],
    )


@router.get("/admin/{admin_id}", response_model=AdminComplaintsPage)
def get_admin_complaints(
    admin_id: int,
    status: Optional[ComplaintStatusEnum] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db)
):
    query = db.query(Complaint).filter(Complaint.assigned_to == admin_id)
    if status is not None:
        query = query.filter(Complaint.status == status.value)

    total = query.count()
    complaints = (
        query.order_by(Complaint.created_at.desc(), Complaint.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return AdminComplaintsPage(
        complaints=[ComplaintResponse.model_validate(c) for c in complaints],
        total=total,
        total_pages=math.ceil(total / limit),
        current_page=page,
    )


@router.get("/{complaint_id}", response_model=ComplaintResponse)
def get_complaint(complaint_id: int, db: Session = Depends(get_db)):
    """
    Retrieve a specific complaint, including its message thread and forward history.
    """
    return _get_complaint_or_404(db, complaint_id)


@router.put("/{complaint_id}", response_model=ComplaintResponse)
def update_complaint(complaint_id: int, update_data: ComplaintUpdate, db: Session = Depends(get_db)):
    """
    Correct the intake details of a complaint. Routing is not re-run.
    """
    complaint = _get_complaint_or_404(db, complaint_id)
    try:
        for field, value in update_data.model_dump(exclude_unset=True).items():
            if value is None:
                continue
            setattr(complaint, field, value.value if field == "priority" else value)
        db.commit()
        db.refresh(complaint)
        return complaint
    except Exception as e:
        db.rollback()
        raise e


@router.post("/{complaint_id}/messages", response_model=ComplaintResponse)
def add_message(complaint_id: int, message_in: MessageCreate, db: Session = Depends(get_db)):
    complaint = _get_complaint_or_404(db, complaint_id)
    try:
        complaint.add_message(
            message_in.body,
            sender=message_in.sender.value,
            sender_name=message_in.sender_name,
            visible=message_in.visible,
        )
        db.commit()
        db.refresh(complaint)
        return complaint
    except Exception as e:
        db.rollback()
        raise e


@router.patch("/{complaint_id}/status", response_model=ComplaintResponse)
def update_status(
    complaint_id: int,
    update_data: StatusUpdateRequest,
    db: Session = Depends(get_db),
    service: ComplaintDistributionService = Depends(get_distribution_service),
):
    """
    Move a complaint through its status lifecycle.
    Resolving or closing an open complaint frees a slot in the assigned admin's caseload.
    """
    complaint = _get_complaint_or_404(db, complaint_id)
    fsm = ComplaintStateMachine()

    try:
        release = fsm.transition(
            complaint=complaint,
            new_state=update_data.status.value,
            resolution=update_data.resolution,
            resolved_by=update_data.resolved_by,
        )
        if release:
            # Commits the status change together with the caseload release
            raise_for_result(service.release_on_resolution(complaint.id))
        else:
            db.commit()
        db.refresh(complaint)
        return complaint
    except HTTPException:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        raise e


@router.post("/{complaint_id}/assign", response_model=AssignmentResponse)
def assign_complaint(
    complaint_id: int,
    request: AssignmentRequest,
    service: ComplaintDistributionService = Depends(get_distribution_service),
):
    result = service.assign_complaint(complaint_id, request.admin_id, request.assigned_by)
    raise_for_result(result)
    return AssignmentResponse(**result.data)


@router.post("/{complaint_id}/forward", response_model=ForwardResponse)
def forward_complaint(
    complaint_id: int,
    request: ForwardRequest,
    service: ComplaintDistributionService = Depends(get_distribution_service),
):
    result = service.forward_complaint(complaint_id, request.from_admin_id, request.to_admin_id, request.reason)
    raise_for_result(result)
    return ForwardResponse(
        forwarded_to=result.data["forwarded_to"],
        from_admin_id=request.from_admin_id,
        to_admin_id=request.to_admin_id,
        reason=request.reason,
    )


@router.post("/{complaint_id}/reveal-identity", response_model=RevealIdentityResponse)
def reveal_identity(complaint_id: int, request: RevealIdentityRequest, db: Session = Depends(get_db)):
    """
    Disclose the student behind an anonymous complaint. The disclosure is recorded and cannot be undone.
    """
    complaint = _get_complaint_or_404(db, complaint_id)
    if not complaint.is_anonymous:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="This complaint is not anonymous")

    try:
        if not complaint.identity_revealed:
            complaint.identity_revealed = True
            complaint.revealed_by = request.super_admin_id
            complaint.revealed_at = datetime.utcnow()
        db.commit()
        db.refresh(complaint)
        return RevealIdentityResponse(student_info=complaint.student_info)
    except Exception as e:
        db.rollback()
        raise e
