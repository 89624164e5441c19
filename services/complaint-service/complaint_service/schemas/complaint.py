from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Dict, Any
from datetime import datetime
from enum import Enum

class CategoryEnum(str, Enum):
    ACADEMIC = "academic"
    SPORTS = "sports"
    HARASS = "harass"
    HARASSMENT = "harassment"
    EXAM = "exam"
    GENERAL = "general"

class ComplaintStatusEnum(str, Enum):
    RECEIVED = "received"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"
    FORWARDED = "forwarded"

class PriorityEnum(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"

class SenderEnum(str, Enum):
    ADMIN = "admin"
    STUDENT = "student"
    SUPER_ADMIN = "super_admin"


class StudentInfo(BaseModel):
    name: Optional[str] = None
    roll_no: Optional[str] = None
    department: Optional[str] = Field(None, description="The student's department/branch.")
    semester: Optional[int] = Field(None, ge=1, le=8)
    phone: Optional[str] = None
    email: Optional[str] = None

class MessageResponse(BaseModel):
    body: str
    sender: SenderEnum = SenderEnum.ADMIN
    sender_name: Optional[str] = None
    visible: bool = True
    created_at: Optional[datetime] = None

class ForwardRecordResponse(BaseModel):
    from_admin_id: int
    to_admin_id: int
    reason: Optional[str] = None
    forwarded_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ComplaintCreate(BaseModel):
    title: Optional[str] = Field(None, description="Short summary of the complaint.")
    description: Optional[str] = Field(None, description="Full text of the complaint.")
    category: Optional[CategoryEnum] = Field(None, description="The complaint category used for routing.")
    priority: PriorityEnum = PriorityEnum.NORMAL
    department: Optional[str] = Field(None, description="The department the complaint relates to.")
    anonymous: bool = Field(False, description="Submit without attaching student details.")
    student_info: Optional[StudentInfo] = None

class ComplaintSubmitted(BaseModel):
    id: int
    title: str
    description: str
    category: CategoryEnum
    token: str
    status: ComplaintStatusEnum
    created_at: datetime
    message: str = "Complaint submitted successfully"

class ComplaintResponse(BaseModel):
    id: int
    token: str
    title: str
    description: str
    category: CategoryEnum
    priority: PriorityEnum
    status: ComplaintStatusEnum
    department: Optional[str] = None
    student_info: Optional[Dict[str, Any]] = None
    is_anonymous: bool
    identity_revealed: bool
    revealed_by: Optional[int] = None
    revealed_at: Optional[datetime] = None
    assigned_to: Optional[int] = None
    assigned_by: Optional[int] = None
    assignment_type: str
    assigned_at: Optional[datetime] = None
    resolution: Optional[str] = None
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    messages: List[MessageResponse] = []
    forward_history: List[ForwardRecordResponse] = []

    model_config = ConfigDict(from_attributes=True)

class ComplaintTrackResponse(BaseModel):
    status: ComplaintStatusEnum
    priority: PriorityEnum
    title: str
    description: str
    created_at: datetime
    updated_at: datetime
    messages: List[MessageResponse] = []

class AdminComplaintsPage(BaseModel):
    complaints: List[ComplaintResponse]
    total: int
    total_pages: int
    current_page: int


class MessageCreate(BaseModel):
    body: str = Field(..., min_length=1, description="The message text.")
    visible: bool = Field(False, description="Whether the student can see this message when tracking.")
    sender: SenderEnum = SenderEnum.ADMIN
    sender_name: str = "Admin"

class StatusUpdateRequest(BaseModel):
    status: ComplaintStatusEnum = Field(..., description="The target status.")
    resolution: Optional[str] = Field(None, description="Resolution text, recorded when resolving or closing.")
    resolved_by: Optional[int] = Field(None, description="The admin resolving or closing the complaint.")

class RevealIdentityRequest(BaseModel):
    super_admin_id: int = Field(..., description="The super admin disclosing the student's identity.")

class RevealIdentityResponse(BaseModel):
    message: str = "Student identity revealed"
    student_info: Optional[Dict[str, Any]] = None

class ComplaintUpdate(BaseModel):
    """Intake details an admin may correct. Status and assignment have their own routes."""
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    priority: Optional[PriorityEnum] = None
    department: Optional[str] = None

    model_config = ConfigDict(extra="forbid")
