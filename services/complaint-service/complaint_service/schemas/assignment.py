from pydantic import BaseModel, Field
from typing import Optional, List, Union
from complaint_service.schemas.admin import AdminSummary

class AssignmentRequest(BaseModel):
    admin_id: Optional[int] = Field(None, description="Target admin; omit to select one automatically.")
    assigned_by: Optional[int] = Field(None, description="The admin performing a manual assignment.")

class AssignmentResponse(BaseModel):
    message: str = "Complaint assigned successfully"
    assigned_to: AdminSummary
    assignment_type: str

class ForwardRequest(BaseModel):
    from_admin_id: int = Field(..., description="The admin currently holding the complaint.")
    to_admin_id: int = Field(..., description="The admin receiving the complaint.")
    reason: Optional[str] = Field(None, description="Why the complaint is being handed over; stored verbatim.")

class ForwardResponse(BaseModel):
    message: str = "Complaint forwarded successfully"
    forwarded_to: AdminSummary
    from_admin_id: int
    to_admin_id: int
    reason: Optional[str] = None

class BatchAssignmentError(BaseModel):
    complaint_id: int
    token: str
    error: Optional[str] = None

class BatchAssignmentResponse(BaseModel):
    message: str = "Batch assignment completed"
    total: int
    assigned: int
    failed: int
    errors: List[BatchAssignmentError] = []


class ComplaintTotals(BaseModel):
    total: int = 0
    assigned: int = 0
    unassigned: int = 0
    resolved: int = 0
    in_progress: int = 0
    assignment_rate: str = "0%"

class CategoryStats(BaseModel):
    category: str
    count: int
    assigned_count: int

class AdminLoad(BaseModel):
    id: int
    name: str
    email: str
    current_case_load: int
    max_case_load: int
    active_complaint_count: int

class AdminTotals(BaseModel):
    total: int = 0
    active: int = 0
    total_case_load: int = 0
    avg_case_load: Union[int, float] = 0
    per_admin: List[AdminLoad] = []

class AssignmentStatsResponse(BaseModel):
    complaints: ComplaintTotals
    categories: List[CategoryStats] = []
    admins: AdminTotals
