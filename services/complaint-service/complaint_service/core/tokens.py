import secrets
from typing import Optional
from sqlalchemy.orm import Session
from complaint_service.core.config import settings
from complaint_service.models.complaint import Complaint

class TokenGenerationError(RuntimeError):
    pass

def generate_token() -> str:
    """Random 6-digit public tracking token (100000-999999)."""
    return str(100000 + secrets.randbelow(900000))

def generate_unique_token(db: Session, attempts: Optional[int] = None) -> str:
    attempts = attempts or settings.TOKEN_GENERATION_ATTEMPTS
    for _ in range(attempts):
        token = generate_token()
        if not db.query(Complaint.id).filter(Complaint.token == token).first():
            return token
    raise TokenGenerationError(f"Failed to generate unique token after {attempts} attempts")
