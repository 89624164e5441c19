from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session
from complaint_service.core.db import get_db
from complaint_service.core.distribution import ComplaintDistributionService
from complaint_service.core.repository import SqlAlchemyDistributionRepository
from complaint_service.core.results import ErrorCode, ServiceResult

def get_repository(db: Session = Depends(get_db)) -> SqlAlchemyDistributionRepository:
    return SqlAlchemyDistributionRepository(db)

def get_distribution_service(
    repository: SqlAlchemyDistributionRepository = Depends(get_repository),
) -> ComplaintDistributionService:
    return ComplaintDistributionService(repository)

def raise_for_result(result: ServiceResult):
    """Translate a failed engine result into an HTTP error."""
    if result.success:
        return
    if result.error_code == ErrorCode.INTERNAL_ERROR:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=result.error)
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.error)
