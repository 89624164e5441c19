import pytest
from datetime import datetime, timedelta
from itertools import count
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from complaint_service.core.db import Base
from complaint_service.models.admin import Admin, AdminSpecialization
from complaint_service.models.complaint import Complaint

# Setup a SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///./test_complaints.db"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

_sequence = count(1)
_epoch = datetime(2024, 1, 1)

@pytest.fixture(scope="function")
def db_session():
    # Create the tables
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        # Drop the tables after the test
        Base.metadata.drop_all(bind=engine)

@pytest.fixture
def admin_factory(db_session):
    """Registers admins; each one is registered strictly after the previous."""
    def create(
        name=None,
        specializations=("general",),
        branches=None,
        semesters=None,
        max_case_load=5,
        current_case_load=0,
        is_active=True,
    ):
        n = next(_sequence)
        admin = Admin(
            name=name or f"Admin {n}",
            email=f"admin{n}@university.edu",
            department="CSE",
            employee_id=f"EMP{n:05d}",
            branches=branches,
            semesters=semesters,
            max_case_load=max_case_load,
            current_case_load=current_case_load,
            is_active=is_active,
            created_at=_epoch + timedelta(minutes=n),
            specializations=[AdminSpecialization(category=c) for c in specializations],
        )
        db_session.add(admin)
        db_session.commit()
        db_session.refresh(admin)
        return admin
    return create

@pytest.fixture
def complaint_factory(db_session):
    def create(category="general", student_info=None, status="received", assigned_to=None, title="Test complaint"):
        n = next(_sequence)
        complaint = Complaint(
            token=f"{100000 + n:06d}",
            title=title,
            description="Test description",
            category=category,
            status=status,
            assigned_to=assigned_to,
            student_info=student_info,
            messages=[],
        )
        db_session.add(complaint)
        db_session.commit()
        db_session.refresh(complaint)
        return complaint
    return create
