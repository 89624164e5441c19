from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    PROJECT_NAME: str = "Campus Complaint Service"
    DATABASE_URL: str = "sqlite:///./complaints.db"
    LOG_LEVEL: str = "INFO"

    # Applied when an admin registers without an explicit ceiling
    DEFAULT_MAX_CASE_LOAD: int = 50
    TOKEN_GENERATION_ATTEMPTS: int = 10

    class Config:
        env_file = ".env"

settings = Settings()
