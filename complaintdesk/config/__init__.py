"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from functools import lru_cache
from typing import List


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="complaint-desk", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/complaints",
        description="PostgreSQL connection URL (async)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)

    # ========== Listing ==========
    default_page_size: int = Field(
        default=20,
        description="Complaints per page when no limit is given",
        ge=1
    )
    max_page_size: int = Field(
        default=500,
        description="Upper bound for a single complaint listing page",
        ge=1
    )
    recent_call_logs_limit: int = Field(
        default=10,
        description="Default number of entries in the recent call log feed",
        ge=1,
        le=200
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "testing", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR"}
        if v.upper() not in allowed:
            raise ValueError(f"log_level must be one of {allowed}")
        return v.upper()


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class ComplaintCategory(str):
    """Complaint categories. Opaque to the lifecycle engine."""
    EQUIPMENT = "equipment"
    FEED = "feed"
    MEDICINE = "medicine"
    SERVICE = "service"
    BILLING = "billing"
    OTHER = "other"


class Priority(str):
    """Complaint priority levels."""
    NORMAL = "normal"
    URGENT = "urgent"
    CRITICAL = "critical"


class ComplaintStatus(str):
    """Complaint lifecycle statuses."""
    OPEN = "open"
    PROGRESS = "progress"
    CLOSED = "closed"
    REOPEN = "reopen"


class CallOutcome(str):
    """Outcome of a single phone contact attempt."""
    CONNECTED = "connected"
    NO_ANSWER = "no_answer"
    BUSY = "busy"
    WRONG_NUMBER = "wrong_number"


class Role(str):
    """User roles."""
    ADMIN = "admin"
    EXECUTIVE = "executive"


class Permission(str):
    """Permission identifiers granted to executives."""
    COMPLAINT_VIEW = "complaint.view"
    COMPLAINT_CREATE = "complaint.create"
    COMPLAINT_EDIT = "complaint.edit"
    COMPLAINT_UPDATE_STATUS = "complaint.updateStatus"
    COMPLAINT_ASSIGN = "complaint.assign"


class AccessReason(str):
    """Machine-readable reasons attached to access decisions."""
    ADMIN = "admin"
    GRANTED = "granted"
    PERMISSION_DENIED = "permission_denied"
    ZONE_SCOPE_VIOLATION = "zone_scope_violation"
    BRANCH_SCOPE_VIOLATION = "branch_scope_violation"
    INACTIVE_USER = "inactive_user"
    UNKNOWN_ROLE = "unknown_role"


# SLA windows in minutes. Unknown priorities fall back to the normal window.
SLA_WINDOW_MINUTES = {
    Priority.CRITICAL: 30,
    Priority.URGENT: 120,
    Priority.NORMAL: 480,
}

TICKET_NUMBER_PREFIX = "SHC"


# ========== Lists for validation ==========

VALID_CATEGORIES = [
    ComplaintCategory.EQUIPMENT, ComplaintCategory.FEED,
    ComplaintCategory.MEDICINE, ComplaintCategory.SERVICE,
    ComplaintCategory.BILLING, ComplaintCategory.OTHER
]
VALID_PRIORITIES = [Priority.NORMAL, Priority.URGENT, Priority.CRITICAL]
VALID_STATUSES = [
    ComplaintStatus.OPEN, ComplaintStatus.PROGRESS,
    ComplaintStatus.CLOSED, ComplaintStatus.REOPEN
]
UNRESOLVED_STATUSES = [
    ComplaintStatus.OPEN, ComplaintStatus.PROGRESS, ComplaintStatus.REOPEN
]
VALID_CALL_OUTCOMES = [
    CallOutcome.CONNECTED, CallOutcome.NO_ANSWER,
    CallOutcome.BUSY, CallOutcome.WRONG_NUMBER
]
VALID_ROLES = [Role.ADMIN, Role.EXECUTIVE]
COMPLAINT_PERMISSIONS = [
    Permission.COMPLAINT_VIEW, Permission.COMPLAINT_CREATE,
    Permission.COMPLAINT_EDIT, Permission.COMPLAINT_UPDATE_STATUS,
    Permission.COMPLAINT_ASSIGN
]
