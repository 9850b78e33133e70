"""
Pydantic schemas for audit log entries.
"""
from typing import Any, Dict, Optional

from pydantic import BaseModel

from models.enums import AuditOutcome


class AuditEntryResponse(BaseModel):
    id: str
    actor_id: Optional[str] = None
    actor_kind: Optional[str] = None
    action: str
    resource_path: Optional[str] = None
    method: Optional[str] = None
    outcome: AuditOutcome
    details: Dict[str, Any]
    created_at: Optional[str] = None

    class Config:
        from_attributes = True
