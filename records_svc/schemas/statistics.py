"""
Pydantic schemas for statistics endpoints.
"""
from typing import Dict, Optional

from pydantic import BaseModel, Field


class Statistics(BaseModel):
    """Entity counts, system-wide or for one institution."""

    institution_id: Optional[str] = None
    institutions: Optional[int] = None
    users: int
    patients: int
    doctors: int
    medical_records: int
    records_by_visit_type: Dict[str, int] = Field(default_factory=dict)
