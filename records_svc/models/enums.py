"""
Closed value sets used by the domain models and API schemas.
"""
from enum import Enum


class InstitutionType(str, Enum):
    HOSPITAL = "hospital"
    CLINIC = "clinic"
    PHARMACY = "pharmacy"
    LABORATORY = "laboratory"


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"


class BloodType(str, Enum):
    O_POS = "O+"
    A_POS = "A+"
    B_POS = "B+"
    AB_POS = "AB+"
    O_NEG = "O-"
    A_NEG = "A-"
    B_NEG = "B-"
    AB_NEG = "AB-"


class InsuranceType(str, Enum):
    GOVERNMENT = "government"
    MILITARY = "military"
    PRIVATE = "private"
    EMPLOYER = "employer"


class VisitType(str, Enum):
    CONSULTATION = "consultation"
    EMERGENCY = "emergency"
    FOLLOW_UP = "follow-up"
    SURGERY = "surgery"
    LAB_TEST = "lab-test"
    IMMUNIZATION = "immunization"


class LabResultStatus(str, Enum):
    NORMAL = "normal"
    ABNORMAL = "abnormal"
    CRITICAL = "critical"


class AttachmentType(str, Enum):
    PDF = "pdf"
    JPG = "jpg"
    PNG = "png"


class AuditOutcome(str, Enum):
    SUCCESS = "success"
    DENIED = "denied"


class AuditAction(str, Enum):
    EMERGENCY_OVERRIDE = "emergency_override"
    INSTITUTION_DELETED = "institution_deleted"
    USER_CREATED = "user_created"
    USER_UPDATED = "user_updated"
    USER_DELETED = "user_deleted"
    ROLE_CREATED = "role_created"
    ROLE_UPDATED = "role_updated"
    ROLE_DELETED = "role_deleted"
    PASSWORD_CHANGED = "password_changed"
    ADMIN_BOOTSTRAPPED = "admin_bootstrapped"
