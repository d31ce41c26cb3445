"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
Field names are camelCase to match the public form and admin dashboard.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


# ============================================================================
# Referral Models
# ============================================================================

class ReferralSubmissionRequest(BaseModel):
    """
    Public referral form submission.

    Every field is optional at the schema level so that the service can report
    all missing required fields at once with a 400 response.
    """
    referrerName: Optional[str] = None
    referrerEmail: Optional[str] = None
    leadName: Optional[str] = None
    leadAddress: Optional[str] = None
    leadPhone: Optional[str] = None
    leadEmail: Optional[str] = None
    leadNotes: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "referrerName": "John Smith",
                "referrerEmail": "john@example.com",
                "leadName": "Jane Doe",
                "leadAddress": "123 Main St",
                "leadPhone": "555-1234",
                "leadEmail": "jane@example.com",
                "leadNotes": "Interested in a quote next month"
            }
        }


class ReferralResponse(BaseModel):
    """
    A referral record.

    Values of editable fields are returned exactly as stored, and fields merged
    in by admin updates that are not part of the record schema are passed
    through unchanged.
    """
    id: str
    createdAt: str
    updatedAt: Optional[str] = None
    referrerName: Any
    referrerEmail: Any
    leadName: Any
    leadAddress: Any
    leadPhone: Any
    leadEmail: Any = ""
    leadNotes: Any = ""
    status: Any = "submitted"  # submitted, contacted, appointment, closed, lost
    assignedSetter: Any = ""
    incentiveAmount: Any = 500
    incentiveStatus: Any = "pending"  # pending, paid
    emailDay0Sent: Any = False
    emailDay3Sent: Any = False
    emailDay7Sent: Any = False
    lastContactDate: Optional[str] = None

    class Config:
        extra = "allow"
        json_schema_extra = {
            "example": {
                "id": "3f0c5b8e-4f1d-4f7e-9a57-1c2d3e4f5a6b",
                "createdAt": "2025-01-01T12:00:00.000Z",
                "updatedAt": None,
                "referrerName": "John Smith",
                "referrerEmail": "john@example.com",
                "leadName": "Jane Doe",
                "leadAddress": "123 Main St",
                "leadPhone": "555-1234",
                "leadEmail": "",
                "leadNotes": "",
                "status": "submitted",
                "assignedSetter": "",
                "incentiveAmount": 500,
                "incentiveStatus": "pending",
                "emailDay0Sent": False,
                "emailDay3Sent": False,
                "emailDay7Sent": False,
                "lastContactDate": None
            }
        }


class ReferralSummaryResponse(BaseModel):
    """Pipeline totals for the admin dashboard."""
    total: int
    byStatus: Dict[str, int]
    pendingIncentiveTotal: int

    class Config:
        json_schema_extra = {
            "example": {
                "total": 12,
                "byStatus": {
                    "submitted": 5,
                    "contacted": 3,
                    "appointment": 2,
                    "closed": 1,
                    "lost": 1
                },
                "pendingIncentiveTotal": 500
            }
        }


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    kind: str
    detail: Optional[str] = None
    fields: List[str] = Field(default_factory=list)
    status_code: int

    class Config:
        json_schema_extra = {
            "example": {
                "error": "Missing required fields",
                "kind": "validation_error",
                "detail": "Missing required fields: referrerName",
                "fields": ["referrerName"],
                "status_code": 400
            }
        }
