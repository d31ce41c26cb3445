"""
Referrals API Endpoints.

Endpoints for the public referral form and the admin dashboard.
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends, Request

from api.models import (
    ErrorResponse,
    ReferralResponse,
    ReferralSubmissionRequest,
    ReferralSummaryResponse,
)
from services.dashboard_service import summarize_referrals
from services.referral_service import ReferralService

router = APIRouter()


def get_referral_service(request: Request) -> ReferralService:
    """Return the ReferralService the application was created with."""
    return request.app.state.referral_service


@router.post(
    "/referrals",
    status_code=201,
    response_model=ReferralResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Submit Referral",
    description="Submit a new referral from the public form."
)
def submit_referral(
    request: ReferralSubmissionRequest,
    service: ReferralService = Depends(get_referral_service),
):
    """
    Create a referral record.

    **Required:** referrerName, referrerEmail, leadName, leadAddress, leadPhone

    **Optional:** leadEmail, leadNotes (default to empty strings)

    The created record starts with status `submitted`, incentive amount 500
    and incentive status `pending`. A 400 response lists every missing field.
    """
    record = service.submit(request.model_dump())
    return record.to_dict()


@router.get(
    "/referrals",
    response_model=List[ReferralResponse],
    responses={500: {"model": ErrorResponse}},
    summary="List Referrals",
    description="Fetch every referral in creation order."
)
def list_referrals(service: ReferralService = Depends(get_referral_service)):
    """
    List all referrals for the admin dashboard.

    No server-side filtering is applied; the dashboard filters by status.
    """
    return [record.to_dict() for record in service.fetch_all()]


@router.get(
    "/referrals/summary",
    response_model=ReferralSummaryResponse,
    responses={500: {"model": ErrorResponse}},
    summary="Referral Pipeline Summary",
    description="Counts per status and the incentive total owed on closed referrals."
)
def referral_summary(service: ReferralService = Depends(get_referral_service)):
    summary = summarize_referrals(service.fetch_all())
    return ReferralSummaryResponse(
        total=summary.total,
        byStatus=summary.by_status,
        pendingIncentiveTotal=summary.pending_incentive_total,
    )


@router.patch(
    "/referrals",
    response_model=ReferralResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    summary="Update Referral",
    description="Merge the given fields into an existing referral."
)
def update_referral(
    payload: Dict[str, Any] = Body(..., examples=[{"id": "3f0c5b8e-...", "status": "contacted"}]),
    service: ReferralService = Depends(get_referral_service),
):
    """
    Update a referral from the admin dashboard.

    **Example request:**
    ```json
    {"id": "3f0c5b8e-4f1d-4f7e-9a57-1c2d3e4f5a6b", "status": "closed", "assignedSetter": "Alex"}
    ```

    Every key other than `id` is merged into the record; `id` and `createdAt`
    can never be changed. Any status may be set regardless of the current one.
    """
    changes = dict(payload)
    referral_id = changes.pop("id", None)
    record = service.apply_update(referral_id, changes)
    return record.to_dict()
