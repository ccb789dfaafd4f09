"""
Public tracking endpoint — no authentication.

Anyone holding a reference code can see the sanitized status view.
Unknown and malformed codes get the same 404.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from hawala.api.deps import get_tracking_service
from hawala.schemas.tracking import TrackingView
from hawala.services.tracking_service import TrackingService

router = APIRouter()


@router.get("/{reference_code}", response_model=TrackingView)
async def track(
    reference_code: str,
    tracking: TrackingService = Depends(get_tracking_service),
):
    result = await tracking.lookup(reference_code)
    if not result.found:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Transaction not found",
        )
    return result.view
