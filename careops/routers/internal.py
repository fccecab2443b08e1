"""
Internal endpoints for scheduled/cron operations.

Protected by "Authorization: Bearer <CRON_SECRET>".
Call from external cron (Vercel/Render/GH Actions).
"""
import logging

from fastapi import APIRouter, Depends, Header, HTTPException

from careops.core.security import UnauthorizedError, verify_cron_authorization
from careops.core.structured_logging import build_log_context
from careops.schemas.compliance import FleetReportResponse
from careops.services import fleet_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/internal/scheduled", tags=["internal"])


def require_cron_secret(authorization: str | None = Header(default=None)) -> None:
    """Reject the request before any work is done unless the cron secret matches."""
    try:
        verify_cron_authorization(authorization)
    except UnauthorizedError as exc:
        logger.warning(
            "Rejected scheduled call: %s",
            exc,
            extra=build_log_context(route="/internal/scheduled/compliance-checks"),
        )
        raise HTTPException(
            status_code=401,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc


@router.post(
    "/compliance-checks",
    response_model=FleetReportResponse,
    dependencies=[Depends(require_cron_secret)],
)
def run_compliance_checks():
    """
    Daily compliance sweep across all active organisations.

    Returns {checked, failed, results}; a failed tenant appears in results
    with its error and does not affect the others.
    """
    report = fleet_service.run_fleet()
    return report.to_dict()
