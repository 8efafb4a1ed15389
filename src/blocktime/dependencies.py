"""Shared FastAPI dependencies backed by the handles opened in the lifespan."""

from fastapi import Request

from blocktime.database import get_session
from blocktime.estimation.service import EstimationService
from blocktime.notifications.scheduler import NotificationScheduler

get_db = get_session


def get_estimation_service(request: Request) -> EstimationService:
    """The process-wide estimation service."""
    service: EstimationService = request.app.state.estimation
    return service


def get_scheduler(request: Request) -> NotificationScheduler:
    """The process-wide notification scheduler."""
    scheduler: NotificationScheduler = request.app.state.scheduler
    return scheduler
