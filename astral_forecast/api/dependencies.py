"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session
from astral_forecast.config import settings
from astral_forecast.domain.health import HealthScoreConfig
from astral_forecast.domain.variance import VarianceTracker
from astral_forecast.infrastructure.clients.records import RecordsClient
from astral_forecast.infrastructure.database.repositories import BillHistoryRepository
from astral_forecast.infrastructure.database.session import get_db


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_records_client() -> RecordsClient:
    """Provide records service client instance"""
    return RecordsClient()


def get_history_repository(db: Session = Depends(get_db)) -> BillHistoryRepository:
    """Bill history store bound to the request's session"""
    return BillHistoryRepository(db)


def get_variance_tracker(repository: BillHistoryRepository = Depends(get_history_repository)) -> VarianceTracker:
    return VarianceTracker(repository)


def get_health_config() -> HealthScoreConfig:
    """Health score tiers from settings"""
    return settings.health_score_config()
