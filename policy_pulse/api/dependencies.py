"""FastAPI dependency providers for collaborators and services."""

from typing import Annotated

from fastapi import Depends, FastAPI, Request

from policy_pulse.config import settings
from policy_pulse.repositories.base import ImpactReportStore, PolicyDirectory, UserDirectory
from policy_pulse.repositories.memory import (
    InMemoryImpactReportStore,
    InMemoryPolicyDirectory,
    InMemoryUserDirectory,
    load_seed_data,
)
from policy_pulse.services.comparison.pdf_comparison_service import PdfComparisonService
from policy_pulse.services.impact.impact_resolver import ImpactResolver
from policy_pulse.services.recommendation.recommendation_service import RecommendationService
from policy_pulse.utils.logging import get_logger

LOGGER = get_logger(__name__)


def init_collaborators(app: FastAPI) -> None:
    """Attach in-memory directories to ``app.state``, seeded when a seed file is configured."""
    policies, users = [], []
    if settings.seed_data_path:
        policies, users = load_seed_data(settings.seed_data_path)

    app.state.policy_directory = InMemoryPolicyDirectory(policies)
    app.state.user_directory = InMemoryUserDirectory(users)
    app.state.report_store = InMemoryImpactReportStore()
    LOGGER.info(
        "Collaborators initialized",
        extra={"policy_count": len(policies), "user_count": len(users)},
    )


def _state(request: Request, name: str):
    if not hasattr(request.app.state, name):
        init_collaborators(request.app)
    return getattr(request.app.state, name)


async def get_policy_directory(request: Request) -> PolicyDirectory:
    return _state(request, "policy_directory")


async def get_user_directory(request: Request) -> UserDirectory:
    return _state(request, "user_directory")


async def get_report_store(request: Request) -> ImpactReportStore:
    return _state(request, "report_store")


async def get_impact_resolver(
    policies: Annotated[PolicyDirectory, Depends(get_policy_directory)],
    users: Annotated[UserDirectory, Depends(get_user_directory)],
    store: Annotated[ImpactReportStore, Depends(get_report_store)],
) -> ImpactResolver:
    return ImpactResolver(policies, users, store)


async def get_recommendation_service(
    policies: Annotated[PolicyDirectory, Depends(get_policy_directory)],
    users: Annotated[UserDirectory, Depends(get_user_directory)],
) -> RecommendationService:
    return RecommendationService(policies, users)


async def get_pdf_comparison_service() -> PdfComparisonService:
    return PdfComparisonService()
