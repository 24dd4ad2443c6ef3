"""Deployment status notification route."""

from fastapi import APIRouter

from scribe.dependencies import AppServices
from scribe.models.deployment import DeploymentData

router = APIRouter(tags=["Deployments"])


@router.post("/deployments/notify")
async def notify_deployment(body: DeploymentData, services: AppServices) -> dict:
    results = await services.deployments.notify(body)
    return {
        "success": any(r.delivered for r in results.values()),
        "results": {name: r.model_dump(mode="json", exclude_none=True) for name, r in results.items()},
    }
