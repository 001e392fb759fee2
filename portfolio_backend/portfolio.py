"""Handlers for the portfolio project endpoints."""

from __future__ import annotations

from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Mapping

from .common import AppError, JsonResponse, NotFoundError, ValidationError, to_json

_NOT_FOUND = "Portfolio project not found"


@dataclass
class PortfolioState:
    """Dependencies of the portfolio handlers."""

    portfolio_service: Any


def _validate(payload: Any) -> None:
    validate = getattr(payload, "validate", None)
    if not callable(validate):
        return
    try:
        validate()
    except AppError:
        raise
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc


def _unsigned(value: Any) -> int | None:
    if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
        return value
    return None


async def get_all_projects(state: PortfolioState, query: Any) -> JsonResponse:
    """List projects matching the query."""
    response = await state.portfolio_service.get_all_projects(query)
    return JsonResponse(body=to_json(response))


async def get_project(state: PortfolioState, project_id: Any) -> JsonResponse:
    """Return one project by id."""
    project = await state.portfolio_service.get_project_by_id(project_id)
    if project is None:
        raise NotFoundError(_NOT_FOUND)
    return JsonResponse(body=to_json(project))


async def get_project_by_slug(state: PortfolioState, slug: str) -> JsonResponse:
    """Return one project by slug."""
    project = await state.portfolio_service.get_project_by_slug(slug)
    if project is None:
        raise NotFoundError(_NOT_FOUND)
    return JsonResponse(body=to_json(project))


async def create_project(state: PortfolioState, payload: Any) -> JsonResponse:
    """Validate and create a project."""
    _validate(payload)
    project = await state.portfolio_service.create_project(payload)
    return JsonResponse(
        body={
            "message": "Portfolio project created successfully",
            "project": to_json(project),
        },
        status=int(HTTPStatus.CREATED),
    )


async def update_project(
    state: PortfolioState, project_id: Any, payload: Any
) -> JsonResponse:
    """Validate and apply an update to a project."""
    _validate(payload)
    project = await state.portfolio_service.update_project(project_id, payload)
    return JsonResponse(
        body={
            "message": "Portfolio project updated successfully",
            "project": to_json(project),
        }
    )


async def delete_project(state: PortfolioState, project_id: Any) -> JsonResponse:
    """Delete a project."""
    await state.portfolio_service.delete_project(project_id)
    return JsonResponse(body={"message": "Portfolio project deleted successfully"})


async def get_featured_projects(
    state: PortfolioState, query: Mapping[str, Any]
) -> JsonResponse:
    """List featured projects, optionally limited."""
    limit = _unsigned(query.get("limit"))
    projects = list(await state.portfolio_service.get_featured_projects(limit))
    return JsonResponse(body={"projects": to_json(projects), "total": len(projects)})


async def get_portfolio_stats(state: PortfolioState) -> JsonResponse:
    """Return portfolio statistics."""
    stats = await state.portfolio_service.get_portfolio_statistics()
    return JsonResponse(body=to_json(stats))


async def update_featured_status(
    state: PortfolioState, project_id: Any, payload: Mapping[str, Any]
) -> JsonResponse:
    """Set whether a project is featured."""
    featured = payload.get("featured")
    if not isinstance(featured, bool):
        raise ValidationError("Featured status is required")
    await state.portfolio_service.toggle_featured_status(project_id, featured)
    return JsonResponse(body={"message": "Featured status updated successfully"})