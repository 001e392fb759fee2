"""Handlers for the offered-services endpoints."""

from __future__ import annotations

from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Mapping

from .common import AppError, JsonResponse, NotFoundError, ValidationError, to_json


@dataclass
class ServiceState:
    """Dependencies of the service handlers."""

    service_service: Any


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


async def get_all_services(state: ServiceState, query: Any) -> JsonResponse:
    """List services matching the query."""
    response = await state.service_service.get_all_services(query)
    return JsonResponse(body=to_json(response))


async def get_service(state: ServiceState, service_id: Any) -> JsonResponse:
    """Return one service by id."""
    service = await state.service_service.get_service_by_id(service_id)
    if service is None:
        raise NotFoundError("Service not found")
    return JsonResponse(body=to_json(service))


async def create_service(state: ServiceState, payload: Any) -> JsonResponse:
    """Validate and create a service."""
    _validate(payload)
    service = await state.service_service.create_service(payload)
    return JsonResponse(
        body={"message": "Service created successfully", "service": to_json(service)},
        status=int(HTTPStatus.CREATED),
    )


async def update_service(
    state: ServiceState, service_id: Any, payload: Any
) -> JsonResponse:
    """Validate and apply an update to a service."""
    _validate(payload)
    service = await state.service_service.update_service(service_id, payload)
    return JsonResponse(
        body={"message": "Service updated successfully", "service": to_json(service)}
    )


async def delete_service(state: ServiceState, service_id: Any) -> JsonResponse:
    """Delete a service."""
    await state.service_service.delete_service(service_id)
    return JsonResponse(body={"message": "Service deleted successfully"})


async def get_active_services(state: ServiceState) -> JsonResponse:
    """List active services."""
    services = list(await state.service_service.get_active_services())
    return JsonResponse(body={"services": to_json(services), "total": len(services)})


async def get_service_stats(state: ServiceState) -> JsonResponse:
    """Return service statistics."""
    stats = await state.service_service.get_service_statistics()
    return JsonResponse(body=to_json(stats))


async def update_service_status(
    state: ServiceState, service_id: Any, payload: Mapping[str, Any]
) -> JsonResponse:
    """Activate or deactivate a service."""
    active = payload.get("active") if isinstance(payload, Mapping) else None
    if not isinstance(active, bool):
        raise ValidationError("Active status is required")
    await state.service_service.toggle_service_status(service_id, active)
    return JsonResponse(body={"message": "Service status updated successfully"})


async def get_services_by_category(state: ServiceState, category: str) -> JsonResponse:
    """List services in a category."""
    services = list(await state.service_service.get_services_by_category(category))
    return JsonResponse(
        body={
            "services": to_json(services),
            "category": category,
            "total": len(services),
        }
    )