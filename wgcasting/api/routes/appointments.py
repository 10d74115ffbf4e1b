"""Appointment and comment endpoints."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Response, status

from wgcasting.api.deps import get_appointment_service
from wgcasting.schemas import AppointmentCreate, AppointmentUpdate, CommentCreate
from wgcasting.services.appointments import AppointmentService

router = APIRouter()


@router.get("")
async def list_appointments(
    service: AppointmentService = Depends(get_appointment_service),
) -> list[dict[str, Any]]:
    return await service.read_appointments()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_appointment(
    payload: AppointmentCreate,
    service: AppointmentService = Depends(get_appointment_service),
) -> dict[str, Any]:
    return await service.create_appointment(payload)


@router.patch("/{appointment_id}")
async def update_appointment(
    appointment_id: str,
    payload: AppointmentUpdate,
    service: AppointmentService = Depends(get_appointment_service),
) -> dict[str, Any]:
    return await service.update_appointment(appointment_id, payload)


@router.delete("/{appointment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_appointment(
    appointment_id: str,
    service: AppointmentService = Depends(get_appointment_service),
) -> Response:
    await service.delete_appointment(appointment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{appointment_id}/comments", status_code=status.HTTP_201_CREATED)
async def add_comment(
    appointment_id: str,
    payload: CommentCreate,
    service: AppointmentService = Depends(get_appointment_service),
) -> dict[str, Any]:
    return await service.add_comment(appointment_id, payload)
