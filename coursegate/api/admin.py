"""Operator endpoints for payments whose enrollment failed."""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Response

from coursegate.api.dependencies import get_uow, require_role
from coursegate.api.schemas import (
    EnrollmentResultOut,
    FailureLogOut,
    enrollment_response,
)
from coursegate.models.principal import Principal, Role
from coursegate.repos.unit_of_work import UnitOfWork
from coursegate.services import payment_enrollment_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/enrollment-failures", response_model=list[FailureLogOut])
async def list_enrollment_failures(
    _admin: Annotated[Principal, Depends(require_role(Role.ADMIN))],
    uow: Annotated[UnitOfWork, Depends(get_uow)],
) -> list[FailureLogOut]:
    entries = await payment_enrollment_service.list_unresolved_failures(uow)
    return [FailureLogOut.from_entry(e) for e in entries]


@router.post(
    "/payments/{payment_id}/enrollment/retry",
    response_model=EnrollmentResultOut,
)
async def retry_enrollment(
    payment_id: UUID,
    response: Response,
    admin: Annotated[Principal, Depends(require_role(Role.ADMIN))],
    uow: Annotated[UnitOfWork, Depends(get_uow)],
) -> EnrollmentResultOut:
    logger.info(
        "Admin %s retrying enrollment for payment %s",
        admin.user_id,
        payment_id,
        extra={"user_id": str(admin.user_id), "payment_id": str(payment_id)},
    )
    result = await payment_enrollment_service.retry_failed_enrollment(uow, payment_id)
    return enrollment_response(result, response)
