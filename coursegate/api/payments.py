"""Payment-completion hook.

Called by the payment pipeline once a payment is COMPLETED.  Admin-only:
the gateway webhook itself (signature checks, status transitions) lives
in the payments service, which calls this with a service token.
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Response

from coursegate.api.dependencies import get_uow, require_role
from coursegate.api.schemas import EnrollmentResultOut, enrollment_response
from coursegate.models.principal import Principal, Role
from coursegate.repos.unit_of_work import UnitOfWork
from coursegate.services import payment_enrollment_service

router = APIRouter(prefix="/v1/payments", tags=["payments"])


@router.post("/{payment_id}/enrollment", response_model=EnrollmentResultOut)
async def enroll_from_payment(
    payment_id: UUID,
    response: Response,
    _admin: Annotated[Principal, Depends(require_role(Role.ADMIN))],
    uow: Annotated[UnitOfWork, Depends(get_uow)],
) -> EnrollmentResultOut:
    result = await payment_enrollment_service.create_enrollment_from_payment(
        uow, payment_id
    )
    return enrollment_response(result, response)
