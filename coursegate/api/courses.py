"""Course access and enrollment endpoints.

The routers resolve the caller from the bearer token and hand it to the
engine explicitly; every rule lives in coursegate.services.
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel

from coursegate.api.dependencies import get_uow, optional_principal, require_user
from coursegate.api.schemas import (
    AccessDecisionOut,
    EligibilityOut,
    EnrollmentOut,
    EnrollmentResultOut,
    enrollment_response,
)
from coursegate.models.principal import Principal
from coursegate.repos.unit_of_work import UnitOfWork
from coursegate.services import access_service, enrollment_service

router = APIRouter(prefix="/v1/courses", tags=["courses"])
me_router = APIRouter(prefix="/v1/enrollments", tags=["enrollments"])


class PaidEnrollmentIn(BaseModel):
    payment_id: UUID


@router.get("/{course_id}/access", response_model=AccessDecisionOut)
async def get_course_access(
    course_id: UUID,
    principal: Annotated[Principal | None, Depends(optional_principal)],
    uow: Annotated[UnitOfWork, Depends(get_uow)],
) -> AccessDecisionOut:
    decision = await access_service.evaluate_access(uow, course_id, principal)
    return AccessDecisionOut.from_decision(decision)


@router.get("/{course_id}/enrollment/eligibility", response_model=EligibilityOut)
async def get_enrollment_eligibility(
    course_id: UUID,
    principal: Annotated[Principal | None, Depends(optional_principal)],
    uow: Annotated[UnitOfWork, Depends(get_uow)],
) -> EligibilityOut:
    eligibility = await enrollment_service.can_enroll(uow, course_id, principal)
    return EligibilityOut(
        can_enroll=eligibility.can_enroll,
        reason=eligibility.reason.value,
    )


@router.post("/{course_id}/enroll", response_model=EnrollmentResultOut)
async def enroll_free(
    course_id: UUID,
    response: Response,
    principal: Annotated[Principal, Depends(require_user)],
    uow: Annotated[UnitOfWork, Depends(get_uow)],
) -> EnrollmentResultOut:
    result = await enrollment_service.enroll_in_free_course(uow, course_id, principal)
    return enrollment_response(result, response)


@router.post("/{course_id}/enroll/paid", response_model=EnrollmentResultOut)
async def enroll_paid(
    course_id: UUID,
    body: PaidEnrollmentIn,
    response: Response,
    principal: Annotated[Principal, Depends(require_user)],
    uow: Annotated[UnitOfWork, Depends(get_uow)],
) -> EnrollmentResultOut:
    result = await enrollment_service.create_paid_enrollment(
        uow, course_id, principal, body.payment_id
    )
    return enrollment_response(result, response)


@me_router.get("/me", response_model=list[EnrollmentOut])
async def list_my_enrollments(
    principal: Annotated[Principal, Depends(require_user)],
    uow: Annotated[UnitOfWork, Depends(get_uow)],
) -> list[EnrollmentOut]:
    enrollments = await enrollment_service.list_user_enrollments(uow, principal)
    return [EnrollmentOut.from_enrollment(e) for e in enrollments.values()]
