"""Dealership routes: employees and markup configuration."""

from fastapi import APIRouter, Depends, status

from warranty_hub.app.dependencies import dealer_id_for, get_repositories, require_roles
from warranty_hub.domain.enums import ActorRole
from warranty_hub.domain.schemas import (
    Actor,
    DealerMarkupUpdate,
    DealerPricing,
    Employee,
    EmployeeCreate,
    EmployeeUpdate,
)
from warranty_hub.infra.repositories import Repositories

router = APIRouter(prefix="/api/dealers/me", tags=["dealers"])

dealer_owner = require_roles(ActorRole.DEALER)
dealer_staff = require_roles(ActorRole.DEALER, ActorRole.DEALER_EMPLOYEE)


@router.get("/markup", response_model=DealerMarkupUpdate)
async def get_markup(
    actor: Actor = Depends(dealer_staff),
    repos: Repositories = Depends(get_repositories),
):
    markup_pct = await repos.dealer_pricing.get_markup_pct(dealer_id_for(actor))
    return DealerMarkupUpdate(markup_pct=markup_pct)


@router.put("/markup", response_model=DealerPricing)
async def set_markup(
    data: DealerMarkupUpdate,
    actor: Actor = Depends(dealer_owner),
    repos: Repositories = Depends(get_repositories),
):
    """Store the dealership markup, clamped to 0-200%."""
    return await repos.dealer_pricing.set_markup_pct(dealer_id_for(actor), data.markup_pct)


@router.get("/employees", response_model=list[Employee])
async def list_employees(
    actor: Actor = Depends(dealer_staff),
    repos: Repositories = Depends(get_repositories),
):
    return await repos.employees.list(dealer_id_for(actor))


@router.post("/employees", response_model=Employee, status_code=status.HTTP_201_CREATED)
async def create_employee(
    data: EmployeeCreate,
    actor: Actor = Depends(dealer_owner),
    repos: Repositories = Depends(get_repositories),
):
    return await repos.employees.create(dealer_id_for(actor), data)


@router.patch("/employees/{employee_id}", response_model=Employee)
async def update_employee(
    employee_id: str,
    data: EmployeeUpdate,
    actor: Actor = Depends(dealer_owner),
    repos: Repositories = Depends(get_repositories),
):
    return await repos.employees.update(
        employee_id, dealer_id_for(actor), data.model_dump(exclude_unset=True)
    )


@router.delete("/employees/{employee_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_employee(
    employee_id: str,
    actor: Actor = Depends(dealer_owner),
    repos: Repositories = Depends(get_repositories),
):
    await repos.employees.remove(employee_id, dealer_id_for(actor))
