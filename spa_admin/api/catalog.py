from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from spa_admin.core.security import verify_admin_token
from spa_admin.models.db_models import Service, ServiceCategory, Staff
from spa_admin.services.db_service import db_service

router = APIRouter(dependencies=[Depends(verify_admin_token)])


# --- Services ---

@router.get("/services", response_model=List[Service])
async def list_services(include_inactive: bool = False):
    return await db_service.list_services(active_only=not include_inactive)

@router.get("/services/{service_id}", response_model=Service)
async def get_service(service_id: str):
    service = await db_service.get_service(service_id)
    if not service:
        raise HTTPException(status_code=404, detail="Service not found")
    return service

@router.get("/services/{service_id}/staff", response_model=List[Staff])
async def list_service_staff(service_id: str):
    return await db_service.list_staff_for_service(service_id)

@router.post("/services", response_model=Service, status_code=201)
async def create_service(service: Service):
    return await db_service.save_service(service.model_copy(update={"id": None}))

@router.put("/services/{service_id}", response_model=Service)
async def update_service(service_id: str, service: Service):
    return await db_service.save_service(service.model_copy(update={"id": service_id}))

@router.delete("/services/{service_id}", status_code=204)
async def delete_service(service_id: str):
    await db_service.delete_service(service_id)


# --- Categories ---

@router.get("/categories", response_model=List[ServiceCategory])
async def list_categories():
    return await db_service.list_categories()

@router.post("/categories", response_model=ServiceCategory, status_code=201)
async def create_category(category: ServiceCategory):
    return await db_service.save_category(category.model_copy(update={"id": None}))

@router.put("/categories/{category_id}", response_model=ServiceCategory)
async def update_category(category_id: str, category: ServiceCategory):
    return await db_service.save_category(category.model_copy(update={"id": category_id}))

@router.delete("/categories/{category_id}", status_code=204)
async def delete_category(category_id: str):
    await db_service.delete_category(category_id)


# --- Staff ---

class StaffRequest(Staff):
    """Staff fields plus optional assignment lists; omitted lists leave assignments unchanged."""
    service_ids: Optional[List[str]] = None
    category_ids: Optional[List[str]] = None


class StaffAssignments(BaseModel):
    service_ids: List[str] = []
    category_ids: List[str] = []


async def _save_staff(req: StaffRequest, staff_id: Optional[str]) -> Staff:
    staff = Staff(**req.model_dump(exclude={"id", "service_ids", "category_ids"}), id=staff_id)
    saved = await db_service.save_staff(staff)
    if req.service_ids is not None:
        await db_service.set_staff_services(saved.id, req.service_ids)
    if req.category_ids is not None:
        await db_service.set_staff_categories(saved.id, req.category_ids)
    return saved

@router.get("/staff", response_model=List[Staff])
async def list_staff(include_inactive: bool = False):
    return await db_service.list_staff(active_only=not include_inactive)

@router.get("/staff/{staff_id}", response_model=Staff)
async def get_staff(staff_id: str):
    staff = await db_service.get_staff(staff_id)
    if not staff:
        raise HTTPException(status_code=404, detail="Staff member not found")
    return staff

@router.get("/staff/{staff_id}/assignments", response_model=StaffAssignments)
async def get_staff_assignments(staff_id: str):
    return await db_service.get_staff_assignments(staff_id)

@router.put("/staff/{staff_id}/assignments", response_model=StaffAssignments)
async def set_staff_assignments(staff_id: str, assignments: StaffAssignments):
    await db_service.set_staff_services(staff_id, assignments.service_ids)
    await db_service.set_staff_categories(staff_id, assignments.category_ids)
    return assignments

@router.post("/staff", response_model=Staff, status_code=201)
async def create_staff(staff: StaffRequest):
    return await _save_staff(staff, None)

@router.put("/staff/{staff_id}", response_model=Staff)
async def update_staff(staff_id: str, staff: StaffRequest):
    return await _save_staff(staff, staff_id)

@router.delete("/staff/{staff_id}", status_code=204)
async def delete_staff(staff_id: str):
    await db_service.delete_staff(staff_id)
