from typing import List
from fastapi import APIRouter, Depends, Request, status

from greenleaf.shared.exceptions import NotFoundException
from greenleaf.shared.utils import SuccessResponse, require_admin, str_to_oid, with_id
from greenleaf.testimonials.models import TestimonialDB
from greenleaf.testimonials.schemas import TestimonialCreate, TestimonialUpdate, TestimonialResponse

router = APIRouter(prefix="/api/testimonials", tags=["testimonials"])

FEATURED_LIMIT = 6


@router.get("/featured", response_model=SuccessResponse[List[TestimonialResponse]])
async def get_featured(request: Request):
    cursor = request.app.mongodb.testimonials.find({"featured": True}).sort("created_at", -1).limit(FEATURED_LIMIT)
    return SuccessResponse(data=[TestimonialResponse(**with_id(doc)) async for doc in cursor])

@router.post("/create", response_model=SuccessResponse[TestimonialResponse], status_code=status.HTTP_201_CREATED)
async def create_testimonial(body: TestimonialCreate, request: Request, admin: dict = Depends(require_admin)):
    db = request.app.mongodb
    testimonial = TestimonialDB(**body.model_dump())
    result = await db.testimonials.insert_one(testimonial.model_dump(by_alias=True, exclude={"id"}))
    created = await db.testimonials.find_one({"_id": result.inserted_id})
    return SuccessResponse(data=TestimonialResponse(**with_id(created)), message="Testimonial created")

@router.get("/getall", response_model=SuccessResponse[List[TestimonialResponse]])
async def get_all(request: Request, admin: dict = Depends(require_admin)):
    cursor = request.app.mongodb.testimonials.find().sort("created_at", -1)
    return SuccessResponse(data=[TestimonialResponse(**with_id(doc)) async for doc in cursor])

@router.put("/update/{testimonial_id}", response_model=SuccessResponse[TestimonialResponse])
async def update_testimonial(
    testimonial_id: str,
    update: TestimonialUpdate,
    request: Request,
    admin: dict = Depends(require_admin),
):
    db = request.app.mongodb
    oid = str_to_oid(testimonial_id)
    if not await db.testimonials.find_one({"_id": oid}):
        raise NotFoundException("Testimonial not found")

    changes = update.model_dump(exclude_unset=True)
    if changes:
        await db.testimonials.update_one({"_id": oid}, {"$set": changes})
    updated = await db.testimonials.find_one({"_id": oid})
    return SuccessResponse(data=TestimonialResponse(**with_id(updated)), message="Testimonial updated")

@router.delete("/delete/{testimonial_id}", response_model=SuccessResponse[dict])
async def delete_testimonial(testimonial_id: str, request: Request, admin: dict = Depends(require_admin)):
    result = await request.app.mongodb.testimonials.delete_one({"_id": str_to_oid(testimonial_id)})
    if result.deleted_count == 0:
        raise NotFoundException("Testimonial not found")
    return SuccessResponse(message="Deleted successfully")
