import logging
from decimal import Decimal, ROUND_HALF_UP
from fastapi import APIRouter, Depends, Request, status

from greenleaf.catalog.store import CatalogStore
from greenleaf.reviews.models import ReviewDB
from greenleaf.reviews.schemas import (
    ReviewCreate, ReviewUpdate, ReviewResponse, ProductReviewsResponse, RatingBucket,
)
from greenleaf.shared.exceptions import NotFoundException
from greenleaf.shared.utils import (
    SuccessResponse, get_current_user, ensure_self_or_admin, str_to_oid, with_id,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/review", tags=["reviews"])


def average_rating(ratings) -> str:
    if not ratings:
        return "0.00"
    mean = Decimal(sum(ratings)) / Decimal(len(ratings))
    return str(mean.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


async def _find_review(db, review_id: str) -> dict:
    review = await db.reviews.find_one({"_id": str_to_oid(review_id)})
    if not review:
        raise NotFoundException("Review not found")
    return review


@router.post("/create", response_model=SuccessResponse[ReviewResponse], status_code=status.HTTP_201_CREATED)
async def create_review(body: ReviewCreate, request: Request, user: dict = Depends(get_current_user)):
    db = request.app.mongodb
    await CatalogStore(db).get_by_id(body.product_id)

    purchased = await db.orders.find_one({"user_id": user["sub"], "items.product_id": body.product_id})
    review = ReviewDB(
        user_id=user["sub"],
        product_id=body.product_id,
        rating=body.rating,
        title=body.title,
        comment=body.comment,
        verified=purchased is not None,
    )
    result = await db.reviews.insert_one(review.model_dump(by_alias=True, exclude={"id"}))
    created = await db.reviews.find_one({"_id": result.inserted_id})
    logger.info(f"Review {result.inserted_id} added for product {body.product_id}", extra={"user_id": user["sub"]})
    return SuccessResponse(data=ReviewResponse(**with_id(created)), message="Review added")

@router.get("/product/{product_id}", response_model=SuccessResponse[ProductReviewsResponse])
async def get_product_reviews(product_id: str, request: Request):
    db = request.app.mongodb
    reviews = await db.reviews.find({"product_id": product_id}).sort("created_at", -1).to_list(None)

    names = {}
    for review in reviews:
        uid = review["user_id"]
        if uid not in names:
            reviewer = await db.users.find_one({"_id": str_to_oid(uid)}, {"name": 1})
            names[uid] = reviewer["name"] if reviewer else None

    ratings = [r["rating"] for r in reviews]
    return SuccessResponse(data=ProductReviewsResponse(
        reviews=[ReviewResponse(**with_id(r), user_name=names[r["user_id"]]) for r in reviews],
        total_reviews=len(reviews),
        average_rating=average_rating(ratings),
        breakdown=[RatingBucket(stars=star, count=ratings.count(star)) for star in (5, 4, 3, 2, 1)],
    ))

@router.put("/{review_id}", response_model=SuccessResponse[ReviewResponse])
async def update_review(review_id: str, update: ReviewUpdate, request: Request, user: dict = Depends(get_current_user)):
    db = request.app.mongodb
    review = await _find_review(db, review_id)
    ensure_self_or_admin(user, review["user_id"])

    changes = update.model_dump(exclude_unset=True)
    if changes:
        await db.reviews.update_one({"_id": review["_id"]}, {"$set": changes})
    updated = await db.reviews.find_one({"_id": review["_id"]})
    return SuccessResponse(data=ReviewResponse(**with_id(updated)), message="Review updated")

@router.delete("/{review_id}", response_model=SuccessResponse[dict])
async def delete_review(review_id: str, request: Request, user: dict = Depends(get_current_user)):
    db = request.app.mongodb
    review = await _find_review(db, review_id)
    ensure_self_or_admin(user, review["user_id"])
    await db.reviews.delete_one({"_id": review["_id"]})
    return SuccessResponse(message="Review deleted")
