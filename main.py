import logging
import math
import random
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from auth import init_firebase, require_token
from config import settings
from database import (
    COLLECTIONS, FAVORITES, MEALS, ORDERS, REVIEWS, ROLES, USERS,
    connect, count_documents, create_document, delete_document, delete_document_by_id,
    ensure_indexes, find_and_update, find_document, get_db, get_document_by_id,
    get_documents, ping, to_object_id, update_document,
)
from payments import configure_stripe, confirm_session, create_checkout_session
from schemas import (
    ORDER_PAYMENT_FIELDS, CheckoutSessionRequest, Favorite, Meal, Order, Review, RoleRequest, SortOrder, User,
)

log = logging.getLogger("localchefbazar.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    client = connect(settings)
    app.state.db = None
    if client is not None:
        app.state.db = client[settings.database_name]
        if ping(client) and settings.enforce_unique_indexes:
            ensure_indexes(app.state.db)
    try:
        init_firebase(settings)
    except Exception:
        log.exception("Firebase initialisation failed")
    configure_stripe(settings)
    yield
    if client is not None:
        client.close()


app = FastAPI(title="LocalChefBazaar API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

router = APIRouter(dependencies=[Depends(require_token)])


def generate_chef_id() -> str:
    return f"chef-{random.randint(1000, 9999)}"


def _insert_unique(db: Database, collection_name: str, doc: dict, message: str) -> dict:
    # Only the optional unique indexes turn a lost race into DuplicateKeyError.
    try:
        return create_document(db, collection_name, doc)
    except DuplicateKeyError:
        log.info("Duplicate insert into %s rejected by unique index", collection_name)
        raise HTTPException(status_code=409, detail=message)


def _require_meal(db: Database, meal_id: str) -> dict:
    meal = get_document_by_id(db, MEALS, meal_id)
    if not meal:
        raise HTTPException(status_code=404, detail="Meal not found")
    return meal


# ===================== Public Endpoints =====================
@app.get("/")
def root():
    return {"message": "Hello from Server.."}


@app.get("/test")
def test_database(request: Request):
    response = {
        "backend": "Running",
        "database": "Not Available",
        "database_url": "Set" if settings.mongodb_uri else "Not Set",
        "database_name": settings.database_name,
        "connection_status": "Not Connected",
        "collections": [],
    }
    db = getattr(request.app.state, "db", None)
    try:
        if db is not None:
            response["database"] = "Available"
            response["connection_status"] = "Connected"
            response["collections"] = db.list_collection_names()
    except Exception as e:
        response["database"] = f"Error: {str(e)[:80]}"
        response["connection_status"] = "Not Connected"
    return response


# ===================== Meals =====================
@router.post("/meals")
def create_meal(payload: Meal, db: Database = Depends(get_db)):
    return create_document(db, MEALS, payload)


@router.get("/meals")
def list_meals(db: Database = Depends(get_db)):
    return get_documents(db, MEALS)


@router.get("/all-meals")
def list_meals_paginated(
    page: int = Query(1, ge=1),
    limit: int = Query(6, ge=1, le=100),
    sort_by: str = Query("createdAt", alias="sortBy"),
    order: SortOrder = "desc",
    db: Database = Depends(get_db),
):
    direction = 1 if order == "asc" else -1
    total = count_documents(db, MEALS)
    meals = get_documents(
        db,
        MEALS,
        # _id breaks ties so skip/limit pages never overlap
        sort=[(sort_by, direction), ("_id", direction)],
        skip=(page - 1) * limit,
        limit=limit,
    )
    return {
        "meals": meals,
        "total": total,
        "page": page,
        "limit": limit,
        "totalPages": math.ceil(total / limit),
    }


@router.get("/meal/{meal_id}")
@router.get("/meals/{meal_id}")
def get_meal(meal_id: str, db: Database = Depends(get_db)):
    return _require_meal(db, meal_id)


@router.get("/my-meal/{chef_id}")
def list_chef_meals(chef_id: str, db: Database = Depends(get_db)):
    return get_documents(db, MEALS, {"chefId": chef_id}, sort=[("createdAt", -1)])


@router.delete("/meal/{meal_id}")
def delete_meal(meal_id: str, db: Database = Depends(get_db)):
    return delete_document_by_id(db, MEALS, meal_id)


# ===================== Users =====================
@router.post("/users")
def create_user(payload: User, db: Database = Depends(get_db)):
    exists = {"message": "User already exists", "insertedId": None}
    if find_document(db, USERS, {"email": payload.email}):
        return exists
    try:
        return create_document(db, USERS, payload)
    except DuplicateKeyError:
        return exists


@router.get("/users")
def list_users(db: Database = Depends(get_db)):
    return get_documents(db, USERS)


@router.get("/user/{email}")
def get_user(email: str, db: Database = Depends(get_db)):
    user = find_document(db, USERS, {"email": email})
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.patch("/user/{email}")
def change_user_role(email: str, role: str = "chef", db: Database = Depends(get_db)):
    if role == "chef":
        update = {"$set": {"role": "chef", "chefId": generate_chef_id()}}
    else:
        update = {"$set": {"role": role}, "$unset": {"chefId": ""}}
    user = find_and_update(db, USERS, {"email": email}, update)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    log.info("Role of %s changed to %s", email, role)
    return user


# ===================== Role requests =====================
@router.post("/roles")
def create_role_request(payload: RoleRequest, db: Database = Depends(get_db)):
    if find_document(db, ROLES, {"email": payload.email}):
        log.info("Role request for %s already pending", payload.email)
        raise HTTPException(status_code=409, detail="Request already pending")
    return _insert_unique(db, ROLES, payload.model_dump(by_alias=True, exclude_none=True), "Request already pending")


@router.get("/roles")
def list_role_requests(db: Database = Depends(get_db)):
    return get_documents(db, ROLES, {"requestStatus": "pending"}, sort=[("createdAt", 1)])


@router.delete("/role/{email}")
def delete_role_request(email: str, db: Database = Depends(get_db)):
    return delete_document(db, ROLES, {"email": email})


# ===================== Reviews =====================
@router.post("/review/{meal_id}")
def create_review(meal_id: str, payload: Review, db: Database = Depends(get_db)):
    _require_meal(db, meal_id)
    if find_document(db, REVIEWS, {"reviewerEmail": payload.reviewer_email, "mealId": meal_id}):
        raise HTTPException(status_code=409, detail="You have already reviewed this meal")
    doc = payload.model_dump(by_alias=True, exclude_none=True)
    doc["mealId"] = meal_id
    return _insert_unique(db, REVIEWS, doc, "You have already reviewed this meal")


@router.get("/reviews")
def list_reviews(db: Database = Depends(get_db)):
    return get_documents(db, REVIEWS, sort=[("createdAt", -1)])


@router.get("/review/{email}")
def list_reviews_by_reviewer(email: str, db: Database = Depends(get_db)):
    return get_documents(db, REVIEWS, {"reviewerEmail": email}, sort=[("createdAt", -1)])


@router.get("/reviews/{meal_id}")
def list_meal_reviews(meal_id: str, db: Database = Depends(get_db)):
    return get_documents(db, REVIEWS, {"mealId": meal_id}, sort=[("createdAt", -1)])


@router.delete("/review/{review_id}")
def delete_review(review_id: str, db: Database = Depends(get_db)):
    return delete_document_by_id(db, REVIEWS, review_id)


# ===================== Favorites =====================
@router.post("/favorite/{meal_id}")
def create_favorite(meal_id: str, payload: Favorite, db: Database = Depends(get_db)):
    _require_meal(db, meal_id)
    if find_document(db, FAVORITES, {"userEmail": payload.user_email, "mealId": meal_id}):
        raise HTTPException(status_code=409, detail="Meal already in favorites")
    doc = payload.model_dump(by_alias=True, exclude_none=True)
    doc["mealId"] = meal_id
    return _insert_unique(db, FAVORITES, doc, "Meal already in favorites")


@router.get("/favorite-meal/{email}")
def list_favorites(email: str, db: Database = Depends(get_db)):
    return get_documents(db, FAVORITES, {"userEmail": email}, sort=[("createdAt", -1)])


@router.delete("/favorite/{favorite_id}")
def delete_favorite(favorite_id: str, db: Database = Depends(get_db)):
    return delete_document_by_id(db, FAVORITES, favorite_id)


# ===================== Orders =====================
@router.post("/orders")
def create_order(payload: Order, db: Database = Depends(get_db)):
    doc = payload.model_dump(by_alias=True, exclude_none=True)
    for key in ORDER_PAYMENT_FIELDS:
        doc.pop(key, None)
    return create_document(db, ORDERS, doc)


@router.get("/orders")
def list_orders(db: Database = Depends(get_db)):
    return get_documents(db, ORDERS, sort=[("createdAt", -1)])


@router.get("/order/{email}")
def list_user_orders(email: str, db: Database = Depends(get_db)):
    return get_documents(db, ORDERS, {"userEmail": email}, sort=[("createdAt", -1)])


@router.get("/order/chef/{chef_id}")
def list_chef_orders(chef_id: str, db: Database = Depends(get_db)):
    return get_documents(db, ORDERS, {"chefId": chef_id}, sort=[("createdAt", -1)])


@router.patch("/order/change-status/{order_id}")
def change_order_status(order_id: str, status: str = Query(...), db: Database = Depends(get_db)):
    oid = to_object_id(order_id)
    if oid is None:
        raise HTTPException(status_code=404, detail="Order not found")
    result = update_document(db, ORDERS, {"_id": oid}, {"$set": {"orderStatus": status}})
    if not result["matchedCount"]:
        raise HTTPException(status_code=404, detail="Order not found")
    return result


# ===================== Payments =====================
@router.post("/create-checkout-session")
def checkout(payload: CheckoutSessionRequest):
    try:
        url = create_checkout_session(payload, settings)
    except Exception as e:
        log.exception("Checkout session for order %s failed", payload.order_id)
        raise HTTPException(status_code=500, detail=str(e))
    return {"url": url}


@router.get("/session-status")
def session_status(session_id: str, db: Database = Depends(get_db)):
    try:
        return confirm_session(db, session_id)
    except Exception as e:
        log.exception("Session status lookup for %s failed", session_id)
        raise HTTPException(status_code=500, detail=str(e))


app.include_router(router)


# ===================== Schema Export for Docs =====================
@app.get("/schema")
def get_schema():
    return {
        "collections": COLLECTIONS,
        "notes": "Documents are loosely typed; schemas.py validates the core fields of each request body.",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
