import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.database import Database

import access
import catalog
import database
import enrichment
import itineraries
import reviews
import users
from access import Action, Role
from auth import get_current_user_id, get_optional_user_id
from config import CORS_ORIGINS, LOG_LEVEL, PORT, RECENT_REVIEWS_LIMIT
from database import get_db, serialize
from errors import NotFound, ServiceError
from schemas import (
    Attraction,
    CollaboratorIn,
    ItineraryIn,
    ItineraryUpdate,
    ProfileUpdate,
    ReviewIn,
    ReviewUpdate,
    SyncIn,
)

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if database.db is not None:
        try:
            database.prepare(database.db)
        except ServiceError as e:
            logger.warning("Could not create indexes at startup, retrying on first request: %s", e.message)
    else:
        logger.warning("DATABASE_URL / DATABASE_NAME not set; store-backed routes will return 503")
    yield


app = FastAPI(title="Itinerary & Review API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    if exc.status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# -------------------- Helpers --------------------
def _load_itinerary(db: Database, itinerary_id: str) -> Dict[str, Any]:
    itinerary = itineraries.get(db, itinerary_id)
    if not itinerary:
        raise NotFound("Itinerary not found")
    return itinerary


def _itinerary_view(db: Database, itinerary: Dict[str, Any], role: Role = Role.OWNER) -> Dict[str, Any]:
    if role is Role.NONE:
        # outsiders reading a public itinerary only see collaborator ids
        return itineraries.view(itinerary)
    people = users.summaries(db, itinerary.get("collaborators", []))
    return itineraries.view(itinerary, people)


# -------------------- Routes --------------------
@app.get("/")
def root():
    return {"name": "Itinerary & Review API", "status": "ok"}


@app.get("/test")
def test_database(db: Database = Depends(get_db)):
    """Store reachability; 503 through the error handler when it is down."""
    return {"backend": "running", **database.status(db)}


# ========== Itineraries ==========
@app.post("/api/itineraries", status_code=201)
def create_itinerary(body: ItineraryIn, user_id: str = Depends(get_current_user_id), db: Database = Depends(get_db)):
    created = itineraries.create(db, user_id, body.model_dump(by_alias=True))
    return {"message": "Itinerary successfully created", "itinerary": itineraries.view(created)}


@app.get("/api/itineraries")
def list_itineraries(user_id: str = Depends(get_current_user_id), db: Database = Depends(get_db)):
    found = itineraries.list_for_user(db, user_id)
    people = users.summaries(db, (c for it in found for c in it.get("collaborators", [])))
    return [itineraries.view(it, people) for it in found]


@app.get("/api/itineraries/shared/{itinerary_id}")
def get_shared_itinerary(itinerary_id: str, db: Database = Depends(get_db)):
    itinerary = itineraries.get(db, itinerary_id)
    if not itinerary or not itinerary.get("public"):
        raise NotFound("Public itinerary not found")
    return itineraries.view(itinerary)


@app.get("/api/itineraries/{itinerary_id}")
def get_itinerary(itinerary_id: str, user_id: Optional[str] = Depends(get_optional_user_id),
                  db: Database = Depends(get_db)):
    itinerary = _load_itinerary(db, itinerary_id)
    role = access.authorize(itinerary, user_id, Action.READ)
    return _itinerary_view(db, itinerary, role)


@app.put("/api/itineraries/{itinerary_id}")
def update_itinerary(itinerary_id: str, body: ItineraryUpdate, user_id: str = Depends(get_current_user_id),
                     db: Database = Depends(get_db)):
    itinerary = _load_itinerary(db, itinerary_id)
    access.authorize(itinerary, user_id, Action.UPDATE)
    updated = itineraries.update(db, itinerary_id, body.model_dump(by_alias=True, exclude_none=True))
    if not updated:
        raise NotFound("Itinerary not found")
    return _itinerary_view(db, updated)


@app.delete("/api/itineraries/{itinerary_id}")
def delete_itinerary(itinerary_id: str, user_id: str = Depends(get_current_user_id), db: Database = Depends(get_db)):
    itinerary = _load_itinerary(db, itinerary_id)
    role = access.authorize(itinerary, user_id, Action.DELETE)
    if role is Role.OWNER:
        if not itineraries.delete(db, itinerary_id, user_id):
            raise NotFound("Itinerary not found or unauthorized")
        return {"message": "Itinerary deleted"}
    # a collaborator "deleting" leaves the itinerary
    updated = itineraries.remove_collaborator(db, itinerary_id, user_id)
    if not updated:
        raise NotFound("Itinerary not found")
    return {"message": "Removed from collaborators", "itinerary": _itinerary_view(db, updated)}


@app.post("/api/itineraries/{itinerary_id}/collaborators")
def add_collaborator(itinerary_id: str, body: CollaboratorIn, user_id: str = Depends(get_current_user_id),
                     db: Database = Depends(get_db)):
    itinerary = _load_itinerary(db, itinerary_id)
    access.authorize(itinerary, user_id, Action.MANAGE_COLLABORATORS)
    user_to_add = users.get_by_email(db, body.collaboratorEmail)
    if not user_to_add:
        raise NotFound("User not found")
    updated = itineraries.add_collaborator(db, itinerary_id, str(user_to_add["_id"]))
    if not updated:
        raise NotFound("Itinerary not found")
    return {"message": "Collaborator added", "itinerary": _itinerary_view(db, updated)}


@app.delete("/api/itineraries/{itinerary_id}/collaborators/{collaborator_id}")
def remove_collaborator(itinerary_id: str, collaborator_id: str, user_id: str = Depends(get_current_user_id),
                        db: Database = Depends(get_db)):
    itinerary = _load_itinerary(db, itinerary_id)
    access.authorize(itinerary, user_id, Action.MANAGE_COLLABORATORS)
    updated = itineraries.remove_collaborator(db, itinerary_id, collaborator_id)
    if not updated:
        raise NotFound("Itinerary not found")
    return {"message": "Collaborator removed", "itinerary": _itinerary_view(db, updated)}


@app.get("/api/itineraries/{itinerary_id}/attractions")
def list_itinerary_attractions(itinerary_id: str, user_id: Optional[str] = Depends(get_optional_user_id),
                               db: Database = Depends(get_db)):
    itinerary = _load_itinerary(db, itinerary_id)
    access.authorize(itinerary, user_id, Action.READ)
    return serialize(itinerary.get("attractions", []))


@app.post("/api/itineraries/{itinerary_id}/attractions")
def add_attraction(itinerary_id: str, body: Attraction, user_id: str = Depends(get_current_user_id),
                   db: Database = Depends(get_db)):
    itinerary = _load_itinerary(db, itinerary_id)
    access.authorize(itinerary, user_id, Action.EDIT_ATTRACTIONS)
    updated = itineraries.add_attraction(db, itinerary_id, body.model_dump())
    if updated is None:
        # already attached: nothing to do
        return {"message": "Attraction already in itinerary", "itinerary": _itinerary_view(db, _load_itinerary(db, itinerary_id))}
    return {"message": "Attraction added", "itinerary": _itinerary_view(db, updated)}


@app.delete("/api/itineraries/{itinerary_id}/attractions/{attraction_id}")
def remove_attraction(itinerary_id: str, attraction_id: str, user_id: str = Depends(get_current_user_id),
                      db: Database = Depends(get_db)):
    itinerary = _load_itinerary(db, itinerary_id)
    access.authorize(itinerary, user_id, Action.EDIT_ATTRACTIONS)
    updated = itineraries.remove_attraction(db, itinerary_id, attraction_id)
    if not updated:
        raise NotFound("Itinerary not found")
    return {"message": "Attraction removed", "itinerary": _itinerary_view(db, updated)}


@app.post("/api/itineraries/{itinerary_id}/share")
def share_itinerary(itinerary_id: str, user_id: str = Depends(get_current_user_id), db: Database = Depends(get_db)):
    itinerary = _load_itinerary(db, itinerary_id)
    access.authorize(itinerary, user_id, Action.PUBLISH)
    updated = itineraries.set_public(db, itinerary_id)
    if not updated:
        raise NotFound("Itinerary not found")
    # the frontend builds the share URL from the id
    return {"itineraryId": str(updated["_id"])}


@app.post("/api/itineraries/{itinerary_id}/sync")
def sync_itinerary(itinerary_id: str, body: SyncIn, user_id: str = Depends(get_current_user_id),
                   db: Database = Depends(get_db)):
    itinerary = _load_itinerary(db, itinerary_id)
    access.authorize(itinerary, user_id, Action.SYNC)
    updated, changed = itineraries.set_sync_state(db, itinerary_id, body.calendarType)
    if not updated:
        raise NotFound("Itinerary not found")
    message = f"Synced with {body.calendarType}." if changed else "Already synced with this calendar."
    return {"message": message, "itinerary": _itinerary_view(db, updated)}


# ========== Saved attractions ==========
@app.get("/api/saved-attractions")
def list_saved_attractions(user_id: str = Depends(get_current_user_id), db: Database = Depends(get_db)):
    return serialize(catalog.saved_attractions(db, user_id))


@app.post("/api/saved-attractions", status_code=201)
def save_attraction(body: Attraction, user_id: str = Depends(get_current_user_id), db: Database = Depends(get_db)):
    saved = catalog.save_attraction(db, user_id, body.model_dump())
    return {"message": "Attraction successfully saved", "attraction": serialize(saved)}


@app.delete("/api/saved-attractions/{attraction_id}")
def remove_saved_attraction(attraction_id: str, user_id: str = Depends(get_current_user_id),
                            db: Database = Depends(get_db)):
    if not catalog.remove_saved_attraction(db, user_id, attraction_id):
        raise NotFound("Attraction not found")
    return {"message": "Attraction removed"}


# ========== Reviews ==========
@app.post("/api/reviews", status_code=201)
def add_review(body: ReviewIn, user_id: str = Depends(get_current_user_id), db: Database = Depends(get_db)):
    snapshot = {
        "name": body.attractionName,
        "address": body.attractionAddress,
        "image": body.attractionImage,
    }
    saved = reviews.add(db, user_id, body.attractionId, body.rating, body.comment, snapshot)
    return enrichment.enrich(db, [saved])[0]


@app.get("/api/reviews/{attraction_id}")
def list_reviews(attraction_id: str, db: Database = Depends(get_db)) -> List[Dict[str, Any]]:
    return enrichment.enrich(db, reviews.for_attraction(db, attraction_id))


@app.put("/api/reviews/{review_id}")
def update_review(review_id: str, body: ReviewUpdate, user_id: str = Depends(get_current_user_id),
                  db: Database = Depends(get_db)):
    updated = reviews.update(db, review_id, user_id, body.rating, body.comment)
    return enrichment.enrich(db, [updated])[0]


@app.delete("/api/reviews/{review_id}")
def delete_review(review_id: str, user_id: str = Depends(get_current_user_id), db: Database = Depends(get_db)):
    if not reviews.remove(db, review_id, user_id):
        raise NotFound("Review not found or unauthorized")
    return {"message": "Review deleted"}


# ========== Users ==========
@app.get("/api/user/profile")
def get_profile(user_id: str = Depends(get_current_user_id), db: Database = Depends(get_db)):
    user = users.get_profile(db, user_id)
    recent = enrichment.enrich(db, reviews.recent_by_user(db, user_id, RECENT_REVIEWS_LIMIT))
    return {"user": serialize(user), "recentReviews": recent}


@app.put("/api/user/profile")
def update_profile(body: ProfileUpdate, user_id: str = Depends(get_current_user_id), db: Database = Depends(get_db)):
    updated = users.update_profile(db, user_id, body.model_dump(exclude_none=True))
    return {"message": "Profile updated", "user": serialize(updated)}


@app.get("/api/user/profile/username/{username}")
def get_public_profile(username: str, db: Database = Depends(get_db)):
    user = users.get_by_username(db, username)
    user_id = str(user["_id"])
    public = [itineraries.view(it) for it in itineraries.public_for_user(db, user_id)]
    recent = enrichment.enrich(db, reviews.recent_by_user(db, user_id, RECENT_REVIEWS_LIMIT))
    return {"user": serialize(user), "itineraries": public, "recentReviews": recent}


@app.get("/api/user/reviews")
def my_reviews(page: Optional[str] = None, limit: Optional[str] = None,
               user_id: str = Depends(get_current_user_id), db: Database = Depends(get_db)):
    page_no, page_size = reviews.clamp_page(page, limit)
    return enrichment.enrich_page(db, reviews.page_by_user(db, user_id, page_no, page_size))


@app.get("/api/user/{username}/reviews")
def user_reviews(username: str, page: Optional[str] = None, limit: Optional[str] = None,
                 db: Database = Depends(get_db)):
    user = users.get_by_username(db, username)
    page_no, page_size = reviews.clamp_page(page, limit)
    return enrichment.enrich_page(db, reviews.page_by_user(db, str(user["_id"]), page_no, page_size))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=PORT)
