"""
User profiles, keyed by the identity provider's uid.
"""

import logging

from pymongo.database import Database

from database import serialize_doc, utcnow
from errors import NotFoundError
from schemas import ProfileUpdate, RegisterUserRequest, UserProfile

log = logging.getLogger("egrocery.users")


def register_user(db: Database, body: RegisterUserRequest) -> dict:
    profile = UserProfile(**body.model_dump())
    now = utcnow()
    db["users"].update_one(
        {"_id": profile.uid},
        {"$set": {**profile.model_dump(), "updated_at": now}, "$setOnInsert": {"created_at": now}},
        upsert=True,
    )
    log.info("User registered: %s", profile.uid)
    return serialize_doc(profile.model_dump())


def get_profile(db: Database, uid: str) -> dict:
    user = db["users"].find_one({"_id": uid})
    if not user:
        raise NotFoundError("User profile not found")
    user.pop("_id")
    return serialize_doc(user)


def update_profile(db: Database, uid: str, body: ProfileUpdate):
    update = body.model_dump(exclude_none=True)
    update["updated_at"] = utcnow()
    res = db["users"].update_one({"_id": uid}, {"$set": update})
    if res.matched_count == 0:
        raise NotFoundError("User profile not found")


DEMO_ADMIN = {"uid": "demo-admin", "email": "admin@egrocery.com", "name": "Admin", "role": "admin"}


def ensure_demo_admin(db: Database):
    """Create the demo admin profile if no admin exists. Returns it, or None."""
    if db["users"].count_documents({"role": "admin"}) > 0:
        return None
    return register_user(db, RegisterUserRequest(**DEMO_ADMIN))
