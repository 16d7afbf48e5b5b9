"""
Account service: registration, login, profile edit, account deletion.

Deleting an account leaves the user's cart and orders in place.
"""

import logging
from typing import Any, Dict

from pymongo.database import Database

from database import create_document, find_by_id, now_utc
from errors import InvalidRequest, NotFound, Unauthenticated
from schemas import LoginRequest, ProfileUpdate, RegisterRequest, User
from security import create_token, hash_password, verify_password

logger = logging.getLogger(__name__)


def public_user(doc: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": str(doc["_id"]),
        "full_name": doc.get("full_name"),
        "email": doc.get("email"),
        "contact_number": doc.get("contact_number"),
        "address": doc.get("address"),
        "created_at": doc.get("created_at"),
    }


def get_user(db: Database, user_id: str) -> Dict[str, Any]:
    user = find_by_id(db, "user", user_id)
    if not user:
        raise NotFound("User not found")
    return user


def register(db: Database, payload: RegisterRequest) -> Dict[str, Any]:
    if payload.password != payload.reenter_password:
        raise InvalidRequest("Passwords do not match")
    email = payload.email.lower()
    if db["user"].find_one({"email": email}):
        raise InvalidRequest("Email already exists")

    user_doc = User(
        full_name=payload.full_name,
        email=email,
        password_hash=hash_password(payload.password),
    )
    uid = create_document(db, "user", user_doc)
    logger.info("Registered user %s", uid)
    return {"token": create_token(uid), "user": public_user(get_user(db, uid))}


def login(db: Database, payload: LoginRequest) -> Dict[str, Any]:
    user = db["user"].find_one({"email": payload.email.lower()})
    # same answer for unknown email and wrong password
    if not user or not verify_password(payload.password, user.get("password_hash", "")):
        raise Unauthenticated("Invalid email or password")
    return {"token": create_token(str(user["_id"])), "user": public_user(user)}


def edit_profile(db: Database, user_id: str, payload: ProfileUpdate) -> Dict[str, Any]:
    user = get_user(db, user_id)
    changes = {k: v for k, v in payload.model_dump().items() if v}
    if "email" in changes:
        changes["email"] = changes["email"].lower()
    changes["updated_at"] = now_utc()
    db["user"].update_one({"_id": user["_id"]}, {"$set": changes})
    return public_user(get_user(db, user_id))


def delete_account(db: Database, user_id: str) -> None:
    user = get_user(db, user_id)
    db["user"].delete_one({"_id": user["_id"]})
    logger.info("Deleted user %s", user_id)
