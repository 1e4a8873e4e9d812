"""
MongoDB Service - CRUD operations for document collections.

Collections in this database:
1. users          - admins, job posters and job seekers
2. referrers      - job referrers
3. referral_codes - admin/referrer issued access codes

Both record collections share one document shape. IdentityDirectory puts a
single lookup in front of them so callers never query the two in parallel
by hand.
"""

import logging
from typing import Optional, List, Dict, Any, Tuple
from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ReturnDocument, DESCENDING
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError

from app.core.exceptions import DuplicateEmail
from app.db.mongodb import get_collection, COLLECTIONS
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)

# Never leaves the storage layer
PRIVATE_FIELDS = {"password": 0}


# ============================================================
# HELPER: Convert ObjectId to string for JSON serialization
# ============================================================

def serialize_doc(doc: dict) -> Optional[dict]:
    """Convert MongoDB document to a JSON-serializable dict with an `id` key."""
    if doc is None:
        return None
    doc = dict(doc)
    if "_id" in doc:
        doc["id"] = str(doc.pop("_id"))
    doc.pop("password", None)
    return doc


def normalize_email(value: Optional[str]) -> str:
    """Emails are stored and looked up trimmed and lowercased."""
    return (value or "").strip().lower()


def to_object_id(value: str) -> Optional[ObjectId]:
    """Parse an id from a URL or token; None when it is not a valid ObjectId."""
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


# ============================================================
# USER / REFERRER RECORDS
# ============================================================

class RecordStore:
    """
    One collection of user-like records.
    """

    def __init__(self, collection_name: str):
        self.name = collection_name
        self.collection: Collection = get_collection(COLLECTIONS[collection_name])

    def find_by_id(self, record_id: str, include_password: bool = False) -> Optional[dict]:
        oid = to_object_id(record_id)
        if oid is None:
            return None
        projection = None if include_password else PRIVATE_FIELDS
        return self.collection.find_one({"_id": oid}, projection)

    def find_by_email(self, email: str, include_password: bool = False) -> Optional[dict]:
        projection = None if include_password else PRIVATE_FIELDS
        return self.collection.find_one({"email": email}, projection)

    def find(self, query: dict) -> List[dict]:
        cursor = self.collection.find(query, PRIVATE_FIELDS).sort("createdAt", DESCENDING)
        return list(cursor)

    def insert(self, record: dict) -> dict:
        """
        Insert a new record.

        The unique index on email turns a lost creation race into
        DuplicateEmail rather than a second account.
        """
        now = utcnow()
        doc = {**record, "createdAt": now, "updatedAt": now}
        try:
            result = self.collection.insert_one(doc)
        except DuplicateKeyError:
            logger.warning(f"Duplicate email on insert into {self.name}: {record.get('email')}")
            raise DuplicateEmail()
        doc["_id"] = result.inserted_id
        doc.pop("password", None)
        return doc

    def apply_update(self, record_id: str, update: dict) -> Optional[dict]:
        """Apply a MongoDB update document atomically and return the new record."""
        oid = to_object_id(record_id)
        if oid is None:
            return None
        update = {**update}
        update.setdefault("$set", {})
        update["$set"] = {**update["$set"], "updatedAt": utcnow()}
        return self.collection.find_one_and_update(
            {"_id": oid},
            update,
            projection=PRIVATE_FIELDS,
            return_document=ReturnDocument.AFTER
        )

    def delete(self, record_id: str) -> bool:
        oid = to_object_id(record_id)
        if oid is None:
            return False
        result = self.collection.delete_one({"_id": oid})
        return result.deleted_count > 0


class IdentityDirectory:
    """
    Identity lookup across every record collection.

    Records with role job_referrer live in `referrers`, everything else in
    `users`. Lookups try `users` first. Every email is also claimed in the
    `identities` collection, whose unique index spans both record
    collections.
    """

    def __init__(self, users: RecordStore = None, referrers: RecordStore = None, identities: Collection = None):
        self.users = users or RecordStore("users")
        self.referrers = referrers or RecordStore("referrers")
        self.identities = identities if identities is not None else get_collection(COLLECTIONS["identities"])

    @property
    def stores(self) -> Tuple[RecordStore, RecordStore]:
        return (self.users, self.referrers)

    def store_for_role(self, role: str) -> RecordStore:
        return self.referrers if role == "job_referrer" else self.users

    def email_exists(self, email: str) -> bool:
        return any(store.find_by_email(normalize_email(email)) is not None for store in self.stores)

    def find_by_email(self, email: str, include_password: bool = False) -> Tuple[Optional[RecordStore], Optional[dict]]:
        email = normalize_email(email)
        for store in self.stores:
            doc = store.find_by_email(email, include_password=include_password)
            if doc:
                return store, doc
        return None, None

    def find_by_id(self, record_id: str, include_password: bool = False) -> Tuple[Optional[RecordStore], Optional[dict]]:
        for store in self.stores:
            doc = store.find_by_id(record_id, include_password=include_password)
            if doc:
                return store, doc
        return None, None

    def register(self, store: RecordStore, record: dict) -> dict:
        """
        Claim the record's email, then insert the record into `store`.

        Two concurrent creates with one address race on the claim, so only
        one of them reaches either collection; the other gets DuplicateEmail.
        """
        email = normalize_email(record["email"])
        try:
            claim = self.identities.insert_one({"email": email, "collection": store.name, "createdAt": utcnow()})
        except DuplicateKeyError:
            logger.warning(f"Email already claimed: {email}")
            raise DuplicateEmail()

        try:
            created = store.insert({**record, "email": email})
        except Exception:
            self.identities.delete_one({"_id": claim.inserted_id})
            raise

        self.identities.update_one({"_id": claim.inserted_id}, {"$set": {"recordId": created["_id"]}})
        return created

    def remove(self, store: RecordStore, record_id: str, email: str) -> bool:
        """Delete a record and release its email."""
        deleted = store.delete(record_id)
        if deleted:
            self.identities.delete_one({"email": normalize_email(email)})
        return deleted


# ============================================================
# REFERRAL CODES COLLECTION
# ============================================================

class ReferralCodeStore:
    """
    Handles access code storage.
    """

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["referral_codes"])

    def code_exists(self, code: str) -> bool:
        return self.collection.find_one({"code": code}, {"_id": 1}) is not None

    def insert(self, doc: Dict[str, Any]) -> dict:
        doc = {**doc, "createdAt": utcnow()}
        result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return doc

    def find(self, query: dict) -> List[dict]:
        return list(self.collection.find(query).sort("createdAt", DESCENDING))

    def find_for_candidate(self, email: str) -> List[dict]:
        return list(self.collection.find({"candidateEmail": email}))

    def find_code(self, email: str, code: str) -> Optional[dict]:
        return self.collection.find_one({"candidateEmail": email, "code": code})

    def mark_used(self, code_id: ObjectId) -> bool:
        """Flip isUsed; False when another login already consumed the code."""
        result = self.collection.update_one(
            {"_id": code_id, "isUsed": False},
            {"$set": {"isUsed": True, "usedAt": utcnow()}}
        )
        return result.modified_count > 0


# ============================================================
# PASSWORD RESET TOKENS COLLECTION
# ============================================================

class PasswordResetTokenStore:
    """
    One live reset token per record; MongoDB purges expired ones.
    """

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["password_reset_tokens"])

    def replace_for_user(self, user_id: ObjectId, token: str, expires_at) -> dict:
        self.collection.delete_many({"userId": user_id})
        doc = {"userId": user_id, "token": token, "expiresAt": expires_at, "createdAt": utcnow()}
        result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return doc

    def find(self, token: str) -> Optional[dict]:
        return self.collection.find_one({"token": token})

    def delete(self, token_id: ObjectId):
        self.collection.delete_one({"_id": token_id})


# ============================================================
# FASTAPI DEPENDENCIES
# ============================================================

def get_identity_directory() -> IdentityDirectory:
    return IdentityDirectory()


def get_referral_code_store() -> ReferralCodeStore:
    return ReferralCodeStore()
