"""
MongoDB Connection Utility

MongoDB stores:
- User records (admins, job posters, job seekers)
- Referrer records
- Referral / access codes
- Resume binaries (GridFS bucket "resumes")
"""
import logging

from gridfs import GridFSBucket
from pymongo import MongoClient, ASCENDING, DESCENDING
from pymongo.database import Database
from pymongo.collection import Collection
from app.core.config import get_settings

logger = logging.getLogger(__name__)

# Global client (connection pooling handled internally by pymongo)
_client: MongoClient = None
_db: Database = None


def get_mongo_client() -> MongoClient:
    """Get or create MongoDB client (singleton pattern)"""
    global _client
    if _client is None:
        _client = MongoClient(get_settings().mongodb_uri)
    return _client


def get_mongo_db() -> Database:
    """Get the application database"""
    global _db
    if _db is None:
        client = get_mongo_client()
        _db = client[get_settings().mongodb_db]
    return _db


def get_collection(name: str) -> Collection:
    """Get a specific collection (see COLLECTIONS)."""
    db = get_mongo_db()
    return db[name]


def get_resume_bucket() -> GridFSBucket:
    """GridFS bucket holding uploaded resumes."""
    return GridFSBucket(get_mongo_db(), bucket_name=COLLECTIONS["resumes"])


def test_mongo_connection() -> bool:
    """
    Test if MongoDB is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        client = get_mongo_client()
        # ping command checks connection
        client.admin.command('ping')
        return True
    except Exception as e:
        logger.error(f"MongoDB connection failed: {e}")
        return False


# Collection name constants (avoid typos)
COLLECTIONS = {
    "users": "users",
    "referrers": "referrers",
    "referral_codes": "referral_codes",
    "password_reset_tokens": "password_reset_tokens",
    "identities": "identities",
    "resumes": "resumes"
}


def init_mongo_indexes():
    """
    Create indexes. Call this once during app startup.

    The unique index on identities.email is what resolves two concurrent
    creates of the same address, whichever record collection each targets:
    the loser gets a DuplicateKeyError.
    """
    db = get_mongo_db()

    for name in ("users", "referrers"):
        db[COLLECTIONS[name]].create_index("email", unique=True)
        db[COLLECTIONS[name]].create_index("createdBy")

    db[COLLECTIONS["identities"]].create_index("email", unique=True)

    db[COLLECTIONS["referral_codes"]].create_index("code", unique=True)
    db[COLLECTIONS["referral_codes"]].create_index([
        ("candidateEmail", ASCENDING),
        ("expiresAt", DESCENDING)
    ])

    db[COLLECTIONS["password_reset_tokens"]].create_index("token", unique=True)
    db[COLLECTIONS["password_reset_tokens"]].create_index("userId")
    # Expired reset tokens are purged by MongoDB itself
    db[COLLECTIONS["password_reset_tokens"]].create_index("expiresAt", expireAfterSeconds=0)

    logger.info("MongoDB indexes created successfully")
