"""
MongoDB Database Configuration and Connection
"""

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.server_api import ServerApi

from tourism.core.config import DATABASE_NAME, MONGODB_URI

# Global database client
_client = None
_database = None


def get_database():
    """
    Get MongoDB database instance
    Creates a new connection if one doesn't exist
    """
    global _client, _database

    if _database is None:
        if not MONGODB_URI:
            raise ValueError("MONGODB_URI environment variable is not set")

        _client = AsyncIOMotorClient(MONGODB_URI, server_api=ServerApi("1"))
        _database = _client[DATABASE_NAME]

        print(f"✅ Connected to MongoDB database: {DATABASE_NAME}")

    return _database


async def init_indexes():
    """
    Create the indexes the booking protocol relies on.
    Uniqueness of guide owner, email and license number is enforced here.
    """
    try:
        users_collection = get_users_collection()
        guides_collection = get_guides_collection()
        bookings_collection = get_bookings_collection()

        # Users indexes
        await users_collection.create_index("email", unique=True)

        # Tourist guide indexes
        await guides_collection.create_index("user_id", unique=True)
        await guides_collection.create_index("email", unique=True)
        await guides_collection.create_index("license_number", unique=True)
        await guides_collection.create_index([("location", 1), ("is_available", 1)], name="location_available")

        # Booking indexes
        await bookings_collection.create_index(
            [("user_id", 1), ("guide_id", 1), ("start_date", 1)], name="user_guide_start"
        )
        await bookings_collection.create_index(
            [("guide_id", 1), ("status", 1), ("end_date", 1)], name="guide_status_end"
        )

        print("✅ Database indexes created successfully")
    except Exception as e:
        print(f"⚠️  Index creation warning: {e}")


async def close_database_connection():
    """
    Close the MongoDB connection
    Call this when shutting down the application
    """
    global _client, _database

    if _client:
        _client.close()
        _client = None
        _database = None
        print("🔌 Closed MongoDB connection")


async def test_connection():
    """
    Ping MongoDB, returning whether it answered
    """
    try:
        db = get_database()
        await db.command("ping")
        print("✅ MongoDB connection successful!")
        return True
    except Exception as e:
        print(f"❌ MongoDB connection failed: {e}")
        return False


def get_users_collection():
    """
    Get the users collection from the database
    """
    db = get_database()
    return db.users


def get_guides_collection():
    """
    Get the tourist guides collection from the database
    """
    db = get_database()
    return db.touristguides


def get_bookings_collection():
    """
    Get the guide bookings collection from the database
    """
    db = get_database()
    return db.bookings
