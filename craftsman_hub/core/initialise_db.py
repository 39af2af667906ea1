from dotenv import load_dotenv
import logging

from .config import Settings
from .database_client import Database

#python -m craftsman_hub.core.initialise_db to run this file directly
#no migrations yet: changing a column type on an existing table needs a manual ALTER
def initialize_db():
    """Checks if the DB exists, creates it if necessary, and ensures all tables are created."""
    load_dotenv()
    settings = Settings.from_env()
    logging.basicConfig(level=logging.INFO)

    database = Database(settings.database_url, bcrypt_rounds=settings.bcrypt_rounds)
    try:
        database.initialize()
        print("Database initialization complete.")
    finally:
        database.dispose()


if __name__ == "__main__":
    # You can run this file directly to set up your DB
    initialize_db()
