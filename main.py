"""Server entry point for the Craftsman Hub accounts API"""

import os

import uvicorn
from dotenv import load_dotenv

# Load environment variables from .env file BEFORE building settings
load_dotenv()

from craftsman_hub.core.config import Settings
from craftsman_hub.core.database_client import Database
from craftsman_hub.main import configure_logging, create_app

settings = Settings.from_env()
configure_logging(settings)

database = Database(settings.database_url, bcrypt_rounds=settings.bcrypt_rounds)
database.initialize()

app = create_app(settings, database)


if __name__ == "__main__":
    host = os.getenv("WEB_HOST", "0.0.0.0")
    port = int(os.getenv("WEB_PORT", "8000"))
    print(f"Starting Craftsman Hub API at http://localhost:{port} ({settings.mode} mode)")
    uvicorn.run(app, host=host, port=port)
