import os

from dotenv import find_dotenv, load_dotenv

# a .env file in the working directory fills in unset variables
load_dotenv(find_dotenv(usecwd=True))

# Storage backend: "mongo" for a MongoDB server, "memory" for a process-local collection
STORAGE = {
    "BACKEND": os.getenv("CATALOG_STORAGE", "mongo"),
    "MONGODB_URI": os.getenv("MONGODB_URI", "mongodb://localhost:27017/crud_app"),
    "DATABASE": os.getenv("CATALOG_DATABASE", "crud_app"),
    "COLLECTION": "products",
}

# Listing defaults (MAX_LIMIT = 0 disables the page size cap)
PAGINATION = {
    "DEFAULT_PAGE": 1,
    "DEFAULT_LIMIT": 10,
    "MAX_LIMIT": int(os.getenv("CATALOG_MAX_LIMIT", "100")),
}

SERVER = {
    "HOST": os.getenv("HOST", "0.0.0.0"),
    "PORT": int(os.getenv("PORT", "3000")),
}

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

CATEGORIES = ["Electronics", "Clothing", "Food", "Books", "Other"]
DEFAULT_CATEGORY = "Other"
DEFAULT_IMAGE_URL = "default-product.jpg"
CURRENCY_SUFFIX = " €"
LOW_STOCK_THRESHOLD = 5

# largest integer a stored document or a skip/limit can carry (BSON int64)
MAX_INTEGER = 2**63 - 1
