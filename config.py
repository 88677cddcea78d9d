"""
Configuration loader.
Reads settings from a .env file (if present) and the process environment.
"""

import os
from dotenv import load_dotenv

load_dotenv()

# MongoDB
DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")

# Tokens are issued elsewhere; we only verify them. Required, there is no default.
JWT_SECRET = os.getenv("JWT_SECRET")
JWT_ALGORITHM = "HS256"

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

PORT = int(os.getenv("PORT", 8000))

# Review listings
REVIEW_PAGE_LIMIT_DEFAULT = 10
REVIEW_PAGE_LIMIT_MAX = 50
RECENT_REVIEWS_LIMIT = 5
