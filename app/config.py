"""
LearnHub configuration
Database, auth and storage settings
"""

import os

# MongoDB
MONGO_URL = os.getenv("MONGO_URL", "mongodb://localhost:27017")
MONGO_DB_NAME = os.getenv("MONGO_DB_NAME", "learnhub_db")
# Multi-document transactions need a replica set
MONGO_TRANSACTIONS = os.getenv("MONGO_TRANSACTIONS", "false").lower() == "true"

# Auth (tokens are issued by the auth service, we only verify them)
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

# File storage
UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")
CERTIFICATE_DIR = os.getenv("CERTIFICATE_DIR", "certificates")
MAX_VIDEO_BYTES = 500 * 1024 * 1024
MAX_THUMBNAIL_BYTES = 5 * 1024 * 1024

# Misc
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
VERSION = os.getenv("VERSION")
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")
