"""
Inkwell configuration - loaded from environment variables.
"""

import os
from dotenv import load_dotenv

load_dotenv()

# Storage
DB_PATH = os.getenv("INKWELL_DB_PATH", "inkwell.db")

# Passcode gate (a shared secret, not real authentication)
PASSCODE = os.getenv("INKWELL_PASSCODE", "1234")
SECRET_KEY = os.getenv("INKWELL_SECRET_KEY", "inkwell-dev-secret")

# OpenAI
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")

# Server
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 5002))
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
