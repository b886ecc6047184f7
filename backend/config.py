"""Configuration management for Reader App."""
import os
import logging
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# API Keys
GROQ_API_KEY = os.getenv("GROQ_API_KEY")
GROQ_BASE_URL = os.getenv("GROQ_BASE_URL")  # None means the SDK default
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")

# Server Configuration
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "text")  # "text" or "json"

# CORS Configuration
CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:5173,http://localhost:3000"
).split(",")

# Client identification sent with every generation request
APP_TITLE = os.getenv("APP_TITLE", "Reader App")
APP_URL = os.getenv("APP_URL", "http://localhost:5173")

# Document & local persistence
DOCUMENT_PATH = os.getenv(
    "DOCUMENT_PATH",
    os.path.join(os.path.dirname(__file__), "data", "sample_book.json")
)
PREFERENCES_PATH = os.getenv("PREFERENCES_PATH", "reader_preferences.json")

# Model Configuration
CHAT_MODEL = "llama-3.1-8b-instant"
TRANSCRIPTION_MODEL = "whisper-large-v3-turbo"
TRANSCRIPTION_LOCALE = "en-US"
MAX_RESPONSE_TOKENS = 1024

# Assistant Configuration
RECENT_MESSAGE_LIMIT = 50
FALLBACK_MESSAGE = "Sorry, I could not generate a response."

# Reading Configuration
SNIPPET_CONTEXT = 50  # characters on each side of a search match
BIONIC_RATIO = 0.4

# Logging Configuration
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
