"""Configuration management for DocAI document Q&A service."""
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# API Keys
GROQ_API_KEY = os.getenv("GROQ_API_KEY")
HUGGINGFACE_API_KEY = os.getenv("HUGGINGFACE_API_KEY")
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")

# Server Configuration
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "json")

# CORS Configuration
CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:3001"
).split(",")

# Model Configuration
EMBEDDING_MODEL = "sentence-transformers/all-mpnet-base-v2"
EMBEDDING_DIMENSIONS = 768
CHAT_MODEL = "llama-3.1-8b-instant"
PREMIUM_MODEL = os.getenv("DOCAI_PREMIUM_MODEL", "llama-3.3-70b-versatile")

# Chunking Configuration
CHARS_PER_TOKEN = 4
CHUNK_SIZE = 800  # tokens
CHUNK_OVERLAP = 120  # tokens

# Embedding Configuration
EMBED_BATCH_SIZE = int(os.getenv("DOCAI_EMBED_BATCH_SIZE", "20"))

# Retrieval Configuration
DEFAULT_TOP_K = 8
MAX_TOP_K = 30
CHAT_RETRIEVAL_TOP_K = 16
CHAT_RERANK_TOP_K = 8
RETRIEVAL_TIMEOUT = float(os.getenv("DOCAI_RETRIEVAL_TIMEOUT", "30"))
REFORMULATION_TIMEOUT = 10.0  # seconds

# Limits
MAX_MESSAGE_CHARS = 2000
SUMMARY_MAX_CONTEXT_CHARS = 400_000
MIN_EXTRACTED_CHARS = 10
