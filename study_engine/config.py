# config.py
import logging
import os

# -----------------------------
# Base Paths
# -----------------------------
BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DATA_DIR = os.getenv("STUDY_ENGINE_DATA_DIR", os.path.join(BASE_DIR, "data"))
LOGS_DIR = os.getenv("STUDY_ENGINE_LOGS_DIR", os.path.join(BASE_DIR, "logs"))

# -----------------------------
# CSV Files
# -----------------------------
EXAM_CSV = os.path.join(DATA_DIR, "sample_exam.csv")
DIAGNOSTIC_CSV = os.path.join(DATA_DIR, "prena_items.csv")
DEFAULT_EXAM_ID = "demo"

# -----------------------------
# Reasoning Providers
# -----------------------------
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", "")

AI_MODEL = os.getenv("AI_MODEL", "gpt-4o-mini")
CLAUDE_MODEL = os.getenv("CLAUDE_MODEL", "claude-3-5-sonnet-20241022")

SCORING_TEMPERATURE = 0.3
SCORING_MAX_TOKENS = 400
SCORING_TIMEOUT_SEC = float(os.getenv("SCORING_TIMEOUT_SEC", "20"))

# -----------------------------
# Adaptive Timer (seconds)
# -----------------------------
DEFAULT_DURATION = 1500     # 25 minutes
MIN_DURATION = 900          # 15 minutes
MAX_DURATION = 3000         # 50 minutes
ADAPTIVENESS = 0.5
NUDGE_SECONDS = 30

LOW_SCORE_THRESHOLD = 0.4
HIGH_SCORE_THRESHOLD = 0.7
SHRINK_FACTOR = 0.2
GROW_FACTOR = 0.1

# -----------------------------
# Heuristic Scoring
# -----------------------------
HEURISTIC_BASE_SCORE = 0.5
BRIEF_RESPONSE_CHARS = 20
DETAILED_RESPONSE_CHARS = 200
COMPLETE_RESPONSE_CHARS = 100

# -----------------------------
# Logging
# -----------------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def configure_logging(level: str = LOG_LEVEL):
    """Basic console logging for the Streamlit entry point."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
