"""Constants for the deepcompare client."""


# Research backends the comparison endpoint knows about: (id, display name)
MODEL_CATALOG = [
    ("zhipu", "智谱 GLM-4.7"),
    ("deepseek", "DeepSeek V3.2"),
    ("kimi", "Kimi K2 Thinking"),
]

KNOWN_MODELS = [model_id for model_id, _ in MODEL_CATALOG]

# Backend endpoints (relative to backend.url)
COMPARE_PATH = "/research/compare"
SUMMARY_PATH = "/research/comparison"

# Worker stage labels
STAGE_INITIALIZING = "Initializing..."
STAGE_RUNNING = "Running research..."
STAGE_DONE = "Completed"
STAGE_FAILED = "Failed"
STAGE_STOPPED = "Stopped by user"
STAGE_TIMED_OUT = "Timed out"
STAGE_STRANDED = "Stream ended before completion"

# Stage timing keys carried by every result
STAGE_TIMING_KEYS = [
    "clarification",
    "research_brief",
    "research_execution",
    "final_report",
]

# Run timing
RUN_TIMEOUT_S = 360.0
TICK_INTERVAL_S = 1.0

# Synthetic progress: onset delay and growth rate per worker position
SYNTHETIC_DELAY_BASE_S = 2.0
SYNTHETIC_DELAY_STEP_S = 1.2
SYNTHETIC_RATE_BASE = 0.35
SYNTHETIC_RATE_STEP = 0.12
SYNTHETIC_CAP = 15


def model_display_name(model: str) -> str:
    """Human-readable name for a model id (falls back to the id)."""
    return dict(MODEL_CATALOG).get(model, model)
