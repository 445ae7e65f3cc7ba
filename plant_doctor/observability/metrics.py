from prometheus_client import Counter, Histogram

# -------------------------
# Diagnosis metrics
# -------------------------

DIAGNOSIS_REQUESTS_TOTAL = Counter(
    "diagnosis_requests_total",
    "Total remote diagnosis requests",
    ["result", "model"],
)

DIAGNOSIS_SECONDS = Histogram(
    "diagnosis_seconds",
    "Encode + remote diagnosis latency in seconds",
    ["model"],
)

# -------------------------
# Session metrics
# -------------------------

SESSION_TRANSITIONS_TOTAL = Counter(
    "session_transitions_total",
    "Analysis session state transitions",
    ["to_state"],
)

VALIDATION_FAILURES_TOTAL = Counter(
    "validation_failures_total",
    "Rejected image selections",
    ["code"],
)
