"""Prometheus metrics definitions."""

from prometheus_client import Counter, Gauge, Histogram

# Request metrics
REQUEST_COUNT = Counter(
    "shlyapa_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

REQUEST_DURATION = Histogram(
    "shlyapa_request_duration_seconds",
    "HTTP request duration in seconds",
    ["endpoint"],
    buckets=[0.1, 0.5, 1, 2, 5, 10, 20, 30, 60],
)

# Dispatch metrics
DISPATCH_OUTCOMES = Counter(
    "shlyapa_dispatch_outcomes_total",
    "Incoming messages by dispatch outcome",
    # outcome: not_engaged, too_long, rate_limited, no_reply, replied, error
    ["outcome"],
)

# LLM metrics
LLM_CALLS = Counter(
    "shlyapa_llm_calls_total",
    "Total generation backend calls",
    ["provider", "model"],
)

LLM_ERRORS = Counter(
    "shlyapa_llm_errors_total",
    "Generation calls that produced no reply",
    ["provider", "error_type"],
)

LLM_DURATION = Histogram(
    "shlyapa_llm_duration_seconds",
    "Generation call duration in seconds, retries included",
    ["provider"],
    buckets=[0.5, 1, 2, 3, 5, 8, 10, 20, 30, 60],
)

# Retry metrics
RETRY_ATTEMPTS = Counter(
    "shlyapa_retry_attempts_total",
    "Retries scheduled by a retry policy",
    ["policy"],  # backoff, flood_wait
)

# Registry sizes
ACTIVE_RATE_WINDOWS = Gauge(
    "shlyapa_active_rate_windows",
    "Senders with a rate-limit window in memory",
)

STORED_CONVERSATIONS = Gauge(
    "shlyapa_stored_conversations",
    "Chats with conversation history in memory",
)
