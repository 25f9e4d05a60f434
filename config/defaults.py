"""Default workflow settings."""

DEFAULTS = {
    "model": "claude-sonnet-4-5-20250929",
    "base_url": "https://api.anthropic.com",
    "max_tokens": 8192,
    "request_timeout": 120,     # seconds, per model call
    "max_retries": 5,           # rate-limit retries, on top of the first attempt
    "base_delay": 15,           # seconds
    "max_iterations": 3,        # fix attempts per run
    "hard_max_iterations": 10,  # absolute ceiling, cannot be overridden
    "temperatures": {
        "generator": 0.3,
        "tester": 0.2,
        "fixer": 0.2,
    },
}
