"""Constants used throughout the application."""

# Role templates
INPUT_PLACEHOLDER = "__INPUT__"
ARG_PLACEHOLDER = "__ARG{index}__"
TEMP_ROLE_NAME = "%%"

# Sessions
TEMP_SESSION_NAME = "temp"
SESSION_FILE_SUFFIX = ".yaml"

# Compression
MIN_COMPRESS_THRESHOLD = 1_000
DEFAULT_COMPRESS_THRESHOLD = 2_000
# Number of compressed messages replayed after a summary-only history.
COMPRESSION_CONTINUITY_WINDOW = 2
DEFAULT_SUMMARY_MAX_CHARS = 4_000

DEFAULT_SUMMARIZE_PROMPT = (
    "Summarize the discussion briefly in 200 words or less to use as a prompt for future context."
)
DEFAULT_SUMMARY_PROMPT = "This is a summary of the chat history as a recap: "

# Token estimation
CHARS_PER_TOKEN = 4
TOKENS_PER_MESSAGE = 8
TOKENS_PER_ATTACHMENT = 85

# Known context windows, keyed by model name without provider prefix.
MODEL_MAX_INPUT_TOKENS = {
    "deepseek-chat": 64_000,
    "deepseek-coder": 64_000,
    "deepseek-reasoner": 64_000,
    "openai/gpt-4o": 128_000,
    "openai/gpt-4o-mini": 128_000,
    "anthropic/claude-3.5-sonnet": 200_000,
    "meta-llama/llama-3.1-70b-instruct": 131_072,
}

# REPL
REPL_COMMAND_PREFIX = "."
REPL_PROMPT = "〉"
