"""
Project-wide constants for the studygen content pipeline
"""  # noqa: D200, D212, D415

# ==============================================================================
# Token Estimation
# ==============================================================================

CHARS_PER_TOKEN = 4  # average characters per token
OVERHEAD_MULTIPLIER = 1.1  # safety margin for prompt overhead
SUMMARIZATION_COMPRESSION = 10  # summaries assumed ~10x smaller than source

# ==============================================================================
# Chunking Heuristics
# ==============================================================================

# A paragraph or word break only counts when it lies past this share of the
# target window; otherwise the piece would be uselessly small.
MIN_SPLIT_RATIO = 0.5
# Sentence breaks are searched in the tail of the window starting here.
SENTENCE_WINDOW_START = 0.7
SENTENCE_ENDINGS = (". ", "! ", "? ", ".\n", "!\n", "?\n")
DOCUMENT_HEADER = "\n\n=== {name} ===\n{text}"

CHUNKING_BY_TOKENS = "by-tokens"
CHUNKING_BY_DOCUMENT = "by-document"

# ==============================================================================
# Generation
# ==============================================================================

DEFAULT_MODEL = "gemini-2.0-flash"
DEFAULT_TIER = "FREE"
DEFAULT_PARALLEL_LIMIT = 10
DEFAULT_CALL_TIMEOUT_SECONDS = 120.0

# Extraction prompts ask for this much headroom over the requested count so
# deduplication still leaves enough candidates.
EXTRACTION_HEADROOM = 1.5

# Characters kept from a piece whose summarization call failed.
FAILED_PIECE_EXCERPT_RATIO = 0.1

# Identifier reported in ``summarized_inputs`` for single-text content.
SINGLE_TEXT_INPUT_ID = "content"
