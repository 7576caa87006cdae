"""Constants for the hammer loop."""

import os

# Default LM settings, passed to the corrective commands which may override them
DEFAULT_LM_BASE_PATH = "https://api.openai.com/v1"
DEFAULT_FAST_MODEL = "gpt-3.5-turbo-1106"
DEFAULT_SMART_MODEL = "gpt-4-1106-preview"

# Maximum number of verification runs per hammer loop
DEFAULT_HAMMER_BUDGET = 5

# Name of the project verification script, searched from the file's dir upward
DEFAULT_HAMMER_SCRIPT = "hammer"

# Console scripts installed with this package
DEFAULT_HAMMER_COMMAND = "hammer-fix"
DEFAULT_EDIT_COMMAND = "hammer-edit"

# Hammer and edit operate on the whole file
DUMMY_LINE_RANGE = "1"

# Same code a shell reports for a missing command
SPAWN_FAILURE_EXIT_CODE = 127

DEFAULT_LM_TIMEOUT_S = float(os.getenv("HAMMER_LM_TIMEOUT_S", "120"))

# A single argv string is limited to 128 KiB on Linux; keep prompts well below
MAX_PROMPT_CHARS = 32000
