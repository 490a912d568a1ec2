import os

# Logging
DEFAULT_LOG_LEVEL = os.environ.get("BYTECODE_CFG_LOG_LEVEL", "INFO")
DEFAULT_LOG_RENDERER = os.environ.get("BYTECODE_CFG_LOG_RENDERER", "console")
LOG_RENDERERS = ("console", "json")

# Batch construction
DEFAULT_WORKERS = int(os.environ.get("BYTECODE_CFG_WORKERS", 4))

# Validation is only ever disabled while debugging the engine itself
VALIDATE_BY_DEFAULT = os.environ.get("BYTECODE_CFG_VALIDATE", "true").lower() == "true"
