"""
Error types raised by the config engine.

Every message is meant to be shown to the user as-is; the command
dispatcher turns these into `{"success": false, "error": ...}` responses.
"""


class ConfigError(Exception):
    """Base error for all config operations."""
    pass


class ConfigParseError(ConfigError):
    """Both the JSON5 and the strict JSON parser rejected the document."""

    def __init__(self, json5_error: str, json_error: str):
        self.json5_error = json5_error
        self.json_error = json_error
        super().__init__(
            f"Failed to parse config as JSON/JSON5: JSON5 error: {json5_error}; JSON error: {json_error}"
        )


class SubstitutionError(ConfigError):
    """A ${VAR} reference could not be resolved."""
    pass


class ConfigIOError(ConfigError):
    """Reading or writing a file on disk failed."""

    def __init__(self, action: str, path, error: OSError):
        self.path = path
        super().__init__(f"Failed to {action} {path}: {error}")


class ConfigValidationError(ConfigError):
    """A caller-supplied argument is missing or invalid."""
    pass


class CommandError(ConfigError):
    """The openclaw CLI could not be run or reported a failure."""
    pass
