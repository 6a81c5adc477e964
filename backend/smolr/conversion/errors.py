"""Per-item conversion failures. None of these abort a run."""


class ConversionError(Exception):
    """Base class; str(error) is the message shown in the error list."""


class ToolMissingError(ConversionError):
    def __init__(self, target_format: str, tool: str = ""):
        self.target_format = target_format
        self.tool = tool
        super().__init__(f"Unsupported format: {target_format}")


class PermissionDeniedError(ConversionError):
    pass


class CommandFailedError(ConversionError):
    def __init__(self, message: str, returncode: int = -1, stderr: str = ""):
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)


class DecodeError(ConversionError):
    pass
