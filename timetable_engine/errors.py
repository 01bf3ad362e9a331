from typing import Any, Dict, Optional


class EngineError(Exception):
    """Base class for all scheduling engine exceptions."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class InputError(EngineError):
    """Raised when the supplied subjects, teachers or rooms are invalid."""


class ConfigurationError(InputError):
    """Raised when a catalog or the engine configuration cannot support a run."""


class UnsupportedAlgorithmError(EngineError):
    """Raised when the requested scheduling strategy does not exist."""
    def __init__(self, algorithm: Any):
        super().__init__(f"Unsupported algorithm: {algorithm!r}", details={"algorithm": algorithm})
        self.algorithm = algorithm
