import json
import traceback

class IntelliNewsError(Exception):
    """Base exception for intellinews"""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

class ValidationError(IntelliNewsError):
    """Malformed input or candidate item"""
    pass

class ConfigurationError(IntelliNewsError):
    """Malformed settings"""
    pass

class ProviderError(IntelliNewsError):
    """Search provider errors"""
    pass

class StoreError(IntelliNewsError):
    """Knowledge store errors"""
    pass

class UnknownError(IntelliNewsError):
    """Unexpected errors"""
    pass

def format_error(e: Exception) -> str:
    """Format exception as the JSON error envelope."""

    if isinstance(e, IntelliNewsError):
        error_type = e.__class__.__name__
        message = e.message
        details = e.details
    else:
        error_type = "UnknownError"
        message = str(e)
        details = {
            "traceback": traceback.format_exc().splitlines()
        }

    payload = {
        "ok": False,
        "error": {
            "type": error_type,
            "message": message,
            "details": details
        },
        "meta": {
            "version": 1
        }
    }

    return json.dumps(payload, indent=2)
