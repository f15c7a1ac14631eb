from .api_response import APIResponse
from .result import Result

__all__ = ["APIResponse", "Result"]
