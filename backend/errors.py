"""
Errors raised by the recognition pipeline
"""
from typing import Optional


class RecognitionError(Exception):
    """Text could not be recognized from the uploaded card image"""

    def __init__(self, message: str, file_path: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.file_path = file_path
