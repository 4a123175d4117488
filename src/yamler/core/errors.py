#!/usr/bin/env python3
"""
YAMLER ERRORS
-------------
Exception taxonomy shared by the document facade, the path resolver and
the edit operations. Formatting passes never raise these; they degrade to
the naive rendering instead.
"""

from typing import List, Optional


class YamlerError(Exception):
    """Base class for every error raised by yamler."""


class ParseError(YamlerError):
    """Malformed YAML input, surfaced from load()."""

    def __init__(self, message: str, line: Optional[int] = None, column: Optional[int] = None):
        self.line = line        # 1-based, None when the parser gave no mark
        self.column = column    # 1-based
        if line is not None:
            message = f"line {line}, column {column}: {message}"
        super().__init__(message)


class PathError(YamlerError):
    """An error tied to a logical document path."""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"{message} (path: {path!r})")


class PathNotFound(PathError):
    def __init__(self, path: str, message: str = "path not found"):
        super().__init__(path, message)


class TypeMismatch(PathError):
    def __init__(self, path: str, message: str = "type mismatch"):
        super().__init__(path, message)


class IndexOutOfBounds(PathError):
    def __init__(self, path: str, index: int, length: int):
        self.index = index
        self.length = length
        super().__init__(path, f"index {index} out of bounds for length {length}")


class InvalidPath(PathError):
    def __init__(self, path: str, message: str = "invalid path syntax"):
        super().__init__(path, message)


class FileError(YamlerError):
    """Reading or writing a file failed."""


class SerializationError(YamlerError):
    """The encoder failed to render the node tree."""


class ValidationError(YamlerError):
    """A document does not satisfy a ValidationRule."""

    def __init__(self, failures: List[str]):
        self.failures = failures
        super().__init__(failures[0] if len(failures) == 1 else "; ".join(failures))
