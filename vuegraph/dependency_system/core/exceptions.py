# core/exceptions.py

"""Exceptions raised by the project parser."""

from typing import Optional


class ProjectParseError(Exception):
    """A parse pass could not produce a graph."""

    def __init__(self, message: str, file_path: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.file_path = file_path


class ScriptSyntaxError(ProjectParseError):
    """The entry file's script section is not valid syntax."""

    def __init__(self, file_path: str, line: int, detail: str = ""):
        message = f"Syntax error in {file_path} at line {line}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message, file_path)
        self.line = line
        self.detail = detail
