from __future__ import annotations

from typing import List, Optional


class StagewiseError(Exception):
    """Base class for every error raised by the convention tooling."""


class UnknownStageError(StagewiseError, KeyError):
    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown stage: {self.name!r}"


class NamingError(StagewiseError, ValueError):
    pass


class ManifestError(StagewiseError, ValueError):
    def __init__(self, message: str, problems: Optional[List[str]] = None):
        super().__init__(message)
        self.problems: List[str] = list(problems or [])


class CircularDependencyError(StagewiseError):
    def __init__(self, nodes: List[str]):
        super().__init__("Circular model dependency detected: " + ", ".join(nodes))
        self.nodes = list(nodes)


class SqlGenerationError(StagewiseError, ValueError):
    pass


class StoreError(StagewiseError, ValueError):
    pass
