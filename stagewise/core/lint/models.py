from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

LEVEL_INFO = "info"
LEVEL_WARN = "warn"
LEVEL_ERROR = "error"

_LEVEL_RANK = {LEVEL_ERROR: 0, LEVEL_WARN: 1, LEVEL_INFO: 2}


@dataclass(frozen=True)
class Finding:
    level: str   # "info" | "warn" | "error"
    code: str
    message: str
    model: Optional[str] = None
    details: Dict[str, Any] | None = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "code": self.code,
            "message": self.message,
            "model": self.model,
            "details": self.details or {},
        }


@dataclass
class LintReport:
    findings: List[Finding] = field(default_factory=list)

    @property
    def errors(self) -> List[Finding]:
        return [f for f in self.findings if f.level == LEVEL_ERROR]

    @property
    def warnings(self) -> List[Finding]:
        return [f for f in self.findings if f.level == LEVEL_WARN]

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def is_blocking(self) -> bool:
        return bool(self.errors)

    def codes(self) -> List[str]:
        return [f.code for f in self.findings]

    def sorted(self) -> "LintReport":
        ordered = sorted(
            self.findings,
            key=lambda f: (_LEVEL_RANK.get(f.level, 9), f.model or "", f.code),
        )
        return LintReport(findings=ordered)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "summary": {
                "errors": len(self.errors),
                "warnings": len(self.warnings),
                "info": len([f for f in self.findings if f.level == LEVEL_INFO]),
            },
            "findings": [f.to_dict() for f in self.findings],
        }
