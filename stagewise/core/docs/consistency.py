"""
Documentation consistency check for convention documents.

A markdown document describing the stages is split into sections by its
headings. A heading that names a stage ("Stage 2", "Enriched layer") scopes
everything below it, including deeper sub-headings that name no stage.

Inside a stage section:
  - tables created in SQL blocks must follow that stage's naming pattern
  - FROM/JOIN references should point at an allowed input stage
  - inline code names carrying a stage suffix must be the section's stage or
    one of its inputs
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Set, Tuple, Union

from stagewise.core.errors import NamingError
from stagewise.core.lint.models import LEVEL_ERROR, LEVEL_INFO, LEVEL_WARN, Finding, LintReport
from stagewise.core.stages.catalog import STAGES, StageDefinition, StageName, get_stage
from stagewise.core.stages.naming import TableName, parse_table_name

_log = logging.getLogger("stagewise.docs")

_HEADING_RE = re.compile(r"^(#{1,6})\s+(.*?)\s*#*\s*$")
_FENCE_RE = re.compile(r"^\s*(```|~~~)")
_STAGE_NUMBER_RE = re.compile(r"\bstage\s*(\d)\b", re.IGNORECASE)
# "raw history" names stage 0.
_RAW_HISTORY_RE = re.compile(r"\braw[\s_-]+history\b", re.IGNORECASE)
_STAGE_WORD_RE = re.compile(
    r"\b(" + "|".join(s.name.value for s in STAGES) + r")\b",
    re.IGNORECASE,
)
_NAME = r"([\w.\"`\[\]]+)"
_CREATE_RE = re.compile(
    r"\bcreate\s+(?:or\s+replace\s+)?(?:temp(?:orary)?\s+)?"
    r"(?:table|view|materialized\s+view)\s+(?:if\s+not\s+exists\s+)?" + _NAME,
    re.IGNORECASE,
)
_INSERT_RE = re.compile(r"\binsert\s+(?:into|overwrite(?:\s+table)?)\s+" + _NAME, re.IGNORECASE)
_REF_RE = re.compile(r"\b(?:from|join)\s+" + _NAME, re.IGNORECASE)
_INLINE_RE = re.compile(r"`([^`\n]+)`")
_INLINE_NAME_RE = re.compile(r"^[A-Za-z_][\w.]*$")


@dataclass(frozen=True)
class _Section:
    stage: Optional[StageDefinition]
    heading: str
    line: int


def stage_from_heading(text: str) -> Optional[StageDefinition]:
    m = _STAGE_NUMBER_RE.search(text)
    if m:
        order = int(m.group(1))
        for s in STAGES:
            if s.order == order:
                return s
    if _RAW_HISTORY_RE.search(text):
        return get_stage(StageName.HISTORY)
    m = _STAGE_WORD_RE.search(text)
    if m:
        return get_stage(m.group(1).lower())
    return None


def _parse(name: str) -> Optional[TableName]:
    try:
        return parse_table_name(name)
    except NamingError:
        return None


def _walk(text: str) -> Iterator[Tuple[int, str, bool, Optional[_Section], List[_Section]]]:
    """Yield (line_no, line, in_code, current_section, heading_sections)."""
    stack: List[Tuple[int, _Section]] = []
    in_code = False

    for idx, line in enumerate((text or "").splitlines(), start=1):
        if _FENCE_RE.match(line):
            in_code = not in_code
            continue

        opened: List[_Section] = []
        if not in_code:
            hm = _HEADING_RE.match(line)
            if hm:
                level = len(hm.group(1))
                while stack and stack[-1][0] >= level:
                    stack.pop()
                section = _Section(stage=stage_from_heading(hm.group(2)), heading=hm.group(2), line=idx)
                stack.append((level, section))
                opened.append(section)

        current = next((s for _, s in reversed(stack) if s.stage is not None), None)
        yield idx, line, in_code, current, opened


def check_document(text: str) -> LintReport:
    findings: List[Finding] = []
    stage_sections: List[_Section] = []
    examples: Set[Tuple[int, str]] = set()

    for line_no, line, in_code, section, opened in _walk(text):
        for s in opened:
            if s.stage is not None:
                stage_sections.append(s)

        if section is None:
            continue
        stage = section.stage
        key = (section.line, stage.name.value)

        if in_code:
            for rx in (_CREATE_RE, _INSERT_RE):
                for m in rx.finditer(line):
                    parsed = _parse(m.group(1))
                    if parsed is None:
                        continue
                    if parsed.stage == stage.name:
                        examples.add(key)
                        continue
                    findings.append(
                        Finding(
                            level=LEVEL_ERROR if stage.name != StageName.BUSINESS else LEVEL_WARN,
                            code="DOC_NAME_MISMATCH",
                            message=(
                                f"Line {line_no}: {parsed.table!r} is created in the "
                                f"{stage.name.value} section but must follow {stage.pattern}."
                            ),
                            model=parsed.table,
                            details={"line": line_no, "section": section.heading, "stage": stage.name.value},
                        )
                    )

            for m in _REF_RE.finditer(line):
                parsed = _parse(m.group(1))
                if parsed is None or parsed.stage == StageName.BUSINESS:
                    continue
                if parsed.stage == stage.name or stage.accepts(parsed.stage):
                    continue
                findings.append(
                    Finding(
                        level=LEVEL_WARN,
                        code="DOC_INPUT_MISMATCH",
                        message=(
                            f"Line {line_no}: the {stage.name.value} section reads "
                            f"{parsed.stage.value} table {parsed.table!r}."
                        ),
                        model=parsed.table,
                        details={
                            "line": line_no,
                            "section": section.heading,
                            "allowed_stages": [s.value for s in stage.inputs],
                        },
                    )
                )
            continue

        for m in _INLINE_RE.finditer(line):
            token = m.group(1).strip()
            if not _INLINE_NAME_RE.match(token):
                continue
            parsed = _parse(token)
            if parsed is None or parsed.stage == StageName.BUSINESS:
                continue
            if parsed.stage == stage.name:
                examples.add(key)
                continue
            if stage.accepts(parsed.stage):
                continue
            findings.append(
                Finding(
                    level=LEVEL_WARN,
                    code="DOC_NAME_MISMATCH",
                    message=(
                        f"Line {line_no}: {parsed.table!r} ({parsed.stage.value}) is shown "
                        f"in the {stage.name.value} section."
                    ),
                    model=parsed.table,
                    details={"line": line_no, "section": section.heading, "stage": stage.name.value},
                )
            )

    for s in stage_sections:
        if (s.line, s.stage.name.value) not in examples and s.stage.name != StageName.BUSINESS:
            findings.append(
                Finding(
                    level=LEVEL_INFO,
                    code="DOC_STAGE_NO_EXAMPLE",
                    message=f"Section {s.heading!r} shows no {s.stage.pattern} example.",
                    details={"line": s.line, "stage": s.stage.name.value},
                )
            )

    if stage_sections:
        documented = {s.stage.name for s in stage_sections}
        for definition in STAGES:
            if definition.name not in documented:
                findings.append(
                    Finding(
                        level=LEVEL_INFO,
                        code="DOC_STAGE_MISSING",
                        message=f"No section documents stage {definition.order} ({definition.name.value}).",
                        details={"stage": definition.name.value},
                    )
                )

    report = LintReport(findings=findings)
    _log.info(
        "Checked document sections=%d errors=%d warnings=%d",
        len(stage_sections),
        len(report.errors),
        len(report.warnings),
    )
    return report


def check_document_file(path: Union[str, Path]) -> LintReport:
    return check_document(Path(path).read_text(encoding="utf-8"))
