from __future__ import annotations

import logging
from typing import List, Optional

from stagewise.core.config import Settings, get_settings
from stagewise.core.manifest.models import PipelineManifest

from .models import Finding, LintReport
from .rules import LintContext, Rule, default_rules

_log = logging.getLogger("stagewise.lint")


class LintEngine:
    def __init__(self, rules: Optional[List[Rule]] = None):
        self._rules = list(rules) if rules is not None else default_rules()

    def evaluate(self, manifest: PipelineManifest, settings: Optional[Settings] = None) -> LintReport:
        settings = settings or get_settings()
        ctx = LintContext(manifest=manifest, retention_days=settings.retention_days)

        findings: List[Finding] = []
        for rule in self._rules:
            findings.extend(rule(ctx))

        report = LintReport(findings=findings).sorted()
        _log.info(
            "Linted project=%s models=%d errors=%d warnings=%d",
            manifest.project,
            len(manifest.models),
            len(report.errors),
            len(report.warnings),
        )
        return report


def lint_manifest(manifest: PipelineManifest, settings: Optional[Settings] = None) -> LintReport:
    return LintEngine().evaluate(manifest, settings)
