from stagewise.core.docs.consistency import check_document, check_document_file, stage_from_heading
from stagewise.core.stages.catalog import StageName


def test_convention_document_is_consistent(convention_doc):
    report = check_document(convention_doc)
    assert report.findings == []


def test_check_document_file(tmp_path, convention_doc):
    p = tmp_path / "conv.md"
    p.write_text(convention_doc, encoding="utf-8")
    assert check_document_file(p).ok


def test_stage_from_heading():
    assert stage_from_heading("Stage 4 - merging").name == StageName.FULL
    assert stage_from_heading("The enriched layer").name == StageName.ENRICHED
    assert stage_from_heading("Introduction") is None
    assert stage_from_heading("Raw history").name == StageName.HISTORY
    assert stage_from_heading("Stage 1 - raw history snapshot").name == StageName.RAW


def test_created_table_with_wrong_suffix():
    doc = "## Stage 1 - raw\n\n```sql\nCREATE TABLE odoo_enriched AS SELECT * FROM odoo_history;\n```\n"
    report = check_document(doc)
    f = next(f for f in report.findings if f.code == "DOC_NAME_MISMATCH")
    assert f.level == "error"
    assert f.model == "odoo_enriched"
    assert f.details["line"] == 4


def test_reading_from_wrong_stage_warns():
    doc = "## Core\n\n```sql\nCREATE VIEW customer_core AS SELECT * FROM customer_full;\n```\n"
    report = check_document(doc)
    assert "DOC_INPUT_MISMATCH" in report.codes()
    assert report.ok


def test_inline_name_from_other_stage_warns():
    doc = "## Taxonomy\n\nSee `customer_taxonomy` and `customer_metrics`.\n"
    report = check_document(doc)
    f = next(f for f in report.findings if f.code == "DOC_NAME_MISMATCH")
    assert f.level == "warn"
    assert f.model == "customer_metrics"


def test_inline_input_reference_is_allowed():
    doc = "## Raw\n\n`odoo_raw` reads `odoo_history`.\n"
    assert "DOC_NAME_MISMATCH" not in check_document(doc).codes()


def test_section_without_example():
    doc = "## Enriched\n\nColumns get renamed.\n"
    assert "DOC_STAGE_NO_EXAMPLE" in check_document(doc).codes()


def test_subheading_inherits_stage():
    doc = "## Stage 6 - core\n\n### Example\n\n```sql\nCREATE TABLE customer_metrics AS SELECT 1;\n```\n"
    report = check_document(doc)
    assert "DOC_NAME_MISMATCH" in report.codes()


def test_missing_stages_are_listed():
    doc = "## Raw\n\n`odoo_raw`\n"
    missing = [f.details["stage"] for f in check_document(doc).findings if f.code == "DOC_STAGE_MISSING"]
    assert "history" in missing and "business" in missing
    assert "raw" not in missing


def test_document_without_stage_sections_is_silent():
    assert check_document("# Readme\n\n`customer_core`\n").findings == []


def test_headings_inside_code_are_ignored():
    doc = "## Raw\n\n`odoo_raw`\n\n```\n# Core\nCREATE TABLE odoo_enriched AS SELECT 1;\n```\n"
    report = check_document(doc)
    assert any(f.code == "DOC_NAME_MISMATCH" and f.details["stage"] == "raw" for f in report.findings)


def test_raw_history_section_is_history():
    doc = "## Raw history\n```sql\nCREATE TABLE odoo_history AS SELECT * FROM source.odoo;\n```\n"
    report = check_document(doc)
    assert report.ok
    assert "DOC_NAME_MISMATCH" not in report.codes()
    assert "DOC_STAGE_NO_EXAMPLE" not in report.codes()
    missing = [f.details["stage"] for f in report.findings if f.code == "DOC_STAGE_MISSING"]
    assert "history" not in missing and "raw" in missing
