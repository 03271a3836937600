import pytest

from stagewise.core.config import Settings
from stagewise.core.errors import NamingError
from stagewise.core.lint.engine import lint_manifest
from stagewise.core.planner import plan_entity, plan_manifest, plan_source
from stagewise.core.stages.catalog import StageName


def test_plan_source_chain():
    models = plan_source("odoo")
    assert [m.name for m in models] == ["odoo_history", "odoo_raw", "odoo_enriched", "odoo_transformed"]
    assert models[0].inputs == ["odoo"]
    assert models[0].retention_days == 90
    assert models[3].inputs == ["odoo_enriched"]


def test_plan_source_retention_override():
    assert plan_source("odoo", retention_days=30)[0].retention_days == 30


def test_plan_entity_full_chain():
    models = plan_entity("customer", ["odoo", "hubspot"], business="finance_customer_export")
    by_name = {m.name: m for m in models}
    assert by_name["customer_full"].inputs == ["odoo_transformed", "hubspot_transformed"]
    assert by_name["customer_taxonomy"].inputs == ["customer_full"]
    assert by_name["customer_metrics"].stage == StageName.METRICS
    assert by_name["finance_customer_export"].inputs == ["customer_metrics"]
    assert len(models) == 4 * 2 + 4 + 1


def test_plan_entity_without_metrics_exports_core():
    models = plan_entity("customer", ["odoo"], with_metrics=False, business="export_x", include_sources=False)
    assert [m.name for m in models] == ["customer_full", "customer_taxonomy", "customer_core", "export_x"]
    assert models[-1].inputs == ["customer_core"]


def test_plan_entity_requires_source():
    with pytest.raises(NamingError):
        plan_entity("customer", [" "])


def test_plan_entity_rejects_bad_business_name():
    with pytest.raises(NamingError):
        plan_entity("customer", ["odoo"], business="Board Pack")


def test_plan_manifest_shares_sources_and_lints_clean():
    m = plan_manifest("sales", {"customer": ["odoo", "hubspot"], "order": ["odoo"]})
    names = [x.name for x in m.models]
    assert names.count("odoo_history") == 1
    assert {s.name: s.entities for s in m.sources} == {"odoo": ["customer", "order"], "hubspot": ["customer"]}

    report = lint_manifest(m, Settings())
    assert report.ok
    # order is fed by one source only
    assert report.codes() == ["FULL_SINGLE_SOURCE"]


def test_plan_source_rejects_stage_suffixed_source():
    with pytest.raises(NamingError, match="raw suffix '_raw'"):
        plan_source("erp_raw")


def test_plan_entity_rejects_stage_suffixed_entity():
    with pytest.raises(NamingError, match="core suffix"):
        plan_entity("customer_core", ["odoo"])


def test_plan_source_allows_entity_suffix():
    assert plan_source("crm_core")[1].name == "crm_core_raw"
