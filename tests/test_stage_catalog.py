import pytest

from stagewise.core.errors import UnknownStageError
from stagewise.core.stages.catalog import (
    STAGES,
    StageName,
    get_stage,
    list_stages,
    reserved_suffixes,
    stage_for_suffix,
)


def test_catalog_has_nine_contiguous_stages():
    assert [s.order for s in STAGES] == list(range(9))
    assert [s.name.value for s in list_stages()] == [
        "history",
        "raw",
        "enriched",
        "transformed",
        "full",
        "taxonomy",
        "core",
        "metrics",
        "business",
    ]


def test_suffixes_follow_stage_names():
    for s in STAGES[:8]:
        assert s.suffix == f"_{s.name.value}"
    assert get_stage("business").suffix is None
    assert len(reserved_suffixes()) == 8


def test_source_and_entity_scopes():
    assert [s.scope for s in STAGES[:4]] == ["source"] * 4
    assert [s.scope for s in STAGES[4:8]] == ["entity"] * 4
    assert get_stage(StageName.BUSINESS).scope == "custom"


def test_allowed_inputs():
    assert get_stage("history").inputs == ()
    assert get_stage("raw").accepts(StageName.HISTORY)
    assert not get_stage("raw").accepts(StageName.ENRICHED)
    assert get_stage("full").accepts(StageName.TRANSFORMED)
    assert get_stage("business").accepts(StageName.CORE)
    assert get_stage("business").accepts(StageName.METRICS)
    assert not get_stage("business").accepts(StageName.TAXONOMY)


def test_only_full_and_business_take_many_inputs():
    multi = {s.name for s in STAGES if s.multi_input}
    assert multi == {StageName.FULL, StageName.BUSINESS}


def test_patterns():
    assert get_stage("history").pattern == "<source>_history"
    assert get_stage("core").pattern == "<entity>_core"
    assert get_stage("business").pattern == "<custom name>"


def test_get_stage_is_case_insensitive():
    assert get_stage(" Raw ").name == StageName.RAW


def test_get_stage_unknown():
    with pytest.raises(UnknownStageError):
        get_stage("silver")


def test_stage_for_suffix_accepts_missing_underscore():
    assert stage_for_suffix("metrics").name == StageName.METRICS
    assert stage_for_suffix("_full").name == StageName.FULL
    assert stage_for_suffix("_gold") is None


def test_history_retention_documented():
    assert "90 days" in get_stage("history").description
