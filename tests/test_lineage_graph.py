import pytest

from stagewise.core.errors import CircularDependencyError
from stagewise.core.lineage.graph import ModelGraph, ModelNode
from stagewise.core.manifest.loader import manifest_from_dict
from stagewise.core.stages.catalog import StageName


def test_order_respects_inputs(manifest):
    order = ModelGraph.from_manifest(manifest).topological_order()
    assert len(order) == len(manifest.models)
    for m in manifest.models:
        for inp in m.inputs:
            if inp in order:
                assert order.index(inp) < order.index(m.name)


def test_order_is_stable_by_stage_then_name(manifest):
    order = ModelGraph.from_manifest(manifest).topological_order()
    assert order[:2] == ["hubspot_history", "odoo_history"]
    assert order[-1] == "finance_customer_export"


def test_source_inputs_are_leaves(manifest):
    g = ModelGraph.from_manifest(manifest)
    assert g.nodes["odoo_history"].depends_on == []


def test_cycle_detected():
    g = ModelGraph()
    g.add_node(ModelNode(name="a_core", stage=StageName.CORE, depends_on=["a_metrics"]))
    g.add_node(ModelNode(name="a_metrics", stage=StageName.METRICS, depends_on=["a_core"]))

    with pytest.raises(CircularDependencyError) as exc:
        g.topological_order()
    assert exc.value.nodes == ["a_core", "a_metrics"]


def test_upstream_and_downstream(manifest):
    g = ModelGraph.from_manifest(manifest)
    up = g.upstream("customer_full")
    assert "odoo_history" in up and "hubspot_transformed" in up
    assert "customer_core" not in up

    down = g.downstream("odoo_raw")
    assert down[0] == "odoo_enriched"
    assert "finance_customer_export" in down
    assert "hubspot_raw" not in down


def test_unknown_node_walk():
    with pytest.raises(KeyError):
        ModelGraph().upstream("nope")


def test_layers_group_by_stage(manifest):
    layers = ModelGraph.from_manifest(manifest).layers()
    assert list(layers)[0] == "history"
    assert layers["full"] == ["customer_full"]
    assert layers["raw"] == ["hubspot_raw", "odoo_raw"]


def test_self_reference_ignored_for_ordering():
    m = manifest_from_dict({"project": "p", "models": [{"name": "x_core", "stage": "core", "inputs": ["x_core"]}]})
    assert ModelGraph.from_manifest(m).topological_order() == ["x_core"]
