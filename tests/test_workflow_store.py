# tests/test_workflow_store.py
import json

from fsm_canvas.workflow import Position, WorkflowStore, get_workflow_store


def test_save_and_load_round_trip(store, simple_workflow):
    store.save(simple_workflow)
    loaded = store.load(simple_workflow.id)

    assert loaded is not None
    assert loaded.id == simple_workflow.id
    assert loaded.configuration == simple_workflow.configuration
    assert loaded.layout.get_state("b").position == Position(x=400, y=0)
    assert loaded.layout.version == simple_workflow.layout.version


def test_saved_file_uses_camel_case(store, simple_workflow):
    store.save(simple_workflow)
    data = json.loads((store.storage_dir / "wf-simple.json").read_text(encoding="utf-8"))

    assert data["configuration"]["initialState"] == "a"
    assert "labelPosition" in data["layout"]["transitions"][0]
    assert "updatedAt" in data["layout"]
    assert "entityModel" in data


def test_load_missing_returns_none(store):
    assert store.load("does-not-exist") is None


def test_load_malformed_returns_none(store):
    (store.storage_dir / "broken.json").write_text("{not json", encoding="utf-8")
    (store.storage_dir / "wrong-shape.json").write_text('{"configuration": []}', encoding="utf-8")
    assert store.load("broken") is None
    assert store.load("wrong-shape") is None


def test_list_all_skips_malformed(store, simple_workflow, fan_workflow):
    store.save(simple_workflow)
    store.save(fan_workflow)
    (store.storage_dir / "broken.json").write_text("{", encoding="utf-8")

    assert sorted(w.id for w in store.list_all()) == ["wf-fan", "wf-simple"]


def test_load_migrates_legacy_layout(store):
    legacy = {
        "id": "legacy",
        "configuration": {
            "name": "Old",
            "initialState": "a",
            "states": {
                "a": {"transitions": [{"name": "go", "next": "b", "manual": False}]},
                "b": {"transitions": []},
            },
        },
        "layout": {
            "states": [{"id": "a", "position": {"x": 1, "y": 1}}, {"id": "gone"}],
            "transitions": [
                {"id": "a-to-b", "labelPosition": {"x": 3, "y": 4}},
                {"id": "b-to-a"},
            ],
        },
    }
    (store.storage_dir / "legacy.json").write_text(json.dumps(legacy), encoding="utf-8")

    loaded = store.load("legacy")
    assert [t.id for t in loaded.layout.transitions] == ["a-transition-0"]
    assert loaded.layout.transitions[0].label_position == Position(x=3, y=4)
    assert [s.id for s in loaded.layout.states] == ["a"]


def test_delete_and_exists(store, simple_workflow):
    store.save(simple_workflow)
    assert store.exists(simple_workflow.id)
    assert store.delete(simple_workflow.id) is True
    assert not store.exists(simple_workflow.id)
    assert store.delete(simple_workflow.id) is False


def test_ids_are_sanitized(store, simple_workflow):
    workflow = simple_workflow.model_copy(update={"id": "../evil id"})
    store.save(workflow)
    assert (store.storage_dir / "evilid.json").exists()
    assert store.load("../evil id").id == "../evil id"


def test_save_stamps_updated_at(store, simple_workflow):
    simple_workflow.updated_at = "2000-01-01T00:00:00+00:00"
    store.save(simple_workflow)
    assert simple_workflow.updated_at != "2000-01-01T00:00:00+00:00"


def test_default_store_uses_configured_directory(tmp_path, monkeypatch):
    import fsm_canvas.workflow.workflow_store as workflow_store

    monkeypatch.setenv("FSM_CANVAS_STORAGE_DIR", str(tmp_path / "env-dir"))
    monkeypatch.setattr(workflow_store, "_store_instance", None)

    store = get_workflow_store()
    assert isinstance(store, WorkflowStore)
    assert store.storage_dir == tmp_path / "env-dir"
    assert get_workflow_store() is store
