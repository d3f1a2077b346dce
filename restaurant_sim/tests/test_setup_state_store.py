from restaurant_sim.app.services.setup_state_service import SetupStateStore


def test_record_entity_is_idempotent(store):
    assert store.record_entity("category", "C1", "Appetizers", {"id": "C1", "name": "Appetizers"}) is True
    assert store.record_entity("category", "C1", "Starters", {"id": "C1", "name": "Starters"}) is False

    rows = store.get_entities("category")
    assert len(rows) == 1
    assert rows[0]["name"] == "Starters"
    assert rows[0]["data"]["name"] == "Starters"


def test_entity_exists_matches_id_or_name(store):
    store.record_entity("role", "R1", "Manager", {})

    assert store.entity_exists("role", "R1")
    assert store.entity_exists("role", "Manager")
    assert not store.entity_exists("role", "Server")
    assert not store.entity_exists("employee", "R1")


def test_get_entities_keeps_creation_order(store):
    for remote_id, name in [("Z9", "Zeta"), ("A1", "Alpha"), ("M5", "Mid")]:
        store.record_entity("table", remote_id, name, {})

    assert [row["id"] for row in store.get_entities("table")] == ["Z9", "A1", "M5"]


def test_step_lifecycle(store):
    assert store.step_completed("tax_rates") is False
    assert store.get_step_data("tax_rates") is None

    store.mark_step_completed("tax_rates", {"created": 4})
    store.mark_step_completed("tax_rates", {"created": 4})

    assert store.step_completed("tax_rates") is True
    assert store.get_step_data("tax_rates") == {"created": 4}

    assert store.reset_step("tax_rates") is True
    assert store.step_completed("tax_rates") is False
    assert store.reset_step("tax_rates") is False


def test_writes_are_durable_across_sessions(store, sqlite_session):
    from restaurant_sim.app.db import SessionLocal

    store.record_entity("discount", "D1", "Happy Hour", {"percentage": 15})
    store.mark_step_completed("discounts")

    with SessionLocal() as other:
        fresh = SetupStateStore(other)
        assert fresh.step_completed("discounts")
        assert fresh.entity_exists("discount", "Happy Hour")


def test_creation_summary_and_reset_all(store):
    store.record_entity("category", "C1", "Appetizers", {})
    store.record_entity("category", "C2", "Entrees", {})
    store.record_entity("role", "R1", "Manager", {})
    store.mark_step_completed("categories")

    assert store.creation_summary() == {"category": 2, "role": 1}
    assert [s["name"] for s in store.list_steps()] == ["categories"]

    store.reset_all()

    assert store.creation_summary() == {}
    assert store.list_steps() == []


def test_record_last_error_is_not_a_completed_step(store):
    store.record_last_error("categories", "all 7 creations failed")

    assert store.step_completed("last_error") is False
    assert store.get_step_data("last_error") == {"step": "categories", "error": "all 7 creations failed"}
