def test_health(api_client):
    resp = api_client.get("/health")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_setup_then_status(api_client):
    resp = api_client.post("/api/sim/setup")
    assert resp.status_code == 200
    assert resp.json()["failed"] == 0

    status = api_client.get("/api/sim/setup").json()
    names = {step["name"] for step in status["steps"]}
    assert {"tax_rates", "menu_items", "customers"} <= names
    assert status["entities"]["menu_item"] == 21


def test_setup_failure_is_bad_gateway(api_client, gateway):
    gateway.fail_on("create", "tax_rate")

    resp = api_client.post("/api/sim/setup")

    assert resp.status_code == 502
    assert "tax_rates" in resp.json()["detail"]


def test_reset_step(api_client):
    api_client.post("/api/sim/setup")

    assert api_client.post("/api/sim/setup/steps/discounts/reset").json() == {"name": "discounts", "reset": True}
    assert api_client.post("/api/sim/setup/steps/discounts/reset").json()["reset"] is False
    assert api_client.post("/api/sim/setup/steps/nope/reset").status_code == 404


def test_create_run_and_read_summary(api_client):
    resp = api_client.post("/api/sim/runs", json={"start_date": "2024-03-01", "days": 2, "seed": 5})
    assert resp.status_code == 200
    run = resp.json()
    assert run["status"] == "completed"
    assert run["seed"] == 5

    listed = api_client.get("/api/sim/runs").json()
    assert [r["id"] for r in listed] == [run["id"]]

    summary = api_client.get(f"/api/sim/runs/{run['id']}/summary").json()
    assert summary["summary"]["days"] == 2
    assert summary["summary"]["total_orders"] == run["counters"]["total_orders"]
    assert summary["sales_report"]["totals"]["revenue"] == summary["summary"]["total_revenue"]


def test_run_request_validation(api_client):
    assert api_client.post("/api/sim/runs", json={"start_date": "2024-03-01", "days": 0}).status_code == 422
    assert api_client.post("/api/sim/runs", json={"days": 1}).status_code == 422


def test_unknown_run_summary_is_404(api_client):
    assert api_client.get("/api/sim/runs/missing/summary").status_code == 404


def test_teardown_deletes_remote_entities_and_setup_state(api_client, gateway):
    api_client.post("/api/sim/setup")
    menu_items = len(gateway.records("menu_item"))

    resp = api_client.post("/api/sim/teardown")

    assert resp.status_code == 200
    deleted = resp.json()["deleted"]
    assert deleted["menu_item"] == {"success_count": menu_items, "error_count": 0}
    assert gateway.records("menu_item") == []
    status = api_client.get("/api/sim/setup").json()
    assert status == {"steps": [], "entities": {}}


def test_startup_creates_tables(sqlite_engine):
    from fastapi.testclient import TestClient
    from sqlalchemy import inspect

    from restaurant_sim.app.db import Base
    from restaurant_sim.app.main import app

    Base.metadata.drop_all(bind=sqlite_engine)
    assert "simulation_runs" not in inspect(sqlite_engine).get_table_names()

    with TestClient(app) as client:
        assert client.get("/health").status_code == 200

    assert "simulation_runs" in inspect(sqlite_engine).get_table_names()
