from __future__ import annotations

import argparse
import json
import logging
from dataclasses import replace
from datetime import date, timedelta

from restaurant_sim.app.config import load_settings
from restaurant_sim.app.db import SessionLocal, init_db
from restaurant_sim.app.errors import ConfigurationError, DetectionUnknownError, FatalReconciliationError
from restaurant_sim.app.integrations import close_gateway, get_gateway
from restaurant_sim.app.services import simulation_service
from restaurant_sim.app.services.setup_state_service import SetupStateStore

LOG_FORMAT = "[%(asctime)s] %(levelname)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _parse_date(value: str) -> date:
    return date.fromisoformat(value)


def main() -> None:
    parser = argparse.ArgumentParser(description="Simulate restaurant POS activity against a merchant.")
    parser.add_argument("--days", type=int, default=1, help="Number of days to simulate")
    parser.add_argument("--start-date", help="YYYY-MM-DD (default: today minus --days)")
    parser.add_argument("--seed", type=int, default=None, help="Override SIM_SEED")
    parser.add_argument("--reset", action="store_true", help="Clear setup state before running")
    parser.add_argument("--stub", action="store_true", help="Use the in-memory gateway")
    parser.add_argument("--setup-only", action="store_true", help="Reconcile reference entities and exit")
    parser.add_argument(
        "--delete-all", action="store_true", help="Delete every remote entity and local setup state first"
    )
    args = parser.parse_args()

    if args.days < 1:
        raise SystemExit("--days must be >= 1")

    settings = load_settings(validate=False)
    if args.stub:
        settings = replace(settings, use_stub_gateway=True)
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    logger = logging.getLogger("restaurant_sim")

    try:
        settings.validate()
    except ConfigurationError as exc:
        raise SystemExit(str(exc))

    start_date = _parse_date(args.start_date) if args.start_date else date.today() - timedelta(days=args.days)

    init_db()
    with SessionLocal() as session:
        gateway = get_gateway(settings, session)
        try:
            if args.delete_all:
                deleted = simulation_service.delete_all_entities(gateway, SetupStateStore(session))
                logger.info("remote teardown finished: %s", json.dumps(deleted))
            if args.setup_only:
                if args.reset:
                    SetupStateStore(session).reset_all()
                print(json.dumps(simulation_service.run_setup(session, settings, gateway=gateway), indent=2))
                return
            run = simulation_service.run_simulation(
                session,
                settings,
                start_date=start_date,
                days=args.days,
                seed=args.seed,
                gateway=gateway,
                reset=args.reset,
            )
        except (FatalReconciliationError, DetectionUnknownError) as exc:
            logger.error("simulation aborted: %s", exc)
            raise SystemExit(1)
        finally:
            close_gateway(gateway)

        summary = simulation_service.period_summary_for_run(session, run.id)
        print(json.dumps(summary["summary"] if summary else {}, indent=2))


if __name__ == "__main__":
    main()
