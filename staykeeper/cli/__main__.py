# staykeeper/cli/__main__.py
from __future__ import annotations

import argparse
from pathlib import Path

from ..config import settings
from ..db import SessionLocal, init_db
from ..logging_config import configure_logging
from ..services.client_storage import JsonFileKeyValueStore
from ..services.entity_store import SqlEntityStore
from ..services.notifications import CollectingNotifier
from .migrate_legacy import migrate_legacy
from .seed_demo import seed_demo


def main(argv: list[str] | None = None) -> None:
    p = argparse.ArgumentParser(prog="staykeeper")
    sub = p.add_subparsers(dest="command", required=True)

    s = sub.add_parser("seed-demo", help="create a demo owner, properties, templates and inventory")
    s.add_argument("--user-email", default="owner@staykeeper.local")
    s.add_argument("--user-name", default="Demo Owner")
    s.add_argument("--no-inventory", action="store_true")

    m = sub.add_parser("migrate-legacy", help="move a legacy inventory export into the database (once)")
    m.add_argument("--email", required=True)
    m.add_argument("--file", type=Path, default=None)
    m.add_argument("--state", default=settings.client_state_path, help="client storage JSON file")

    args = p.parse_args(argv)
    configure_logging()
    init_db()
    store = SqlEntityStore(SessionLocal)

    if args.command == "seed-demo":
        out = seed_demo(
            store,
            user_email=args.user_email,
            user_name=args.user_name,
            with_inventory=not args.no_inventory,
        )
        print(
            {
                "ok": True,
                "user_email": out.user_email,
                "property_ids": out.property_ids,
                "templates_created": out.template_count,
                "items_created": out.item_count,
            }
        )
        return

    notifier = CollectingNotifier()
    out = migrate_legacy(
        store,
        JsonFileKeyValueStore(args.state),
        notifier,
        email=args.email,
        legacy_file=args.file,
    )
    print(
        {
            "ok": out.status != "failed",
            "status": out.status,
            "migrated_count": out.migrated_count,
            "messages": [f"{n.title}: {n.description}" for n in notifier.items],
        }
    )


if __name__ == "__main__":
    main()
