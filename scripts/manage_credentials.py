"""CLI to list, save, delete, clear, and sync credentials across stores.

Examples:
    python scripts/manage_credentials.py list --store local --type UniversityDegreeCredential
    python scripts/manage_credentials.py save vc.json --store local --store googleDrive
    python scripts/manage_credentials.py delete 1b9d... --store googleDrive
    python scripts/manage_credentials.py sync
    python scripts/manage_credentials.py stats
"""

import argparse
import json
import sys
from pathlib import Path

# Project root
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from loguru import logger

from data.schemas.credential import (
    AccountContext,
    CredentialFilter,
    CredentialRecord,
    FilterKind,
    QueryOptions,
    SaveOptions,
    StoreOptions,
)
from data.storage import CredentialStoreError, CredentialSync, RemoteNotConfiguredError, build_data_manager
from data.storage.sync import LOCAL_STORE, REMOTE_STORE
from infra.settings import get_settings


def confirm(prompt: str, assume_yes: bool) -> bool:
    if assume_yes:
        return True
    answer = input(f"{prompt} [y/N] ").strip().lower()
    return answer in ("y", "yes")


def build_filter(args: argparse.Namespace) -> CredentialFilter | None:
    if getattr(args, "id", None):
        return CredentialFilter(kind=FilterKind.by_id, parameter=args.id)
    if getattr(args, "type", None):
        return CredentialFilter(kind=FilterKind.by_type, parameter=args.type)
    if getattr(args, "path", None):
        return CredentialFilter(kind=FilterKind.by_path, parameter=args.path)
    return None


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Manage verifiable credentials in local and Google Drive stores.")
    parser.add_argument("--account", type=str, default=None, help="Account to operate on (default: VCSTORE_ACCOUNT).")
    parser.add_argument("--duckdb-path", type=str, default=None, help="Local store database (default: VCSTORE_DUCKDB_PATH).")
    parser.add_argument("--yes", "-y", action="store_true", help="Do not prompt for confirmation.")
    sub = parser.add_subparsers(dest="command", required=True)

    def add_store(p: argparse.ArgumentParser) -> None:
        p.add_argument("--store", action="append", default=None, help="Target store; repeat for several (default: all).")

    def add_filter(p: argparse.ArgumentParser) -> None:
        group = p.add_mutually_exclusive_group()
        group.add_argument("--id", type=str, help="Select one credential id.")
        group.add_argument("--type", type=str, help="Select credentials whose type contains this value.")
        group.add_argument("--path", type=str, help="Select credentials with a JSONPath expression.")

    p_list = sub.add_parser("list", help="Query credentials.")
    add_store(p_list)
    add_filter(p_list)
    p_list.add_argument("--no-store", action="store_true", help="Omit the store name from results.")

    p_save = sub.add_parser("save", help="Save credentials from a JSON file (object, list, or JWT string).")
    add_store(p_save)
    p_save.add_argument("file", type=str)
    p_save.add_argument("--credential-id", type=str, default=None, help="Id for a single credential.")

    p_delete = sub.add_parser("delete", help="Delete credentials by id.")
    add_store(p_delete)
    p_delete.add_argument("ids", nargs="+")

    p_clear = sub.add_parser("clear", help="Clear credentials (Google Drive always clears everything).")
    add_store(p_clear)
    add_filter(p_clear)

    sub.add_parser("sync", help="Pull Google Drive-only credentials into the local store.")
    sub.add_parser("stats", help="Show local credential counts per account.")
    return parser.parse_args(argv)


def load_records(path: str, credential_id: str | None) -> list[CredentialRecord]:
    with open(path, "r", encoding="utf-8") as f:
        payload = json.load(f)
    if isinstance(payload, list):
        return [CredentialRecord(data=item) for item in payload]
    return [CredentialRecord(id=credential_id, data=payload)]


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    settings = get_settings()
    if args.duckdb_path:
        settings = settings.model_copy(update={"duckdb_path": args.duckdb_path})
    logger.add(settings.log_path, rotation="1 day", retention="7 days")

    context = AccountContext(
        account=args.account or settings.account,
        access_token=settings.google_access_token,
    )
    manager = build_data_manager(settings)
    try:
        if context.access_token:
            try:
                configured = manager.configure(context, StoreOptions(store=REMOTE_STORE))
            except RemoteNotConfiguredError as e:
                logger.warning("Google Drive token rejected: {}", e)
                configured = {REMOTE_STORE: False}
            if not configured.get(REMOTE_STORE):
                logger.warning("Google Drive store not configured; remote operations will fail")
        else:
            logger.info("GOOGLE_ACCESS_TOKEN not set; Google Drive store left unconfigured")

        if args.command == "list":
            results = manager.query(
                context,
                build_filter(args),
                QueryOptions(store=args.store, return_store=not args.no_store),
            )
            print(json.dumps([r.model_dump(exclude_none=True) for r in results], indent=2))

        elif args.command == "save":
            results = manager.save(context, load_records(args.file, args.credential_id), SaveOptions(store=args.store))
            for r in results:
                print(f"  {r.store}: {r.id}")

        elif args.command == "delete":
            if not confirm(f"Remove credentials {args.ids}?", args.yes):
                logger.warning("Delete cancelled")
                sys.exit(1)
            for r in manager.delete(context, args.ids, StoreOptions(store=args.store)):
                print(f"  {r.store}: removed={r.removed}")

        elif args.command == "clear":
            if not confirm("Remove all matching credentials?", args.yes):
                logger.warning("Clear cancelled")
                sys.exit(1)
            for r in manager.clear(context, build_filter(args), StoreOptions(store=args.store)):
                print(f"  {r.store}: removed={r.removed}")

        elif args.command == "sync":
            syncer = CredentialSync(manager)
            syncer.sync(
                context,
                confirm=lambda ids: confirm(f"Sync {len(ids)} credentials from Google Drive: {ids}?", args.yes),
            )

        elif args.command == "stats":
            print(json.dumps(manager.get_store(LOCAL_STORE).get_stats(), indent=2))

        if manager.last_failures:
            for failure in manager.last_failures:
                logger.warning("Store {} did not complete {}: {}", failure.store_name, failure.operation, failure.cause)
            sys.exit(1)
        logger.success("{} completed", args.command)

    except CredentialStoreError as e:
        logger.error("{} failed: {}", args.command, e)
        sys.exit(1)
    finally:
        manager.close()


if __name__ == "__main__":
    main()
