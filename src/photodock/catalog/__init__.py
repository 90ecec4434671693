"""Catalog CLI: scan the media root and inspect the DuckDB catalog."""

import argparse


def main() -> None:
    """CLI entry point for catalog management."""
    parser = argparse.ArgumentParser(description="photodock media catalog")
    parser.add_argument("--db", help="DuckDB file (or set PHOTODOCK_DB_PATH in .env)")
    parser.add_argument("--log-dir", help="Also write rotating log files to this directory")
    subparsers = parser.add_subparsers(dest="command")

    # init-db
    subparsers.add_parser("init-db", help="Initialize the database schema")

    # scan
    scan_parser = subparsers.add_parser("scan", help="Ingest new images under the media root")
    scan_parser.add_argument("--folder", help="Only scan this folder (relative to MEDIA_ROOT)")
    scan_parser.add_argument(
        "--background", action="store_true", help="Run through the background task runner"
    )

    # clean
    subparsers.add_parser("clean", help="Remove photos whose files are gone and empty folders")

    # regenerate-urls
    subparsers.add_parser("regenerate-urls", help="Recompute every photo URL slug")

    # prewarm
    subparsers.add_parser("prewarm", help="Index thumbnails already present in the cache")

    # list
    list_parser = subparsers.add_parser("list", help="List photos in the catalog")
    list_parser.add_argument("--folder", help="Filter by folder path")
    list_parser.add_argument("--hidden", action="store_true", help="Include hidden photos")

    # status
    subparsers.add_parser("status", help="Show catalog statistics")

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        return

    from photodock.log import init_logging

    init_logging(log_dir=args.log_dir)

    if args.command == "init-db":
        from photodock.db import get_connection

        conn = get_connection(args.db)
        conn.close()
        print("Database initialized successfully.")

    elif args.command == "scan":
        _cmd_scan(args)

    elif args.command == "clean":
        _cmd_clean(args)

    elif args.command == "regenerate-urls":
        from photodock.db import get_connection

        conn = get_connection(args.db)
        scanner = _build_scanner(conn)
        count = scanner.regenerate_url_paths()
        conn.close()
        print(f"Regenerated {count} URL paths.")

    elif args.command == "prewarm":
        from photodock.derivatives import DerivativeCache

        count = DerivativeCache().prewarm()
        print(f"Indexed {count} cached files.")

    elif args.command == "list":
        _cmd_list(args)

    elif args.command == "status":
        from photodock.catalog.repository import get_catalog_stats
        from photodock.config import CACHE_DIR, MEDIA_ROOT
        from photodock.db import get_connection

        conn = get_connection(args.db)
        folders, photos, hidden, total_bytes = get_catalog_stats(conn)
        conn.close()
        print(f"Media root: {MEDIA_ROOT}")
        print(f"Cache dir:  {CACHE_DIR}")
        print(f"Folders:    {folders}")
        print(f"Photos:     {photos} ({hidden} hidden)")
        print(f"Total size: {total_bytes / 1024 / 1024:.1f} MB")


def _build_scanner(conn):
    from photodock.derivatives import DerivativeCache
    from photodock.ingest import Scanner
    from photodock.metadata import select_extractor

    return Scanner(conn, DerivativeCache(), select_extractor())


def _cmd_scan(args: argparse.Namespace) -> None:
    """Scan the whole media root or one folder."""
    from rich.progress import Progress, SpinnerColumn, TextColumn

    from photodock.db import get_connection
    from photodock.errors import PhotodockError

    conn = get_connection(args.db)
    try:
        if args.background:
            stats = _scan_in_background(conn, args.folder)
        else:
            scanner = _build_scanner(conn)
            with Progress(
                SpinnerColumn(),
                TextColumn("[bold blue]{task.description}"),
                TextColumn("{task.completed} files"),
            ) as progress:
                task = progress.add_task("Scanning", total=None)

                def on_file(rel_path: str) -> None:
                    progress.update(task, advance=1, description=f"Scanning {rel_path}")

                if args.folder:
                    stats = scanner.scan_folder(args.folder, on_file=on_file)
                else:
                    stats = scanner.scan_all(on_file=on_file)
    except PhotodockError as exc:
        print(f"Error: {exc}")
        return
    finally:
        conn.close()

    if stats is None:
        return
    print(
        f"Scanned {stats.folders} folders: {stats.added} added, "
        f"{stats.skipped} already in catalog, {stats.errors} errors"
    )


def _scan_in_background(conn, folder: str | None):
    """Submit the scan to the task runner and poll its status handle."""
    from rich.progress import Progress, SpinnerColumn, TextColumn

    from photodock.derivatives import DerivativeCache
    from photodock.ingest import ScanTaskRunner
    from photodock.metadata import select_extractor

    runner = ScanTaskRunner(conn, DerivativeCache(), select_extractor())
    try:
        if folder:
            task = runner.submit_scan_folder(folder)
        else:
            task = runner.submit_scan_all()
        print(f"Started {task.kind} task {task.id}")

        with Progress(SpinnerColumn(), TextColumn("[bold blue]{task.description}")) as progress:
            bar = progress.add_task(f"Task {task.id[:8]}: {task.status}", total=None)
            while not task.wait(timeout=0.5).done:
                progress.update(bar, description=f"Task {task.id[:8]}: {task.status}")
    finally:
        runner.shutdown()

    if task.error:
        print(f"Task {task.id} failed: {task.error}")
        return None
    return task.result


def _cmd_clean(args: argparse.Namespace) -> None:
    """Remove orphaned photos and empty folders."""
    from photodock.db import get_connection

    conn = get_connection(args.db)
    scanner = _build_scanner(conn)
    stats = scanner.clean_orphans()
    conn.close()
    print(f"Removed {stats.photos_removed} photos and {stats.folders_removed} folders.")


def _cmd_list(args: argparse.Namespace) -> None:
    """List photos, optionally restricted to one folder."""
    from photodock.catalog.repository import get_folder_by_path, list_photos
    from photodock.db import get_connection

    conn = get_connection(args.db)
    folder_id = None
    if args.folder:
        folder = get_folder_by_path(conn, args.folder.strip("/"))
        if folder is None:
            conn.close()
            print(f"Error: folder not found: {args.folder}")
            return
        folder_id = folder.id

    photos = list_photos(conn, folder_id=folder_id, include_hidden=args.hidden)
    conn.close()
    for photo in photos:
        taken = photo.sort_time.strftime("%Y-%m-%d %H:%M") if photo.sort_time else "-"
        flag = " [hidden]" if photo.hidden else ""
        print(f"{photo.id:>6}  {taken}  {photo.width}x{photo.height}  /{photo.url_path}{flag}")
