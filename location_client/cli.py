"""
Command-line interface for the location tracker client.

Usage:
    location-tracker add 38.84 -77.18 --type plant --note kudzu
    location-tracker list --type litter
    location-tracker sync
    location-tracker config --server-url http://localhost:3000
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from .context import MANUAL_NOTE, AppContext
from .errors import TrackerError
from .record import LocationType

logger = logging.getLogger(__name__)


def _print_notice(message: str, level: str) -> None:
    stream = sys.stderr if level == 'error' else sys.stdout
    print(message, file=stream)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='location-tracker',
        description="Plant & litter location tracker",
    )
    parser.add_argument('--data-dir', help="Directory for local data")
    parser.add_argument('--server-url', help="Location service URL override")
    parser.add_argument('--api-key', help="API key override")
    parser.add_argument('-v', '--verbose', action='store_true', help="Enable debug logging")

    subparsers = parser.add_subparsers(dest='command', required=True)

    add = subparsers.add_parser('add', help="Add a location at explicit coordinates")
    add.add_argument('lat', type=float)
    add.add_argument('lng', type=float)
    add.add_argument('--type', dest='location_type', choices=LocationType.values(),
                     default=LocationType.PLANT.value)
    add.add_argument('--note', default=MANUAL_NOTE)

    list_cmd = subparsers.add_parser('list', help="List local locations, newest first")
    list_cmd.add_argument('--type', dest='location_type', choices=LocationType.values())
    list_cmd.add_argument('--json', action='store_true', help="Print JSON")

    delete = subparsers.add_parser('delete', help="Delete a location")
    delete.add_argument('id', type=int)

    subparsers.add_parser('sync', help="Sync pending locations now")
    subparsers.add_parser('check', help="Test the server connection")

    export = subparsers.add_parser('export', help="Export locations to a JSON file")
    export.add_argument('path')

    import_cmd = subparsers.add_parser('import', help="Import locations from a JSON file")
    import_cmd.add_argument('path')

    subparsers.add_parser('clear', help="Delete all local locations")
    subparsers.add_parser('stats', help="Show local statistics")

    config = subparsers.add_parser('config', help="Show or update configuration")
    config.add_argument('--set-server-url', dest='new_server_url')
    config.add_argument('--set-api-key', dest='new_api_key')
    config.add_argument('--sync-interval', type=float, help="Auto-sync interval in seconds")

    return parser


def _format_record(record) -> str:
    status = 'synced' if record.synced else 'pending'
    line = (
        f"{record.id}  {record.type:<6}  {record.lat:.6f}, {record.lng:.6f}  "
        f"{record.timestamp}  [{status}]  {record.note}"
    )
    if record.address:
        line += f"  ({record.address})"
    return line


def run(args: argparse.Namespace, app: AppContext) -> int:
    """Execute one subcommand against a started context."""
    command = args.command

    if command == 'add':
        record = app.add_manual_location(args.lat, args.lng, args.location_type, args.note)
        print(record.id)

    elif command == 'list':
        records = app.store.list(args.location_type)
        if args.json:
            print(json.dumps([r.to_dict() for r in records], indent=2))
        else:
            for record in records:
                print(_format_record(record))

    elif command == 'delete':
        if not app.delete_location(args.id):
            print(f"Location {args.id} not found", file=sys.stderr)
            return 1

    elif command == 'sync':
        result = app.sync_now()
        if result.failed:
            return 1

    elif command == 'check':
        if not app.test_connection():
            return 1

    elif command == 'export':
        app.export_data(args.path)

    elif command == 'import':
        app.import_data(args.path)

    elif command == 'clear':
        print(f"Removed {app.clear_all()} locations")

    elif command == 'stats':
        print(json.dumps(app.stats(), indent=2))

    elif command == 'config':
        if args.new_server_url is not None or args.new_api_key is not None \
                or args.sync_interval is not None:
            app.configure(
                server_url=args.new_server_url,
                api_key=args.new_api_key,
                sync_interval=args.sync_interval,
            )
        settings = app.config.to_dict()
        if settings.get('apiKey'):
            settings['apiKey'] = '***'
        print(json.dumps(settings, indent=2))

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the tracker CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    app = AppContext(data_dir=args.data_dir, on_notice=_print_notice)

    # Command-line overrides apply to this run only
    if args.server_url:
        app.config.server_url = args.server_url
        app.client.set_base_url(app.config.server_url)
    if args.api_key:
        app.config.api_key = args.api_key
        app.client.set_api_key(args.api_key)

    app.store.restore()
    try:
        return run(args, app)
    except TrackerError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        app.geocoder.shutdown()
        app.store.persist()
        app.config.save_offline_mode()
        app.client.close()


if __name__ == '__main__':
    sys.exit(main())
