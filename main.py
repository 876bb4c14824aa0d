"""debug-console — query and live-tail a user's debug logs from the admin API."""

import logging
import signal
import sys
import threading
from argparse import ArgumentParser

from debug_console.client import AdminApiClient, ApiError
from debug_console.config import load_config, merged_schema
from debug_console.formatter import format_display_time, get_formatter
from debug_console.models import DebugUser, filter_users, parse_timestamp, user_stats
from debug_console.scheduler import IntervalScheduler
from debug_console.tail import LiveTailController
from debug_console.taxonomy import STATIC_SCHEMA
from debug_console.viewer import DebugLogViewer

logger = logging.getLogger(__name__)


def build_parser() -> ArgumentParser:
    """Build the CLI argument parser."""
    parser = ArgumentParser(
        prog="debug-console",
        description="Query and live-tail debug logs uploaded by app users.",
    )
    parser.add_argument(
        "subject",
        nargs="?",
        help="User id whose debug logs to show",
    )
    parser.add_argument(
        "--config",
        help="Path to a YAML config file (default: $CONFIG_PATH)",
    )
    parser.add_argument("--base-url", dest="base_url", help="Admin API base URL")
    parser.add_argument("--token", help="Admin bearer token")
    parser.add_argument(
        "--query",
        default="",
        help="Search query: 'exact phrase', [Category] [SubTag], HH:MM, words",
    )
    parser.add_argument(
        "--level",
        action="append",
        default=[],
        help="Debug level to include (default, aggressive, paranoic, off); repeatable",
    )
    parser.add_argument(
        "--severity",
        action="append",
        default=[],
        help="Severity to include (INFO, WARN, ERROR, SUCCESS, DEBUG, SYSTEM); repeatable",
    )
    parser.add_argument(
        "--follow",
        action="store_true",
        help="Keep polling for new logs (like tail -f)",
    )
    parser.add_argument(
        "--poll-interval",
        dest="poll_interval",
        type=float,
        help="Seconds between polls while following",
    )
    parser.add_argument(
        "--output",
        choices=["text", "json"],
        default="text",
        help="Output format (default: text)",
    )
    parser.add_argument(
        "--color",
        action="store_true",
        help="Colorize output by severity (ANSI)",
    )
    parser.add_argument(
        "--users",
        action="store_true",
        help="List users with their debug status instead of showing logs",
    )
    parser.add_argument(
        "--search",
        help="With --users, only list users whose nickname or id contains this text",
    )
    parser.add_argument(
        "--clear",
        action="store_true",
        help="Delete all uploaded debug logs of the subject",
    )
    parser.add_argument(
        "--categories",
        action="store_true",
        help="List known categories and sub-tags for the subject's logs",
    )
    parser.add_argument("--log-level", dest="log_level", help="Logging level (default: INFO)")
    return parser


def print_users(client: AdminApiClient, tz_name: str, search: str | None = None):
    users = client.list_debug_users()
    matches = filter_users(users, search)
    for user in matches:
        status = "ON " if user.debug_enabled else "off"
        seen = user.debug_last_seen or user.last_active
        logs = f"{user.log_count} logs" if user.log_count else "no logs"
        print(f"[{status}] {user.id}  {user.nickname or '-'}  "
              f"last seen {format_display_time(parse_timestamp(seen), tz_name)}  {logs}")
    if search and not matches:
        print(f'No users found matching "{search}"')

    stats = user_stats(users)
    print(f"{stats.debug_enabled} debug enabled, {stats.with_logs} with logs "
          f"({stats.total_logs} total logs), {stats.total} users")


def print_categories(viewer: DebugLogViewer):
    for main in viewer.main_categories():
        subs = ", ".join(viewer.sub_tags(main))
        print(f"[{main}] {subs}")


def run(args) -> int:
    config = load_config(args)
    logging.getLogger().setLevel(config.log_level)

    client = AdminApiClient(config.base_url, config.token, timeout=config.request_timeout)
    scheduler = IntervalScheduler()
    formatter = get_formatter(args.output, args.color, config.display_timezone)
    shutdown_event = threading.Event()

    try:
        if args.users:
            print_users(client, config.display_timezone, args.search)
            return 0

        if not args.subject:
            print("Error: a subject (user id) is required", file=sys.stderr)
            return 1

        if args.clear:
            client.clear_logs(args.subject)
            print(f"Cleared debug logs for {args.subject}")
            return 0

        def on_append(new_records):
            predicate = viewer.predicate()
            for record in new_records:
                if predicate(record):
                    print(formatter(record), flush=True)

        controller = LiveTailController(
            client.fetch_logs,
            scheduler,
            poll_interval=config.poll_interval,
            on_append=on_append,
        )
        viewer = DebugLogViewer(
            controller,
            static_schema=merged_schema(STATIC_SCHEMA, config),
            client=client,
            tz_name=config.display_timezone,
        )
        viewer.set_query(args.query)
        viewer.set_level_filter(args.level)
        viewer.set_severity_filter(args.severity)

        if not viewer.open(DebugUser(id=args.subject, debug_enabled=args.follow)):
            print(f"Error: {viewer.error}", file=sys.stderr)
            return 1

        if args.categories:
            print_categories(viewer)
            return 0

        info = viewer.client_info()
        if info is not None:
            logger.info("Client: %s on %s (%s, platform=%s, ip=%s)",
                        info.browser, info.os, info.device, info.platform, info.ip)

        for record in viewer.visible_records():
            print(formatter(record))

        if not args.follow:
            return 0

        def signal_handler(signum, frame):
            logger.info("Received signal %d, shutting down...", signum)
            shutdown_event.set()

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

        logger.info("Following %s every %.1fs", args.subject, config.poll_interval)
        shutdown_event.wait()
        viewer.close()
        return 0
    except ApiError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        scheduler.shutdown()
        client.close()


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
        stream=sys.stderr,
    )
    parser = build_parser()
    args = parser.parse_args()
    sys.exit(run(args))


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        sys.exit(0)
    except BrokenPipeError:
        sys.exit(0)
