"""
Deku Task Tracker Launcher

Starts the API server for tasks, subtasks and live updates.

Usage:
    python start_tracker.py
    python start_tracker.py --port 9000
    python start_tracker.py --host 0.0.0.0 --db ./data/tasks.json
"""

import argparse
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))


def main():
    from deku_tracker.config import TrackerConfig
    from deku_tracker.utils.exceptions import ConfigurationError

    try:
        defaults = TrackerConfig.from_env()
    except ConfigurationError as e:
        print(f"Error: {e.message}")
        sys.exit(2)

    parser = argparse.ArgumentParser(description="Deku Task Tracker API server")
    parser.add_argument("--host", default=defaults.host, help=f"Host to bind (default: {defaults.host})")
    parser.add_argument("--port", type=int, default=defaults.port, help=f"Port to bind (default: {defaults.port})")
    parser.add_argument("--db", default=defaults.db_path, help=f"Task file (default: {defaults.db_path})")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload for development")
    args = parser.parse_args()

    try:
        config = TrackerConfig(
            db_path=args.db,
            host=args.host,
            port=args.port,
            queue_size=defaults.queue_size,
            reconnect_delay=defaults.reconnect_delay,
            log_level=defaults.log_level,
        )
    except ConfigurationError as e:
        print(f"Error: {e.message}")
        sys.exit(2)

    print(f"""
╔══════════════════════════════════════════════════════════╗
║                   Deku Task Tracker                      ║
║                                                          ║
║   Tasks API:    http://{args.host}:{args.port}/api/tasks
║   Updates:      http://{args.host}:{args.port}/api/updates
║   Task file:    {config.db_file}
╚══════════════════════════════════════════════════════════╝
    """)

    if args.reload:
        os.environ["DEKU_DB_PATH"] = args.db or ""
        os.environ["DEKU_HOST"] = args.host
        os.environ["DEKU_PORT"] = str(args.port)

    from ui.server import start_server
    start_server(config, reload=args.reload)


if __name__ == "__main__":
    main()
