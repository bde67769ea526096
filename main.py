#!/usr/bin/env python3
"""
main.py - Main entry point for the Minecraft AFK bot.

This script provides CLI access to:
1. Run the AFK bot against a server
2. Ping a server and show who is online

Usage:
    python main.py run                          Run with settings.json
    python main.py run --config bot.yaml        Use another settings file
    python main.py run --dry-run                Simulate without connecting
    python main.py server-status                Show the server's player list

SAFETY NOTE:
The bot is intended to be used only where automation is explicitly
allowed by the server owner. Do not use this in violation of any
server's terms of service.
"""

import argparse
import sys
import os
import logging

import numpy as np

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from utils import set_seed, load_config, Settings


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def load_settings(args) -> Settings:
    """Settings from the config file with command line overrides applied."""
    config_dict = load_config(args.config)
    if config_dict is None:
        print(f"Error: could not read settings from {args.config}")
        sys.exit(1)

    settings = Settings.from_dict(config_dict)

    # Command line overrides
    if getattr(args, 'host', None):
        settings.server.ip = args.host
    if getattr(args, 'port', None):
        settings.server.port = args.port
    if getattr(args, 'username', None):
        settings.account.username = args.username

    return settings


def run_bot(args):
    """Run the AFK bot until interrupted."""
    print("=" * 60)
    print("⛏️  Minecraft AFK Bot")
    print("=" * 60)

    settings = load_settings(args)

    rng = None
    if args.seed is not None:
        set_seed(args.seed)
        rng = np.random.default_rng(args.seed)

    from afk_bot.controller import BotController

    # Print configuration
    print(f"\nConfiguration:")
    print(f"  Server: {settings.server.ip}:{settings.server.port} "
          f"(version {settings.server.version or 'auto'})")
    print(f"  Username: {settings.account.username} ({settings.account.auth})")
    print(f"  Anti-AFK: {settings.anti_afk.enabled}")
    print(f"  Mining: {settings.mining.enabled}")
    print(f"  Player activity: {settings.player_activity.enabled}")
    print(f"  Web server: {settings.webserver_port or 'off'}")
    print(f"  Dry run: {args.dry_run}")
    print()

    if args.dry_run:
        print("⚠️  DRY RUN MODE: No connection will be made to the server")
        print()

    controller = BotController(settings, dry_run=args.dry_run, rng=rng)

    try:
        controller.run()
    except KeyboardInterrupt:
        print("\nBot stopped by user")
    finally:
        stats = controller.get_stats()
        print("\n" + "=" * 60)
        print("📊 Session Summary")
        print("=" * 60)
        print(f"Runtime: {stats['runtime_minutes']:.1f} minutes")
        print(f"Reconnects: {stats['reconnects']}")
        print(f"Blocks mined: {stats['blocks_mined']}")
        print("=" * 60)

    return 0


def server_status(args):
    """Ping the configured server and print its player list."""
    settings = load_settings(args)

    from integration.server_status import get_player_status

    status = get_player_status(settings.server.ip, settings.server.port)
    if status is None:
        print(f"Could not reach {settings.server.ip}:{settings.server.port}")
        return 1

    print(f"{settings.server.ip}:{settings.server.port} - {status.online} player(s) online")
    for name in status.sample:
        print(f"  - {name}")
    return 0


def main():
    """Main entry point with subcommand support."""
    parser = argparse.ArgumentParser(
        description="Minecraft AFK Bot - keep an account online and busy",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py run                          Run with settings.json
  python main.py run --dry-run --seed 42      Simulated, reproducible run
  python main.py server-status                Show who is online
        """
    )
    parser.add_argument('--log-level', type=str, default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # Run subcommand
    run_parser = subparsers.add_parser('run', help='Run the AFK bot')
    run_parser.add_argument('--config', type=str, default='settings.json',
                            help='Path to settings file (JSON or YAML)')
    run_parser.add_argument('--dry-run', action='store_true',
                            help='Simulate the game client without connecting')
    run_parser.add_argument('--host', type=str, default=None,
                            help='Server host')
    run_parser.add_argument('--port', type=int, default=None,
                            help='Server port')
    run_parser.add_argument('--username', type=str, default=None,
                            help='Minecraft username')
    run_parser.add_argument('--seed', type=int, default=None,
                            help='Random seed')

    # Server-status subcommand
    status_parser = subparsers.add_parser('server-status', help='Ping the server')
    status_parser.add_argument('--config', type=str, default='settings.json',
                               help='Path to settings file (JSON or YAML)')
    status_parser.add_argument('--host', type=str, default=None,
                               help='Server host')
    status_parser.add_argument('--port', type=int, default=None,
                               help='Server port')

    args = parser.parse_args()
    configure_logging(args.log_level)

    if args.command == 'run':
        return run_bot(args)
    if args.command == 'server-status':
        return server_status(args)

    # Default: show help
    parser.print_help()
    print("\n💡 Quick start:")
    print("  python main.py run --dry-run")
    return 0


if __name__ == "__main__":
    sys.exit(main())
