#!/usr/bin/env python3
# run_endpoint.py
# Run the debug robot behind a WPILib WebSocket endpoint

import argparse
import asyncio
import logging
import sys

from config import Config, VALID_ROLES, setup_logging
from wsrobot_daemon.debug_robot import DebugRobot
from wsrobot_daemon.endpoint import RobotEndpoint

logger = logging.getLogger("run_endpoint")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description='WPILib WebSocket robot endpoint (debug robot)',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Wait for robot code to connect on ws://localhost:3300/wpilibws
  ./run_endpoint.py --role server

  # Connect out to a robot-code simulation server
  ./run_endpoint.py --role client --host 10.0.0.2
        """
    )
    parser.add_argument('--role', choices=VALID_ROLES, default=Config.WS_ROLE,
                        help='Transport role (default: %(default)s)')
    parser.add_argument('--host', default=Config.WS_HOST, help='Host to bind or connect to')
    parser.add_argument('--port', type=int, default=Config.WS_PORT, help='WebSocket port')
    parser.add_argument('--uri', default=Config.WS_URI, help='WebSocket path')
    parser.add_argument('--log-level', default=Config.LOG_LEVEL, help='Logging level')
    return parser.parse_args(argv)


async def run(args):
    Config.WS_ROLE = args.role
    Config.WS_HOST = args.host
    Config.WS_PORT = args.port
    Config.WS_URI = args.uri
    Config.print_config()

    robot = DebugRobot()
    endpoint = RobotEndpoint.from_config(robot, Config)

    await endpoint.start()
    logger.info(f"✅ {args.role.capitalize()} is up and running")

    try:
        await asyncio.Event().wait()
    finally:
        await endpoint.stop()


def main(argv=None):
    args = parse_args(argv)
    setup_logging(args.log_level, Config.LOG_FILE)
    asyncio.run(run(args))
    return 0


if __name__ == '__main__':
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        sys.exit(0)
