#!/usr/bin/env python3
# config.py - Centralized Configuration Management
# Place in project root directory

import os
import sys
import logging
from pathlib import Path
from dotenv import load_dotenv

# Load .env file
env_path = Path(__file__).parent / '.env'
load_dotenv(dotenv_path=env_path)

logger = logging.getLogger(__name__)

VALID_ROLES = ('server', 'client')


def setup_logging(level=None, log_file=None):
    """Configure console (and optional file) logging from LOG_LEVEL / LOG_FILE"""
    level_name = (level or os.getenv('LOG_LEVEL', 'INFO')).upper()
    log_level = getattr(logging, level_name, logging.INFO)
    log_file = log_file or os.getenv('LOG_FILE')

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    handlers = []
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(formatter)
            handlers.append(file_handler)
        except OSError as e:
            print(f"⚠️ Cannot open log file {log_file}: {e}")

    logging.basicConfig(level=log_level, handlers=handlers, force=True)


class Config:
    """Centralized configuration read from the environment"""

    # ============================================
    # WebSocket Configuration
    # ============================================
    WS_ROLE = os.getenv('WS_ROLE', 'server').lower()
    WS_HOST = os.getenv('WS_HOST', 'localhost')
    WS_PORT = int(os.getenv('WS_PORT', '3300'))
    WS_URI = os.getenv('WS_URI', '/wpilibws')

    # ============================================
    # Engine Timing
    # ============================================
    # Outbound polling period. Independent of the counterpart's ~20 ms
    # driver-station cadence.
    POLL_INTERVAL_MS = int(os.getenv('POLL_INTERVAL_MS', '50'))
    DS_PACKET_TIMEOUT_MS = int(os.getenv('DS_PACKET_TIMEOUT_MS', '250'))

    # ============================================
    # Reconnect (client role)
    # ============================================
    RECONNECT_INITIAL_DELAY = float(os.getenv('RECONNECT_INITIAL_DELAY', '1'))
    RECONNECT_MAX_DELAY = float(os.getenv('RECONNECT_MAX_DELAY', '30'))

    # ============================================
    # Logging
    # ============================================
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()
    LOG_FILE = os.getenv('LOG_FILE')

    @classmethod
    def ws_url(cls):
        return f"ws://{cls.WS_HOST}:{cls.WS_PORT}{cls.WS_URI}"

    # ============================================
    # Display Configuration
    # ============================================
    @classmethod
    def print_config(cls):
        """Log configuration summary"""
        logger.info("=" * 60)
        logger.info("wsrobot Configuration Summary")
        logger.info("=" * 60)
        logger.info(f"Role:             {cls.WS_ROLE}")
        logger.info(f"WebSocket:        {cls.ws_url()}")
        logger.info(f"Poll Interval:    {cls.POLL_INTERVAL_MS} ms")
        logger.info(f"DS Timeout:       {cls.DS_PACKET_TIMEOUT_MS} ms")
        logger.info(f"Reconnect Delay:  {cls.RECONNECT_INITIAL_DELAY}s -> {cls.RECONNECT_MAX_DELAY}s")
        logger.info(f"Log Level:        {cls.LOG_LEVEL}")
        logger.info("=" * 60)
