"""
==============================================
Command-line entry point for test databases.
==============================================

Inspects and prepares the test database described by the environment
(.env file or db_* / tmpdb_* variables) without running the test suite.

Usage:
    # Show the resolved connection parameters (password masked)
    python main.py --show-params

    # Drop and recreate the test database (or wipe its schema)
    python main.py --reset

    # Same, with every statement logged
    python main.py --reset --log-level DEBUG

Example:
    >>> from main import ProvisioningCommands
    >>>
    >>> commands = ProvisioningCommands()
    >>> commands.describe_parameters()['test']
    {'driver': 'sqlite', 'memory': True}
"""

import argparse
import json
import sys
from typing import Any, Dict, Optional

from core.config import ConfigurationError, DatabaseTestConfig
from core.logger import get_logger, setup_logging
from provisioning.connection import DatabaseConnectionError
from provisioning.lifecycle import DatabaseLifecycleManager, LifecycleError
from provisioning.parameters import (
    connection_parameters,
    has_explicit_configuration,
    resolve_privileged_parameters,
)

logger = get_logger(__name__)


class ProvisioningCommands:
    """
    Operations behind the command-line flags.

    Attributes:
        config: Test database configuration
        lifecycle: Lifecycle manager used by reset()
    """

    def __init__(self, config: Optional[DatabaseTestConfig] = None):
        if config is None:
            from core.config import config as default_config
            config = default_config
        self.config = config
        self.lifecycle = DatabaseLifecycleManager(config)

    def describe_parameters(self) -> Dict[str, Any]:
        """
        Return the parameter sets a test run would use, passwords masked.

        Returns:
            Dictionary with 'explicit', 'test', 'privileged' (None without an
            explicit configuration) and 'event_subscribers'
        """
        explicit = has_explicit_configuration(self.config)
        privileged = None
        if explicit:
            privileged = resolve_privileged_parameters(self.config).masked()

        return {
            'explicit': explicit,
            'test': connection_parameters(self.config).masked(),
            'privileged': privileged,
            'event_subscribers': list(self.config.event_subscribers),
        }

    def reset(self) -> bool:
        """
        Reset the configured test database.

        Returns:
            True if a reset ran, False when no backend is configured

        Raises:
            DatabaseConnectionError: If a connection cannot be opened
            LifecycleError: If the reset statements fail
        """
        if not has_explicit_configuration(self.config):
            logger.warning("⚠️  No db_driver configured, the embedded SQLite fallback needs no reset")
            return False
        return self.lifecycle.ensure_initialized()


def main(argv=None):
    """
    Command-line interface for test database provisioning.

    Exit Codes:
        0: Success
        1: Error
        130: User interrupt (Ctrl+C)
    """
    parser = argparse.ArgumentParser(
        description="Test database provisioning",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Show which databases a test run would connect to
  python main.py --show-params

  # Drop and recreate the test database (DESTROYS ITS DATA!)
  python main.py --reset
        """
    )
    parser.add_argument(
        '--show-params',
        action='store_true',
        help='Print the resolved connection parameters as JSON (password masked)'
    )
    parser.add_argument(
        '--reset',
        action='store_true',
        help='Drop and recreate the test database, or wipe its schema'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        default=None,
        help='Console log level (defaults to TESTDB_LOG_LEVEL or INFO)'
    )

    args = parser.parse_args(argv)

    if args.log_level:
        setup_logging(log_level=args.log_level)

    if not (args.show_params or args.reset):
        parser.print_help()
        logger.warning("⚠️  No operation specified. Use --show-params or --reset")
        return 1

    try:
        commands = ProvisioningCommands()

        if args.show_params:
            print(json.dumps(commands.describe_parameters(), indent=2))

        if args.reset:
            if commands.reset():
                logger.info("✅ Test database reset")

        return 0

    except (ConfigurationError, DatabaseConnectionError, LifecycleError) as e:
        logger.error(f"❌ {e}")
        return 1
    except KeyboardInterrupt:
        logger.warning("⚠️  Operation interrupted by user")
        return 130


if __name__ == '__main__':
    sys.exit(main())
