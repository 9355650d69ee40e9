"""Library Ledger MCP Server - FastMCP Implementation

Serves the lending ledger to a local front end over stdio.

- Resources (read-only): active/overdue loans, loan history, member and book
  statistics, availability integrity, settings
- Tools (writes): lend and return, book and member management, settings

Nothing here is module-level state. ``main()`` loads the configuration,
opens the database, checks the copy counters, binds every handler to one
``LendingLedger`` and closes the database when the transport ends.
"""

import logging
import signal
import sys
from typing import Any

from fastmcp import FastMCP

from .config import LedgerConfig, get_config
from .database.session import DatabaseManager
from .ledger import LendingLedger
from .resources import build_resources
from .tools import build_tools

logger = logging.getLogger(__name__)

INSTRUCTIONS = (
    "Library Ledger lends books to members and tracks due dates, returns and "
    "overdue fines. Read loans, statistics and settings through resources. "
    "Lend, return and manage books, members and settings through tools."
)


def configure_logging(config: LedgerConfig) -> None:
    """Log to stderr; stdout belongs to the stdio transport."""
    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    if config.is_development:
        logging.getLogger().setLevel(logging.DEBUG)
    else:
        logging.getLogger("fastmcp").setLevel(logging.WARNING)


def create_server(ledger: LendingLedger, config: LedgerConfig) -> FastMCP:
    """FastMCP server with every resource and tool bound to ``ledger``."""
    mcp = FastMCP(
        name=config.server_name,
        version=config.server_version,
        instructions=INSTRUCTIONS,
    )

    resources = build_resources(ledger, history_limit=config.history_limit)
    for resource in resources:
        uri = resource.get("uri_template", resource.get("uri"))
        mcp.resource(
            uri=uri,
            name=resource["name"],
            description=resource["description"],
            mime_type=resource["mime_type"],
        )(resource["handler"])
        logger.debug("Registered resource %s", uri)

    tools = build_tools(ledger)
    for tool in tools:
        mcp.tool(name=tool["name"], description=tool["description"])(tool["handler"])
        logger.debug("Registered tool %s", tool["name"])

    logger.info("Registered %d resources and %d tools", len(resources), len(tools))
    return mcp


def check_availability(ledger: LendingLedger, config: LedgerConfig) -> int:
    """
    Compare copy counters with open loans before serving requests.

    Drift is reported, and repaired when ``repair_on_start`` is set.

    Returns:
        Number of books found out of step
    """
    if not config.check_integrity_on_start:
        return 0

    drifts = ledger.check_integrity()
    for drift in drifts:
        logger.warning(
            "Book %s (%s): %d available recorded, %d expected from %d open loans",
            drift.book_id,
            drift.title,
            drift.stored_available,
            drift.expected_available,
            drift.open_loans,
        )
    if drifts and config.repair_on_start:
        ledger.repair_integrity()
        logger.warning("Repaired availability for %d books", len(drifts))
    return len(drifts)


def main() -> None:
    """Entry point for the ``library-ledger`` command."""
    config = get_config()
    configure_logging(config)
    logger.info("Starting %s", config.server_info)
    logger.info("Ledger database: %s", config.database_path)

    db_manager = DatabaseManager(config.get_database_url())

    def stop(signum: int, _frame: Any) -> None:
        logger.info("Received signal %s, shutting down", signum)
        sys.exit(0)

    signal.signal(signal.SIGINT, stop)
    signal.signal(signal.SIGTERM, stop)

    try:
        db_manager.init_database()
        ledger = LendingLedger(db_manager)
        check_availability(ledger, config)
        create_server(ledger, config).run(transport=config.transport)
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception:
        logger.exception("Fatal error in MCP server")
        sys.exit(1)
    finally:
        db_manager.close()
        logger.info("Database closed")


if __name__ == "__main__":
    main()
