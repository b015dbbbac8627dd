import argparse
import asyncio
import logging
import sys

from .config import ServerSettings
from .exception_handler import configure_logging
from .mcpserver.server import serve_stdio


logger = logging.getLogger("context_craft")


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Serve scaffolding, snippet and project-template tools over MCP stdio"
    )
    parser.add_argument(
        "--root",
        type=str,
        help="Project root the tools operate on (default: $CONTEXT_CRAFT_ROOT or the current directory)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level written to stderr (default: $CONTEXT_CRAFT_LOG_LEVEL or INFO)",
    )

    args = parser.parse_args()

    settings = ServerSettings.from_env(root=args.root)
    if not settings.project_root.is_dir():
        print(f"Error: Project root does not exist: {settings.project_root}", file=sys.stderr)
        sys.exit(1)
    if args.log_level:
        settings.log_level = args.log_level

    configure_logging(settings.log_level)
    logger.debug("Project root: %s, templates: %s", settings.project_root, settings.templates_dir)

    try:
        asyncio.run(serve_stdio(settings))
    except KeyboardInterrupt:
        print("\n⚠️ Server interrupted", file=sys.stderr)
        sys.exit(1)
    except Exception:
        logger.exception("Fatal error in MCP server")
        sys.exit(1)


if __name__ == "__main__":
    main()
