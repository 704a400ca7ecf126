"""gemgraph - Resolve the installed dependency graph of a Ruby gem project.

    Returns:
        int: Exit code
"""
import json
import logging
import os
import sys
from typing import List

from constants import Constants, ExitCodes
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from args import parse_args
from cli_config import apply_resolver_overrides
from registry.rubygems.errors import GemResolutionError
from registry.rubygems.plugin import GemPlugin
from sbom_module import Module, walk


def export_json(modules: List[Module], path: str) -> None:
    """Exports the module list to a JSON file.

    Args:
        modules (list): Modules in resolution order, root first.
        path (str): File path to export the JSON.
    """
    data = [module.to_dict() for module in modules]
    try:
        with open(path, 'w', encoding='utf-8') as file:
            json.dump(data, file, ensure_ascii=False, indent=4)
        logging.info("JSON file has been successfully exported at: %s", path)
    except OSError as e:
        logging.error("JSON file couldn't be written to disk: %s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)


def print_tree(root: Module) -> None:
    """Print the dependency tree below ``root``, one module per line."""
    for module, depth in walk(root):
        checksum = module.checksum.value if module.checksum else Constants.CHECKSUM_NONE
        print(f"{'  ' * depth}{module.name} {module.version} [{module.license_declared}] {checksum}")


def main(argv=None):
    """Main function of the program."""
    logger = logging.getLogger(__name__)

    args = parse_args(argv)
    # Honor CLI --loglevel by passing it to centralized logger via env
    if getattr(args, "LOG_LEVEL", None):
        os.environ[Constants.ENV_LOG_LEVEL] = str(args.LOG_LEVEL).upper()
    configure_logging(getattr(args, "LOG_FILE", None))

    # Config file < environment < CLI flags
    apply_resolver_overrides(args)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action="main",
                                target=args.FROM_SRC, max_depth=Constants.MAX_DEPTH)
        )

    project = os.path.abspath(args.FROM_SRC)
    if not os.path.isdir(project):
        logging.error("Project directory %s does not exist.", project)
        sys.exit(ExitCodes.FILE_ERROR.value)

    plugin = GemPlugin(max_depth=Constants.MAX_DEPTH)
    try:
        modules = plugin.list_modules_with_deps(project)
    except GemResolutionError as e:
        logging.error("%s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)

    for error in plugin.cache.errors:
        logging.warning("Skipped unreadable path: %s", error.path)

    if not args.QUIET:
        print_tree(modules[0])

    if getattr(args, "OUTPUT", None):
        export_json(modules, args.OUTPUT)

    if plugin.unresolved:
        logging.warning("%d requirement(s) could not be resolved.", len(plugin.unresolved))
        if args.ERROR_ON_WARNINGS:
            logging.error("Warnings present, exiting with non-zero status code.")
            sys.exit(ExitCodes.EXIT_WARNINGS.value)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI finished",
            extra=extra_context(event="function_exit", component="cli", action="main",
                                outcome="success", count=len(modules))
        )
    sys.exit(ExitCodes.SUCCESS.value)


if __name__ == "__main__":
    main()
