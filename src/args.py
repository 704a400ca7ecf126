"""Argument parsing functionality for gemgraph."""

import argparse


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="gemgraph",
        description=(
            "gemgraph - Resolve the installed dependency graph of a Ruby gem project"
        ),
        add_help=True,
    )

    parser.add_argument("-d", "--directory",
                        dest="FROM_SRC",
                        help="Project root holding the .gemspec",
                        action="store",
                        type=str,
                        required=True)
    parser.add_argument("-o", "--output",
                        dest="OUTPUT",
                        help="Path to the JSON output file",
                        action="store",
                        type=str)
    parser.add_argument("--max-depth",
                        dest="MAX_DEPTH",
                        help="Number of dependency layers to expand below the root (default: 3)",
                        action="store",
                        type=int)
    parser.add_argument("--remote",
                        dest="REMOTE",
                        help="Fill missing checksums and licenses from rubygems.org",
                        action="store_true")
    parser.add_argument("--repair-platforms",
                        dest="REPAIR_PLATFORMS",
                        help="Add the host platform to the lock file's PLATFORMS section",
                        action="store_true")
    parser.add_argument("--workers",
                        dest="PARSE_WORKERS",
                        help="Threads used to index installed gemspecs",
                        action="store",
                        type=int)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str.upper,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'])
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("--error-on-warnings",
                        dest="ERROR_ON_WARNINGS",
                        help="Exit with a non-zero status code if a requirement could not be resolved.",
                        action="store_true")
    parser.add_argument("-q", "--quiet",
                        dest="QUIET",
                        help="Do not print the module summary.",
                        action="store_true")

    # Config file (general)
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store",
                        type=str)

    return parser.parse_args(argv)
