"""Argument parsing functionality for depstage."""

import argparse

from depstage.transitive.scope import MavenScope


def _add_common(parser):
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("--settings",
                        dest="SETTINGS",
                        help="YAML file overriding timeouts, chunk size and recursion bounds",
                        action="store",
                        type=str)


def build_parser():
    """Build the top-level parser with its sub-commands."""
    parser = argparse.ArgumentParser(
        prog="depstage",
        description="depstage - resolve, verify and stage Maven artifacts at runtime",
        add_help=True,
    )
    sub = parser.add_subparsers(dest="COMMAND", required=True)

    resolve = sub.add_parser("resolve", help="Download and stage the declared dependencies")
    resolve.add_argument("-c", "--config-dir",
                         dest="CONFIG_DIR",
                         help="Directory holding repositories.txt, dependencies.txt, "
                              "relocations.txt and depstage.properties",
                         action="store", type=str, required=True)
    resolve.add_argument("-d", "--data-dir",
                         dest="DATA_DIR",
                         help="Application data directory; the libs folder is created inside it",
                         action="store", type=str, required=True)
    resolve.add_argument("-n", "--name",
                         dest="NAME",
                         help="Application name used in log messages",
                         action="store", type=str, default="depstage")
    resolve.add_argument("-w", "--workers",
                         dest="WORKERS",
                         help="Number of parallel downloads (default: 1)",
                         action="store", type=int, default=1)
    resolve.add_argument("--host-facility",
                         dest="HOST_FACILITY",
                         help="Dotted name (module:attribute) of a host loading facility to probe",
                         action="store", type=str)
    _add_common(resolve)

    tree = sub.add_parser("tree", help="List the transitive dependencies of a coordinate")
    tree.add_argument("coordinate",
                      help="groupId:artifactId:version[:classifier]")
    tree.add_argument("-r", "--repository",
                      dest="REPOSITORIES",
                      help="Additional repository to search (can be used multiple times)",
                      action="append", type=str, default=[])
    tree.add_argument("-s", "--scope",
                      dest="SCOPES",
                      help="Scope to include (can be used multiple times; default: compile)",
                      action="append", type=str.lower,
                      choices=[s.value for s in MavenScope], default=[])
    tree.add_argument("--no-recursive",
                      dest="NO_RECURSIVE",
                      help="Only list direct dependencies",
                      action="store_true")
    _add_common(tree)

    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
