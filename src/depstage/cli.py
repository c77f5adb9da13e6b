"""Command-line entry point."""
from __future__ import annotations

import logging
import sys
from pathlib import Path

from depstage.args import parse_args
from depstage.common.logging_utils import configure_logging, extra_context, is_debug_enabled
from depstage.config import RuntimeLibConfiguration
from depstage.constants import Constants, ExitCodes, load_yaml_overrides
from depstage.coordinates import Coordinate
from depstage.exceptions import ConfigurationError, DepstageError
from depstage.loading import CodeLoadingTarget, resolve_loading_strategy
from depstage.manager import DependencyManager, OutcomeStatus
from depstage.transitive import TransitiveResolver

logger = logging.getLogger(__name__)


def _setup_logging(args) -> None:
    configure_logging(getattr(args, "LOG_LEVEL", None))
    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        logging.getLogger().addHandler(file_handler)
        logger.info("Logging to file: %s", log_file)


def run_resolve(args) -> int:
    """Resolve the declared configuration and print staged paths."""
    try:
        config = RuntimeLibConfiguration.parse(args.CONFIG_DIR)
    except (ConfigurationError, OSError) as exc:
        logger.error("%s", exc)
        return ExitCodes.FILE_ERROR.value

    target = CodeLoadingTarget(resolve_loading_strategy(getattr(args, "HOST_FACILITY", None)))
    manager = DependencyManager(
        Path(args.DATA_DIR) / config.libs_folder,
        target=target,
        name=args.NAME,
        max_workers=args.WORKERS,
    )
    for repository in config.repositories:
        manager.repository(repository)
    for coordinate in config.dependencies:
        manager.dependency(coordinate)
    for relocation in config.relocations:
        manager.relocate(relocation)

    outcome = manager.load()
    if is_debug_enabled(logger):
        logger.debug(
            "Resolution outcome",
            extra=extra_context(event="function_exit", component="cli", action="resolve",
                                outcome=outcome.status.value, count=len(outcome.artifacts)),
        )
    if outcome.status is OutcomeStatus.DEGRADED:
        return ExitCodes.CONNECTION_ERROR.value
    if outcome.status is OutcomeStatus.FATAL:
        return ExitCodes.RESOLUTION_ERROR.value
    for path in outcome.paths:
        print(path)
    return ExitCodes.SUCCESS.value


def run_tree(args) -> int:
    """Print the transitive dependencies of a coordinate, one per line."""
    try:
        root = Coordinate.parse(args.coordinate)
    except ValueError as exc:
        logger.error("%s", exc)
        return ExitCodes.FILE_ERROR.value

    builder = TransitiveResolver.builder().recursively(not args.NO_RECURSIVE)
    builder.scopes(*args.SCOPES)
    builder.repositories(*args.REPOSITORIES)
    try:
        coordinates = builder.build().resolve(root)
    except DepstageError as exc:
        logger.error("%s", exc)
        return ExitCodes.RESOLUTION_ERROR.value
    for coordinate in coordinates:
        print(coordinate)
    return ExitCodes.SUCCESS.value


def main(argv=None) -> int:
    """Main function of the program."""
    args = parse_args(argv)
    _setup_logging(args)

    if getattr(args, "SETTINGS", None):
        try:
            applied = load_yaml_overrides(args.SETTINGS)
        except (OSError, ValueError) as exc:
            logger.error("Could not load settings %s: %s", args.SETTINGS, exc)
            return ExitCodes.FILE_ERROR.value
        logger.debug("Applied settings overrides: %s", applied)

    if args.COMMAND == "resolve":
        return run_resolve(args)
    return run_tree(args)


if __name__ == "__main__":
    sys.exit(main())
